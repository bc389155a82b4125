import logging

from fastapi import Depends, Header
from supabase import Client

from shiptrack.errors import Unauthorized
from shiptrack.schemas import VerifiedIdentity
from shiptrack.services.supabase_client import get_auth_client

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


def extract_bearer(authorization: str | None) -> str:
    """Returns the raw token from an `Authorization: Bearer <token>` header, or ''."""
    header = authorization or ""
    if not header.lower().startswith(BEARER_PREFIX):
        return ""
    return header[len(BEARER_PREFIX):].strip()


def verify_token(auth_client: Client, token: str) -> VerifiedIdentity:
    """
    Resolves a bearer token to a verified identity.

    Validation (signature, expiry, revocation) is delegated entirely to the
    identity provider; a token it accepts is trusted as-is. Fails closed on a
    missing token, a provider rejection, or a user without an email.
    """
    if not token:
        raise Unauthorized()

    try:
        resp = auth_client.auth.get_user(token)
    except Exception as e:
        logger.warning("Identity provider rejected bearer token: %s", e)
        raise Unauthorized()

    user = resp.user if resp else None
    email = getattr(user, "email", None) if user else None
    if not email:
        logger.warning("Bearer token resolved to a user without email")
        raise Unauthorized()

    return VerifiedIdentity(email=email, user_id=getattr(user, "id", None))


def current_identity(
    authorization: str | None = Header(default=None),
    auth_client: Client = Depends(get_auth_client),
) -> VerifiedIdentity:
    return verify_token(auth_client, extract_bearer(authorization))
