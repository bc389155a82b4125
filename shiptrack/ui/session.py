import logging
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass

from supabase import create_client, Client

from shiptrack.config import public_auth_settings

logger = logging.getLogger(__name__)

SESSION_KEY = "auth_session"

# Tokens delivered in the URL fragment never reach the server; re-issue them as
# query parameters so the callback can read them.
FRAGMENT_FORWARDER = """
<script>
const host = window.parent;
const hash = host.location.hash ? host.location.hash.substring(1) : "";
if (hash) {
  const params = new URLSearchParams(host.location.search);
  new URLSearchParams(hash).forEach((v, k) => params.set(k, v));
  host.location.replace(host.location.pathname + "?" + params.toString());
}
</script>
"""


@dataclass(frozen=True)
class SessionContext:
    access_token: str
    refresh_token: str = ""
    email: str = ""

    @classmethod
    def from_auth_session(cls, session) -> "SessionContext | None":
        if not session or not getattr(session, "access_token", None):
            return None
        user = getattr(session, "user", None)
        return cls(
            access_token=session.access_token,
            refresh_token=getattr(session, "refresh_token", "") or "",
            email=(getattr(user, "email", "") or "") if user else "",
        )


def make_auth_client() -> Client:
    url, anon_key = public_auth_settings()
    return create_client(url, anon_key)


def load_session(state: Mapping) -> SessionContext | None:
    return state.get(SESSION_KEY)


def store_session(state: MutableMapping, session: SessionContext | None) -> None:
    if session is None:
        state.pop(SESSION_KEY, None)
    else:
        state[SESSION_KEY] = session


def clear_session(state: MutableMapping) -> None:
    state.pop(SESSION_KEY, None)


def complete_sign_in(params: Mapping, auth, existing: SessionContext | None = None) -> SessionContext | None:
    """
    Finishes a sign-in callback.

    Accepts an authorization `code` (exchanged for a session), or an
    `access_token`/`refresh_token` pair. An `error` parameter (typically an
    expired link) is tolerated only if a session already exists. Any failure
    yields None, which sends the user back to sign-in.
    """
    try:
        code = params.get("code")
        if code:
            resp = auth.exchange_code_for_session({"auth_code": code})
            return SessionContext.from_auth_session(resp.session if resp else None)

        if params.get("error"):
            logger.info("Sign-in callback error: %s", params.get("error_description") or params.get("error"))
            return existing

        access_token = params.get("access_token")
        refresh_token = params.get("refresh_token")
        if access_token and refresh_token:
            resp = auth.set_session(access_token, refresh_token)
            return SessionContext.from_auth_session(resp.session if resp else None)

        return existing
    except Exception:
        logger.exception("Sign-in callback failed")
        return None


def request_sign_in_code(auth, email: str, redirect_to: str) -> None:
    auth.sign_in_with_otp({"email": email, "options": {"email_redirect_to": redirect_to}})


def verify_sign_in_code(auth, email: str, code: str) -> SessionContext | None:
    try:
        resp = auth.verify_otp({"email": email, "token": code, "type": "email"})
    except Exception:
        logger.exception("One-time code rejected for %s", email)
        return None
    return SessionContext.from_auth_session(resp.session if resp else None)
