import logging

from supabase import Client

logger = logging.getLogger(__name__)


def scopes_for(db: Client, email: str) -> set[str]:
    """
    Customer scopes the identity may view, from the `allowed_users` table.

    An empty set is a normal answer (no memberships); a failed lookup raises.
    """
    resp = (
        db.table("allowed_users")
        .select("customer_id")
        .eq("email", email)
        .execute()
    )
    scopes = {row["customer_id"] for row in (resp.data or []) if row.get("customer_id")}
    logger.debug("Resolved %d scope(s) for %s", len(scopes), email)
    return scopes


def scope_matches(owner: str | None, scopes: set[str]) -> bool:
    """Case-insensitive membership test of a shipment's owning scope."""
    if not owner:
        return False
    owner_lc = owner.lower()
    return any(s.lower() == owner_lc for s in scopes)
