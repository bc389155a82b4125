import logging
from concurrent.futures import ThreadPoolExecutor
from functools import partial

from supabase import Client

from shiptrack.config import DEFAULT_EVENT_WORKERS, DEFAULT_LIST_LIMIT
from shiptrack.errors import Forbidden, NotFound
from shiptrack.schemas import (
    EVENT_COLUMNS,
    SHIPMENT_DETAIL_COLUMNS,
    SHIPMENT_LIST_COLUMNS,
    Event,
    ShipmentDetail,
    ShipmentSummary,
)
from shiptrack.services.access import scope_matches

logger = logging.getLogger(__name__)


def _get_single(rowset):
    return rowset[0] if rowset else None


def ilike_literal(value: str) -> str:
    """
    Quotes a scope id for use as a PostgREST `ilike` operand so that it
    matches literally (apart from letter case).
    """
    # LIKE wildcards first, then PostgREST quoting
    pattern = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    quoted = pattern.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{quoted}"'


def scope_filter(scopes: set[str]) -> str:
    return ",".join(f"customer_id.ilike.{ilike_literal(s)}" for s in sorted(scopes))


def latest_event_code(db: Client, shipment_id: str) -> str | None:
    resp = (
        db.table("events")
        .select("event_code")
        .eq("shipment_id", shipment_id)
        .order("event_time", desc=True)
        .limit(1)
        .execute()
    )
    row = _get_single(resp.data)
    return (row.get("event_code") or None) if row else None


def _latest_event_codes(db: Client, shipment_ids: list[str], workers: int) -> list[str | None]:
    if not shipment_ids:
        return []
    # TODO: replace with a single read against a latest-event-per-shipment view once one exists
    with ThreadPoolExecutor(max_workers=min(workers, len(shipment_ids))) as pool:
        return list(pool.map(partial(latest_event_code, db), shipment_ids))


def list_shipments(
    db: Client,
    scopes: set[str],
    limit: int = DEFAULT_LIST_LIMIT,
    workers: int = DEFAULT_EVENT_WORKERS,
) -> list[ShipmentSummary]:
    """
    Shipments owned by any of `scopes`, most recent activity first, each
    annotated with the code of its latest event.

    No scopes means no rows, and no query is issued.
    """
    if not scopes:
        return []

    resp = (
        db.table("shipments")
        .select(SHIPMENT_LIST_COLUMNS)
        .or_(scope_filter(scopes))
        .order("last_event_time", desc=True)
        .limit(limit)
        .execute()
    )
    rows = resp.data or []
    codes = _latest_event_codes(db, [row["shipment_id"] for row in rows], workers)

    return [
        ShipmentSummary(**{**row, "latest_event_code": code})
        for row, code in zip(rows, codes)
    ]


def fetch_events(db: Client, shipment_id: str) -> list[Event]:
    resp = (
        db.table("events")
        .select(EVENT_COLUMNS)
        .eq("shipment_id", shipment_id)
        .order("event_time", desc=True)
        .execute()
    )
    return [Event(**row) for row in (resp.data or [])]


def find_shipment(db: Client, shipment_id: str) -> dict:
    """Raw shipment row by exact id; NotFound for every caller when absent."""
    resp = (
        db.table("shipments")
        .select(SHIPMENT_DETAIL_COLUMNS)
        .eq("shipment_id", shipment_id)
        .limit(1)
        .execute()
    )
    row = _get_single(resp.data)
    if not row:
        raise NotFound("Shipment not found")
    return row


def authorize_shipment(db: Client, row: dict, scopes: set[str]) -> tuple[ShipmentDetail, list[Event]]:
    """
    Checks the caller's scopes against a found shipment, then loads its full
    event history, newest first.
    """
    shipment_id = row["shipment_id"]
    if not scopes:
        raise Forbidden("No customer access")

    if not scope_matches(row.get("customer_id"), scopes):
        logger.warning("Scope mismatch on shipment %s", shipment_id)
        raise Forbidden("You don't have access to this shipment")

    return ShipmentDetail(**row), fetch_events(db, shipment_id)


def get_shipment(db: Client, shipment_id: str, scopes: set[str]) -> tuple[ShipmentDetail, list[Event]]:
    """
    One shipment and its events. Unknown ids are NotFound for every caller;
    a known id outside the caller's scopes is Forbidden.
    """
    return authorize_shipment(db, find_shipment(db, shipment_id), scopes)
