"""
Pure state and derivations behind the shipment list view.

Nothing here touches streamlit or the network: the page holds a TableState
and the fetched rows, and renders whatever `visible_rows` returns.
"""
from dataclasses import dataclass, replace
from datetime import datetime

import dateutil.parser

from shiptrack.services.status import derive_status

TEXT_KEYS = ("reference", "route", "status")
DATE_KEYS = ("eta_updated", "last_event_time")
SORT_KEYS = TEXT_KEYS + DATE_KEYS

SEARCH_FIELDS = ("hawb", "mawb", "po_number", "customer_reference", "shipment_id")

ASC = "asc"
DESC = "desc"


@dataclass(frozen=True)
class TableState:
    query: str = ""
    sort_key: str = "last_event_time"
    sort_dir: str = DESC


def default_direction(key: str) -> str:
    return ASC if key in TEXT_KEYS else DESC


def toggle_sort(state: TableState, key: str) -> TableState:
    """Same key flips direction; a new key starts in its default direction."""
    if key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {key}")
    if key == state.sort_key:
        return replace(state, sort_dir=ASC if state.sort_dir == DESC else DESC)
    return replace(state, sort_key=key, sort_dir=default_direction(key))


def with_query(state: TableState, query: str) -> TableState:
    return replace(state, query=query)


def reference_of(row: dict) -> str:
    return row.get("hawb") or row.get("mawb") or row.get("po_number") or row.get("shipment_id") or ""


def route_of(row: dict) -> str:
    return f"{row.get('origin') or ''}→{row.get('destination') or ''}"


def status_of(row: dict) -> str:
    return derive_status(row.get("latest_event_code"), row.get("current_status"))


def parse_date(value) -> datetime | None:
    if not value:
        return None
    try:
        return dateutil.parser.isoparse(str(value))
    except (ValueError, OverflowError):
        try:
            return dateutil.parser.parse(str(value))
        except (ValueError, OverflowError):
            return None


def _timestamp(value) -> float | None:
    dt = parse_date(value)
    if dt is None:
        return None
    try:
        return dt.timestamp()
    except (ValueError, OverflowError, OSError):
        return None


def filter_rows(rows: list[dict], query: str) -> list[dict]:
    q = (query or "").strip().lower()
    if not q:
        return list(rows)
    return [
        row for row in rows
        if any(q in str(row[f]).lower() for f in SEARCH_FIELDS if row.get(f))
    ]


def _text_value(row: dict, key: str) -> str:
    if key == "reference":
        return reference_of(row).lower()
    if key == "route":
        return route_of(row).lower()
    return status_of(row).lower()


def sort_rows(rows: list[dict], key: str, direction: str) -> list[dict]:
    """
    Text keys compare lower-cased strings; date keys compare timestamps.
    Rows whose date is missing or unparsable go last in either direction.
    """
    reverse = direction == DESC
    if key in TEXT_KEYS:
        return sorted(rows, key=lambda r: _text_value(r, key), reverse=reverse)
    if key not in DATE_KEYS:
        raise ValueError(f"Unknown sort key: {key}")

    dated, undated = [], []
    for row in rows:
        ts = _timestamp(row.get(key))
        if ts is None:
            undated.append(row)
        else:
            dated.append((ts, row))
    dated.sort(key=lambda pair: pair[0], reverse=reverse)
    return [row for _, row in dated] + undated


def visible_rows(rows: list[dict], state: TableState) -> list[dict]:
    return sort_rows(filter_rows(rows, state.query), state.sort_key, state.sort_dir)
