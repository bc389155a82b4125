from collections.abc import Iterable, Mapping
from dataclasses import dataclass

DELIVERED = "Delivered"
CUSTOMS_RELEASED = "Customs Released"
DISCHARGED = "Discharged"
IN_TRANSIT = "In Transit"
PRE_DEPARTURE = "Pre-Departure"

CANONICAL_STATUSES = (DELIVERED, CUSTOMS_RELEASED, DISCHARGED, IN_TRANSIT, PRE_DEPARTURE)


def _from_event_code(code: str) -> str | None:
    """Maps a normalized event code to a canonical status. First rule wins."""
    if "DELIVERED" in code or code == "DEL":
        return DELIVERED
    if "CUSTOMS_RELEASED" in code or code == "CUS" or "CLEARED" in code:
        return CUSTOMS_RELEASED
    if "DISCHARGED" in code or code == "DIS":
        return DISCHARGED
    if "ATD" in code or "DEPARTED" in code:
        return IN_TRANSIT
    if any(k in code for k in ("BOOKED", "READY", "DOCS_RECEIVED", "CARGO_RECEIVED")):
        return PRE_DEPARTURE
    return None


def _from_status_text(raw: str) -> str | None:
    if "deliver" in raw:
        return DELIVERED
    if "custom" in raw and ("release" in raw or "cleared" in raw):
        return CUSTOMS_RELEASED
    if "discharg" in raw:
        return DISCHARGED
    if "transit" in raw:
        return IN_TRANSIT
    if "pre" in raw or "booked" in raw or "ready" in raw:
        return PRE_DEPARTURE
    return None


def derive_status(latest_event_code: str | None, current_status: str | None) -> str:
    """
    Canonical lifecycle status of a shipment.

    The latest event code is authoritative; the free-text status is only
    consulted when the code says nothing. Always returns one of
    CANONICAL_STATUSES, defaulting to In Transit.
    """
    code = (latest_event_code or "").upper().strip()
    if code:
        status = _from_event_code(code)
        if status:
            return status

    raw = (current_status or "").strip().lower()
    return _from_status_text(raw) or IN_TRANSIT


@dataclass(frozen=True)
class Milestone:
    key: str
    label: str
    codes: tuple[str, ...]


MILESTONES = (
    Milestone("booked", "Booked", ("BOOKED",)),
    Milestone("ready", "Ready", ("READY",)),
    Milestone("docs", "Docs Received", ("DOCS_RECEIVED",)),
    Milestone("cargo", "Cargo Received", ("CARGO_RECEIVED",)),
    Milestone("departed", "Departed", ("ATD",)),
    Milestone("discharged", "Discharged", ("DISCHARGED",)),
    Milestone("customs", "Customs Released", ("CUSTOMS_RELEASED",)),
    Milestone("delivered", "Delivered", ("DELIVERED",)),
)


def _event_code(event) -> str:
    if isinstance(event, Mapping):
        code = event.get("event_code")
    else:
        code = getattr(event, "event_code", None)
    return (code or "").upper().strip()


def infer_milestone_index(events: Iterable) -> int:
    """
    Index into MILESTONES of the furthest milestone any event reached.

    Event order is irrelevant, so a late-arriving earlier-stage event never
    moves progress backwards. No recognised code means 0 (Booked).
    """
    codes = {c for c in (_event_code(e) for e in events or ()) if c}

    for i in range(len(MILESTONES) - 1, -1, -1):
        if any(c in codes for c in MILESTONES[i].codes):
            return i
    return 0
