from datetime import datetime, timedelta, timezone
from unittest import TestCase

from fakes import FakeSupabase
from shiptrack.errors import Forbidden, NotFound
from shiptrack.services.access import scope_matches, scopes_for
from shiptrack.services.shipments import get_shipment, ilike_literal, list_shipments

T0 = datetime(2026, 3, 1, tzinfo=timezone.utc)


def ts(minutes: int) -> str:
    return (T0 + timedelta(minutes=minutes)).isoformat()


def shipment(sid, customer, minutes=0, **extra):
    row = {
        "shipment_id": sid,
        "customer_id": customer,
        "hawb": None,
        "mawb": None,
        "po_number": None,
        "customer_reference": None,
        "origin": "HKG",
        "destination": "LAX",
        "current_status": "In Transit",
        "eta_updated": None,
        "last_event_time": ts(minutes),
    }
    row.update(extra)
    return row


def event(sid, code, minutes, **extra):
    row = {"shipment_id": sid, "event_code": code, "event_time": ts(minutes),
           "notes": None, "location": None, "source_column": None}
    row.update(extra)
    return row


class AccessResolverTests(TestCase):
    def test_scopes_by_exact_email(self):
        db = FakeSupabase(tables={"allowed_users": [
            {"email": "ops@acme.com", "customer_id": "ACME"},
            {"email": "ops@acme.com", "customer_id": "ACME-EU"},
            {"email": "ops@acme.com", "customer_id": None},
            {"email": "OPS@acme.com", "customer_id": "OTHER"},
        ]})
        self.assertEqual(scopes_for(db, "ops@acme.com"), {"ACME", "ACME-EU"})

    def test_no_memberships_is_empty_not_error(self):
        self.assertEqual(scopes_for(FakeSupabase(), "nobody@example.com"), set())

    def test_lookup_failure_propagates(self):
        db = FakeSupabase(fail_tables={"allowed_users"})
        with self.assertRaises(RuntimeError):
            scopes_for(db, "ops@acme.com")

    def test_scope_match_ignores_case(self):
        self.assertTrue(scope_matches("acme", {"ACME"}))
        self.assertFalse(scope_matches("acme2", {"ACME"}))
        self.assertFalse(scope_matches(None, {"ACME"}))

    def test_scope_match_uses_simple_lowercasing(self):
        """Agrees with the datastore ILIKE: no case folding of special letters."""
        self.assertFalse(scope_matches("STRASSE", {"straße"}))
        self.assertTrue(scope_matches("Straße", {"STRAßE"}))


class ListShipmentsTests(TestCase):
    def test_empty_scopes_issue_no_query(self):
        db = FakeSupabase(tables={"shipments": [shipment("S1", "ACME")]})
        self.assertEqual(list_shipments(db, set()), [])
        self.assertEqual(db.calls, [])

    def test_scope_match_is_case_insensitive(self):
        db = FakeSupabase(tables={"shipments": [
            shipment("S1", "acme", 1),
            shipment("S2", "Acme", 2),
            shipment("S3", "globex", 3),
        ]})
        rows = list_shipments(db, {"ACME"})
        self.assertEqual([r.shipment_id for r in rows], ["S2", "S1"])

    def test_scope_wildcards_match_literally(self):
        db = FakeSupabase(tables={"shipments": [
            shipment("S1", "A_C", 1),
            shipment("S2", "ABC", 2),
            shipment("S3", "A%C", 3),
        ]})
        rows = list_shipments(db, {"a_c"})
        self.assertEqual([r.shipment_id for r in rows], ["S1"])

    def test_reserved_characters_are_quoted(self):
        self.assertEqual(ilike_literal("ACME"), '"ACME"')
        self.assertEqual(ilike_literal('a,b"c'), '"a,b\\"c"')
        self.assertEqual(ilike_literal("A_C"), '"A\\\\_C"')

    def test_truncates_to_most_recent(self):
        rows = [shipment(f"S{i:03d}", "ACME", i) for i in range(301)]
        db = FakeSupabase(tables={"shipments": rows})
        result = list_shipments(db, {"ACME"})
        self.assertEqual(len(result), 300)
        self.assertEqual(result[0].shipment_id, "S300")
        self.assertNotIn("S000", {r.shipment_id for r in result})

    def test_latest_event_code_attached_per_shipment(self):
        db = FakeSupabase(tables={
            "shipments": [shipment("S1", "ACME", 10), shipment("S2", "ACME", 5)],
            "events": [
                event("S1", "BOOKED", 1),
                event("S1", "ATD", 8),
                event("S1", "CARGO_RECEIVED", 4),
                event("S2", "DELIVERED", 2),
            ],
        })
        result = list_shipments(db, {"ACME"})
        self.assertEqual([(r.shipment_id, r.latest_event_code) for r in result],
                         [("S1", "ATD"), ("S2", "DELIVERED")])

    def test_shipment_without_events_has_null_code(self):
        db = FakeSupabase(tables={"shipments": [shipment("S1", "ACME")], "events": []})
        self.assertIsNone(list_shipments(db, {"ACME"})[0].latest_event_code)

    def test_event_lookup_failure_fails_whole_list(self):
        db = FakeSupabase(tables={"shipments": [shipment("S1", "ACME")]}, fail_tables={"events"})
        with self.assertRaises(RuntimeError):
            list_shipments(db, {"ACME"})

    def test_list_rows_do_not_expose_owner(self):
        db = FakeSupabase(tables={"shipments": [shipment("S1", "ACME")]})
        self.assertNotIn("customer_id", list_shipments(db, {"ACME"})[0].model_dump())


class GetShipmentTests(TestCase):
    def setUp(self):
        self.db = FakeSupabase(tables={
            "shipments": [shipment("S1", "acme", hawb="H-1")],
            "events": [
                event("S1", "BOOKED", 1, notes="Booking confirmed"),
                event("S1", "ATD", 30, location="HKG"),
                event("S1", "CARGO_RECEIVED", 10),
                event("S2", "DELIVERED", 40),
            ],
        })

    def test_returns_shipment_and_events_newest_first(self):
        detail, events = get_shipment(self.db, "S1", {"ACME"})
        self.assertEqual(detail.hawb, "H-1")
        self.assertEqual(detail.customer_id, "acme")
        self.assertEqual([e.event_code for e in events], ["ATD", "CARGO_RECEIVED", "BOOKED"])

    def test_unknown_id_is_not_found_for_any_caller(self):
        with self.assertRaises(NotFound):
            get_shipment(self.db, "NOPE", {"ACME"})
        with self.assertRaises(NotFound):
            get_shipment(self.db, "NOPE", set())

    def test_no_memberships_is_forbidden(self):
        with self.assertRaises(Forbidden) as ctx:
            get_shipment(self.db, "S1", set())
        self.assertEqual(ctx.exception.message, "No customer access")

    def test_other_scope_is_forbidden(self):
        with self.assertRaises(Forbidden):
            get_shipment(self.db, "S1", {"GLOBEX"})
        self.assertNotIn("events", self.db.calls)
