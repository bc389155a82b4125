import itertools
from unittest import TestCase

from shiptrack.services.status import (
    CANONICAL_STATUSES,
    CUSTOMS_RELEASED,
    DELIVERED,
    DISCHARGED,
    IN_TRANSIT,
    MILESTONES,
    PRE_DEPARTURE,
    derive_status,
    infer_milestone_index,
)

EVENT_CODES = [
    None, "", "  ", "DELIVERED", "del", "CUS", "CUSTOMS_RELEASED", "CLEARED_EXPORT",
    "DISCHARGED", "dis", "ATD", "DEPARTED", "BOOKED", "READY", "DOCS_RECEIVED",
    "CARGO_RECEIVED", "ARRIVED", "XYZ",
]
STATUS_TEXTS = [
    None, "", "Delivered", "customs released", "Customs cleared", "Discharged",
    "In Transit", "pre-departure", "Booked", "Ready for pickup", "on hold", "???",
]


class DeriveStatusTests(TestCase):
    def test_always_returns_a_canonical_status(self):
        """Every code/text combination yields exactly one of the five labels."""
        for code, text in itertools.product(EVENT_CODES, STATUS_TEXTS):
            self.assertIn(derive_status(code, text), CANONICAL_STATUSES, (code, text))

    def test_event_code_wins_over_status_text(self):
        self.assertEqual(derive_status("DELIVERED", "In Transit"), DELIVERED)
        self.assertEqual(derive_status("BOOKED", "Delivered"), PRE_DEPARTURE)
        self.assertEqual(derive_status("atd", "customs released"), IN_TRANSIT)

    def test_event_code_rules_in_priority_order(self):
        self.assertEqual(derive_status(" del ", None), DELIVERED)
        self.assertEqual(derive_status("CUS", None), CUSTOMS_RELEASED)
        self.assertEqual(derive_status("EXPORT_CLEARED", None), CUSTOMS_RELEASED)
        self.assertEqual(derive_status("DIS", None), DISCHARGED)
        self.assertEqual(derive_status("DEPARTED_ORIGIN", None), IN_TRANSIT)
        self.assertEqual(derive_status("DOCS_RECEIVED", None), PRE_DEPARTURE)
        # "DELIVERED" is checked before "READY"
        self.assertEqual(derive_status("READY_DELIVERED", None), DELIVERED)

    def test_short_codes_match_exactly(self):
        """DEL/CUS/DIS are only recognised as whole codes."""
        self.assertEqual(derive_status("DELAY", "Booked"), PRE_DEPARTURE)
        self.assertEqual(derive_status("DISPATCH", "discharged at port"), DISCHARGED)

    def test_falls_back_to_status_text(self):
        self.assertEqual(derive_status(None, "  Delivered to consignee "), DELIVERED)
        self.assertEqual(derive_status("", "Customs cleared"), CUSTOMS_RELEASED)
        self.assertEqual(derive_status("UNKNOWN", "Vessel discharging"), DISCHARGED)
        self.assertEqual(derive_status(None, "in transit"), IN_TRANSIT)
        self.assertEqual(derive_status(None, "Pre-alert sent"), PRE_DEPARTURE)

    def test_customs_text_needs_release_or_cleared(self):
        self.assertEqual(derive_status(None, "Customs hold"), IN_TRANSIT)

    def test_defaults_to_in_transit(self):
        self.assertEqual(derive_status(None, None), IN_TRANSIT)
        self.assertEqual(derive_status("ARRIVED", "on hold"), IN_TRANSIT)


class MilestoneIndexTests(TestCase):
    def _events(self, *codes):
        return [{"event_code": c} for c in codes]

    def test_furthest_milestone_wins(self):
        """CARGO_RECEIVED listed after ATD still reports Departed."""
        index = infer_milestone_index(self._events("ATD", "CARGO_RECEIVED"))
        self.assertEqual(index, 4)
        self.assertEqual(MILESTONES[index].label, "Departed")

    def test_no_events_is_booked(self):
        self.assertEqual(infer_milestone_index([]), 0)
        self.assertEqual(infer_milestone_index(None), 0)
        self.assertEqual(infer_milestone_index(self._events(None, "", "NOTE")), 0)

    def test_codes_are_normalized(self):
        self.assertEqual(infer_milestone_index(self._events(" delivered ")), 7)
        self.assertEqual(infer_milestone_index(self._events("customs_released")), 6)

    def test_short_status_codes_do_not_advance_progress(self):
        """DEL/CUS/DIS/DEPARTED drive the status badge only, not the milestones."""
        for code in ("DEL", "CUS", "DIS", "DEPARTED"):
            self.assertEqual(infer_milestone_index(self._events(code)), 0, code)
        self.assertEqual(infer_milestone_index(self._events("CARGO_RECEIVED", "DEL")), 3)

    def test_adding_earlier_stage_events_never_regresses(self):
        base = self._events("DISCHARGED")
        expected = infer_milestone_index(base)
        for m in MILESTONES[:expected]:
            for code in m.codes:
                self.assertEqual(infer_milestone_index(base + self._events(code)), expected)

    def test_accepts_event_objects(self):
        class Row:
            event_code = "READY"

        self.assertEqual(infer_milestone_index([Row()]), 1)
