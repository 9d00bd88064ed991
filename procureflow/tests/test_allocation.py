"""
Tests for allocation state and savings.
"""
from decimal import Decimal

import pytest

from procureflow.services.comparison.allocation import AllocationState
from procureflow.services.comparison.errors import ValidationError
from procureflow.services.comparison.events import ComparisonEventType, EventOutbox
from procureflow.services.comparison.models import QuoteStatus, Selection
from procureflow.services.comparison.savings import (
    compute_aggregate_savings, compute_line_savings, lines_requiring_decision,
    missing_line_ids, round_money, savings_report,
)
from procureflow.tests.conftest import SUPPLIER_A, SUPPLIER_C, make_quote, make_rfq


class TestAllocationSeed:
    """Recommended allocation."""

    def test_seed_picks_cheapest_per_line(self, rfq):
        """Test that seeding selects the cheapest supplier per line."""
        state = AllocationState(rfq)
        state.seed()

        assert state.get_selection("line-1") == Selection("line-1", "sup-b", "q-b")
        assert state.get_selection("line-2") == Selection("line-2", "sup-a", "q-a")

    def test_seed_leaves_unquoted_lines_unassigned(self, partially_quoted_rfq):
        """Test that unquoted lines stay unassigned."""
        state = AllocationState(partially_quoted_rfq)
        state.seed()

        assert state.get_selection("line-2") is None
        assert state.unassigned_line_ids() == ["line-2"]

    def test_seed_emits_no_events(self, rfq):
        """Test that seeding puts nothing on the outbox."""
        outbox = EventOutbox()
        AllocationState(rfq, outbox).seed()
        assert outbox.pending == []

    def test_selections_follow_line_order(self, rfq):
        """Test that selections are listed in material-request order."""
        state = AllocationState(rfq)
        state.seed()
        state.select("line-1", "sup-a", "q-a")
        assert [s.line_item_id for s in state.selections] == ["line-1", "line-2"]


class TestAllocationSelect:
    """Explicit operator choices."""

    def test_select_replaces_previous_choice(self, rfq):
        """Test that a new choice replaces the old one and records it."""
        state = AllocationState(rfq)
        state.seed()

        state.select("line-1", "sup-a", "q-a")

        assert state.get_selection("line-1").supplier_id == "sup-a"
        assert state.changes[-1].previous_supplier_id == "sup-b"

    def test_select_emits_selection_changed(self, rfq):
        """Test that a choice queues a selection_changed event."""
        outbox = EventOutbox()
        state = AllocationState(rfq, outbox)
        state.seed()

        state.select("line-1", "sup-a", "q-a")

        [event] = outbox.pending
        assert event.event == ComparisonEventType.SELECTION_CHANGED
        assert event.payload == {
            "rfq_id": "rfq-1",
            "line_item_id": "line-1",
            "supplier_id": "sup-a",
            "previous_supplier_id": "sup-b",
        }

    def test_events_are_sequenced_in_call_order(self, rfq):
        """Test that events are numbered in the order choices were made."""
        outbox = EventOutbox()
        state = AllocationState(rfq, outbox)
        state.seed()

        state.select("line-1", "sup-a", "q-a")
        state.select("line-1", "sup-b", "q-b")
        state.select("line-2", "sup-a", "q-a")

        assert [e.sequence for e in outbox.pending] == [1, 2, 3]
        assert [e.payload["supplier_id"] for e in outbox.pending] == ["sup-a", "sup-b", "sup-a"]

    def test_supplier_that_skipped_line_is_rejected(self, rfq):
        """Test that a supplier who did not quote the line cannot be chosen."""
        outbox = EventOutbox()
        state = AllocationState(rfq, outbox)
        state.seed()

        with pytest.raises(ValidationError) as exc_info:
            state.select("line-2", "sup-b", "q-b")

        assert exc_info.value.line_item_id == "line-2"
        assert state.get_selection("line-2") == Selection("line-2", "sup-a", "q-a")
        assert outbox.pending == []

    def test_quote_from_other_supplier_is_rejected(self, rfq):
        """Test that a quote id from another supplier is rejected."""
        state = AllocationState(rfq)
        with pytest.raises(ValidationError):
            state.select("line-1", "sup-a", "q-b")

    def test_unknown_line_is_rejected(self, rfq):
        """Test that an unknown line is rejected."""
        state = AllocationState(rfq)
        with pytest.raises(ValidationError):
            state.select("line-9", "sup-a", "q-a")

    def test_withdrawn_quote_is_rejected(self):
        """Test that a withdrawn quote cannot be chosen."""
        rfq = make_rfq([
            make_quote("q-a", SUPPLIER_A, [("line-1", 100, 1)]),
            make_quote("q-c", SUPPLIER_C, [("line-1", 80, 1)], status=QuoteStatus.WITHDRAWN),
        ])
        state = AllocationState(rfq)
        with pytest.raises(ValidationError) as exc_info:
            state.select("line-1", "sup-c", "q-c")
        assert "withdrawn" in exc_info.value.message


class TestSavings:
    """Savings against the best price."""

    def test_savings_zero_at_seed(self, rfq):
        """Test that the recommended allocation saves nothing."""
        state = AllocationState(rfq)
        state.seed()
        assert compute_aggregate_savings(rfq, state.selections) == Decimal("0")

    def test_costlier_choice_gives_negative_savings(self, rfq):
        """Test that a dearer choice gives negative savings."""
        state = AllocationState(rfq)
        state.seed()
        state.select("line-1", "sup-a", "q-a")

        assert compute_line_savings(rfq, "line-1", state.get_selection("line-1")) == Decimal("-10")
        assert compute_aggregate_savings(rfq, state.as_dict()) == Decimal("-10")

    def test_unresolvable_selection_has_no_savings(self, rfq):
        """Test that a selection with no matching quote line has no savings."""
        assert compute_line_savings(rfq, "line-2", Selection("line-2", "sup-b", "q-b")) is None

    def test_round_money_half_up(self):
        """Test half-up rounding to cents."""
        assert round_money(Decimal("1.005")) == Decimal("1.01")
        assert round_money(Decimal("-1.005")) == Decimal("-1.01")
        assert round_money(Decimal("2.004")) == Decimal("2.00")

    def test_lines_requiring_decision_skip_unquoted(self, partially_quoted_rfq):
        """Test that unquoted lines need no decision."""
        assert lines_requiring_decision(partially_quoted_rfq) == ["line-1"]

    def test_stale_selection_counts_as_missing(self, rfq):
        """Test that a selection no longer backed by a quote is missing."""
        selections = [
            Selection("line-1", "sup-b", "q-b"),
            Selection("line-2", "sup-b", "q-b"),
        ]
        assert missing_line_ids(rfq, selections) == ["line-2"]

    def test_savings_report(self, rfq):
        """Test the savings report totals and per-line entries."""
        state = AllocationState(rfq)
        state.seed()
        state.select("line-1", "sup-a", "q-a")

        report = savings_report(rfq, state.as_dict())

        assert report["total_value"] == 150.0
        assert report["total_savings"] == -10.0
        assert report["is_complete"] is True
        assert report["lines_requiring_decision"] == 2
        assert report["lines"][0]["best_total_price"] == 90.0
        assert report["lines"][0]["savings"] == -10.0
