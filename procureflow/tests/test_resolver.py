"""
Tests for quote matching and best-price resolution.
"""
from datetime import timedelta
from decimal import Decimal

from procureflow.services.comparison.matcher import (
    find_quote, find_quote_line, find_selected_line, build_comparison_rows,
)
from procureflow.services.comparison.models import QuoteStatus
from procureflow.services.comparison.resolver import (
    TieBreakPolicy, collect_candidates, find_cheapest, resolve_best_price, best_total_price,
)
from procureflow.tests.conftest import (
    BASE_TIME, SUPPLIER_A, SUPPLIER_B, SUPPLIER_C, make_quote, make_rfq,
)


class TestMatcher:
    """Locating a supplier's quoted line."""

    def test_finds_quoted_line(self, rfq):
        """Test that a supplier's quoted line is found."""
        item = find_quote_line(rfq, "line-1", "sup-b")
        assert item is not None
        assert item.total_price == Decimal("90")

    def test_partial_response_returns_none(self, rfq):
        """Test that a line the supplier skipped is not matched."""
        assert find_quote_line(rfq, "line-2", "sup-b") is None

    def test_supplier_without_quote_returns_none(self, rfq):
        """Test that an invited supplier with no quote matches nothing."""
        assert find_quote(rfq, "sup-c") is None
        assert find_quote_line(rfq, "line-1", "sup-c") is None

    def test_withdrawn_quote_is_not_matched(self, partially_quoted_rfq):
        """Test that a withdrawn quote is ignored."""
        assert find_quote(partially_quoted_rfq, "sup-c") is None

    def test_selected_line_requires_matching_supplier(self, rfq):
        """Test that a selection must name the quote's own supplier."""
        assert find_selected_line(rfq, "line-1", "sup-b", "q-b") is not None
        assert find_selected_line(rfq, "line-1", "sup-a", "q-b") is None
        assert find_selected_line(rfq, "line-1", "sup-b", "q-missing") is None

    def test_comparison_rows_cover_every_supplier(self, rfq):
        """Test that grid rows carry a cell for every invited supplier."""
        rows = build_comparison_rows(rfq, {"line-1": "sup-b", "line-2": "sup-a"})

        assert [r["line_item_id"] for r in rows] == ["line-1", "line-2"]
        assert rows[0]["cheapest_supplier_id"] == "sup-b"
        line_2_cells = {c["supplier_id"]: c for c in rows[1]["cells"]}
        assert line_2_cells["sup-a"]["quoted"] is True
        assert line_2_cells["sup-b"]["quoted"] is False
        assert line_2_cells["sup-b"]["total_price"] is None


class TestResolver:
    """Cheapest supplier per line."""

    def test_cheapest_supplier(self, rfq):
        """Test the cheapest supplier per line."""
        assert find_cheapest(rfq, "line-1") == "sup-b"
        assert find_cheapest(rfq, "line-2") == "sup-a"

    def test_unquoted_line_returns_none(self, partially_quoted_rfq):
        """Test that a line nobody quoted has no best price."""
        assert find_cheapest(partially_quoted_rfq, "line-2") is None
        assert resolve_best_price(partially_quoted_rfq, "line-2") is None
        assert best_total_price(partially_quoted_rfq, "line-2") is None

    def test_result_is_deterministic(self, tied_rfq):
        """Test that repeated resolution gives the same winner."""
        results = {find_cheapest(tied_rfq, "line-1") for _ in range(20)}
        assert len(results) == 1

    def test_tie_first_submitted_wins(self, tied_rfq):
        """Test that the earliest submission wins a price tie by default."""
        best = resolve_best_price(tied_rfq, "line-1", TieBreakPolicy.FIRST_SUBMITTED_WINS)

        assert best.winner.supplier_id == "sup-b"
        assert best.is_tie
        assert set(best.supplier_ids) == {"sup-a", "sup-b"}

    def test_tie_quote_order(self, tied_rfq):
        """Test that the quote-order policy keeps the first listed quote."""
        assert find_cheapest(tied_rfq, "line-1", TieBreakPolicy.QUOTE_ORDER) == "sup-a"

    def test_policy_accepts_string_value(self, tied_rfq):
        """Test that a policy can be given by its value."""
        assert find_cheapest(tied_rfq, "line-1", "quote_order") == "sup-a"

    def test_quotes_without_timestamp_sort_last(self):
        """Test that unsubmitted quotes lose ties to submitted ones."""
        rfq = make_rfq([
            make_quote("q-a", SUPPLIER_A, [("line-1", 100, 1)]),
            make_quote("q-b", SUPPLIER_B, [("line-1", 100, 1)], submitted_at=BASE_TIME),
        ])
        assert find_cheapest(rfq, "line-1") == "sup-b"

    def test_naive_and_aware_timestamps_compare(self):
        """Test that naive timestamps are treated as UTC."""
        rfq = make_rfq([
            make_quote("q-a", SUPPLIER_A, [("line-1", 100, 1)],
                       submitted_at=(BASE_TIME + timedelta(minutes=5)).replace(tzinfo=None)),
            make_quote("q-b", SUPPLIER_B, [("line-1", 100, 1)], submitted_at=BASE_TIME),
        ])
        assert find_cheapest(rfq, "line-1") == "sup-b"

    def test_non_responding_quotes_are_ignored(self):
        """Test that draft quotes are not candidates."""
        rfq = make_rfq([
            make_quote("q-a", SUPPLIER_A, [("line-1", 100, 1)], submitted_at=BASE_TIME),
            make_quote("q-c", SUPPLIER_C, [("line-1", 10, 1)], status=QuoteStatus.DRAFT),
        ])
        candidates = collect_candidates(rfq, "line-1")
        assert [c.supplier_id for c in candidates] == ["sup-a"]
        assert find_cheapest(rfq, "line-1") == "sup-a"

    def test_best_total_independent_of_policy(self, tied_rfq):
        """Test that the best total does not depend on the tie-break policy."""
        assert best_total_price(tied_rfq, "line-1") == Decimal("100")
