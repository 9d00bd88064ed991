"""
Tests for the comparison session: local-first state with best-effort auditing.
"""
import pytest

from procureflow.repositories import InMemoryQuoteRepository, InMemoryRfqRepository
from procureflow.services.comparison.errors import (
    DataIntegrityError, IncompleteSelectionError, RfqNotFoundError,
)
from procureflow.services.comparison.events import ComparisonEventType, EventOutbox, InMemoryEventSink
from procureflow.services.comparison.models import RFQ
from procureflow.services.comparison.resolver import TieBreakPolicy
from procureflow.services.comparison.session import (
    LOCAL_STATE_NOTICE, ComparisonSession, open_comparison,
)
from procureflow.tests.conftest import SUPPLIER_A, make_quote, make_rfq


class TestComparisonSession:
    """Local-first comparison sessions."""

    def test_opens_seeded(self, rfq):
        """Test that a new session starts from the recommended allocation."""
        session = ComparisonSession(rfq, outbox=EventOutbox(InMemoryEventSink()))

        assert [s.supplier_id for s in session.selections] == ["sup-b", "sup-a"]
        assert session.savings()["total_savings"] == 0.0
        assert session.policy == TieBreakPolicy.FIRST_SUBMITTED_WINS

    def test_policy_override(self, tied_rfq):
        """Test that the tie-break policy can be chosen per session."""
        session = ComparisonSession(tied_rfq, policy=TieBreakPolicy.QUOTE_ORDER)
        assert session.get_selection("line-1").supplier_id == "sup-a"

    def test_inconsistent_rfq_refuses_to_open(self):
        """Test that an RFQ with fatal issues cannot be opened."""
        rfq = make_rfq([make_quote("q-a", SUPPLIER_A, [("line-1", 10, 1)], currency="USD")])
        with pytest.raises(DataIntegrityError):
            ComparisonSession(rfq, currency="AED")

    def test_rows_mark_cheapest(self, rfq):
        """Test that grid rows mark the cheapest supplier."""
        session = ComparisonSession(rfq)
        assert [r["cheapest_supplier_id"] for r in session.rows()] == ["sup-b", "sup-a"]

    @pytest.mark.asyncio
    async def test_save_records_summary(self, rfq):
        sink = InMemoryEventSink()
        session = ComparisonSession(rfq, outbox=EventOutbox(sink))
        session.select("line-1", "sup-a", "q-a")

        result = await session.save()

        assert result.persisted
        assert [e.event for e in sink.events] == [
            ComparisonEventType.SELECTION_CHANGED,
            ComparisonEventType.SELECTION_SAVED,
        ]
        assert sink.events[-1].summary["summary_id"] == result.summary.summary_id
        assert result.summary.total_savings == -10

    @pytest.mark.asyncio
    async def test_sink_failure_becomes_warning(self, rfq):
        session = ComparisonSession(rfq, outbox=EventOutbox(InMemoryEventSink(fail=True)))
        session.select("line-1", "sup-a", "q-a")

        result = await session.save()

        assert not result.persisted
        assert result.warnings[-1] == LOCAL_STATE_NOTICE
        assert session.get_selection("line-1").supplier_id == "sup-a"
        assert len(session.outbox.failed) == 2

    @pytest.mark.asyncio
    async def test_export_returns_csv_even_when_sink_fails(self, rfq):
        session = ComparisonSession(rfq, outbox=EventOutbox(InMemoryEventSink(fail=True)))

        result = await session.export()

        assert result.filename == "RFQ-2025-001-comparison.csv"
        assert result.content.startswith('"MR Line ID"')
        assert result.warnings

    @pytest.mark.asyncio
    async def test_incomplete_save_emits_nothing(self, rfq):
        sink = InMemoryEventSink()
        session = ComparisonSession(rfq, outbox=EventOutbox(sink))
        session.allocation._selections.pop("line-2")

        with pytest.raises(IncompleteSelectionError):
            await session.save()
        assert sink.events == []


class TestOpenComparison:
    """Opening a session from repositories."""

    def test_loads_quotes_from_repository(self, rfq):
        """Test that quotes are loaded from the quote repository."""
        rfq_repo = InMemoryRfqRepository([RFQ(
            id=rfq.id,
            rfq_number=rfq.rfq_number,
            material_request=rfq.material_request,
            suppliers=rfq.suppliers,
        )])
        quote_repo = InMemoryQuoteRepository(rfq.quotes)

        session = open_comparison(rfq_repo, quote_repo, "rfq-1")

        assert len(session.rfq.quotes) == 2
        assert session.get_selection("line-1").supplier_id == "sup-b"

    def test_unknown_rfq(self):
        """Test that an unknown RFQ raises RfqNotFoundError."""
        with pytest.raises(RfqNotFoundError):
            open_comparison(InMemoryRfqRepository(), None, "rfq-missing")
