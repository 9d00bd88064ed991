"""
Comparison session: one operator's view of one RFQ.

Owns the allocation state for the RFQ and its event outbox. Local state is
always updated first; save/export then talk to the audit sink and turn any
sink failure into a warning instead of an exception.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from procureflow.core.config import settings
from procureflow.core.logging import get_logger, audit_logger
from procureflow.repositories import QuoteRepository, RfqRepository, load_rfq
from procureflow.services.comparison.allocation import AllocationState
from procureflow.services.comparison.errors import AuditSinkError, RfqNotFoundError
from procureflow.services.comparison.events import (
    ComparisonEventType,
    EventOutbox,
    build_event_sink,
)
from procureflow.services.comparison.export import export_filename, summary_to_csv
from procureflow.services.comparison.integrity import ensure_rfq_integrity
from procureflow.services.comparison.matcher import build_comparison_rows
from procureflow.services.comparison.models import RFQ, Selection
from procureflow.services.comparison.resolver import TieBreakPolicy, find_cheapest
from procureflow.services.comparison.savings import savings_report
from procureflow.services.comparison.summary import ComparisonSummary, build_summary

logger = get_logger(__name__)

LOCAL_STATE_NOTICE = "Unable to persist comparison activity. Your selections are still saved locally."


@dataclass
class ActionResult:
    summary: ComparisonSummary
    warnings: List[str] = field(default_factory=list)

    @property
    def persisted(self) -> bool:
        return not self.warnings


@dataclass
class ExportResult:
    summary: ComparisonSummary
    filename: str
    content: str
    warnings: List[str] = field(default_factory=list)


def _to_warnings(errors: List[AuditSinkError]) -> List[str]:
    if not errors:
        return []
    return [e.message for e in errors] + [LOCAL_STATE_NOTICE]


class ComparisonSession:

    def __init__(
        self,
        rfq: RFQ,
        outbox: Optional[EventOutbox] = None,
        policy: Optional[TieBreakPolicy] = None,
        currency: Optional[str] = None,
    ):
        self.currency = currency or settings.DISPLAY_CURRENCY
        # Raises DataIntegrityError before any savings are computed
        self.integrity_issues = ensure_rfq_integrity(rfq, self.currency)
        self.rfq = rfq
        self.policy = TieBreakPolicy(policy or settings.TIE_BREAK_POLICY)
        self.outbox = outbox or EventOutbox(build_event_sink())
        self.allocation = AllocationState(rfq, self.outbox, self.policy)
        self.allocation.seed()

    def select(self, line_item_id: str, supplier_id: str, quote_id: str) -> Selection:
        return self.allocation.select(line_item_id, supplier_id, quote_id)

    def get_selection(self, line_item_id: str) -> Optional[Selection]:
        return self.allocation.get_selection(line_item_id)

    @property
    def selections(self) -> List[Selection]:
        return self.allocation.selections

    def rows(self) -> list:
        cheapest = {line.id: find_cheapest(self.rfq, line.id, self.policy) for line in self.rfq.line_items}
        return build_comparison_rows(self.rfq, cheapest)

    def savings(self) -> dict:
        return savings_report(self.rfq, self.allocation.as_dict())

    def build_summary(self) -> ComparisonSummary:
        return build_summary(self.rfq, self.allocation.as_dict(), currency=self.currency)

    async def flush(self) -> List[str]:
        """Deliver queued selection events; returns warnings for failures."""
        return _to_warnings(await self.outbox.flush())

    async def save(self) -> ActionResult:
        """
        Build a summary and record it as saved.

        Raises:
            IncompleteSelectionError if quoted lines are still unassigned
        """
        summary = self.build_summary()
        self.outbox.put(ComparisonEventType.SELECTION_SAVED, self.rfq.id, summary=summary.to_dict())
        warnings = await self.flush()
        audit_logger.log(
            "comparison_selection_saved",
            rfq_id=self.rfq.id,
            entity_type="comparison_summary",
            entity_id=summary.summary_id,
            details={"lines": len(summary.selections), "persisted": not warnings},
        )
        return ActionResult(summary=summary, warnings=warnings)

    async def export(self) -> ExportResult:
        """Build a summary, record the export and render it as CSV."""
        summary = self.build_summary()
        content = summary_to_csv(summary)
        self.outbox.put(ComparisonEventType.EXPORTED, self.rfq.id, summary=summary.to_dict())
        warnings = await self.flush()
        audit_logger.log(
            "comparison_exported",
            rfq_id=self.rfq.id,
            entity_type="comparison_summary",
            entity_id=summary.summary_id,
            details={"filename": export_filename(summary), "persisted": not warnings},
        )
        return ExportResult(
            summary=summary,
            filename=export_filename(summary),
            content=content,
            warnings=warnings,
        )


def open_comparison(
    rfq_repository: RfqRepository,
    quote_repository: Optional[QuoteRepository],
    rfq_id: str,
    outbox: Optional[EventOutbox] = None,
    policy: Optional[TieBreakPolicy] = None,
    currency: Optional[str] = None,
) -> ComparisonSession:
    """
    Load an RFQ and open a seeded comparison session for it.

    Raises:
        RfqNotFoundError if the RFQ does not exist
        DataIntegrityError if its quotes are inconsistent
    """
    rfq = load_rfq(rfq_repository, quote_repository, rfq_id)
    if rfq is None:
        raise RfqNotFoundError(rfq_id)
    return ComparisonSession(rfq, outbox=outbox, policy=policy, currency=currency)
