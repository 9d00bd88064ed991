"""
Allocation state: which supplier wins each material-request line.

Seeded from the best-price resolver, then changed only through select().
There is no locked state here; finalising an allocation means building a
ComparisonSummary from it.
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional

from procureflow.core.logging import get_logger
from procureflow.services.comparison.errors import ValidationError
from procureflow.services.comparison.events import ComparisonEventType, EventOutbox
from procureflow.services.comparison.models import RFQ, Selection, SelectionChange
from procureflow.services.comparison.resolver import (
    DEFAULT_POLICY,
    TieBreakPolicy,
    find_cheapest_candidate,
)

logger = get_logger(__name__)


class AllocationState:
    """Per-RFQ mapping of line item -> chosen supplier/quote."""

    def __init__(
        self,
        rfq: RFQ,
        outbox: Optional[EventOutbox] = None,
        policy: TieBreakPolicy = DEFAULT_POLICY,
    ):
        self.rfq = rfq
        self.outbox = outbox
        self.policy = TieBreakPolicy(policy)
        self.changes: List[SelectionChange] = []
        self._selections: Dict[str, Selection] = {}

    def seed(self) -> List[Selection]:
        """Select the cheapest supplier for every quoted line. Emits no events."""
        self._selections = {}
        for line in self.rfq.line_items:
            candidate = find_cheapest_candidate(self.rfq, line.id, self.policy)
            if candidate is None:
                continue
            self._selections[line.id] = Selection(
                line_item_id=line.id,
                supplier_id=candidate.supplier_id,
                quote_id=candidate.quote_id,
            )
        logger.info(
            f"Seeded {len(self._selections)}/{len(self.rfq.line_items)} lines for RFQ {self.rfq.rfq_number}",
            extra={"rfq_id": self.rfq.id},
        )
        return self.selections

    def _validate(self, line_item_id: str, supplier_id: str, quote_id: str) -> None:
        if self.rfq.material_request.get_line(line_item_id) is None:
            raise ValidationError(line_item_id, f"not a line of RFQ {self.rfq.rfq_number}")

        quote = self.rfq.get_quote(quote_id)
        if quote is None:
            raise ValidationError(line_item_id, f"quote {quote_id} does not belong to RFQ {self.rfq.rfq_number}")
        if not quote.is_responding:
            raise ValidationError(line_item_id, f"quote {quote_id} is {quote.status.value}")
        if quote.supplier_id != supplier_id:
            raise ValidationError(line_item_id, f"quote {quote_id} is not from supplier {supplier_id}")
        if quote.get_line(line_item_id) is None:
            raise ValidationError(
                line_item_id,
                f"{self.rfq.supplier_name(supplier_id)} did not quote this line",
            )

    def select(self, line_item_id: str, supplier_id: str, quote_id: str) -> Selection:
        """
        Choose a supplier for a line, replacing any previous choice.

        Raises:
            ValidationError if the quote does not price this line for this
            supplier; the previous selection is left untouched.
        """
        self._validate(line_item_id, supplier_id, quote_id)

        previous = self._selections.get(line_item_id)
        selection = Selection(line_item_id=line_item_id, supplier_id=supplier_id, quote_id=quote_id)
        self._selections[line_item_id] = selection

        change = SelectionChange(
            rfq_id=self.rfq.id,
            line_item_id=line_item_id,
            supplier_id=supplier_id,
            quote_id=quote_id,
            previous_supplier_id=previous.supplier_id if previous else None,
            changed_at=datetime.now(timezone.utc),
        )
        self.changes.append(change)

        if self.outbox is not None:
            self.outbox.put(ComparisonEventType.SELECTION_CHANGED, self.rfq.id, payload=change.to_payload())

        logger.info(
            f"Line {line_item_id} allocated to {supplier_id} "
            f"(was {change.previous_supplier_id or 'unassigned'})",
            extra={"rfq_id": self.rfq.id, "line_item_id": line_item_id},
        )
        return selection

    def get_selection(self, line_item_id: str) -> Optional[Selection]:
        return self._selections.get(line_item_id)

    @property
    def selections(self) -> List[Selection]:
        """Current selections in material-request line order."""
        return [
            self._selections[line.id]
            for line in self.rfq.line_items
            if line.id in self._selections
        ]

    def as_dict(self) -> Dict[str, Selection]:
        return dict(self._selections)

    def unassigned_line_ids(self) -> List[str]:
        return [line.id for line in self.rfq.line_items if line.id not in self._selections]
