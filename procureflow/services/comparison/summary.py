"""
Selection summary builder.

A ComparisonSummary is the only artifact handed to CSV export and PR/PO
generation. It is frozen; a changed allocation means a new build with a
later generated_at.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

from procureflow.core.logging import get_logger
from procureflow.services.comparison.errors import IncompleteSelectionError
from procureflow.services.comparison.matcher import find_selected_line
from procureflow.services.comparison.models import RFQ, to_decimal
from procureflow.services.comparison.resolver import best_total_price
from procureflow.services.comparison.savings import (
    SelectionsLike,
    as_selection_map,
    missing_line_ids,
    round_money,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class MaterialRequestRef:
    id: str
    mrn: str
    project_name: str


@dataclass(frozen=True)
class SummaryLine:
    line_item_id: str
    line_description: str
    item_code: str
    uom: str
    quantity: Decimal
    supplier_id: str
    supplier_name: str
    quote_id: str
    unit_price: Decimal
    total_price: Decimal
    savings: Decimal
    lead_time_days: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "line_item_id": self.line_item_id,
            "line_description": self.line_description,
            "item_code": self.item_code,
            "uom": self.uom,
            "quantity": float(self.quantity),
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier_name,
            "quote_id": self.quote_id,
            "unit_price": float(self.unit_price),
            "total_price": float(self.total_price),
            "savings": float(self.savings),
            "lead_time_days": self.lead_time_days,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SummaryLine":
        return cls(
            line_item_id=data["line_item_id"],
            line_description=data.get("line_description", ""),
            item_code=data.get("item_code", ""),
            uom=data.get("uom", ""),
            quantity=to_decimal(data.get("quantity", 0)),
            supplier_id=data["supplier_id"],
            supplier_name=data.get("supplier_name", data["supplier_id"]),
            quote_id=data.get("quote_id", ""),
            unit_price=round_money(to_decimal(data["unit_price"])),
            total_price=round_money(to_decimal(data["total_price"])),
            savings=round_money(to_decimal(data.get("savings", 0))),
            lead_time_days=data.get("lead_time_days"),
        )


@dataclass(frozen=True)
class ComparisonSummary:
    rfq_id: str
    rfq_number: str
    material_request: MaterialRequestRef
    selections: Tuple[SummaryLine, ...]
    total_value: Decimal
    total_savings: Decimal
    generated_at: datetime
    currency: str = "AED"
    summary_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> dict:
        return {
            "summary_id": self.summary_id,
            "rfq_id": self.rfq_id,
            "rfq_number": self.rfq_number,
            "material_request": {
                "id": self.material_request.id,
                "mrn": self.material_request.mrn,
                "project_name": self.material_request.project_name,
            },
            "currency": self.currency,
            "selections": [line.to_dict() for line in self.selections],
            "total_value": float(self.total_value),
            "total_savings": float(self.total_savings),
            "generated_at": self.generated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ComparisonSummary":
        """
        Rebuild a summary from its dict form.

        Raises:
            ValueError if a required field is missing or not parseable
        """
        try:
            return cls._from_dict(data)
        except (KeyError, TypeError, AttributeError, InvalidOperation) as e:
            raise ValueError(f"Malformed comparison summary: {e!r}") from e

    @classmethod
    def _from_dict(cls, data: dict) -> "ComparisonSummary":
        mr = data.get("material_request") or {}
        generated_at = data["generated_at"]
        if isinstance(generated_at, str):
            generated_at = datetime.fromisoformat(generated_at.replace("Z", "+00:00"))
        if not isinstance(generated_at, datetime):
            raise TypeError(f"generated_at must be a datetime, got {type(generated_at).__name__}")
        lines = tuple(SummaryLine.from_dict(s) for s in data.get("selections", []))
        return cls(
            summary_id=data.get("summary_id") or uuid.uuid4().hex,
            rfq_id=data["rfq_id"],
            rfq_number=data["rfq_number"],
            material_request=MaterialRequestRef(
                id=mr.get("id", ""),
                mrn=mr.get("mrn", ""),
                project_name=mr.get("project_name", ""),
            ),
            currency=data.get("currency", "AED"),
            selections=lines,
            total_value=round_money(to_decimal(data.get("total_value", sum(l.total_price for l in lines)))),
            total_savings=round_money(to_decimal(data.get("total_savings", sum(l.savings for l in lines)))),
            generated_at=generated_at,
        )


def build_summary(
    rfq: RFQ,
    selections: SelectionsLike,
    generated_at: Optional[datetime] = None,
    currency: str = "AED",
) -> ComparisonSummary:
    """
    Snapshot the allocation as an immutable summary.

    Raises:
        IncompleteSelectionError listing every quoted line without a valid
        selection. Checked before anything is built.
    """
    by_line = as_selection_map(selections)

    missing = missing_line_ids(rfq, by_line)
    if missing:
        logger.warning(
            f"Summary for RFQ {rfq.rfq_number} blocked, unassigned lines: {', '.join(missing)}",
            extra={"rfq_id": rfq.id},
        )
        raise IncompleteSelectionError(missing)

    lines = []
    total_value = Decimal("0")
    total_savings = Decimal("0")
    for line in rfq.line_items:
        best = best_total_price(rfq, line.id)
        if best is None:
            # No responding quote: unassigned, excluded from the summary
            continue

        selection = by_line[line.id]
        item = find_selected_line(rfq, line.id, selection.supplier_id, selection.quote_id)
        savings = best - item.total_price
        total_value += item.total_price
        total_savings += savings

        lines.append(SummaryLine(
            line_item_id=line.id,
            line_description=line.description,
            item_code=line.item_code,
            uom=line.uom,
            quantity=item.quantity,
            supplier_id=selection.supplier_id,
            supplier_name=rfq.supplier_name(selection.supplier_id),
            quote_id=selection.quote_id,
            unit_price=round_money(item.unit_price),
            total_price=round_money(item.total_price),
            savings=round_money(savings),
            lead_time_days=item.lead_time_days,
        ))

    mr = rfq.material_request
    return ComparisonSummary(
        rfq_id=rfq.id,
        rfq_number=rfq.rfq_number,
        material_request=MaterialRequestRef(id=mr.id, mrn=mr.mrn, project_name=mr.project_name),
        selections=tuple(lines),
        total_value=round_money(total_value),
        total_savings=round_money(total_savings),
        generated_at=generated_at or datetime.now(timezone.utc),
        currency=currency,
    )
