"""
Purchase requisition generation from a saved comparison summary.

One requisition per awarded supplier, one requisition line per summary
line. Prices and quantities are carried over unchanged.
"""
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from procureflow.services.comparison.savings import round_money
from procureflow.services.comparison.summary import ComparisonSummary


@dataclass(frozen=True)
class PurchaseRequisitionLine:
    mr_line_item_id: str
    quote_id: str
    description: str
    uom: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    lead_time_days: Optional[int] = None


@dataclass(frozen=True)
class PurchaseRequisition:
    pr_number: str
    rfq_id: str
    rfq_number: str
    supplier_id: str
    supplier_name: str
    currency: str
    summary_id: str
    lines: Tuple[PurchaseRequisitionLine, ...]
    total_value: Decimal

    def to_dict(self) -> dict:
        return {
            "pr_number": self.pr_number,
            "rfq_id": self.rfq_id,
            "rfq_number": self.rfq_number,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier_name,
            "currency": self.currency,
            "summary_id": self.summary_id,
            "total_value": float(self.total_value),
            "lines": [
                {
                    "mr_line_item_id": l.mr_line_item_id,
                    "quote_id": l.quote_id,
                    "description": l.description,
                    "uom": l.uom,
                    "quantity": float(l.quantity),
                    "unit_price": float(l.unit_price),
                    "total_price": float(l.total_price),
                    "lead_time_days": l.lead_time_days,
                }
                for l in self.lines
            ],
        }


def _default_pr_number(summary: ComparisonSummary, index: int) -> str:
    return f"PR-{summary.generated_at.strftime('%Y%m%d')}-{uuid.uuid4().hex[:6].upper()}-{index:02d}"


def generate_purchase_requisitions(summary: ComparisonSummary, pr_number_factory=None) -> List[PurchaseRequisition]:
    """Group the summary's selections by supplier into requisitions."""
    pr_number_factory = pr_number_factory or _default_pr_number

    groups: Dict[str, list] = {}
    for line in summary.selections:
        groups.setdefault(line.supplier_id, []).append(line)

    requisitions = []
    for index, (supplier_id, lines) in enumerate(groups.items(), start=1):
        pr_lines = tuple(
            PurchaseRequisitionLine(
                mr_line_item_id=l.line_item_id,
                quote_id=l.quote_id,
                description=l.line_description,
                uom=l.uom,
                quantity=l.quantity,
                unit_price=l.unit_price,
                total_price=l.total_price,
                lead_time_days=l.lead_time_days,
            )
            for l in lines
        )
        requisitions.append(PurchaseRequisition(
            pr_number=pr_number_factory(summary, index),
            rfq_id=summary.rfq_id,
            rfq_number=summary.rfq_number,
            supplier_id=supplier_id,
            supplier_name=lines[0].supplier_name,
            currency=summary.currency,
            summary_id=summary.summary_id,
            lines=pr_lines,
            total_value=round_money(sum((l.total_price for l in pr_lines), Decimal("0"))),
        ))
    return requisitions
