"""
Savings calculator.

Savings for a line is best_total - selected_total: positive when the
allocation beat the best price (never, in practice), zero when it matches,
negative when the operator deliberately chose a costlier supplier.

Amounts are accumulated at full precision; round_money() is applied once at
the display/serialization boundary.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Mapping, Optional, Union

from procureflow.services.comparison.matcher import find_selected_line
from procureflow.services.comparison.models import RFQ, Selection
from procureflow.services.comparison.resolver import best_total_price

CENT = Decimal("0.01")

SelectionsLike = Union[Mapping[str, Selection], Iterable[Selection]]


def round_money(value: Decimal) -> Decimal:
    """Round to 2 decimals, half up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def as_selection_map(selections: SelectionsLike) -> Dict[str, Selection]:
    if isinstance(selections, Mapping):
        return dict(selections)
    return {s.line_item_id: s for s in selections}


def compute_line_savings(rfq: RFQ, line_item_id: str, selection: Selection) -> Optional[Decimal]:
    """
    Savings of the selection against the best available total for the line.

    Returns None if the line has no quotes or the selection does not resolve
    to a quoted line.
    """
    best = best_total_price(rfq, line_item_id)
    if best is None:
        return None
    item = find_selected_line(rfq, line_item_id, selection.supplier_id, selection.quote_id)
    if item is None:
        return None
    return best - item.total_price


def compute_aggregate_savings(rfq: RFQ, selections: SelectionsLike) -> Decimal:
    """Sum of line savings over every line that has a selection."""
    by_line = as_selection_map(selections)
    total = Decimal("0")
    for line in rfq.line_items:
        selection = by_line.get(line.id)
        if selection is None:
            continue
        savings = compute_line_savings(rfq, line.id, selection)
        if savings is not None:
            total += savings
    return total


def lines_requiring_decision(rfq: RFQ) -> List[str]:
    """Line ids with at least one responding quote, in material-request order."""
    quoted = set()
    for quote in rfq.responding_quotes:
        quoted.update(item.mr_line_item_id for item in quote.line_items)
    return [line.id for line in rfq.line_items if line.id in quoted]


def missing_line_ids(rfq: RFQ, selections: SelectionsLike) -> List[str]:
    """Quoted lines without a valid selection."""
    by_line = as_selection_map(selections)
    missing = []
    for line_id in lines_requiring_decision(rfq):
        selection = by_line.get(line_id)
        if selection is None or find_selected_line(
            rfq, line_id, selection.supplier_id, selection.quote_id
        ) is None:
            missing.append(line_id)
    return missing


def savings_report(rfq: RFQ, selections: SelectionsLike) -> dict:
    """Per-line and aggregate savings, rounded for display."""
    by_line = as_selection_map(selections)
    lines = []
    total_value = Decimal("0")
    for line in rfq.line_items:
        best = best_total_price(rfq, line.id)
        selection = by_line.get(line.id)
        item = None
        if selection is not None:
            item = find_selected_line(rfq, line.id, selection.supplier_id, selection.quote_id)
        savings = (best - item.total_price) if (best is not None and item is not None) else None
        if item is not None:
            total_value += item.total_price
        lines.append({
            "line_item_id": line.id,
            "supplier_id": selection.supplier_id if selection else None,
            "quote_id": selection.quote_id if selection else None,
            "best_total_price": float(round_money(best)) if best is not None else None,
            "selected_total_price": float(round_money(item.total_price)) if item else None,
            "savings": float(round_money(savings)) if savings is not None else None,
        })

    required = lines_requiring_decision(rfq)
    missing = missing_line_ids(rfq, by_line)
    return {
        "rfq_id": rfq.id,
        "lines": lines,
        "total_value": float(round_money(total_value)),
        "total_savings": float(round_money(compute_aggregate_savings(rfq, by_line))),
        "lines_requiring_decision": len(required),
        "lines_decided": len(required) - len(missing),
        "missing_line_ids": missing,
        "is_complete": not missing,
    }
