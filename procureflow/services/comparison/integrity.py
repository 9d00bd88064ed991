"""
Load-time integrity checks for an RFQ and its quotes.
"""
from decimal import Decimal
from typing import List, Dict, Any, Optional

from procureflow.core.logging import get_logger
from procureflow.services.comparison.errors import DataIntegrityError
from procureflow.services.comparison.models import RFQ, Quote

logger = get_logger(__name__)

PRICE_TOLERANCE = Decimal("0.01")

# Issues at these severities make the comparison view refuse to compute
FATAL_SEVERITIES = frozenset({"critical", "high"})


def _issue(
    issue_type: str,
    severity: str,
    field_path: str,
    message: str,
    quote_id: Optional[str] = None,
    line_item_id: Optional[str] = None,
    suggested_fix: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "type": issue_type,
        "severity": severity,
        "field_path": field_path,
        "message": message,
        "quote_id": quote_id,
        "line_item_id": line_item_id,
        "suggested_fix": suggested_fix,
    }


def validate_rfq(rfq: RFQ, currency: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Validate an RFQ aggregate before comparison.

    Args:
        rfq: Fully hydrated RFQ
        currency: Display currency every responding quote must use (optional)

    Returns:
        List of issues (empty when the RFQ is consistent)
    """
    issues = []

    seen_lines = set()
    for line in rfq.line_items:
        if line.id in seen_lines:
            issues.append(_issue(
                "duplicate_line", "critical", "material_request.line_items",
                f"Material request line {line.id} appears more than once",
                line_item_id=line.id,
            ))
        seen_lines.add(line.id)

    responding_by_supplier: Dict[str, str] = {}
    for quote in rfq.quotes:
        issues.extend(validate_quote(rfq, quote, currency))

        if not quote.is_responding:
            continue
        previous = responding_by_supplier.get(quote.supplier_id)
        if previous:
            issues.append(_issue(
                "duplicate_quote", "high", "quotes",
                f"Supplier {quote.supplier_id} has more than one active quote "
                f"({previous}, {quote.id})",
                quote_id=quote.id,
                suggested_fix="Withdraw the superseded quote",
            ))
        else:
            responding_by_supplier[quote.supplier_id] = quote.id

    return issues


def validate_quote(rfq: RFQ, quote: Quote, currency: Optional[str] = None) -> List[Dict[str, Any]]:
    """Validate a single quote against its RFQ."""
    issues = []

    if quote.rfq_id != rfq.id:
        issues.append(_issue(
            "rfq_mismatch", "critical", "quote.rfq_id",
            f"Quote {quote.id} belongs to RFQ {quote.rfq_id}, not {rfq.id}",
            quote_id=quote.id,
        ))

    if rfq.get_supplier(quote.supplier_id) is None:
        issues.append(_issue(
            "uninvited_supplier", "critical", "quote.supplier_id",
            f"Quote {quote.id} is from supplier {quote.supplier_id} "
            f"who was not invited to RFQ {rfq.rfq_number}",
            quote_id=quote.id,
        ))

    # Draft and withdrawn quotes never reach the comparison, skip pricing checks
    if not quote.is_responding:
        return issues

    if currency and quote.currency.upper() != currency.upper():
        issues.append(_issue(
            "currency_mismatch", "high", "quote.currency",
            f"Quote {quote.id} is priced in {quote.currency}, comparison uses {currency}",
            quote_id=quote.id,
        ))

    quoted_lines = set()
    for item in quote.line_items:
        mr_line = rfq.material_request.get_line(item.mr_line_item_id)
        if mr_line is None:
            issues.append(_issue(
                "unknown_line", "high", "quote.line_items.mr_line_item_id",
                f"Quote {quote.id} prices unknown line {item.mr_line_item_id}",
                quote_id=quote.id,
                line_item_id=item.mr_line_item_id,
            ))
            continue

        if item.mr_line_item_id in quoted_lines:
            issues.append(_issue(
                "duplicate_quote_line", "high", "quote.line_items",
                f"Quote {quote.id} prices line {item.mr_line_item_id} more than once",
                quote_id=quote.id,
                line_item_id=item.mr_line_item_id,
            ))
        quoted_lines.add(item.mr_line_item_id)

        expected = item.unit_price * item.quantity
        if abs(item.total_price - expected) >= PRICE_TOLERANCE:
            issues.append(_issue(
                "total_mismatch", "critical", "quote.line_items.total_price",
                f"Quote {quote.id} line {item.mr_line_item_id}: total {item.total_price} "
                f"!= unit {item.unit_price} x quantity {item.quantity}",
                quote_id=quote.id,
                line_item_id=item.mr_line_item_id,
                suggested_fix="Re-capture the quoted line from the supplier's document",
            ))

        if item.quantity != mr_line.quantity:
            issues.append(_issue(
                "quantity_mismatch", "low", "quote.line_items.quantity",
                f"Quote {quote.id} line {item.mr_line_item_id} quotes quantity "
                f"{item.quantity}, requested {mr_line.quantity}",
                quote_id=quote.id,
                line_item_id=item.mr_line_item_id,
            ))

    return issues


def ensure_rfq_integrity(rfq: RFQ, currency: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Raise DataIntegrityError if the RFQ has any fatal issue.

    Non-fatal issues are logged and returned.
    """
    issues = validate_rfq(rfq, currency)
    fatal = [i for i in issues if i["severity"] in FATAL_SEVERITIES]
    if fatal:
        logger.error(
            f"RFQ {rfq.rfq_number} failed integrity checks: {len(fatal)} fatal issue(s)",
            extra={"rfq_id": rfq.id},
        )
        raise DataIntegrityError(rfq.id, fatal)

    for issue in issues:
        logger.warning(issue["message"], extra={"rfq_id": rfq.id, "line_item_id": issue["line_item_id"]})
    return issues
