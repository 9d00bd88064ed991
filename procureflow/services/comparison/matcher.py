"""
Quote matcher: locate a supplier's priced answer for a material-request line.
"""
from typing import List, Dict, Any, Optional

from procureflow.services.comparison.models import RFQ, Quote, QuoteLineItem


def find_quote(rfq: RFQ, supplier_id: str) -> Optional[Quote]:
    """Return the supplier's responding quote on this RFQ, if any."""
    for quote in rfq.responding_quotes:
        if quote.supplier_id == supplier_id:
            return quote
    return None


def find_quote_line(rfq: RFQ, line_item_id: str, supplier_id: str) -> Optional[QuoteLineItem]:
    """
    Find the supplier's quoted line for a material-request line.

    Returns None when the supplier did not respond or skipped the line;
    partial responses are normal.
    """
    quote = find_quote(rfq, supplier_id)
    if quote is None:
        return None
    return quote.get_line(line_item_id)


def find_selected_line(rfq: RFQ, line_item_id: str, supplier_id: str, quote_id: str) -> Optional[QuoteLineItem]:
    """Resolve a (supplier, quote) pair to its quoted line, checking that they agree."""
    quote = rfq.get_quote(quote_id)
    if quote is None or not quote.is_responding or quote.supplier_id != supplier_id:
        return None
    return quote.get_line(line_item_id)


def build_comparison_rows(rfq: RFQ, cheapest: Dict[str, Optional[str]]) -> List[Dict[str, Any]]:
    """
    Build the comparison grid: one row per line, one cell per invited supplier.

    Args:
        rfq: RFQ to lay out
        cheapest: line_item_id -> cheapest supplier id (from the resolver)
    """
    rows = []
    for line in rfq.line_items:
        cells = []
        for rfq_supplier in rfq.suppliers:
            quote = find_quote(rfq, rfq_supplier.supplier_id)
            item = quote.get_line(line.id) if quote else None
            cells.append({
                "supplier_id": rfq_supplier.supplier_id,
                "supplier_name": rfq_supplier.supplier.name,
                "supplier_status": rfq_supplier.status.value,
                "quote_id": quote.id if quote else None,
                "quoted": item is not None,
                "unit_price": float(item.unit_price) if item else None,
                "total_price": float(item.total_price) if item else None,
                "lead_time_days": item.lead_time_days if item else None,
            })
        rows.append({
            "line_item_id": line.id,
            "item_code": line.item_code,
            "description": line.description,
            "quantity": float(line.quantity),
            "uom": line.uom,
            "cheapest_supplier_id": cheapest.get(line.id),
            "cells": cells,
        })
    return rows
