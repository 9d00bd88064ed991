"""
Shared fixtures for the comparison tests.
"""
import os

# Must be set before procureflow.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUDIT_SINK", "memory")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("TIE_BREAK_POLICY", "first_submitted_wins")
os.environ.setdefault("DISPLAY_CURRENCY", "AED")

from datetime import datetime, timedelta, timezone

import pytest

from procureflow.services.comparison.models import (
    MaterialRequest, MaterialRequestLineItem, Supplier, RFQSupplier,
    RFQSupplierStatus, Quote, QuoteLineItem, QuoteStatus, RFQ,
)

BASE_TIME = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)

SUPPLIER_A = Supplier("sup-a", "Alpha Trading")
SUPPLIER_B = Supplier("sup-b", "Beta Supplies")
SUPPLIER_C = Supplier("sup-c", "Gamma Industrial")


def quote_line(mr_line_id, unit_price, quantity, lead_time=None, quote_id="q"):
    return QuoteLineItem(
        id=f"{quote_id}-{mr_line_id}",
        mr_line_item_id=mr_line_id,
        unit_price=unit_price,
        quantity=quantity,
        total_price=unit_price * quantity,
        lead_time_days=lead_time,
    )


def make_quote(quote_id, supplier, lines, rfq_id="rfq-1", status=QuoteStatus.SUBMITTED,
               submitted_at=None, currency="AED"):
    return Quote(
        id=quote_id,
        rfq_id=rfq_id,
        supplier_id=supplier.id,
        supplier=supplier,
        line_items=[quote_line(*l, quote_id=quote_id) for l in lines],
        status=status,
        submitted_at=submitted_at,
        currency=currency,
    )


def make_rfq(quotes, line_items=None, suppliers=(SUPPLIER_A, SUPPLIER_B, SUPPLIER_C), rfq_id="rfq-1"):
    if line_items is None:
        line_items = [
            MaterialRequestLineItem("line-1", "ITEM-001", "Steel Beam 10m", 1, "EA"),
            MaterialRequestLineItem("line-2", "ITEM-002", "Concrete Mix 50kg", 1, "BAG"),
        ]
    return RFQ(
        id=rfq_id,
        rfq_number="RFQ-2025-001",
        material_request=MaterialRequest("mr-1", "MR-2025-001", "Project Alpha", line_items),
        suppliers=[RFQSupplier(s.id, s, RFQSupplierStatus.RESPONDED) for s in suppliers],
        quotes=quotes,
    )


@pytest.fixture
def rfq():
    """Two lines; A quotes both (100, 50), B quotes line-1 only (90)."""
    return make_rfq([
        make_quote("q-a", SUPPLIER_A, [("line-1", 100, 1), ("line-2", 50, 1)], submitted_at=BASE_TIME),
        make_quote("q-b", SUPPLIER_B, [("line-1", 90, 1)], submitted_at=BASE_TIME + timedelta(hours=1)),
    ], suppliers=(SUPPLIER_A, SUPPLIER_B))


@pytest.fixture
def tied_rfq():
    """A and B both quote 100 for line-1; B submitted first but is listed second."""
    return make_rfq([
        make_quote("q-a", SUPPLIER_A, [("line-1", 100, 1)], submitted_at=BASE_TIME + timedelta(hours=2)),
        make_quote("q-b", SUPPLIER_B, [("line-1", 100, 1)], submitted_at=BASE_TIME),
    ], line_items=[MaterialRequestLineItem("line-1", "ITEM-001", "Steel Beam 10m", 1, "EA")])


@pytest.fixture
def partially_quoted_rfq():
    """line-2 has no responding quote at all."""
    return make_rfq([
        make_quote("q-a", SUPPLIER_A, [("line-1", 100, 1)], submitted_at=BASE_TIME),
        make_quote("q-c", SUPPLIER_C, [("line-2", 40, 1)], status=QuoteStatus.WITHDRAWN),
    ])
