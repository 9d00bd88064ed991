"""
Demo RFQ seeding for development.
"""
from datetime import datetime, timedelta, timezone

from procureflow.core.logging import get_logger
from procureflow.repositories import InMemoryQuoteRepository, InMemoryRfqRepository
from procureflow.services.comparison.models import (
    MaterialRequest, MaterialRequestLineItem, Supplier, RFQSupplier,
    RFQSupplierStatus, Quote, QuoteLineItem, QuoteStatus, RFQ,
)

logger = get_logger(__name__)

DEMO_RFQ_ID = "rfq-demo-001"


def build_demo_rfq() -> RFQ:
    """Construction materials RFQ with three suppliers and a partial response."""
    now = datetime.now(timezone.utc)

    material_request = MaterialRequest(
        id="mr-demo-001",
        mrn="MR-2025-001",
        project_name="Project Alpha",
        line_items=[
            MaterialRequestLineItem("line-1", "ITEM-001", "Steel Beam 10m", 10, "EA",
                                    location="Yard A", brand_asset="ArcelorMittal"),
            MaterialRequestLineItem("line-2", "ITEM-002", "Concrete Mix 50kg", 30, "BAG",
                                    location="Plant", brand_asset="Cemex"),
            MaterialRequestLineItem("line-3", "ITEM-003", "Safety Helmet", 25, "PCS"),
            MaterialRequestLineItem("line-4", "ITEM-004", "Rebar 12mm", 200, "M"),
        ],
    )

    suppliers = [
        Supplier("sup-1", "ABC Construction Supplies", email="quotes@abc.example", rating=4.5),
        Supplier("sup-2", "XYZ Materials", email="sales@xyz.example", rating=4.1),
        Supplier("sup-3", "Gulf Safety Trading", email="rfq@gulfsafety.example", rating=3.8),
    ]

    def line(quote_id, mr_line_id, unit_price, quantity, lead_time):
        return QuoteLineItem(
            id=f"{quote_id}-{mr_line_id}",
            mr_line_item_id=mr_line_id,
            unit_price=unit_price,
            quantity=quantity,
            total_price=unit_price * quantity,
            lead_time_days=lead_time,
        )

    quotes = [
        Quote(
            id="q-demo-1", rfq_id=DEMO_RFQ_ID, supplier_id="sup-1", supplier=suppliers[0],
            submitted_at=now - timedelta(days=3), valid_until=now + timedelta(days=27),
            terms="Net 30",
            line_items=[
                line("q-demo-1", "line-1", 1200, 10, 14),
                line("q-demo-1", "line-2", 18, 30, 5),
                line("q-demo-1", "line-3", 45, 25, 7),
            ],
        ),
        Quote(
            id="q-demo-2", rfq_id=DEMO_RFQ_ID, supplier_id="sup-2", supplier=suppliers[1],
            submitted_at=now - timedelta(days=2), valid_until=now + timedelta(days=28),
            terms="50% advance",
            line_items=[
                line("q-demo-2", "line-1", 1150, 10, 21),
                line("q-demo-2", "line-2", 19, 30, 3),
            ],
        ),
        Quote(
            id="q-demo-3", rfq_id=DEMO_RFQ_ID, supplier_id="sup-3", supplier=suppliers[2],
            submitted_at=now - timedelta(days=1), valid_until=now + timedelta(days=29),
            line_items=[
                line("q-demo-3", "line-3", 42, 25, 10),
            ],
        ),
    ]

    return RFQ(
        id=DEMO_RFQ_ID,
        rfq_number="RFQ-2025-001",
        material_request=material_request,
        suppliers=[
            RFQSupplier(s.id, s, RFQSupplierStatus.RESPONDED) for s in suppliers
        ],
        quotes=quotes,
    )


def seed_demo_rfqs(rfq_repository: InMemoryRfqRepository, quote_repository: InMemoryQuoteRepository) -> int:
    """Load the demo RFQ into the given repositories. Idempotent."""
    if rfq_repository.get(DEMO_RFQ_ID) is not None:
        logger.info("Demo RFQ already exists. Skipping...")
        return 0

    rfq = build_demo_rfq()
    rfq_repository.add(rfq)
    for quote in rfq.quotes:
        quote_repository.add(quote)
    logger.info(f"Demo data seeded: {rfq.rfq_number} with {len(rfq.quotes)} quotes")
    return 1
