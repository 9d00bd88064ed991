"""
Domain model for quote comparison.

Every object here is a frozen dataclass: the RFQ handed to the comparison
engine is a fully hydrated snapshot and nothing downstream mutates it.
Money and quantities are Decimal.
"""
import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple


def to_decimal(value) -> Decimal:
    """Convert int/float/str to Decimal without float artefacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


class RFQSupplierStatus(str, enum.Enum):
    PENDING = "pending"
    RESPONDED = "responded"
    DECLINED = "declined"


class QuoteStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


# Quotes in these states take part in matching, best price and completeness
RESPONDING_STATUSES = frozenset({QuoteStatus.SUBMITTED, QuoteStatus.APPROVED})


@dataclass(frozen=True)
class MaterialRequestLineItem:
    id: str
    item_code: str
    description: str
    quantity: Decimal
    uom: str
    location: Optional[str] = None
    brand_asset: Optional[str] = None
    serial_number: Optional[str] = None
    model_year: Optional[str] = None
    remarks: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "quantity", to_decimal(self.quantity))


@dataclass(frozen=True)
class MaterialRequest:
    id: str
    mrn: str
    project_name: str
    line_items: Tuple[MaterialRequestLineItem, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "line_items", tuple(self.line_items))

    def get_line(self, line_item_id: str) -> Optional[MaterialRequestLineItem]:
        for line in self.line_items:
            if line.id == line_item_id:
                return line
        return None


@dataclass(frozen=True)
class Supplier:
    id: str
    name: str
    email: Optional[str] = None
    rating: Optional[float] = None


@dataclass(frozen=True)
class RFQSupplier:
    supplier_id: str
    supplier: Supplier
    status: RFQSupplierStatus = RFQSupplierStatus.PENDING


@dataclass(frozen=True)
class QuoteLineItem:
    id: str
    mr_line_item_id: str
    unit_price: Decimal
    quantity: Decimal
    total_price: Decimal
    lead_time_days: Optional[int] = None
    remarks: Optional[str] = None
    attachments: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "unit_price", to_decimal(self.unit_price))
        object.__setattr__(self, "quantity", to_decimal(self.quantity))
        object.__setattr__(self, "total_price", to_decimal(self.total_price))
        object.__setattr__(self, "attachments", tuple(self.attachments))


@dataclass(frozen=True)
class Quote:
    id: str
    rfq_id: str
    supplier_id: str
    supplier: Supplier
    line_items: Tuple[QuoteLineItem, ...] = ()
    status: QuoteStatus = QuoteStatus.SUBMITTED
    submitted_at: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    total_amount: Optional[Decimal] = None
    currency: str = "AED"
    terms: Optional[str] = None
    attachments: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "line_items", tuple(self.line_items))
        object.__setattr__(self, "attachments", tuple(self.attachments))
        if self.total_amount is not None:
            object.__setattr__(self, "total_amount", to_decimal(self.total_amount))

    @property
    def is_responding(self) -> bool:
        return self.status in RESPONDING_STATUSES

    def get_line(self, line_item_id: str) -> Optional[QuoteLineItem]:
        for item in self.line_items:
            if item.mr_line_item_id == line_item_id:
                return item
        return None


@dataclass(frozen=True)
class RFQ:
    id: str
    rfq_number: str
    material_request: MaterialRequest
    suppliers: Tuple[RFQSupplier, ...] = ()
    quotes: Tuple[Quote, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "suppliers", tuple(self.suppliers))
        object.__setattr__(self, "quotes", tuple(self.quotes))

    @property
    def line_items(self) -> Tuple[MaterialRequestLineItem, ...]:
        return self.material_request.line_items

    @property
    def responding_quotes(self) -> Tuple[Quote, ...]:
        return tuple(q for q in self.quotes if q.is_responding)

    def get_supplier(self, supplier_id: str) -> Optional[RFQSupplier]:
        for rfq_supplier in self.suppliers:
            if rfq_supplier.supplier_id == supplier_id:
                return rfq_supplier
        return None

    def get_quote(self, quote_id: str) -> Optional[Quote]:
        for quote in self.quotes:
            if quote.id == quote_id:
                return quote
        return None

    def supplier_name(self, supplier_id: str) -> str:
        rfq_supplier = self.get_supplier(supplier_id)
        if rfq_supplier:
            return rfq_supplier.supplier.name
        for quote in self.quotes:
            if quote.supplier_id == supplier_id:
                return quote.supplier.name
        return supplier_id


@dataclass(frozen=True)
class Selection:
    """The chosen supplier/quote for one material-request line."""
    line_item_id: str
    supplier_id: str
    quote_id: str


@dataclass(frozen=True)
class SelectionChange:
    """Record of one explicit operator selection."""
    rfq_id: str
    line_item_id: str
    supplier_id: str
    quote_id: str
    previous_supplier_id: Optional[str] = None
    changed_at: Optional[datetime] = None

    def to_payload(self) -> dict:
        return {
            "rfq_id": self.rfq_id,
            "line_item_id": self.line_item_id,
            "supplier_id": self.supplier_id,
            "previous_supplier_id": self.previous_supplier_id,
        }


@dataclass(frozen=True)
class PriceCandidate:
    """One supplier's priced answer for a line, as seen by the resolver."""
    supplier_id: str
    quote_id: str
    unit_price: Decimal
    total_price: Decimal
    lead_time_days: Optional[int] = None
    submitted_at: Optional[datetime] = None
    position: int = 0


@dataclass(frozen=True)
class BestPrice:
    line_item_id: str
    total_price: Decimal
    winner: PriceCandidate
    supplier_ids: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_tie(self) -> bool:
        return len(self.supplier_ids) > 1
