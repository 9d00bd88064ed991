"""
Quote comparison and allocation engine.
Matches supplier quotes to material-request lines, resolves best prices,
tracks the operator's allocation and builds the immutable selection summary.
"""
from .errors import (
    ComparisonError,
    RfqNotFoundError,
    ValidationError,
    IncompleteSelectionError,
    AuditSinkError,
    DataIntegrityError,
)
from .models import (
    MaterialRequest,
    MaterialRequestLineItem,
    Supplier,
    RFQSupplier,
    RFQSupplierStatus,
    Quote,
    QuoteLineItem,
    QuoteStatus,
    RFQ,
    Selection,
)

__all__ = [
    "ComparisonError",
    "RfqNotFoundError",
    "ValidationError",
    "IncompleteSelectionError",
    "AuditSinkError",
    "DataIntegrityError",
    "MaterialRequest",
    "MaterialRequestLineItem",
    "Supplier",
    "RFQSupplier",
    "RFQSupplierStatus",
    "Quote",
    "QuoteLineItem",
    "QuoteStatus",
    "RFQ",
    "Selection",
]
