"""
Error taxonomy for the comparison engine.

Matcher and resolver lookups never raise; absence is returned as None.
Mutations (allocation, summary build) raise these typed errors and the
caller is expected to handle them explicitly.
"""
from typing import Any, Dict, Iterable, List, Optional


class ComparisonError(Exception):
    """Base class for comparison errors."""


class RfqNotFoundError(ComparisonError):
    """The data-access layer has no RFQ with this id."""

    def __init__(self, rfq_id: str):
        self.rfq_id = rfq_id
        super().__init__(f"RFQ {rfq_id} not found")


class ValidationError(ComparisonError):
    """An operator selected a supplier/quote that did not quote the line."""

    def __init__(self, line_item_id: str, message: str):
        self.line_item_id = line_item_id
        self.message = message
        super().__init__(f"Line {line_item_id}: {message}")


class IncompleteSelectionError(ComparisonError):
    """Summary build attempted while quoted lines are still unassigned."""

    def __init__(self, missing_line_ids: Iterable[str]):
        self.missing_line_ids: List[str] = list(missing_line_ids)
        super().__init__(
            "Selection incomplete, no supplier chosen for line(s): "
            + ", ".join(self.missing_line_ids)
        )


class AuditSinkError(ComparisonError):
    """Delivery of a comparison event to the audit sink failed."""

    def __init__(self, message: str, event: Any = None, status_code: Optional[int] = None):
        self.message = message
        self.event = event
        self.status_code = status_code
        super().__init__(message)


class DataIntegrityError(ComparisonError):
    """The RFQ's quotes are inconsistent; savings would be misleading."""

    def __init__(self, rfq_id: str, issues: List[Dict[str, Any]]):
        self.rfq_id = rfq_id
        self.issues = issues
        lines = sorted({i["line_item_id"] for i in issues if i.get("line_item_id")})
        message = f"RFQ {rfq_id} failed integrity checks ({len(issues)} issue(s))"
        if lines:
            message += f"; affected line(s): {', '.join(lines)}"
        super().__init__(message)
