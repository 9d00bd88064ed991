"""
Server side of the comparison audit sink.

Records comparison events in the audit log and stores each saved/exported
summary as a new immutable row.
"""
from typing import Iterable, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from procureflow.core.logging import get_logger, audit_logger
from procureflow.db.models import ComparisonAuditLog, ComparisonSummaryRecord
from procureflow.services.comparison.events import ComparisonEvent, ComparisonEventType
from procureflow.services.comparison.summary import ComparisonSummary

logger = get_logger(__name__)


def record_comparison_event(
    db: Session,
    rfq_id: str,
    event: str,
    payload: Optional[dict] = None,
    summary: Optional[dict] = None,
    sequence: Optional[int] = None,
    actor: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Optional[ComparisonSummaryRecord]:
    """
    Persist one comparison event. Caller commits.

    Returns:
        The stored summary record for selection_saved/exported, else None

    Raises:
        ValueError if the event is unknown or its body is incomplete
    """
    event_type = ComparisonEventType(event)

    if event_type == ComparisonEventType.SELECTION_CHANGED:
        if not payload or not payload.get("line_item_id") or not payload.get("supplier_id"):
            raise ValueError("Selection change payload incomplete.")
        details = payload
    else:
        if not summary:
            raise ValueError("Summary data is required for this event.")
        details = summary

    db.add(ComparisonAuditLog(
        rfq_id=rfq_id,
        action=f"comparison_{event_type.value}",
        event=event_type.value,
        sequence=sequence,
        actor=actor,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
    ))

    record = None
    if event_type != ComparisonEventType.SELECTION_CHANGED:
        parsed = ComparisonSummary.from_dict({**summary, "rfq_id": summary.get("rfq_id", rfq_id)})
        if parsed.rfq_id != rfq_id:
            raise ValueError(f"Summary belongs to RFQ {parsed.rfq_id}, not {rfq_id}.")

        # The same summary may be both saved and exported; keep the first row
        record = db.query(ComparisonSummaryRecord).filter(
            ComparisonSummaryRecord.summary_id == parsed.summary_id
        ).first()
        if record is None:
            record = ComparisonSummaryRecord(
                summary_id=parsed.summary_id,
                rfq_id=rfq_id,
                rfq_number=parsed.rfq_number,
                event=event_type.value,
                is_saved=False,
                currency=parsed.currency,
                total_value=parsed.total_value,
                total_savings=parsed.total_savings,
                line_count=len(parsed.selections),
                generated_at=parsed.generated_at,
                payload=parsed.to_dict(),
            )
            db.add(record)
        if event_type == ComparisonEventType.SELECTION_SAVED:
            record.is_saved = True

    audit_logger.log(
        f"comparison_{event_type.value}",
        rfq_id=rfq_id,
        entity_type="rfq",
        entity_id=rfq_id,
        details={"sequence": sequence, "line_item_id": (payload or {}).get("line_item_id")},
    )
    return record


def list_summaries(db: Session, rfq_id: str, limit: int = 50) -> List[ComparisonSummaryRecord]:
    """Stored summaries for an RFQ, newest first."""
    return db.query(ComparisonSummaryRecord).filter(
        ComparisonSummaryRecord.rfq_id == rfq_id
    ).order_by(
        desc(ComparisonSummaryRecord.generated_at), desc(ComparisonSummaryRecord.id)
    ).limit(limit).all()


def latest_summary(db: Session, rfq_id: str) -> Optional[ComparisonSummary]:
    """Most recent saved summary for an RFQ, if any."""
    record = db.query(ComparisonSummaryRecord).filter(
        ComparisonSummaryRecord.rfq_id == rfq_id,
        ComparisonSummaryRecord.is_saved.is_(True),
    ).order_by(
        desc(ComparisonSummaryRecord.generated_at), desc(ComparisonSummaryRecord.id)
    ).first()
    if record is None:
        return None
    return ComparisonSummary.from_dict(record.payload)


def record_outbox_events(
    db: Session,
    events: Iterable[ComparisonEvent],
    actor: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> List[Optional[ComparisonSummaryRecord]]:
    """Persist events drained from a request-scoped outbox in sequence order. Caller commits."""
    return [
        record_comparison_event(
            db,
            rfq_id=event.rfq_id,
            event=event.event.value,
            payload=event.payload,
            summary=event.summary,
            sequence=event.sequence,
            actor=actor,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        for event in sorted(events, key=lambda e: e.sequence)
    ]
