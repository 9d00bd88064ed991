"""
Quote comparison API routes - comparison grid, audit events, export and PR generation.
"""
from typing import List, Optional
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from procureflow.db.session import get_db
from procureflow.core.logging import get_logger, audit_logger
from procureflow.repositories import (
    QuoteRepository, RfqRepository, get_quote_repository, get_rfq_repository,
)
from procureflow.services.comparison.errors import (
    DataIntegrityError, IncompleteSelectionError, RfqNotFoundError, ValidationError,
)
from procureflow.services.comparison.events import ComparisonEventType, EventOutbox, InMemoryEventSink
from procureflow.services.comparison.export import export_filename, summary_to_csv
from procureflow.services.comparison.purchasing import generate_purchase_requisitions
from procureflow.services.comparison.session import ComparisonSession, open_comparison
from procureflow.services.comparison.summary import ComparisonSummary
from procureflow.services.comparison_audit import (
    latest_summary, list_summaries, record_comparison_event, record_outbox_events,
)

router = APIRouter(prefix="/api/rfqs", tags=["Comparison"])
logger = get_logger(__name__)


# ============= SCHEMAS =============

class SelectionIn(BaseModel):
    line_item_id: str
    supplier_id: str
    quote_id: str


class SelectionsRequest(BaseModel):
    selections: List[SelectionIn] = []


class ComparisonEventIn(BaseModel):
    event: Optional[str] = None
    sequence: Optional[int] = None
    payload: Optional[dict] = None
    summary: Optional[dict] = None


class SummaryListItem(BaseModel):
    summary_id: str
    rfq_number: str
    event: str
    is_saved: bool
    currency: Optional[str]
    total_value: Optional[float]
    total_savings: Optional[float]
    line_count: int
    generated_at: datetime


# ============= HELPERS =============

def _open_session(
    rfq_id: str,
    rfq_repo: RfqRepository,
    quote_repo: QuoteRepository,
) -> ComparisonSession:
    """Open a request-scoped session. Its events are persisted by the route, not flushed."""
    try:
        return open_comparison(
            rfq_repo, quote_repo, rfq_id,
            outbox=EventOutbox(InMemoryEventSink()),
        )
    except RfqNotFoundError:
        raise HTTPException(status_code=404, detail="RFQ not found")
    except DataIntegrityError as e:
        raise HTTPException(
            status_code=422,
            detail={"message": str(e), "issues": e.issues},
        )


def _build_summary(session: ComparisonSession, selections: List[SelectionIn]) -> ComparisonSummary:
    """Apply posted selections over the recommendation and build the summary."""
    try:
        for s in selections:
            session.select(s.line_item_id, s.supplier_id, s.quote_id)
        return session.build_summary()
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={"message": e.message, "line_item_id": e.line_item_id},
        )
    except IncompleteSelectionError as e:
        raise HTTPException(
            status_code=422,
            detail={"message": str(e), "missing_line_ids": e.missing_line_ids},
        )


def _client_info(request: Request) -> dict:
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }


def _persist_session_events(
    db: Session,
    session: ComparisonSession,
    event_type: ComparisonEventType,
    summary: ComparisonSummary,
    request: Request,
) -> None:
    """Write the session's selection changes, then the saved/exported summary."""
    session.outbox.put(event_type, session.rfq.id, summary=summary.to_dict())
    record_outbox_events(db, session.outbox.drain(), **_client_info(request))
    db.commit()


# ============= ROUTES =============

@router.get("/{rfq_id}/compare", response_model=dict)
async def get_comparison(
    rfq_id: str,
    rfq_repo: RfqRepository = Depends(get_rfq_repository),
    quote_repo: QuoteRepository = Depends(get_quote_repository),
):
    """Comparison grid with the recommended (cheapest) allocation and its savings."""
    session = _open_session(rfq_id, rfq_repo, quote_repo)
    mr = session.rfq.material_request

    return {
        "rfq_id": session.rfq.id,
        "rfq_number": session.rfq.rfq_number,
        "material_request": {"id": mr.id, "mrn": mr.mrn, "project_name": mr.project_name},
        "currency": session.currency,
        "tie_break_policy": session.policy.value,
        "rows": session.rows(),
        "selections": [
            {"line_item_id": s.line_item_id, "supplier_id": s.supplier_id, "quote_id": s.quote_id}
            for s in session.selections
        ],
        "savings": session.savings(),
        "integrity_issues": session.integrity_issues,
    }


@router.post("/{rfq_id}/compare", response_model=dict)
async def record_event(
    rfq_id: str,
    request: Request,
    body: ComparisonEventIn,
    db: Session = Depends(get_db),
):
    """Audit sink: record a selection change, save or export."""
    if not body.event:
        raise HTTPException(status_code=400, detail="Event type is required.")

    try:
        record = record_comparison_event(
            db,
            rfq_id=rfq_id,
            event=body.event,
            payload=body.payload,
            summary=body.summary,
            sequence=body.sequence,
            **_client_info(request),
        )
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    db.commit()

    if record is None:
        return {"ok": True}
    return {"summary": record.payload}


@router.get("/{rfq_id}/compare/summaries", response_model=List[SummaryListItem])
async def get_saved_summaries(
    rfq_id: str,
    limit: int = Query(50, le=200),
    db: Session = Depends(get_db),
):
    """Saved and exported summaries for an RFQ, newest first."""
    return [
        SummaryListItem(
            summary_id=r.summary_id,
            rfq_number=r.rfq_number,
            event=r.event,
            is_saved=bool(r.is_saved),
            currency=r.currency,
            total_value=float(r.total_value) if r.total_value is not None else None,
            total_savings=float(r.total_savings) if r.total_savings is not None else None,
            line_count=r.line_count or 0,
            generated_at=r.generated_at,
        )
        for r in list_summaries(db, rfq_id, limit=limit)
    ]


@router.post("/{rfq_id}/compare/summaries", response_model=dict)
async def save_summary(
    rfq_id: str,
    request: Request,
    body: SelectionsRequest,
    rfq_repo: RfqRepository = Depends(get_rfq_repository),
    quote_repo: QuoteRepository = Depends(get_quote_repository),
    db: Session = Depends(get_db),
):
    """Build a summary from the posted selections and store it as saved."""
    session = _open_session(rfq_id, rfq_repo, quote_repo)
    summary = _build_summary(session, body.selections)

    _persist_session_events(db, session, ComparisonEventType.SELECTION_SAVED, summary, request)

    return {"summary": summary.to_dict()}


@router.post("/{rfq_id}/compare/export")
async def export_comparison(
    rfq_id: str,
    request: Request,
    body: SelectionsRequest,
    rfq_repo: RfqRepository = Depends(get_rfq_repository),
    quote_repo: QuoteRepository = Depends(get_quote_repository),
    db: Session = Depends(get_db),
):
    """Export the allocation as CSV."""
    session = _open_session(rfq_id, rfq_repo, quote_repo)
    summary = _build_summary(session, body.selections)

    _persist_session_events(db, session, ComparisonEventType.EXPORTED, summary, request)

    filename = export_filename(summary)
    return Response(
        content=summary_to_csv(summary),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/{rfq_id}/purchase-requisitions", response_model=List[dict])
async def create_purchase_requisitions(
    rfq_id: str,
    db: Session = Depends(get_db),
):
    """Generate purchase requisitions from the latest saved summary."""
    summary = latest_summary(db, rfq_id)
    if summary is None:
        raise HTTPException(status_code=404, detail="No saved comparison summary for this RFQ")

    requisitions = generate_purchase_requisitions(summary)

    audit_logger.log(
        "purchase_requisitions_generated",
        rfq_id=rfq_id,
        entity_type="comparison_summary",
        entity_id=summary.summary_id,
        details={"pr_numbers": [pr.pr_number for pr in requisitions]},
    )
    logger.info(
        f"Generated {len(requisitions)} PR(s) from summary {summary.summary_id}",
        extra={"rfq_id": rfq_id},
    )
    return [pr.to_dict() for pr in requisitions]
