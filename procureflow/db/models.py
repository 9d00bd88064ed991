"""
SQLAlchemy ORM models for ProcureFlow.

Only the audit side of the comparison is persisted here: every comparison
event, and every saved or exported summary as its own immutable row.
"""
from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Numeric, JSON, Index, Boolean
)
from sqlalchemy.sql import func

from procureflow.db.session import Base


# ============= AUDIT LOG =============

class ComparisonAuditLog(Base):
    """Audit trail of comparison events (selection changes, saves, exports)."""
    __tablename__ = "comparison_audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    rfq_id = Column(String(64), nullable=False, index=True)
    action = Column(String(100), nullable=False, index=True)  # comparison_<event>
    event = Column(String(50), nullable=False)
    sequence = Column(Integer)  # client-side issue order
    actor = Column(String(255))
    details = Column(JSON)
    ip_address = Column(String(50))
    user_agent = Column(Text)

    __table_args__ = (
        Index('ix_comparison_audit_rfq_timestamp', 'rfq_id', 'timestamp'),
    )


# ============= SUMMARIES =============

class ComparisonSummaryRecord(Base):
    """A saved or exported selection summary. The payload is never updated after insert."""
    __tablename__ = "comparison_summaries"

    id = Column(Integer, primary_key=True, index=True)
    summary_id = Column(String(64), unique=True, nullable=False)
    rfq_id = Column(String(64), nullable=False, index=True)
    rfq_number = Column(String(50), nullable=False)
    event = Column(String(50), nullable=False)  # first event recorded: selection_saved or exported
    is_saved = Column(Boolean, default=False, nullable=False)
    currency = Column(String(10), default="AED")
    total_value = Column(Numeric(14, 2))
    total_savings = Column(Numeric(14, 2))
    line_count = Column(Integer, default=0)
    generated_at = Column(DateTime(timezone=True), nullable=False)
    payload = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('ix_comparison_summaries_rfq_generated', 'rfq_id', 'generated_at'),
    )
