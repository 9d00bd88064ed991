"""
Background job definitions.
"""
from redis import Redis
from rq import Queue

from procureflow.core.config import settings
from procureflow.core.logging import get_logger

logger = get_logger(__name__)


def get_queue(name: str = "default") -> Queue:
    """Get RQ queue."""
    redis_conn = Redis.from_url(settings.REDIS_URL)
    return Queue(name, connection=redis_conn)


# ============= JOB FUNCTIONS =============

def record_comparison_event_job(body: dict):
    """Background job to record a comparison audit event."""
    from procureflow.db.session import get_db_context
    from procureflow.services.comparison_audit import record_comparison_event

    rfq_id = body.get("rfq_id")
    logger.info(f"Recording {body.get('event')} #{body.get('sequence')} for RFQ {rfq_id}")

    with get_db_context() as db:
        record_comparison_event(
            db,
            rfq_id=rfq_id,
            event=body.get("event"),
            payload=body.get("payload"),
            summary=body.get("summary"),
            sequence=body.get("sequence"),
            actor="worker",
        )


# ============= QUEUE HELPERS =============

def enqueue_comparison_event(body: dict, queue_name: str = "high"):
    """Queue a comparison audit event for recording."""
    queue = get_queue(queue_name)
    return queue.enqueue(record_comparison_event_job, body)
