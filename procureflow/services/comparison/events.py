"""
Comparison audit events: outbox and sinks.

Selections are applied locally first; the matching event is put on the
outbox synchronously and delivered later by flush(). Delivery is
best-effort: a failed event is logged and kept in outbox.failed, it is never
retried automatically and it never unwinds local allocation state.
Events are delivered one at a time in the order they were issued.
"""
import asyncio
import enum
import itertools
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, List, Optional

import httpx
from redis.exceptions import RedisError

from procureflow.core.logging import get_logger
from procureflow.services.comparison.errors import AuditSinkError

logger = get_logger(__name__)


class ComparisonEventType(str, enum.Enum):
    SELECTION_CHANGED = "selection_changed"
    SELECTION_SAVED = "selection_saved"
    EXPORTED = "exported"


@dataclass(frozen=True)
class ComparisonEvent:
    event: ComparisonEventType
    rfq_id: str
    sequence: int
    payload: Optional[dict] = None
    summary: Optional[dict] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_body(self) -> dict:
        """Wire body for the audit sink."""
        body = {
            "event": self.event.value,
            "rfq_id": self.rfq_id,
            "sequence": self.sequence,
        }
        if self.payload is not None:
            body["payload"] = self.payload
        if self.summary is not None:
            body["summary"] = self.summary
        return body


class EventSink(ABC):
    """Destination for comparison events."""

    @abstractmethod
    async def send(self, event: ComparisonEvent) -> None:
        """
        Deliver one event.

        Raises:
            AuditSinkError if the event could not be recorded
        """
        pass


class InMemoryEventSink(EventSink):
    """Keeps delivered events in a list. Set fail=True to simulate an outage."""

    def __init__(self, fail: bool = False):
        self.events: List[ComparisonEvent] = []
        self.fail = fail

    async def send(self, event: ComparisonEvent) -> None:
        if self.fail:
            raise AuditSinkError(f"Audit sink unavailable for {event.event.value}", event=event)
        self.events.append(event)


class HttpEventSink(EventSink):
    """POSTs events to the comparison endpoint of the audit service."""

    def __init__(self, base_url: str, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    def url_for(self, rfq_id: str) -> str:
        return f"{self.base_url}/api/rfqs/{rfq_id}/compare"

    async def send(self, event: ComparisonEvent) -> None:
        url = self.url_for(event.rfq_id)
        try:
            if self._client is not None:
                response = await self._client.post(url, json=event.to_body(), timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json=event.to_body())
        except httpx.HTTPError as e:
            raise AuditSinkError(
                f"Comparison {event.event.value.replace('_', ' ')} failed: {e}",
                event=event,
            ) from e

        if not response.is_success:
            raise AuditSinkError(
                f"Comparison {event.event.value.replace('_', ' ')} failed (HTTP {response.status_code})",
                event=event,
                status_code=response.status_code,
            )


class QueueEventSink(EventSink):
    """Hands events to the RQ worker, which records them in the database."""

    def __init__(self, queue_name: str = "high"):
        self.queue_name = queue_name

    async def send(self, event: ComparisonEvent) -> None:
        from procureflow.workers.jobs import enqueue_comparison_event
        try:
            await asyncio.to_thread(enqueue_comparison_event, event.to_body(), queue_name=self.queue_name)
        except RedisError as e:
            raise AuditSinkError(f"Could not queue {event.event.value}: {e}", event=event) from e


def build_event_sink(config=None) -> EventSink:
    """Create the sink named by AUDIT_SINK."""
    if config is None:
        from procureflow.core.config import settings as config

    if config.AUDIT_SINK == "http":
        return HttpEventSink(config.AUDIT_SINK_URL, timeout=config.AUDIT_SINK_TIMEOUT)
    if config.AUDIT_SINK == "queue":
        return QueueEventSink()
    return InMemoryEventSink()


class EventOutbox:
    """Ordered, best-effort queue of comparison events."""

    def __init__(self, sink: Optional[EventSink] = None):
        self.sink = sink or InMemoryEventSink()
        self.failed: List[ComparisonEvent] = []
        self.delivered_count = 0
        self._pending: Deque[ComparisonEvent] = deque()
        self._sequence = itertools.count(1)
        self._lock = asyncio.Lock()

    @property
    def pending(self) -> List[ComparisonEvent]:
        return list(self._pending)

    def put(
        self,
        event_type: ComparisonEventType,
        rfq_id: str,
        payload: Optional[dict] = None,
        summary: Optional[dict] = None,
    ) -> ComparisonEvent:
        """Queue an event. Never blocks and never fails."""
        event = ComparisonEvent(
            event=ComparisonEventType(event_type),
            rfq_id=rfq_id,
            sequence=next(self._sequence),
            payload=payload,
            summary=summary,
        )
        self._pending.append(event)
        return event

    async def flush(self) -> List[AuditSinkError]:
        """
        Deliver pending events in order.

        Returns:
            Errors for events that could not be delivered (empty on success)
        """
        errors = []
        async with self._lock:
            while self._pending:
                event = self._pending.popleft()
                try:
                    await self.sink.send(event)
                except Exception as e:
                    # Unexpected sink failures are reported like any other delivery failure
                    error = e if isinstance(e, AuditSinkError) else AuditSinkError(
                        f"Comparison {event.event.value.replace('_', ' ')} failed: {e!r}",
                        event=event,
                    )
                    logger.warning(
                        f"Audit event #{event.sequence} ({event.event.value}) not recorded: {error.message}",
                        extra={"rfq_id": event.rfq_id, "event": event.event.value},
                    )
                    self.failed.append(event)
                    errors.append(error)
                else:
                    self.delivered_count += 1
        return errors

    async def publish(
        self,
        event_type: ComparisonEventType,
        rfq_id: str,
        payload: Optional[dict] = None,
        summary: Optional[dict] = None,
    ) -> List[AuditSinkError]:
        """Queue an event and flush everything pending."""
        self.put(event_type, rfq_id, payload=payload, summary=summary)
        return await self.flush()

    def requeue_failed(self) -> int:
        """Move failed events back to the front of the queue, in issue order."""
        count = len(self.failed)
        for event in sorted(self.failed, key=lambda e: e.sequence, reverse=True):
            self._pending.appendleft(event)
        self.failed.clear()
        return count

    def drain(self) -> List[ComparisonEvent]:
        """Remove and return pending events without delivering them."""
        events = list(self._pending)
        self._pending.clear()
        return events
