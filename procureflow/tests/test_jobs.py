"""
Tests for the RQ audit job helpers.
"""
from contextlib import contextmanager
from unittest.mock import MagicMock, patch

from procureflow.workers.jobs import enqueue_comparison_event, record_comparison_event_job


class TestComparisonJobs:
    """Queueing and recording audit events in the worker."""

    def test_enqueue_uses_high_queue(self):
        """Test that events are enqueued on the high queue."""
        body = {"event": "exported", "rfq_id": "rfq-1", "sequence": 3}

        with patch("procureflow.workers.jobs.get_queue") as mock_get_queue:
            enqueue_comparison_event(body)

        mock_get_queue.assert_called_once_with("high")
        mock_get_queue.return_value.enqueue.assert_called_once_with(record_comparison_event_job, body)

    def test_job_records_event(self):
        """Test that the job records the event as the worker actor."""
        mock_db = MagicMock()

        @contextmanager
        def fake_db_context():
            yield mock_db

        body = {
            "event": "selection_changed",
            "rfq_id": "rfq-1",
            "sequence": 2,
            "payload": {"line_item_id": "line-1", "supplier_id": "sup-a"},
        }

        with patch("procureflow.db.session.get_db_context", fake_db_context), \
                patch("procureflow.services.comparison_audit.record_comparison_event") as mock_record:
            record_comparison_event_job(body)

        mock_record.assert_called_once_with(
            mock_db,
            rfq_id="rfq-1",
            event="selection_changed",
            payload=body["payload"],
            summary=None,
            sequence=2,
            actor="worker",
        )
