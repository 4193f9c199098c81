"""Tests for the Celery approval tasks, run eagerly with a mocked session."""
import uuid
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from billflow.workers import approval_tasks
from billflow.workers.celery_app import celery_app


def _session_factory(db: MagicMock) -> MagicMock:
    factory = MagicMock()
    factory.return_value.__enter__.return_value = db
    return factory


def test_beat_schedule_runs_both_jobs_daily():
    tasks = {entry["task"] for entry in celery_app.conf.beat_schedule.values()}
    assert tasks == {
        "billflow.workers.approval_tasks.reprocess_pending_bills",
        "billflow.workers.approval_tasks.check_approval_escalations",
    }


def test_reprocess_task_reports_rerouted_count():
    db = MagicMock()
    with patch("billflow.db.session.SyncSessionLocal", _session_factory(db)), \
         patch("billflow.services.bill_workflow.reprocess_pending_bills", return_value=3) as mock_reprocess:
        result = approval_tasks.reprocess_pending_bills()

    assert result == {"rerouted": 3}
    mock_reprocess.assert_called_once_with(db)


def test_escalation_task_audits_each_escalation():
    db = MagicMock()
    escalation = {
        "bill_id": uuid.uuid4(),
        "level": 1,
        "primary_approver_id": uuid.uuid4(),
        "escalated_to": uuid.uuid4(),
        "pending_since": datetime(2026, 3, 1, tzinfo=timezone.utc),
        "overdue_days": 2,
    }
    with patch("billflow.db.session.SyncSessionLocal", _session_factory(db)), \
         patch("billflow.services.bill_workflow.find_escalations", return_value=[escalation]), \
         patch("billflow.services.audit.log") as mock_audit:
        result = approval_tasks.check_approval_escalations()

    assert result == {"escalations": 1}
    assert mock_audit.call_args.kwargs["action"] == "bill.escalation_due"
    assert mock_audit.call_args.kwargs["entity_id"] == escalation["bill_id"]
    db.commit.assert_called_once()
