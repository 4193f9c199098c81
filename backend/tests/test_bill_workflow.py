"""Tests for the bill approval workflow service.

Tests cover:
  - record_decision: guards, level-by-level approval, rejection, admin override
  - reprocess_pending_bills: re-routing after rule changes
  - escalation: resolve_escalation and find_escalations
"""
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.dialects import postgresql

from billflow.models.bill import ApprovalStatus
from billflow.schemas.approval_rule import ApprovalRuleOut, ApproverLevelOut
from billflow.services import bill_workflow
from billflow.services.approval_router import resolve_escalation

E1 = uuid.UUID("00000000-0000-0000-0000-0000000000e1")
E2 = uuid.UUID("00000000-0000-0000-0000-0000000000e2")
ALT1 = uuid.UUID("00000000-0000-0000-0000-0000000000a1")
ALT2 = uuid.UUID("00000000-0000-0000-0000-0000000000a2")
NOW = datetime(2026, 3, 20, 9, 0, tzinfo=timezone.utc)


# ─── Helpers ──────────────────────────────────────────────────────────────────

class FakeEmployee:
    def __init__(self, employee_id: uuid.UUID, is_admin: bool = False):
        self.id = employee_id
        self.email = f"{employee_id.hex[-2:]}@billflow.local"
        self.is_admin = is_admin
        self.is_active = True


class FakeBill:
    """Stands in for the Bill ORM row; history entries only need the fields routing reads."""

    def __init__(self, amount="500", status=ApprovalStatus.PENDING.value, history=None,
                 current_approver_id=None, created_at=None):
        self.id = uuid.uuid4()
        self.bill_number = "BILL-20260301-ABC123"
        self.total_payable_amount = Decimal(amount)
        self.approval_status = status
        self.approval_history = list(history or [])
        self.current_approver_id = current_approver_id
        self.created_at = created_at or NOW - timedelta(days=1)


def _action(approver_id, status="Approved", timestamp=None):
    return SimpleNamespace(
        approver_id=approver_id, status=status, level=None, remarks=None,
        timestamp=timestamp or NOW - timedelta(days=2),
    )


def _two_level_rule(timeout=None, alternatives=()) -> ApprovalRuleOut:
    return ApprovalRuleOut(
        id=uuid.uuid4(),
        name="Medium bills",
        min_amount=Decimal("0"),
        max_amount=Decimal("10000"),
        approver_levels=[
            ApproverLevelOut(level=1, approver_id=E1, escalation_timeout_days=timeout,
                             alternative_approvers=list(alternatives)),
            ApproverLevelOut(level=2, approver_id=E2, escalation_timeout_days=timeout,
                             alternative_approvers=list(alternatives)),
        ],
    )


def _db_returning(*rows) -> MagicMock:
    """Sync Session mock whose first execute() yields rows via scalars().first()/all()."""
    db = MagicMock()
    result = MagicMock()
    result.scalars.return_value.first.return_value = rows[0] if rows else None
    result.scalars.return_value.all.return_value = list(rows)
    db.execute.return_value = result
    return db


# ─── record_decision guards ───────────────────────────────────────────────────

def test_unknown_action_rejected_before_loading():
    db = MagicMock()
    with pytest.raises(ValueError, match="Invalid action"):
        bill_workflow.record_decision(db, uuid.uuid4(), FakeEmployee(E1), "escalate")
    db.execute.assert_not_called()


def test_missing_bill_raises_lookup_error():
    db = _db_returning()
    with pytest.raises(LookupError):
        bill_workflow.record_decision(db, uuid.uuid4(), FakeEmployee(E1), "approve")


@pytest.mark.parametrize("status", ["Approved", "Rejected", 1, 0])
def test_decided_bill_cannot_be_decided_again(status):
    db = _db_returning(FakeBill(status=status))
    with pytest.raises(ValueError, match="already decided"):
        bill_workflow.record_decision(db, uuid.uuid4(), FakeEmployee(E1), "approve")


def test_bill_without_matching_rule_has_no_one_to_decide():
    db = _db_returning(FakeBill(amount="50000"))
    with patch.object(bill_workflow, "load_rules", return_value=[_two_level_rule()]):
        with pytest.raises(ValueError, match="no pending approver"):
            bill_workflow.record_decision(db, uuid.uuid4(), FakeEmployee(E1), "approve")


def test_only_current_approver_may_decide():
    db = _db_returning(FakeBill())
    with patch.object(bill_workflow, "load_rules", return_value=[_two_level_rule()]):
        with pytest.raises(PermissionError):
            bill_workflow.record_decision(db, uuid.uuid4(), FakeEmployee(E2), "approve")
    db.commit.assert_not_called()


# ─── record_decision outcomes ─────────────────────────────────────────────────

def test_first_level_approval_moves_to_next_level():
    bill = FakeBill()
    db = _db_returning(bill)

    with patch.object(bill_workflow, "load_rules", return_value=[_two_level_rule()]), \
         patch.object(bill_workflow.audit_svc, "log") as mock_audit:
        result = bill_workflow.record_decision(db, bill.id, FakeEmployee(E1), "approve", remarks="ok")

    assert result is bill
    assert bill.approval_status == "Pending"
    assert bill.current_approver_id == E2
    assert len(bill.approval_history) == 1
    entry = bill.approval_history[0]
    assert entry.approver_id == E1
    assert entry.status == "Approved"
    assert entry.level == 1
    assert entry.remarks == "ok"
    assert mock_audit.call_args.kwargs["action"] == "bill.level_approved"
    db.commit.assert_called_once()


def test_last_level_approval_completes_bill():
    bill = FakeBill(history=[_action(E1)], current_approver_id=E2)
    db = _db_returning(bill)

    with patch.object(bill_workflow, "load_rules", return_value=[_two_level_rule()]), \
         patch.object(bill_workflow.audit_svc, "log") as mock_audit:
        bill_workflow.record_decision(db, bill.id, FakeEmployee(E2), "approve")

    assert bill.approval_status == "Approved"
    assert bill.current_approver_id is None
    assert bill.approval_history[-1].level == 2
    assert mock_audit.call_args.kwargs["action"] == "bill.approved"


def test_rejection_is_terminal_and_clears_approver():
    bill = FakeBill(history=[_action(E1)], current_approver_id=E2)
    db = _db_returning(bill)

    with patch.object(bill_workflow, "load_rules", return_value=[_two_level_rule()]), \
         patch.object(bill_workflow.audit_svc, "log") as mock_audit:
        bill_workflow.record_decision(db, bill.id, FakeEmployee(E2), "reject", remarks="wrong PO")

    assert bill.approval_status == "Rejected"
    assert bill.current_approver_id is None
    assert bill.approval_history[-1].status == "Rejected"
    assert mock_audit.call_args.kwargs["action"] == "bill.rejected"


def test_admin_may_act_on_behalf_of_approver():
    bill = FakeBill()
    db = _db_returning(bill)
    admin = FakeEmployee(uuid.uuid4(), is_admin=True)

    with patch.object(bill_workflow, "load_rules", return_value=[_two_level_rule()]), \
         patch.object(bill_workflow.audit_svc, "log") as mock_audit:
        bill_workflow.record_decision(db, bill.id, admin, "approve")

    assert bill.approval_history[0].approver_id == admin.id
    assert bill.current_approver_id == E2
    assert "on behalf of" in mock_audit.call_args.kwargs["notes"]


def test_bill_row_is_locked_for_the_decision():
    bill = FakeBill()
    db = _db_returning(bill)

    with patch.object(bill_workflow, "load_rules", return_value=[_two_level_rule()]), \
         patch.object(bill_workflow.audit_svc, "log"):
        bill_workflow.record_decision(db, bill.id, FakeEmployee(E1), "approve")

    stmt = db.execute.call_args_list[0].args[0]
    assert "FOR UPDATE" in str(stmt.compile(dialect=postgresql.dialect()))


def test_repeated_approval_by_same_approver_does_not_skip_a_level():
    """A second approve from level 1 sees the first one and is refused; level 2 stays pending."""
    bill = FakeBill()
    db = _db_returning(bill)

    with patch.object(bill_workflow, "load_rules", return_value=[_two_level_rule()]), \
         patch.object(bill_workflow.audit_svc, "log"):
        bill_workflow.record_decision(db, bill.id, FakeEmployee(E1), "approve")
        with pytest.raises(PermissionError):
            bill_workflow.record_decision(db, bill.id, FakeEmployee(E1), "approve")

    assert [entry.level for entry in bill.approval_history] == [1]
    assert bill.current_approver_id == E2
    assert bill.approval_status == "Pending"


# ─── reprocess_pending_bills ──────────────────────────────────────────────────

def test_reprocess_counts_only_changed_bills():
    routed = FakeBill(current_approver_id=E1)
    stale = FakeBill(current_approver_id=None)
    orphaned = FakeBill(amount="50000", current_approver_id=E1)
    db = _db_returning(routed, stale, orphaned)

    with patch.object(bill_workflow, "load_rules", return_value=[_two_level_rule()]):
        changed = bill_workflow.reprocess_pending_bills(db)

    assert changed == 2
    assert stale.current_approver_id == E1
    assert orphaned.current_approver_id is None
    db.commit.assert_called_once()


# ─── Escalation ───────────────────────────────────────────────────────────────

def _level(timeout=2, alternatives=(ALT1, ALT2)) -> ApproverLevelOut:
    return ApproverLevelOut(
        level=1, approver_id=E1, escalation_timeout_days=timeout,
        alternative_approvers=list(alternatives),
    )


def test_no_escalation_before_timeout():
    assert resolve_escalation(_level(), NOW - timedelta(days=1, hours=23), NOW) is None


def test_escalates_to_first_alternative_after_one_period():
    target = resolve_escalation(_level(), NOW - timedelta(days=2), NOW)
    assert target == {"approver_id": ALT1, "alternative_index": 0, "overdue_days": 0}


def test_escalation_steps_down_and_stops_at_last_alternative():
    assert resolve_escalation(_level(), NOW - timedelta(days=4), NOW)["approver_id"] == ALT2
    target = resolve_escalation(_level(), NOW - timedelta(days=30), NOW)
    assert target["approver_id"] == ALT2
    assert target["overdue_days"] == 28


@pytest.mark.parametrize("timeout, alternatives", [(None, (ALT1,)), (2, ())])
def test_level_without_timeout_or_alternatives_never_escalates(timeout, alternatives):
    level = _level(timeout=timeout, alternatives=alternatives)
    assert resolve_escalation(level, NOW - timedelta(days=90), NOW) is None


def test_naive_pending_since_treated_as_utc():
    naive = (NOW - timedelta(days=3)).replace(tzinfo=None)
    assert resolve_escalation(_level(), naive, NOW)["approver_id"] == ALT1


def test_naive_now_treated_as_utc():
    naive_now = NOW.replace(tzinfo=None)
    assert resolve_escalation(_level(), NOW - timedelta(days=2), naive_now)["approver_id"] == ALT1


def test_find_escalations_uses_last_history_timestamp():
    waiting_on_level_2 = FakeBill(
        history=[_action(E1, timestamp=NOW - timedelta(days=5))],
        current_approver_id=E2,
        created_at=NOW - timedelta(days=40),
    )
    fresh = FakeBill(current_approver_id=E1, created_at=NOW - timedelta(hours=3))
    db = _db_returning(waiting_on_level_2, fresh)
    rule = _two_level_rule(timeout=2, alternatives=(ALT1, ALT2))

    with patch.object(bill_workflow, "load_rules", return_value=[rule]):
        escalations = bill_workflow.find_escalations(db, now=NOW)

    assert len(escalations) == 1
    esc = escalations[0]
    assert esc["bill_id"] == waiting_on_level_2.id
    assert esc["level"] == 2
    assert esc["primary_approver_id"] == E2
    assert esc["escalated_to"] == ALT2
    assert esc["overdue_days"] == 3


def test_escalation_lookup_for_unknown_bill():
    with pytest.raises(LookupError):
        bill_workflow.get_bill_escalation(_db_returning(), uuid.uuid4(), now=NOW)
