"""Bill approval workflow service.

Decision and re-routing functions take a sync SQLAlchemy Session so they can be
shared with Celery tasks. The routing itself lives in approval_router; this
module loads the data, persists current_approver_id and appends history.
"""
import logging
import uuid
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from billflow.models.approval_rule import ApprovalRule
from billflow.models.bill import ApprovalStatus, Bill, BillApprovalAction
from billflow.schemas.approval_rule import ApprovalRuleOut
from billflow.schemas.bill import BillApprovalState
from billflow.services import audit as audit_svc
from billflow.services.approval_router import (
    check_rule_configuration,
    count_approved,
    find_matching_rule,
    process_bill,
    resolve_escalation,
)

logger = logging.getLogger(__name__)

DECISION_ACTIONS = ("approve", "reject")


# ─── Rule loading ───

def _rules_stmt():
    # Creation order is the first-match order
    return select(ApprovalRule).order_by(ApprovalRule.created_at, ApprovalRule.id)


def load_rules(db: Session) -> list[ApprovalRuleOut]:
    rows = db.execute(_rules_stmt()).scalars().all()
    return [ApprovalRuleOut.model_validate(r) for r in rows]


async def load_rules_async(db: AsyncSession) -> list[ApprovalRuleOut]:
    result = await db.execute(_rules_stmt())
    return [ApprovalRuleOut.model_validate(r) for r in result.scalars().all()]


# ─── Routing ───

def refresh_current_approver(bill: Bill, rules: list, today: date | None = None) -> uuid.UUID | None:
    """Recompute and store bill.current_approver_id. Does not flush or commit."""
    routed = process_bill(BillApprovalState.model_validate(bill), rules, today)
    bill.current_approver_id = routed.current_approver_id
    return routed.current_approver_id


# ─── Approve / reject ───

def record_decision(
    db: Session,
    bill_id: uuid.UUID,
    actor,
    action: str,
    remarks: str | None = None,
) -> Bill:
    """Apply an approve or reject decision from the bill's current approver.

    Args:
        db: Sync SQLAlchemy session.
        bill_id: Bill to act on.
        actor: Acting Employee. Must be the current approver unless is_admin.
        action: "approve" or "reject".
        remarks: Optional note stored on the history entry.

    Returns:
        The updated Bill ORM object.

    Raises:
        ValueError: Unknown action, bill already decided, or no approver pending.
        LookupError: Bill not found.
        PermissionError: Actor is not the current approver.
    """
    if action not in DECISION_ACTIONS:
        raise ValueError(f"Invalid action '{action}'. Must be 'approve' or 'reject'.")

    # Serialises concurrent decisions on the same bill
    bill = db.execute(
        select(Bill).where(Bill.id == bill_id).with_for_update()
    ).scalars().first()
    if bill is None:
        raise LookupError(f"Bill {bill_id} not found.")

    status = ApprovalStatus.coerce(bill.approval_status)
    if status.is_terminal:
        raise ValueError(f"Bill {bill.bill_number} is already decided (status={status.value}).")

    rules = load_rules(db)
    approver_id = refresh_current_approver(bill, rules)
    if approver_id is None:
        raise ValueError(
            f"Bill {bill.bill_number} has no pending approver; no approval rule covers "
            f"{bill.total_payable_amount}."
        )

    on_behalf = actor.id != approver_id
    if on_behalf and not actor.is_admin:
        raise PermissionError("Actor is not the current approver for this bill.")

    before_snapshot = {
        "approval_status": status.value,
        "current_approver_id": str(approver_id),
        "approved_levels": count_approved(bill),
    }
    level = count_approved(bill) + 1
    now = datetime.now(timezone.utc)

    if action == "reject":
        bill.approval_history.append(BillApprovalAction(
            approver_id=actor.id,
            status=ApprovalStatus.REJECTED.value,
            level=level,
            remarks=remarks,
            timestamp=now,
        ))
        bill.approval_status = ApprovalStatus.REJECTED.value
        bill.current_approver_id = None
        audit_action = "bill.rejected"
    else:
        bill.approval_history.append(BillApprovalAction(
            approver_id=actor.id,
            status=ApprovalStatus.APPROVED.value,
            level=level,
            remarks=remarks,
            timestamp=now,
        ))
        next_approver = refresh_current_approver(bill, rules)
        if next_approver is None:
            bill.approval_status = ApprovalStatus.APPROVED.value
            audit_action = "bill.approved"
        else:
            audit_action = "bill.level_approved"
    db.flush()

    audit_svc.log(
        db=db,
        action=audit_action,
        entity_type="bill",
        entity_id=bill.id,
        actor=actor,
        before=before_snapshot,
        after={
            "approval_status": bill.approval_status,
            "current_approver_id": str(bill.current_approver_id) if bill.current_approver_id else None,
            "level": level,
        },
        notes=(f"Acted on behalf of {approver_id}. " if on_behalf else "") + (remarks or ""),
    )

    db.commit()

    logger.info(
        "Approval decision: bill=%s action=%s level=%s actor=%s next_approver=%s",
        bill.bill_number, action, level, actor.id, bill.current_approver_id,
    )
    return bill


# ─── Bulk re-routing ───

def reprocess_pending_bills(db: Session, today: date | None = None) -> int:
    """Recompute current_approver_id on every pending bill.

    Needed after rule edits and once a day, since a future-dated rule starts
    matching on its effective date.

    Returns:
        Number of bills whose current approver changed.
    """
    rules = load_rules(db)
    check_rule_configuration(rules)

    bills = db.execute(
        select(Bill).where(Bill.approval_status == ApprovalStatus.PENDING.value)
    ).scalars().all()

    changed = 0
    for bill in bills:
        previous = bill.current_approver_id
        if refresh_current_approver(bill, rules, today) != previous:
            changed += 1

    db.commit()
    logger.info("reprocess_pending_bills: %d pending bills, %d re-routed", len(bills), changed)
    return changed


# ─── Escalation ───

def _escalation_for(bill: Bill, rules: list, now: datetime) -> dict | None:
    state = BillApprovalState.model_validate(bill)
    if state.approval_status.is_terminal:
        return None
    rule = find_matching_rule(state.total_payable_amount, rules, now.date())
    if rule is None:
        return None

    level_no = count_approved(state) + 1
    level = next((lvl for lvl in rule.approver_levels if lvl.level == level_no), None)
    if level is None:
        return None

    pending_since = state.approval_history[-1].timestamp if state.approval_history else bill.created_at
    target = resolve_escalation(level, pending_since, now)
    if target is None:
        return None

    return {
        "bill_id": bill.id,
        "level": level_no,
        "primary_approver_id": level.approver_id,
        "escalated_to": target["approver_id"],
        "pending_since": pending_since,
        "overdue_days": target["overdue_days"],
    }


def get_bill_escalation(db: Session, bill_id: uuid.UUID, now: datetime | None = None) -> dict | None:
    """Escalation target for one bill, or None if it is not overdue.

    Raises:
        LookupError: Bill not found.
    """
    bill = db.execute(select(Bill).where(Bill.id == bill_id)).scalars().first()
    if bill is None:
        raise LookupError(f"Bill {bill_id} not found.")
    return _escalation_for(bill, load_rules(db), now or datetime.now(timezone.utc))


def find_escalations(db: Session, now: datetime | None = None) -> list[dict]:
    """Return escalation targets for every pending bill whose level timed out."""
    now = now or datetime.now(timezone.utc)
    rules = load_rules(db)
    bills = db.execute(
        select(Bill).where(
            Bill.approval_status == ApprovalStatus.PENDING.value,
            Bill.current_approver_id.isnot(None),
        )
    ).scalars().all()

    escalations = []
    for bill in bills:
        found = _escalation_for(bill, rules, now)
        if found is not None:
            escalations.append(found)
    return escalations
