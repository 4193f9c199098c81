"""Celery tasks that keep bill routing current and report stalled approvals."""
import logging

from billflow.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="billflow.workers.approval_tasks.reprocess_pending_bills")
def reprocess_pending_bills():
    """Recompute current_approver_id on all pending bills.

    Queued after every approval rule write and run daily so rules with a
    future effective_date start routing on that date.
    """
    from billflow.db.session import SyncSessionLocal
    from billflow.services import bill_workflow

    with SyncSessionLocal() as db:
        changed = bill_workflow.reprocess_pending_bills(db)
    return {"rerouted": changed}


@celery_app.task(name="billflow.workers.approval_tasks.check_approval_escalations")
def check_approval_escalations():
    """Log and audit every pending bill whose current level passed its escalation timeout.

    current_approver_id is left alone; the escalation target is advisory.
    """
    from billflow.db.session import SyncSessionLocal
    from billflow.services import audit as audit_svc
    from billflow.services import bill_workflow

    with SyncSessionLocal() as db:
        escalations = bill_workflow.find_escalations(db)
        for esc in escalations:
            logger.warning(
                "Approval escalation due: bill=%s level=%s primary=%s escalated_to=%s overdue_days=%s",
                esc["bill_id"], esc["level"], esc["primary_approver_id"],
                esc["escalated_to"], esc["overdue_days"],
            )
            audit_svc.log(
                db,
                action="bill.escalation_due",
                entity_type="bill",
                entity_id=esc["bill_id"],
                after={
                    "level": esc["level"],
                    "primary_approver_id": esc["primary_approver_id"],
                    "escalated_to": esc["escalated_to"],
                    "overdue_days": esc["overdue_days"],
                },
            )
        db.commit()

    logger.info("check_approval_escalations: %d escalations due", len(escalations))
    return {"escalations": len(escalations)}
