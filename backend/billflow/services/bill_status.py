"""Display label for a bill's approval status."""
from billflow.models.bill import ApprovalStatus


def get_bill_status_text(bill, approval_flow=None) -> str:
    """Map stored approval state to the label shown in listings.

    Without a flow the label is the plain status. With a flow, an approved bill
    shows the last step's label and a pending one shows the label of the most
    recently completed step. This only renders what is stored; it validates no
    transition.
    """
    status = ApprovalStatus.coerce(bill.approval_status)
    steps = list(approval_flow.steps) if approval_flow is not None else []

    if not steps:
        return status.value

    if status is ApprovalStatus.REJECTED:
        return ApprovalStatus.REJECTED.value
    if status is ApprovalStatus.APPROVED:
        return steps[-1].status_name

    history_length = len(bill.approval_history or [])
    if history_length == 0:
        return ApprovalStatus.PENDING.value
    if history_length < len(steps):
        return steps[history_length - 1].status_name
    return ApprovalStatus.PENDING.value
