"""Bill entry, listing and approval decision endpoints.

  GET    /bills                      list (filters: status, vendor, pending for me)
  POST   /bills                      create; totals computed, first approver routed
  GET    /bills/{id}                 detail with status label
  PUT    /bills/{id}                 edit while no decision has been recorded
  DELETE /bills/{id}                 admin only
  POST   /bills/{id}/approve|reject  current approver (or admin) decides
  GET    /bills/{id}/escalation      who a stalled level has escalated to
"""
import logging
import uuid
from datetime import date, datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from billflow.core.config import settings
from billflow.core.deps import get_current_employee, require_admin
from billflow.core.limiter import limiter
from billflow.db.session import get_session, get_sync_session
from billflow.models.bill import ApprovalStatus, Bill, BillItem
from billflow.models.bill_type import BillType
from billflow.models.vendor import Vendor
from billflow.schemas.bill import (
    BillApprovalState,
    BillDecisionRequest,
    BillIn,
    BillListResponse,
    BillOut,
    EscalationOut,
)
from billflow.schemas.bill_type import ApprovalFlow, ApprovalFlowStepOut
from billflow.services import audit as audit_svc
from billflow.services import bill_workflow
from billflow.services.approval_router import process_bill
from billflow.services.bill_status import get_bill_status_text
from billflow.services.bill_totals import compute_bill_totals

logger = logging.getLogger(__name__)

router = APIRouter()


# ─── Helpers ───

def _new_bill_number(entry_date: date) -> str:
    return f"BILL-{entry_date:%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


async def _flows_for(db: AsyncSession, bills: list[Bill]) -> dict[uuid.UUID, ApprovalFlow]:
    type_ids = {b.bill_type_id for b in bills if b.bill_type_id}
    if not type_ids:
        return {}
    result = await db.execute(select(BillType).where(BillType.id.in_(type_ids)))
    return {
        bt.id: ApprovalFlow(steps=[ApprovalFlowStepOut.model_validate(s) for s in bt.flow_steps])
        for bt in result.scalars().all()
    }


def _to_out(bill: Bill, flows: dict[uuid.UUID, ApprovalFlow]) -> BillOut:
    out = BillOut.model_validate(bill)
    out.status_text = get_bill_status_text(out, flows.get(bill.bill_type_id))
    return out


def _to_out_sync(db: Session, bill: Bill) -> BillOut:
    flows = {}
    if bill.bill_type_id:
        bill_type = db.get(BillType, bill.bill_type_id)
        if bill_type is not None:
            flows[bill_type.id] = ApprovalFlow(
                steps=[ApprovalFlowStepOut.model_validate(s) for s in bill_type.flow_steps]
            )
    return _to_out(bill, flows)


async def _get_bill_or_404(db: AsyncSession, bill_id: uuid.UUID) -> Bill:
    result = await db.execute(select(Bill).where(Bill.id == bill_id))
    bill = result.scalars().first()
    if bill is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bill not found.")
    return bill


async def _apply_body(db: AsyncSession, bill: Bill, body: BillIn) -> None:
    """Copy editable fields, recompute totals and re-route the bill."""
    vendor = (await db.execute(select(Vendor.id).where(Vendor.id == body.vendor_id))).scalar_one_or_none()
    if vendor is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown vendor_id.")

    totals = compute_bill_totals(
        body.items,
        vat_applicable=body.vat_applicable,
        vat_percentage=body.vat_percentage,
        tds_applicable=body.tds_applicable,
        tds_percentage=body.tds_percentage,
        other_charges=body.other_charges,
        deduction_amount=body.deduction_amount,
    )

    for field, value in body.model_dump(exclude={"items", "entry_date"}).items():
        setattr(bill, field, value)
    bill.items = [
        BillItem(
            line_number=n,
            name=item.name,
            category=item.category,
            description=item.description,
            unit_of_measure=item.unit_of_measure,
            quantity=item.quantity,
            unit_price=item.unit_price,
            **line,
        )
        for n, (item, line) in enumerate(zip(body.items, totals["lines"]), start=1)
    ]
    bill.vat_amount = totals["vat_amount"]
    bill.tds_amount = totals["tds_amount"]
    bill.total_payable_amount = totals["total_payable_amount"]

    routed = process_bill(
        BillApprovalState(
            total_payable_amount=totals["total_payable_amount"],
            approval_status=bill.approval_status,
        ),
        await bill_workflow.load_rules_async(db),
    )
    bill.current_approver_id = routed.current_approver_id
    if routed.current_approver_id is None:
        logger.warning(
            "Bill %s (%s) matches no approval rule; it has no approver.",
            bill.bill_number, bill.total_payable_amount,
        )


def _raise_for(exc: Exception) -> None:
    if isinstance(exc, LookupError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, PermissionError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


# ─── List ───

@router.get(
    "",
    response_model=BillListResponse,
    summary="List bills with optional filters",
)
async def list_bills(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
    approval_status: ApprovalStatus | None = Query(default=None),
    vendor_id: uuid.UUID | None = Query(default=None),
    pending_for_me: bool = Query(default=False, description="Only bills waiting on the caller"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
):
    filters = []
    if approval_status is not None:
        filters.append(Bill.approval_status == approval_status.value)
    if vendor_id is not None:
        filters.append(Bill.vendor_id == vendor_id)
    if pending_for_me:
        filters.append(Bill.approval_status == ApprovalStatus.PENDING.value)
        filters.append(Bill.current_approver_id == current_employee.id)

    total = (await db.execute(select(func.count(Bill.id)).where(*filters))).scalar_one()
    result = await db.execute(
        select(Bill)
        .where(*filters)
        .order_by(Bill.entry_date.desc(), Bill.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    bills = list(result.scalars().all())
    flows = await _flows_for(db, bills)
    return BillListResponse(items=[_to_out(b, flows) for b in bills], total=total)


# ─── Create ───

@router.post(
    "",
    response_model=BillOut,
    status_code=status.HTTP_201_CREATED,
    summary="Enter a bill and route it to its first approver",
)
async def create_bill(
    body: BillIn,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
):
    entry_date = body.entry_date or datetime.now(timezone.utc).date()
    bill = Bill(
        bill_number=_new_bill_number(entry_date),
        entry_date=entry_date,
        entry_by=current_employee.id,
        approval_status=ApprovalStatus.PENDING.value,
        approval_history=[],
    )
    await _apply_body(db, bill, body)
    db.add(bill)
    await db.flush()

    await audit_svc.log_async(
        db, action="bill.created", entity_type="bill", entity_id=bill.id, actor=current_employee,
        after={
            "bill_number": bill.bill_number,
            "total_payable_amount": bill.total_payable_amount,
            "current_approver_id": bill.current_approver_id,
        },
    )
    await db.commit()
    await db.refresh(bill)

    logger.info(
        "Bill created: %s total=%s approver=%s",
        bill.bill_number, bill.total_payable_amount, bill.current_approver_id,
    )
    return _to_out(bill, await _flows_for(db, [bill]))


# ─── Detail ───

@router.get(
    "/{bill_id}",
    response_model=BillOut,
    summary="Get a bill with its approval history and status label",
)
async def get_bill(
    bill_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
):
    bill = await _get_bill_or_404(db, bill_id)
    return _to_out(bill, await _flows_for(db, [bill]))


# ─── Update ───

@router.put(
    "/{bill_id}",
    response_model=BillOut,
    summary="Edit a bill that no approver has acted on yet",
)
async def update_bill(
    bill_id: uuid.UUID,
    body: BillIn,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
):
    bill = await _get_bill_or_404(db, bill_id)
    if bill.approval_history or ApprovalStatus.coerce(bill.approval_status).is_terminal:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Bill can no longer be edited; an approval decision has been recorded.",
        )

    before = {"total_payable_amount": bill.total_payable_amount, "current_approver_id": bill.current_approver_id}
    await _apply_body(db, bill, body)
    await db.flush()
    await audit_svc.log_async(
        db, action="bill.updated", entity_type="bill", entity_id=bill.id, actor=current_employee,
        before=before,
        after={"total_payable_amount": bill.total_payable_amount, "current_approver_id": bill.current_approver_id},
    )
    await db.commit()
    await db.refresh(bill)
    return _to_out(bill, await _flows_for(db, [bill]))


# ─── Delete ───

@router.delete(
    "/{bill_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a bill (admin)",
)
async def delete_bill(
    bill_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(require_admin)],
):
    bill = await _get_bill_or_404(db, bill_id)
    await db.delete(bill)
    await audit_svc.log_async(
        db, action="bill.deleted", entity_type="bill", entity_id=bill_id, actor=current_employee,
        before={"bill_number": bill.bill_number, "approval_status": bill.approval_status},
    )
    await db.commit()


# ─── Decisions ───

@router.post(
    "/{bill_id}/approve",
    response_model=BillOut,
    summary="Approve the bill's current level",
)
@limiter.limit(settings.RATE_LIMIT_DECISIONS)
def approve_bill(
    request: Request,
    bill_id: uuid.UUID,
    db: Annotated[Session, Depends(get_sync_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
    body: BillDecisionRequest | None = None,
):
    try:
        bill = bill_workflow.record_decision(
            db, bill_id, current_employee, "approve", remarks=body.remarks if body else None
        )
    except (ValueError, LookupError, PermissionError) as exc:
        _raise_for(exc)
    return _to_out_sync(db, bill)


@router.post(
    "/{bill_id}/reject",
    response_model=BillOut,
    summary="Reject the bill",
)
@limiter.limit(settings.RATE_LIMIT_DECISIONS)
def reject_bill(
    request: Request,
    bill_id: uuid.UUID,
    db: Annotated[Session, Depends(get_sync_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
    body: BillDecisionRequest | None = None,
):
    try:
        bill = bill_workflow.record_decision(
            db, bill_id, current_employee, "reject", remarks=body.remarks if body else None
        )
    except (ValueError, LookupError, PermissionError) as exc:
        _raise_for(exc)
    return _to_out_sync(db, bill)


# ─── Escalation ───

@router.get(
    "/{bill_id}/escalation",
    response_model=EscalationOut | None,
    summary="Escalation target for a bill whose current level timed out",
)
def get_escalation(
    bill_id: uuid.UUID,
    db: Annotated[Session, Depends(get_sync_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
):
    try:
        found = bill_workflow.get_bill_escalation(db, bill_id)
    except LookupError as exc:
        _raise_for(exc)
    return EscalationOut(**found) if found else None
