"""Dashboard and approval report endpoints."""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from billflow.core.config import settings
from billflow.core.deps import get_current_employee
from billflow.db.session import get_session
from billflow.models.bill import ApprovalStatus, Bill, BillApprovalAction
from billflow.models.vendor import Vendor
from billflow.schemas.report import (
    AgingBucketOut,
    AgingReportOut,
    ApprovalSummaryOut,
    BillSummaryRow,
    DashboardOut,
    VendorBillSummaryRow,
)
from billflow.services.bill_aging import bucket_pending_bills

router = APIRouter()


def _summary_stmt():
    return select(Bill, Vendor.vendor_name).outerjoin(Vendor, Vendor.id == Bill.vendor_id)


def _rows(result) -> list[BillSummaryRow]:
    return [
        BillSummaryRow(
            id=bill.id,
            bill_number=bill.bill_number,
            vendor_id=bill.vendor_id,
            vendor_name=vendor_name,
            total_payable_amount=bill.total_payable_amount,
            approval_status=bill.approval_status,
            entry_date=bill.entry_date,
        )
        for bill, vendor_name in result.all()
    ]


# ─── Dashboard ───

@router.get("/dashboard", response_model=DashboardOut, summary="Bills awaiting the caller and monthly totals")
async def dashboard(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
):
    limit = settings.DASHBOARD_RECENT_LIMIT

    # Administrators see every pending bill, everyone else only their own queue
    pending_filters = [Bill.approval_status == ApprovalStatus.PENDING.value]
    if not current_employee.is_admin:
        pending_filters.append(Bill.current_approver_id == current_employee.id)

    pending_count, pending_amount = (await db.execute(
        select(func.count(Bill.id), func.coalesce(func.sum(Bill.total_payable_amount), 0))
        .where(*pending_filters)
    )).one()
    pending_rows = _rows(await db.execute(
        _summary_stmt().where(*pending_filters).order_by(Bill.entry_date.asc()).limit(limit)
    ))

    # Completed this month = approved bills whose last decision falls in the current month
    now = datetime.now(timezone.utc)
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    last_action = (
        select(BillApprovalAction.bill_id, func.max(BillApprovalAction.timestamp).label("decided_at"))
        .group_by(BillApprovalAction.bill_id)
        .subquery()
    )
    completed_count, completed_amount = (await db.execute(
        select(func.count(Bill.id), func.coalesce(func.sum(Bill.total_payable_amount), 0))
        .join(last_action, last_action.c.bill_id == Bill.id)
        .where(
            Bill.approval_status == ApprovalStatus.APPROVED.value,
            last_action.c.decided_at >= month_start,
        )
    )).one()

    total_vendors = (await db.execute(
        select(func.count(Vendor.id)).where(Vendor.deleted_at.is_(None))
    )).scalar_one()

    recent_rows = _rows(await db.execute(
        _summary_stmt().order_by(Bill.entry_date.desc(), Bill.created_at.desc()).limit(limit)
    ))

    return DashboardOut(
        my_pending_count=pending_count,
        my_pending_amount=Decimal(str(pending_amount)),
        completed_month_count=completed_count,
        completed_month_amount=Decimal(str(completed_amount)),
        total_vendors=total_vendors,
        my_pending_bills=pending_rows,
        recent_bills=recent_rows,
    )


# ─── Reports ───

@router.get("/approval-summary", response_model=ApprovalSummaryOut, summary="Bill counts by approval status")
async def approval_summary(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
):
    result = await db.execute(
        select(Bill.approval_status, func.count(Bill.id)).group_by(Bill.approval_status)
    )
    counts = {"approved": 0, "pending": 0, "rejected": 0}
    for stored_status, count in result.all():
        counts[ApprovalStatus.coerce(stored_status).value.lower()] += count
    return ApprovalSummaryOut(**counts)


@router.get("/pending", response_model=list[BillSummaryRow], summary="All bills awaiting approval")
async def pending_bills(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
):
    return _rows(await db.execute(
        _summary_stmt()
        .where(Bill.approval_status == ApprovalStatus.PENDING.value)
        .order_by(Bill.entry_date.asc())
    ))


@router.get("/approved", response_model=list[BillSummaryRow], summary="Bills fully approved and ready for payment")
async def approved_bills(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
):
    return _rows(await db.execute(
        _summary_stmt()
        .where(Bill.approval_status == ApprovalStatus.APPROVED.value)
        .order_by(Bill.entry_date.desc())
    ))


@router.get("/vendor-summary", response_model=list[VendorBillSummaryRow], summary="Bill count and amount per vendor")
async def vendor_summary(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
):
    total_amount = func.coalesce(func.sum(Bill.total_payable_amount), 0)
    result = await db.execute(
        select(Vendor.id, Vendor.vendor_name, func.count(Bill.id), total_amount)
        .join(Bill, Bill.vendor_id == Vendor.id)
        .group_by(Vendor.id, Vendor.vendor_name)
        .order_by(total_amount.desc())
    )
    return [
        VendorBillSummaryRow(
            vendor_id=vendor_id,
            vendor_name=vendor_name,
            bill_count=bill_count,
            total_amount=Decimal(str(amount)),
        )
        for vendor_id, vendor_name, bill_count, amount in result.all()
    ]


@router.get("/aging", response_model=AgingReportOut, summary="Pending bills bucketed by days since the bill date")
async def aging_report(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
):
    # Bills entered without a bill date age from their entry date
    result = await db.execute(
        select(Bill.approval_status, func.coalesce(Bill.bill_date, Bill.entry_date))
    )
    today = datetime.now(timezone.utc).date()
    counts = bucket_pending_bills(result.all(), today)
    return AgingReportOut(
        as_of=today,
        buckets=[AgingBucketOut(label=label, count=count) for label, count in counts.items()],
        total=sum(counts.values()),
    )
