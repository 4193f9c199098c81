"""Pydantic schemas for dashboard and report endpoints."""
import uuid
from datetime import date
from decimal import Decimal

from pydantic import BaseModel


class BillSummaryRow(BaseModel):
    id: uuid.UUID
    bill_number: str
    vendor_id: uuid.UUID
    vendor_name: str | None = None
    total_payable_amount: Decimal
    approval_status: str
    entry_date: date | None = None


class DashboardOut(BaseModel):
    my_pending_count: int
    my_pending_amount: Decimal
    completed_month_count: int
    completed_month_amount: Decimal
    total_vendors: int
    my_pending_bills: list[BillSummaryRow]
    recent_bills: list[BillSummaryRow]


class ApprovalSummaryOut(BaseModel):
    approved: int
    pending: int
    rejected: int


class VendorBillSummaryRow(BaseModel):
    vendor_id: uuid.UUID
    vendor_name: str
    bill_count: int
    total_amount: Decimal


class AgingBucketOut(BaseModel):
    label: str
    count: int


class AgingReportOut(BaseModel):
    as_of: date
    buckets: list[AgingBucketOut]
    total: int
