"""Pydantic schemas for bills, line items and approval history."""
import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from billflow.models.bill import ApprovalStatus


# ─── Line items ───

class BillItemIn(BaseModel):
    name: str
    category: str | None = None
    description: str | None = None
    unit_of_measure: str | None = None
    quantity: Decimal = Field(ge=0)
    unit_price: Decimal = Field(ge=0)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)


class BillItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    line_number: int
    name: str
    category: str | None = None
    description: str | None = None
    unit_of_measure: str | None = None
    quantity: Decimal
    unit_price: Decimal
    gross_amount: Decimal
    discount_amount: Decimal
    net_amount: Decimal


# ─── Approval history ───

class ApprovalActionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    approver_id: uuid.UUID
    status: ApprovalStatus
    timestamp: datetime
    level: int | None = None
    remarks: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v):
        return ApprovalStatus.coerce(v)


class BillApprovalState(BaseModel):
    """The slice of a bill that approval routing reads and writes."""

    model_config = ConfigDict(from_attributes=True)

    total_payable_amount: Decimal = Decimal("0")
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    approval_history: list[ApprovalActionOut] = Field(default_factory=list)
    current_approver_id: uuid.UUID | None = None

    @field_validator("approval_status", mode="before")
    @classmethod
    def coerce_status(cls, v):
        return ApprovalStatus.coerce(v)


# ─── Create / update ───

class BillIn(BaseModel):
    bill_reference_number: str | None = None
    vendor_id: uuid.UUID
    bill_type_id: uuid.UUID | None = None
    bill_date: date | None = None
    bill_received_date: date | None = None
    entry_date: date | None = None
    items: list[BillItemIn] = Field(default_factory=list)

    vat_applicable: bool = False
    vat_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    tds_applicable: bool = False
    tds_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    other_charges: Decimal = Field(default=Decimal("0"), ge=0)
    deduction_amount: Decimal = Field(default=Decimal("0"), ge=0)

    billing_period_from: date | None = None
    billing_period_to: date | None = None
    po_number: str | None = None
    wo_number: str | None = None
    grn_number: str | None = None
    invoice_number: str | None = None
    invoice_date: date | None = None
    department_name: str | None = None
    cost_center: str | None = None
    project: str | None = None
    budget_head: str | None = None


# ─── Output ───

class BillOut(BillApprovalState):
    id: uuid.UUID
    bill_number: str
    bill_reference_number: str | None = None
    vendor_id: uuid.UUID
    bill_type_id: uuid.UUID | None = None
    bill_date: date | None = None
    bill_received_date: date | None = None
    entry_date: date | None = None
    entry_by: uuid.UUID | None = None
    items: list[BillItemOut] = Field(default_factory=list)

    vat_applicable: bool = False
    vat_percentage: Decimal = Decimal("0")
    vat_amount: Decimal = Decimal("0")
    tds_applicable: bool = False
    tds_percentage: Decimal = Decimal("0")
    tds_amount: Decimal = Decimal("0")
    other_charges: Decimal = Decimal("0")
    deduction_amount: Decimal = Decimal("0")

    po_number: str | None = None
    invoice_number: str | None = None
    invoice_date: date | None = None
    department_name: str | None = None
    cost_center: str | None = None
    project: str | None = None

    created_at: datetime | None = None

    # Populated by the API layer
    status_text: str | None = None


class BillListResponse(BaseModel):
    items: list[BillOut]
    total: int


class BillDecisionRequest(BaseModel):
    remarks: str | None = None


class EscalationOut(BaseModel):
    bill_id: uuid.UUID
    level: int
    primary_approver_id: uuid.UUID
    escalated_to: uuid.UUID
    pending_since: datetime
    overdue_days: int
