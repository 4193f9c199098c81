import enum
import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billflow.db.base import Base, TimestampMixin, UUIDMixin


class ApprovalStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"

    @classmethod
    def coerce(cls, value) -> "ApprovalStatus":
        """Normalise legacy encodings (1/0/None, lowercase labels) to a member.

        Anything not recognisably approved or rejected is Pending.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            value = int(value)
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if isinstance(value, int):
            return {1: cls.APPROVED, 0: cls.REJECTED}.get(value, cls.PENDING)
        if isinstance(value, str):
            label = value.strip().lower()
            if label in ("approved", "completed", "1"):
                return cls.APPROVED
            if label in ("rejected", "0"):
                return cls.REJECTED
        return cls.PENDING

    @property
    def is_terminal(self) -> bool:
        return self is not ApprovalStatus.PENDING


ITEM_CATEGORIES = ("Raw Material", "Spare", "Service", "Logistics")


class Bill(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "bills"

    bill_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    bill_reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("vendors.id"), nullable=False, index=True
    )
    bill_type_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bill_types.id"), nullable=True, index=True
    )
    bill_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    bill_received_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False, server_default=text("CURRENT_DATE"))
    entry_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("employees.id"), nullable=True
    )

    # Tax and totals
    vat_applicable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    vat_percentage: Mapped[float] = mapped_column(Numeric(5, 2), nullable=False, default=0)
    vat_amount: Mapped[float] = mapped_column(Numeric(18, 2), nullable=False, default=0)
    tds_applicable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tds_percentage: Mapped[float] = mapped_column(Numeric(5, 2), nullable=False, default=0)
    tds_amount: Mapped[float] = mapped_column(Numeric(18, 2), nullable=False, default=0)
    other_charges: Mapped[float] = mapped_column(Numeric(18, 2), nullable=False, default=0)
    deduction_amount: Mapped[float] = mapped_column(Numeric(18, 2), nullable=False, default=0)
    total_payable_amount: Mapped[float] = mapped_column(Numeric(18, 2), nullable=False, default=0)

    # References
    billing_period_from: Mapped[date | None] = mapped_column(Date, nullable=True)
    billing_period_to: Mapped[date | None] = mapped_column(Date, nullable=True)
    po_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    wo_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    grn_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    invoice_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    invoice_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    department_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    cost_center: Mapped[str | None] = mapped_column(String(100), nullable=True)
    project: Mapped[str | None] = mapped_column(String(100), nullable=True)
    budget_head: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Approval
    approval_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ApprovalStatus.PENDING.value, index=True
    )
    current_approver_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("employees.id"), nullable=True, index=True
    )  # derived from amount + history + active rules

    items: Mapped[list["BillItem"]] = relationship(
        "BillItem", back_populates="bill", cascade="all, delete-orphan",
        order_by="BillItem.line_number", lazy="selectin",
    )
    approval_history: Mapped[list["BillApprovalAction"]] = relationship(
        "BillApprovalAction", back_populates="bill", cascade="all, delete-orphan",
        order_by="BillApprovalAction.timestamp", lazy="selectin",
    )


class BillItem(Base, UUIDMixin):
    __tablename__ = "bill_items"

    bill_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bills.id", ondelete="CASCADE"), nullable=False, index=True
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    unit_of_measure: Mapped[str | None] = mapped_column(String(20), nullable=True)
    quantity: Mapped[float] = mapped_column(Numeric(18, 4), nullable=False, default=0)
    unit_price: Mapped[float] = mapped_column(Numeric(18, 4), nullable=False, default=0)
    gross_amount: Mapped[float] = mapped_column(Numeric(18, 2), nullable=False, default=0)
    discount_amount: Mapped[float] = mapped_column(Numeric(18, 2), nullable=False, default=0)
    net_amount: Mapped[float] = mapped_column(Numeric(18, 2), nullable=False, default=0)

    bill: Mapped["Bill"] = relationship("Bill", back_populates="items")


class BillApprovalAction(Base, UUIDMixin):
    """Append-only approval history entry. Approved entries count satisfied levels."""

    __tablename__ = "bill_approval_actions"

    bill_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bills.id", ondelete="CASCADE"), nullable=False, index=True
    )
    approver_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("employees.id"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # Approved, Rejected
    level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )

    bill: Mapped["Bill"] = relationship("Bill", back_populates="approval_history")
