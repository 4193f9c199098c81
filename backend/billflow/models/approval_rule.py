"""Amount-banded, multi-level approval rules."""
import uuid
from datetime import date

from sqlalchemy import JSON, Date, ForeignKey, Integer, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billflow.db.base import Base, TimestampMixin, UUIDMixin


class ApprovalRule(Base, UUIDMixin, TimestampMixin):
    """Routes bills whose total falls in [min_amount, max_amount] through its approver levels."""

    __tablename__ = "approval_rules"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    min_amount: Mapped[float] = mapped_column(Numeric(18, 2), nullable=False)
    max_amount: Mapped[float] = mapped_column(Numeric(18, 2), nullable=False)
    effective_date: Mapped[date | None] = mapped_column(Date, nullable=True)  # null = always active

    approver_levels: Mapped[list["ApproverLevel"]] = relationship(
        "ApproverLevel",
        back_populates="rule",
        cascade="all, delete-orphan",
        order_by="ApproverLevel.level",
        lazy="selectin",
    )


class ApproverLevel(Base, UUIDMixin):
    __tablename__ = "approver_levels"

    rule_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("approval_rules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    approver_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("employees.id"), nullable=False, index=True
    )
    escalation_timeout_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Employee UUIDs as strings, consulted in order once the timeout elapses
    alternative_approvers: Mapped[list] = mapped_column(JSON, nullable=False, default=list, server_default="[]")

    rule: Mapped["ApprovalRule"] = relationship("ApprovalRule", back_populates="approver_levels")
