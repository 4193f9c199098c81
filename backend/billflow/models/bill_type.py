"""Bill types and their display-only approval flow steps."""
import uuid

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billflow.db.base import Base, TimestampMixin, UUIDMixin


class BillType(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "bill_types"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)

    flow_steps: Mapped[list["ApprovalFlowStep"]] = relationship(
        "ApprovalFlowStep",
        back_populates="bill_type",
        cascade="all, delete-orphan",
        order_by="ApprovalFlowStep.step_order",
        lazy="selectin",
    )


class ApprovalFlowStep(Base, UUIDMixin):
    """One status label in a bill type's approval flow, e.g. 'Reviewed' or 'Final Approval'."""

    __tablename__ = "approval_flow_steps"

    bill_type_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bill_types.id", ondelete="CASCADE"), nullable=False, index=True
    )
    step_order: Mapped[int] = mapped_column(Integer, nullable=False)
    status_name: Mapped[str] = mapped_column(String(100), nullable=False)

    bill_type: Mapped["BillType"] = relationship("BillType", back_populates="flow_steps")
