"""Pydantic schemas for bill types and approval flows."""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ApprovalFlowStepIn(BaseModel):
    status_name: str

    @field_validator("status_name")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("status_name must not be blank.")
        return v.strip()


class ApprovalFlowStepOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    step_order: int
    status_name: str


class ApprovalFlow(BaseModel):
    """Ordered status labels shown while a bill moves through approval."""

    steps: list[ApprovalFlowStepOut] = Field(default_factory=list)


class BillTypeIn(BaseModel):
    name: str
    code: str
    approval_flow: list[ApprovalFlowStepIn] = Field(default_factory=list)


class BillTypeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    code: str
    flow_steps: list[ApprovalFlowStepOut] = Field(default_factory=list)
    created_at: datetime | None = None
