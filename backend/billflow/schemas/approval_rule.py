"""Pydantic schemas for approval rules and their approver levels."""
import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ─── Approver levels ───

class ApproverLevelIn(BaseModel):
    level: int = Field(ge=1)
    approver_id: uuid.UUID
    escalation_timeout_days: int | None = Field(default=None, ge=1)
    alternative_approvers: list[uuid.UUID] = Field(default_factory=list)


class ApproverLevelOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    level: int
    approver_id: uuid.UUID
    escalation_timeout_days: int | None = None
    alternative_approvers: list[uuid.UUID] = Field(default_factory=list)


# ─── Approval rules ───

class ApprovalRuleIn(BaseModel):
    name: str
    min_amount: Decimal = Field(default=Decimal("0"), ge=0)
    max_amount: Decimal
    effective_date: date | None = None
    approver_levels: list[ApproverLevelIn]

    @model_validator(mode="after")
    def check_band_and_levels(self) -> "ApprovalRuleIn":
        if not self.name.strip():
            raise ValueError("Rule name is required.")
        if self.max_amount <= 0 or self.max_amount < self.min_amount:
            raise ValueError("A valid amount range is required (max_amount > 0 and max_amount >= min_amount).")
        if not self.approver_levels:
            raise ValueError("At least one approver level is required.")
        levels = [lvl.level for lvl in self.approver_levels]
        if len(levels) != len(set(levels)):
            raise ValueError("Approver levels must be unique.")
        # Levels are always stored in ascending order
        self.approver_levels = sorted(self.approver_levels, key=lambda lvl: lvl.level)
        self.name = self.name.strip()
        return self


class ApprovalRuleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    min_amount: Decimal
    max_amount: Decimal
    effective_date: date | None = None
    approver_levels: list[ApproverLevelOut] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class RuleWarningOut(BaseModel):
    code: str
    message: str
    rule_ids: list[uuid.UUID]


class RuleDiagnosticsResponse(BaseModel):
    warnings: list[RuleWarningOut]
    total: int
