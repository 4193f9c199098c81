"""Pydantic schemas for employees (approvers)."""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class EmployeeIn(BaseModel):
    employee_code: str
    full_name: str
    email: str
    designation: str | None = None
    section: str | None = None
    mobile_number: str | None = None
    is_admin: bool = False


class EmployeeUpdate(BaseModel):
    full_name: str | None = None
    email: str | None = None
    designation: str | None = None
    section: str | None = None
    mobile_number: str | None = None
    is_admin: bool | None = None
    is_active: bool | None = None


class EmployeeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    full_name: str
    email: str
    designation: str | None
    section: str | None
    mobile_number: str | None
    is_admin: bool
    is_active: bool
    created_at: datetime | None = None
