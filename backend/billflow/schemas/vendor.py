"""Pydantic schemas for vendor API endpoints."""
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict


class VendorBase(BaseModel):
    vendor_name: str
    vendor_short_name: str | None = None
    vendor_type: Literal["Individual", "Company"] | None = None
    contact_person_name: str | None = None
    mobile_number: str | None = None
    email: str | None = None
    office_address: str | None = None
    country: str | None = None
    city: str | None = None
    trade_license_number: str | None = None
    trade_license_expiry_date: date | None = None
    tin_number: str | None = None
    vat_bin_number: str | None = None
    bank_name: str | None = None
    account_number: str | None = None
    routing_number: str | None = None
    payment_method: Literal["Bank", "Cheque", "Mobile Banking"] | None = None
    payment_terms: str | None = None
    credit_limit: Decimal | None = None
    currency: str = "USD"
    vat_applicable: bool = False
    tax_deduction_applicable: bool = False


class VendorCreate(VendorBase):
    vendor_code: str


class VendorUpdate(BaseModel):
    vendor_name: str | None = None
    vendor_short_name: str | None = None
    contact_person_name: str | None = None
    mobile_number: str | None = None
    email: str | None = None
    office_address: str | None = None
    payment_method: Literal["Bank", "Cheque", "Mobile Banking"] | None = None
    payment_terms: str | None = None
    credit_limit: Decimal | None = None
    currency: str | None = None
    is_active: bool | None = None


class VendorOut(VendorBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    vendor_code: str
    is_active: bool
    created_at: datetime | None = None


class VendorListResponse(BaseModel):
    items: list[VendorOut]
    total: int
