from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from billflow.db.base import Base, TimestampMixin, UUIDMixin

VENDOR_TYPES = ("Individual", "Company")
PAYMENT_METHODS = ("Bank", "Cheque", "Mobile Banking")


class Vendor(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "vendors"

    vendor_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    vendor_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    vendor_short_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    vendor_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    contact_person_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    mobile_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    office_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    trade_license_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    trade_license_expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    tin_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    vat_bin_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bank_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    account_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    routing_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(20), nullable=True)
    payment_terms: Mapped[str | None] = mapped_column(String(100), nullable=True)
    credit_limit: Mapped[float | None] = mapped_column(Numeric(18, 2), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    vat_applicable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tax_deduction_applicable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
