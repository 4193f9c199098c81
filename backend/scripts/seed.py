"""Seed script: employees, vendors, bill types, approval rules and a few bills.

Idempotent: checks for existing records before inserting.
Run: python scripts/seed.py
"""
import asyncio
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from billflow.db.session import AsyncSessionLocal
from billflow.models.approval_rule import ApprovalRule, ApproverLevel
from billflow.models.bill import ApprovalStatus, Bill, BillApprovalAction, BillItem
from billflow.models.bill_type import ApprovalFlowStep, BillType
from billflow.models.employee import Employee
from billflow.models.vendor import Vendor
from billflow.schemas.bill import BillApprovalState
from billflow.services.approval_router import process_bill
from billflow.services.bill_totals import compute_bill_totals
from billflow.services.bill_workflow import load_rules_async

NOW = datetime.now(timezone.utc)


# ─── Upsert helpers ───────────────────────────────────────────────────────────

async def _upsert_employee(db: AsyncSession, code: str, name: str, email: str,
                           designation: str, is_admin: bool = False) -> Employee:
    result = await db.execute(select(Employee).where(Employee.employee_code == code))
    employee = result.scalars().first()
    if employee:
        print(f"  [skip] Employee {code}")
        return employee
    employee = Employee(
        employee_code=code, full_name=name, email=email,
        designation=designation, section="Accounts", is_admin=is_admin, is_active=True,
    )
    db.add(employee)
    await db.flush()
    print(f"  [new]  Employee {code} ({designation})")
    return employee


async def _upsert_vendor(db: AsyncSession, code: str, name: str) -> Vendor:
    result = await db.execute(select(Vendor).where(Vendor.vendor_code == code))
    vendor = result.scalars().first()
    if vendor:
        print(f"  [skip] Vendor {code}")
        return vendor
    vendor = Vendor(
        vendor_code=code, vendor_name=name, vendor_type="Company",
        payment_method="Bank", currency="USD", is_active=True,
    )
    db.add(vendor)
    await db.flush()
    print(f"  [new]  Vendor {code}")
    return vendor


async def _upsert_bill_type(db: AsyncSession, code: str, name: str, steps: list[str]) -> BillType:
    result = await db.execute(select(BillType).where(BillType.code == code))
    bill_type = result.scalars().first()
    if bill_type:
        print(f"  [skip] Bill type {code}")
        return bill_type
    bill_type = BillType(
        code=code, name=name,
        flow_steps=[ApprovalFlowStep(step_order=n, status_name=s) for n, s in enumerate(steps, start=1)],
    )
    db.add(bill_type)
    await db.flush()
    print(f"  [new]  Bill type {code} ({len(steps)} steps)")
    return bill_type


async def _upsert_rule(db: AsyncSession, name: str, min_amount: str, max_amount: str,
                       approvers: list[Employee], timeout_days: int | None = None,
                       alternatives: list[Employee] | None = None) -> ApprovalRule:
    result = await db.execute(select(ApprovalRule).where(ApprovalRule.name == name))
    rule = result.scalars().first()
    if rule:
        print(f"  [skip] Rule {name}")
        return rule
    rule = ApprovalRule(
        name=name,
        min_amount=Decimal(min_amount),
        max_amount=Decimal(max_amount),
        approver_levels=[
            ApproverLevel(
                level=n,
                approver_id=emp.id,
                escalation_timeout_days=timeout_days,
                alternative_approvers=[str(a.id) for a in (alternatives or [])],
            )
            for n, emp in enumerate(approvers, start=1)
        ],
    )
    db.add(rule)
    await db.flush()
    print(f"  [new]  Rule {name} ({min_amount}-{max_amount}, {len(approvers)} levels)")
    return rule


async def _upsert_bill(db: AsyncSession, reference: str, vendor: Vendor, bill_type: BillType,
                       entered_by: Employee, qty: str, unit_price: str,
                       approved_by: list[Employee] | None = None) -> Bill:
    result = await db.execute(select(Bill).where(Bill.bill_reference_number == reference))
    bill = result.scalars().first()
    if bill:
        print(f"  [skip] Bill {reference}")
        return bill

    class _Line:
        quantity = Decimal(qty)
        unit_price = Decimal(unit_price)
        discount_amount = Decimal("0")

    totals = compute_bill_totals([_Line()], vat_applicable=True, vat_percentage=Decimal("5"))
    history = [
        BillApprovalAction(
            approver_id=emp.id, status=ApprovalStatus.APPROVED.value, level=n,
            timestamp=NOW - timedelta(days=3 - n),
        )
        for n, emp in enumerate(approved_by or [], start=1)
    ]
    bill = Bill(
        bill_number=f"BILL-{date.today():%Y%m%d}-{reference[-4:]}",
        bill_reference_number=reference,
        vendor_id=vendor.id,
        bill_type_id=bill_type.id,
        entry_date=date.today(),
        entry_by=entered_by.id,
        vat_applicable=True,
        vat_percentage=Decimal("5"),
        vat_amount=totals["vat_amount"],
        total_payable_amount=totals["total_payable_amount"],
        approval_status=ApprovalStatus.PENDING.value,
        items=[BillItem(line_number=1, name="Services", quantity=Decimal(qty),
                        unit_price=Decimal(unit_price), **totals["lines"][0])],
        approval_history=history,
    )
    routed = process_bill(BillApprovalState.model_validate(bill), await load_rules_async(db))
    bill.current_approver_id = routed.current_approver_id
    if history and routed.current_approver_id is None:
        bill.approval_status = ApprovalStatus.APPROVED.value
    db.add(bill)
    await db.flush()
    print(f"  [new]  Bill {reference} total={bill.total_payable_amount} status={bill.approval_status}")
    return bill


# ─── Main ─────────────────────────────────────────────────────────────────────

async def seed() -> None:
    async with AsyncSessionLocal() as db:
        print("Employees:")
        admin = await _upsert_employee(db, "E000", "System Admin", "admin@billflow.local", "Administrator", is_admin=True)
        clerk = await _upsert_employee(db, "E001", "Ana Clerk", "clerk@billflow.local", "Accounts Officer")
        manager = await _upsert_employee(db, "E002", "Sam Manager", "manager@billflow.local", "Finance Manager")
        director = await _upsert_employee(db, "E003", "Lee Director", "director@billflow.local", "Director")
        deputy = await _upsert_employee(db, "E004", "Kim Deputy", "deputy@billflow.local", "Deputy Director")

        print("Vendors:")
        acme = await _upsert_vendor(db, "V001", "Acme Supplies Ltd")
        globex = await _upsert_vendor(db, "V002", "Globex Logistics")

        print("Bill types:")
        service = await _upsert_bill_type(db, "SRV", "Service Bill", ["Reviewed", "Checked", "Final Approval"])

        print("Approval rules:")
        await _upsert_rule(db, "Small bills", "0", "1000", [manager])
        await _upsert_rule(db, "Medium bills", "1000.01", "10000", [manager, director],
                           timeout_days=3, alternatives=[deputy, admin])
        await _upsert_rule(db, "Large bills", "10000.01", "1000000", [manager, director, admin],
                           timeout_days=2, alternatives=[deputy])

        print("Bills:")
        await _upsert_bill(db, "REF-0001", acme, service, clerk, "4", "120")
        await _upsert_bill(db, "REF-0002", globex, service, clerk, "10", "450")
        await _upsert_bill(db, "REF-0003", acme, service, clerk, "10", "450", approved_by=[manager])
        await _upsert_bill(db, "REF-0004", globex, service, clerk, "2", "200", approved_by=[manager])

        await db.commit()
    print("Seed complete.")


if __name__ == "__main__":
    asyncio.run(seed())
