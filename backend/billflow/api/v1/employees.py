"""Employee endpoints. Employees are the approvers referenced by approval rules."""
import uuid
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from billflow.core.deps import get_current_employee, require_admin
from billflow.db.session import get_session
from billflow.models.employee import Employee
from billflow.schemas.employee import EmployeeIn, EmployeeOut, EmployeeUpdate

router = APIRouter()


async def _get_or_404(db: AsyncSession, employee_id: uuid.UUID) -> Employee:
    result = await db.execute(
        select(Employee).where(Employee.id == employee_id, Employee.deleted_at.is_(None))
    )
    employee = result.scalar_one_or_none()
    if employee is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found.")
    return employee


@router.get("/me", response_model=EmployeeOut, summary="The acting employee")
async def get_me(current_employee: Annotated[object, Depends(get_current_employee)]):
    return EmployeeOut.model_validate(current_employee)


@router.get("", response_model=list[EmployeeOut], summary="List employees")
async def list_employees(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
    search: str | None = Query(default=None, description="Matches name, code or email"),
):
    stmt = select(Employee).where(Employee.deleted_at.is_(None))
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(or_(
            Employee.full_name.ilike(pattern),
            Employee.employee_code.ilike(pattern),
            Employee.email.ilike(pattern),
        ))
    result = await db.execute(stmt.order_by(Employee.full_name))
    return [EmployeeOut.model_validate(e) for e in result.scalars().all()]


@router.post("", response_model=EmployeeOut, status_code=status.HTTP_201_CREATED, summary="Add an employee (admin)")
async def create_employee(
    body: EmployeeIn,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(require_admin)],
):
    existing = await db.execute(
        select(Employee.id).where(or_(Employee.email == body.email, Employee.employee_code == body.employee_code))
    )
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Employee code or email already in use.")

    employee = Employee(**body.model_dump(), is_active=True)
    db.add(employee)
    await db.commit()
    await db.refresh(employee)
    return EmployeeOut.model_validate(employee)


@router.patch("/{employee_id}", response_model=EmployeeOut, summary="Update an employee (admin)")
async def update_employee(
    employee_id: uuid.UUID,
    body: EmployeeUpdate,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(require_admin)],
):
    employee = await _get_or_404(db, employee_id)
    changes = body.model_dump(exclude_unset=True)
    if changes.get("email") and changes["email"] != employee.email:
        clash = await db.execute(
            select(Employee.id).where(Employee.email == changes["email"], Employee.id != employee_id)
        )
        if clash.scalar_one_or_none() is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already in use.")
    for field, value in changes.items():
        setattr(employee, field, value)
    await db.commit()
    await db.refresh(employee)
    return EmployeeOut.model_validate(employee)


@router.delete("/{employee_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Deactivate an employee (admin)")
async def delete_employee(
    employee_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(require_admin)],
):
    employee = await _get_or_404(db, employee_id)
    employee.deleted_at = datetime.now(timezone.utc)
    employee.is_active = False
    await db.commit()
