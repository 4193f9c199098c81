import uuid
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from billflow.db.session import get_session


async def get_current_employee(
    db: Annotated[AsyncSession, Depends(get_session)],
    x_employee_id: Annotated[str | None, Header()] = None,
):
    """Resolve the acting Employee from the X-Employee-Id header.

    Sign-in lives in front of this service; it forwards the employee id.
    """
    credentials_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Missing or unknown X-Employee-Id header.",
    )
    if not x_employee_id:
        raise credentials_exc
    try:
        employee_id = uuid.UUID(x_employee_id)
    except ValueError:
        raise credentials_exc

    from billflow.models.employee import Employee

    result = await db.execute(
        select(Employee).where(Employee.id == employee_id, Employee.deleted_at.is_(None))
    )
    employee = result.scalar_one_or_none()
    if employee is None or not employee.is_active:
        raise credentials_exc
    return employee


async def require_admin(employee=Depends(get_current_employee)):
    """Raises 403 unless the acting employee is an administrator."""
    if not employee.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access is required for this action.",
        )
    return employee
