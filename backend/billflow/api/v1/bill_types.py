"""Bill type endpoints. A bill type carries the status labels of its approval flow."""
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from billflow.core.deps import get_current_employee, require_admin
from billflow.db.session import get_session
from billflow.models.bill import Bill
from billflow.models.bill_type import ApprovalFlowStep, BillType
from billflow.schemas.bill_type import BillTypeIn, BillTypeOut

router = APIRouter()


def _steps(body: BillTypeIn) -> list[ApprovalFlowStep]:
    return [
        ApprovalFlowStep(step_order=n, status_name=step.status_name)
        for n, step in enumerate(body.approval_flow, start=1)
    ]


async def _get_or_404(db: AsyncSession, bill_type_id: uuid.UUID) -> BillType:
    result = await db.execute(select(BillType).where(BillType.id == bill_type_id))
    bill_type = result.scalars().first()
    if bill_type is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bill type not found.")
    return bill_type


async def _check_code_free(db: AsyncSession, code: str, exclude_id: uuid.UUID | None = None) -> None:
    stmt = select(BillType.id).where(BillType.code == code)
    if exclude_id is not None:
        stmt = stmt.where(BillType.id != exclude_id)
    if (await db.execute(stmt)).scalar_one_or_none() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Bill type code '{code}' already exists.")


@router.get("", response_model=list[BillTypeOut], summary="List bill types")
async def list_bill_types(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
):
    result = await db.execute(select(BillType).order_by(BillType.name))
    return [BillTypeOut.model_validate(bt) for bt in result.scalars().all()]


@router.post(
    "",
    response_model=BillTypeOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a bill type with its approval flow (admin)",
)
async def create_bill_type(
    body: BillTypeIn,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(require_admin)],
):
    await _check_code_free(db, body.code)

    bill_type = BillType(name=body.name, code=body.code, flow_steps=_steps(body))
    db.add(bill_type)
    await db.commit()
    await db.refresh(bill_type)
    return BillTypeOut.model_validate(bill_type)


@router.put("/{bill_type_id}", response_model=BillTypeOut, summary="Replace a bill type (admin)")
async def update_bill_type(
    bill_type_id: uuid.UUID,
    body: BillTypeIn,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(require_admin)],
):
    bill_type = await _get_or_404(db, bill_type_id)
    await _check_code_free(db, body.code, exclude_id=bill_type_id)
    bill_type.name = body.name
    bill_type.code = body.code
    bill_type.flow_steps = _steps(body)
    await db.commit()
    await db.refresh(bill_type)
    return BillTypeOut.model_validate(bill_type)


@router.delete("/{bill_type_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a bill type (admin)")
async def delete_bill_type(
    bill_type_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(require_admin)],
):
    bill_type = await _get_or_404(db, bill_type_id)
    in_use = (await db.execute(
        select(func.count(Bill.id)).where(Bill.bill_type_id == bill_type_id)
    )).scalar_one()
    if in_use:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Bill type is used by {in_use} bill(s) and cannot be deleted.",
        )
    await db.delete(bill_type)
    await db.commit()
