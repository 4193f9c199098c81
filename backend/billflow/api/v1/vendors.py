"""Vendor management API endpoints."""
import logging
import uuid
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from billflow.core.deps import get_current_employee, require_admin
from billflow.db.session import get_session
from billflow.models.vendor import Vendor
from billflow.schemas.vendor import VendorCreate, VendorListResponse, VendorOut, VendorUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_or_404(db: AsyncSession, vendor_id: uuid.UUID) -> Vendor:
    result = await db.execute(
        select(Vendor).where(Vendor.id == vendor_id, Vendor.deleted_at.is_(None))
    )
    vendor = result.scalar_one_or_none()
    if vendor is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vendor not found.")
    return vendor


@router.get("", response_model=VendorListResponse, summary="List vendors")
async def list_vendors(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
    search: str | None = Query(default=None, description="Matches vendor name or code"),
    is_active: bool | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
):
    filters = [Vendor.deleted_at.is_(None)]
    if search:
        pattern = f"%{search}%"
        filters.append(or_(Vendor.vendor_name.ilike(pattern), Vendor.vendor_code.ilike(pattern)))
    if is_active is not None:
        filters.append(Vendor.is_active.is_(is_active))

    total = (await db.execute(select(func.count(Vendor.id)).where(*filters))).scalar_one()
    result = await db.execute(
        select(Vendor).where(*filters).order_by(Vendor.vendor_name)
        .offset((page - 1) * page_size).limit(page_size)
    )
    return VendorListResponse(
        items=[VendorOut.model_validate(v) for v in result.scalars().all()],
        total=total,
    )


@router.get("/{vendor_id}", response_model=VendorOut, summary="Get vendor detail")
async def get_vendor(
    vendor_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
):
    return VendorOut.model_validate(await _get_or_404(db, vendor_id))


@router.post("", response_model=VendorOut, status_code=status.HTTP_201_CREATED, summary="Register a vendor")
async def create_vendor(
    body: VendorCreate,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
):
    existing = await db.execute(select(Vendor.id).where(Vendor.vendor_code == body.vendor_code))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Vendor code '{body.vendor_code}' already exists.",
        )
    vendor = Vendor(**body.model_dump(), is_active=True)
    db.add(vendor)
    await db.commit()
    await db.refresh(vendor)
    logger.info("Vendor registered: %s (%s)", vendor.vendor_name, vendor.vendor_code)
    return VendorOut.model_validate(vendor)


@router.patch("/{vendor_id}", response_model=VendorOut, summary="Update vendor fields")
async def update_vendor(
    vendor_id: uuid.UUID,
    body: VendorUpdate,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
):
    vendor = await _get_or_404(db, vendor_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(vendor, field, value)
    await db.commit()
    await db.refresh(vendor)
    return VendorOut.model_validate(vendor)


@router.delete("/{vendor_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Soft-delete a vendor (admin)")
async def delete_vendor(
    vendor_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(require_admin)],
):
    vendor = await _get_or_404(db, vendor_id)
    vendor.deleted_at = datetime.now(timezone.utc)
    vendor.is_active = False
    await db.commit()
