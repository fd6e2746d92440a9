import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.auth.dependencies import any_admin
from dealership.auth.rbac import AdminPrincipal, ensure_branch_access, scoped_branch_filter
from dealership.core.db import get_db
from dealership.models.enquiry import Enquiry
from dealership.models.enums import EnquiryStatus
from dealership.schemas.enquiry import EnquiryCreate, EnquiryOut, EnquiryStatusUpdate, capitalize_words
from dealership.services.lookups import get_branch_or_404
from dealership.services.pagination import paginate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/enquiry-form", tags=["enquiries"])


async def get_enquiry_or_404(db: AsyncSession, enquiry_id: int, principal: AdminPrincipal) -> Enquiry:
    enquiry = (await db.execute(select(Enquiry).where(Enquiry.id == enquiry_id))).scalar_one_or_none()
    if not enquiry:
        raise HTTPException(status_code=404, detail="Enquiry not found")
    if enquiry.branch_id is not None:
        ensure_branch_access(principal, enquiry.branch_id)
    return enquiry


@router.post("/", status_code=201)
async def submit_enquiry(payload: EnquiryCreate, db: AsyncSession = Depends(get_db)):
    if payload.branch_id is not None:
        await get_branch_or_404(db, payload.branch_id)

    enquiry = Enquiry(
        name=payload.name.strip(),
        phone_number=payload.phone_number,
        village=capitalize_words(payload.address.village),
        district=payload.address.district,
        state=payload.address.state,
        pin_code=payload.address.pin_code,
        bike_model=payload.bike_model,
        message=payload.message,
        branch_id=payload.branch_id,
        status=EnquiryStatus.NEW.value,
    )
    db.add(enquiry)
    await db.commit()
    logger.info("Enquiry submitted", extra={"enquiry_id": enquiry.id, "branch_id": enquiry.branch_id})
    return {
        "success": True,
        "message": "Enquiry submitted successfully",
        "data": EnquiryOut.from_model(enquiry),
    }


@router.get("/")
async def list_enquiries(
    status: Optional[EnquiryStatus] = None,
    branch_id: Optional[int] = Query(None, alias="branchId"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(Enquiry)
    branch_filter = scoped_branch_filter(principal, branch_id)
    if branch_filter is not None:
        stmt = stmt.where(Enquiry.branch_id == branch_filter)
    if status:
        stmt = stmt.where(Enquiry.status == status.value)
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(
            Enquiry.name.ilike(pattern),
            Enquiry.phone_number.ilike(pattern),
            Enquiry.district.ilike(pattern),
            Enquiry.bike_model.ilike(pattern),
        ))
    stmt = stmt.order_by(Enquiry.created_at.desc(), Enquiry.id.desc())
    result = await paginate(db, stmt, page, limit)
    return result.envelope([EnquiryOut.from_model(e) for e in result.items])


@router.get("/stats")
async def enquiry_stats(
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(Enquiry.status, func.count(Enquiry.id)).group_by(Enquiry.status)
    branch_filter = scoped_branch_filter(principal, None)
    if branch_filter is not None:
        stmt = stmt.where(Enquiry.branch_id == branch_filter)

    by_status = {status.value: 0 for status in EnquiryStatus}
    for status, count in (await db.execute(stmt)).all():
        by_status[status] = count
    return {"success": True, "data": {"total": sum(by_status.values()), "byStatus": by_status}}


@router.get("/{enquiry_id}")
async def get_enquiry(
    enquiry_id: int,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    enquiry = await get_enquiry_or_404(db, enquiry_id, principal)
    return {"success": True, "data": EnquiryOut.from_model(enquiry)}


@router.patch("/{enquiry_id}/status")
async def update_enquiry_status(
    enquiry_id: int,
    payload: EnquiryStatusUpdate,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    enquiry = await get_enquiry_or_404(db, enquiry_id, principal)
    enquiry.status = payload.status.value
    await db.commit()
    return {"success": True, "data": EnquiryOut.from_model(enquiry)}


@router.delete("/{enquiry_id}")
async def delete_enquiry(
    enquiry_id: int,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    enquiry = await get_enquiry_or_404(db, enquiry_id, principal)
    await db.delete(enquiry)
    await db.commit()
    return {"success": True, "message": "Enquiry deleted successfully"}
