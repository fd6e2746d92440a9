import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.auth.dependencies import super_admin_only
from dealership.auth.rbac import AdminPrincipal
from dealership.core.db import get_db
from dealership.models.branch import Branch
from dealership.schemas.branch import BranchCreate, BranchOut, BranchUpdate
from dealership.services.lookups import get_branch_or_404, unique_branch_slug

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/branch", tags=["branches"])


@router.get("/")
async def list_branches(db: AsyncSession = Depends(get_db)):
    branches = (await db.execute(select(Branch).order_by(Branch.branch_name))).scalars().all()
    return {
        "success": True,
        "count": len(branches),
        "data": [BranchOut.from_model(b) for b in branches],
    }


@router.get("/{branch_ref}")
async def get_branch(branch_ref: str, db: AsyncSession = Depends(get_db)):
    branch = await get_branch_or_404(db, branch_ref)
    return {"success": True, "data": BranchOut.from_model(branch)}


@router.post("/", status_code=201)
async def create_branch(
    payload: BranchCreate,
    principal: AdminPrincipal = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db),
):
    branch = Branch(
        slug=await unique_branch_slug(db, payload.branch_name),
        branch_name=payload.branch_name,
        address=payload.address,
        phone=payload.phone,
        email=payload.email.lower(),
        weekday_hours=payload.hours.weekdays,
        saturday_hours=payload.hours.saturday,
        sunday_hours=payload.hours.sunday,
        map_url=payload.map_url,
    )
    db.add(branch)
    await db.commit()
    logger.info("Branch created", extra={"branch_id": branch.id, "slug": branch.slug})
    return {"success": True, "data": BranchOut.from_model(branch)}


@router.put("/{branch_ref}")
async def update_branch(
    branch_ref: str,
    payload: BranchUpdate,
    principal: AdminPrincipal = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db),
):
    branch = await get_branch_or_404(db, branch_ref)
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("branch_name") and changes["branch_name"] != branch.branch_name:
        branch.slug = await unique_branch_slug(db, changes["branch_name"], exclude_id=branch.id)
    hours = changes.pop("hours", None)
    if hours:
        branch.weekday_hours = hours.get("weekdays", branch.weekday_hours)
        branch.saturday_hours = hours.get("saturday", branch.saturday_hours)
        branch.sunday_hours = hours.get("sunday", branch.sunday_hours)
    for field, value in changes.items():
        setattr(branch, field, value)

    await db.commit()
    return {"success": True, "data": BranchOut.from_model(branch)}


@router.delete("/{branch_ref}")
async def delete_branch(
    branch_ref: str,
    principal: AdminPrincipal = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db),
):
    branch = await get_branch_or_404(db, branch_ref)
    branch_id = branch.id
    await db.delete(branch)
    await db.commit()
    logger.info("Branch deleted", extra={"branch_id": branch_id})
    return {"success": True, "message": "Branch deleted successfully"}
