import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.auth.dependencies import any_admin
from dealership.auth.rbac import AdminPrincipal, ensure_branch_access
from dealership.core.db import get_db
from dealership.core.timeutils import today
from dealership.models.service_package import ServicePackage
from dealership.schemas.service_package import ServicePackageCreate, ServicePackageOut, ServicePackageUpdate
from dealership.services.lookups import get_branch_or_404

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/service-packages", tags=["service-packages"])


async def get_package_or_404(db: AsyncSession, package_id: int) -> ServicePackage:
    package = (await db.execute(
        select(ServicePackage).where(ServicePackage.id == package_id)
    )).scalar_one_or_none()
    if not package:
        raise HTTPException(status_code=404, detail="Service package not found")
    return package


@router.post("/", status_code=201)
async def create_package(
    payload: ServicePackageCreate,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    branch = await get_branch_or_404(db, payload.branch_id)
    ensure_branch_access(principal, branch.id)

    package = ServicePackage(**payload.model_dump(exclude={"valid_from"}), valid_from=payload.valid_from or today())
    if package.valid_until <= package.valid_from:
        raise HTTPException(status_code=400, detail="validUntil must be after validFrom")
    db.add(package)
    await db.commit()
    logger.info("Service package created", extra={"package_id": package.id, "branch_id": branch.id})
    return {"success": True, "data": ServicePackageOut.model_validate(package)}


@router.get("/")
async def list_packages(
    branch_id: Optional[int] = Query(None, alias="branchId"),
    is_free: Optional[bool] = Query(None, alias="isFree"),
    include_inactive: bool = Query(False, alias="includeInactive"),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(ServicePackage)
    if branch_id is not None:
        stmt = stmt.where(ServicePackage.branch_id == branch_id)
    if is_free is not None:
        stmt = stmt.where(ServicePackage.is_free.is_(is_free))
    if not include_inactive:
        stmt = stmt.where(ServicePackage.is_active.is_(True))
    packages = (await db.execute(stmt.order_by(ServicePackage.kilometers))).scalars().all()
    return {
        "success": True,
        "count": len(packages),
        "data": [ServicePackageOut.model_validate(p) for p in packages],
    }


@router.get("/{package_id}")
async def get_package(package_id: int, db: AsyncSession = Depends(get_db)):
    package = await get_package_or_404(db, package_id)
    return {"success": True, "data": ServicePackageOut.model_validate(package)}


@router.put("/{package_id}")
async def update_package(
    package_id: int,
    payload: ServicePackageUpdate,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    package = await get_package_or_404(db, package_id)
    ensure_branch_access(principal, package.branch_id)

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(package, field, value)
    if package.valid_until <= package.valid_from:
        await db.rollback()
        raise HTTPException(status_code=400, detail="validUntil must be after validFrom")
    if package.is_free and package.cost:
        await db.rollback()
        raise HTTPException(status_code=400, detail="A free service package cannot have a cost")

    await db.commit()
    return {"success": True, "data": ServicePackageOut.model_validate(package)}


@router.delete("/{package_id}")
async def delete_package(
    package_id: int,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    package = await get_package_or_404(db, package_id)
    ensure_branch_access(principal, package.branch_id)
    await db.delete(package)
    await db.commit()
    logger.info("Service package deleted", extra={"package_id": package_id})
    return {"success": True, "message": "Service package deleted successfully"}
