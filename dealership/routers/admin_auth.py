import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.auth.auth_handler import sign_jwt
from dealership.auth.dependencies import any_admin, super_admin_only
from dealership.auth.passwords_handler import hash_password_async, verify_password_async
from dealership.auth.rbac import AdminPrincipal
from dealership.core.db import get_db
from dealership.core.environment import get_super_admin_seed
from dealership.models.admin import Admin, BranchManager
from dealership.models.enums import AdminRole
from dealership.schemas.admin import (
    AdminOut,
    BranchManagerCreate,
    BranchManagerLoginSchema,
    BranchManagerOut,
    BranchManagerUpdate,
    SuperAdminLoginSchema,
)
from dealership.services.ids import branch_manager_application_id, generate_random_password
from dealership.services.lookups import get_branch_or_404

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/adminLogin", tags=["auth"])


async def get_manager_or_404(db: AsyncSession, manager_id: int) -> BranchManager:
    manager = (await db.execute(
        select(BranchManager).where(BranchManager.id == manager_id)
    )).scalar_one_or_none()
    if not manager:
        raise HTTPException(status_code=404, detail="Branch manager not found")
    return manager


@router.post("/seed")
async def seed_super_admin(db: AsyncSession = Depends(get_db)):
    """Create the first super admin from configuration. Refuses once one exists."""
    existing = (await db.execute(
        select(Admin.id).where(Admin.role == AdminRole.SUPER_ADMIN.value)
    )).first()
    if existing:
        raise HTTPException(status_code=400, detail="Super admin already exists")

    seed = get_super_admin_seed()
    if not seed["email"] or not seed["password"]:
        raise HTTPException(status_code=500, detail="Super admin credentials are not configured")

    admin = Admin(
        name=seed["name"],
        email=seed["email"].lower(),
        password=await hash_password_async(seed["password"]),
        role=AdminRole.SUPER_ADMIN.value,
    )
    db.add(admin)
    await db.commit()
    logger.info("Super admin seeded", extra={"email": admin.email})
    return {"success": True, "message": "Super admin created", "data": AdminOut.model_validate(admin)}


@router.post("/super-ad-login")
async def login_super_admin(credentials: SuperAdminLoginSchema, db: AsyncSession = Depends(get_db)):
    admin = (await db.execute(select(Admin).where(Admin.email == credentials.email))).scalar_one_or_none()
    if not admin or not admin.is_active:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    password_valid = await verify_password_async(credentials.password, admin.password)
    if not password_valid:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = sign_jwt(admin.id, admin.role)
    logger.info("Super admin logged in", extra={"admin_id": admin.id})
    return {"success": True, "data": {**token, "user": AdminOut.model_validate(admin)}}


@router.post("/branchM-login")
async def login_branch_manager(credentials: BranchManagerLoginSchema, db: AsyncSession = Depends(get_db)):
    manager = (await db.execute(
        select(BranchManager).where(BranchManager.application_id == credentials.application_id)
    )).scalar_one_or_none()
    if not manager or not manager.is_active:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    password_valid = await verify_password_async(credentials.password, manager.password)
    if not password_valid:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = sign_jwt(manager.id, AdminRole.BRANCH_ADMIN.value)
    logger.info("Branch manager logged in", extra={"manager_id": manager.id, "branch_id": manager.branch_id})
    return {"success": True, "data": {**token, "user": BranchManagerOut.model_validate(manager)}}


@router.get("/me")
async def get_me(principal: AdminPrincipal = Depends(any_admin)):
    return {
        "success": True,
        "data": {
            "id": principal.id,
            "name": principal.name,
            "email": principal.email,
            "role": principal.role,
            "branchId": principal.branch_id,
        },
    }


@router.post("/create-branchM", status_code=201)
async def create_branch_manager(
    payload: BranchManagerCreate,
    principal: AdminPrincipal = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db),
):
    branch = await get_branch_or_404(db, payload.branch)

    duplicate = (await db.execute(
        select(BranchManager.id).where(BranchManager.email == payload.email)
    )).first()
    if duplicate:
        raise HTTPException(status_code=400, detail="Branch manager with this email already exists")

    plain_password = generate_random_password()
    manager = BranchManager(
        name=payload.name,
        email=payload.email,
        password=await hash_password_async(plain_password),
        application_id=branch_manager_application_id(),
        branch_id=branch.id,
        created_by=principal.id,
    )
    db.add(manager)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Branch manager already exists")

    logger.info("Branch manager created", extra={"manager_id": manager.id, "branch_id": branch.id})
    # the plain password is only ever returned here and on regeneration
    return {
        "success": True,
        "message": "Branch manager created successfully",
        "data": {
            "manager": BranchManagerOut.model_validate(manager),
            "applicationId": manager.application_id,
            "password": plain_password,
        },
    }


@router.get("/branch-managers")
async def list_branch_managers(
    principal: AdminPrincipal = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db),
):
    managers = (await db.execute(select(BranchManager).order_by(BranchManager.created_at.desc()))).scalars().all()
    return {
        "success": True,
        "count": len(managers),
        "data": [BranchManagerOut.model_validate(m) for m in managers],
    }


@router.get("/branch-managers/{manager_id}")
async def get_branch_manager(
    manager_id: int,
    principal: AdminPrincipal = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db),
):
    manager = await get_manager_or_404(db, manager_id)
    return {"success": True, "data": BranchManagerOut.model_validate(manager)}


@router.patch("/branch-managers/{manager_id}")
async def update_branch_manager(
    manager_id: int,
    payload: BranchManagerUpdate,
    principal: AdminPrincipal = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db),
):
    manager = await get_manager_or_404(db, manager_id)
    changes = payload.model_dump(exclude_unset=True)
    if "branch" in changes:
        manager.branch_id = (await get_branch_or_404(db, changes.pop("branch"))).id
    if "email" in changes:
        changes["email"] = changes["email"].lower()
    for field, value in changes.items():
        setattr(manager, field, value)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Email already in use")
    return {"success": True, "data": BranchManagerOut.model_validate(manager)}


@router.delete("/branch-managers/{manager_id}")
async def delete_branch_manager(
    manager_id: int,
    principal: AdminPrincipal = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db),
):
    manager = await get_manager_or_404(db, manager_id)
    await db.delete(manager)
    await db.commit()
    logger.info("Branch manager deleted", extra={"manager_id": manager_id})
    return {"success": True, "message": "Branch manager deleted successfully"}


@router.post("/branch-managers/{manager_id}/regenerate-password")
async def regenerate_password(
    manager_id: int,
    principal: AdminPrincipal = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db),
):
    manager = await get_manager_or_404(db, manager_id)
    plain_password = generate_random_password()
    manager.password = await hash_password_async(plain_password)
    await db.commit()
    logger.info("Branch manager password regenerated", extra={"manager_id": manager.id})
    return {
        "success": True,
        "message": "Password regenerated successfully",
        "data": {"applicationId": manager.application_id, "password": plain_password},
    }
