import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.auth.auth_bearer import BearerToken, JWTBearer
from dealership.auth.auth_handler import decode_jwt
from dealership.auth.identity_provider import IdentityTokenError, get_identity_provider
from dealership.auth.rbac import AdminPrincipal
from dealership.core.db import get_db
from dealership.models.admin import Admin, BranchManager
from dealership.models.customer import Customer
from dealership.models.enums import AdminRole

logger = logging.getLogger(__name__)

require_admin_token = JWTBearer()
require_bearer_token = BearerToken()
optional_bearer_token = BearerToken(auto_error=False)


async def load_admin_principal(db: AsyncSession, payload: dict) -> Optional[AdminPrincipal]:
    user_id = payload.get("user_id")
    if payload.get("role") == AdminRole.BRANCH_ADMIN.value:
        manager = (await db.execute(
            select(BranchManager).where(BranchManager.id == user_id)
        )).scalar_one_or_none()
        if manager is None or not manager.is_active:
            return None
        return AdminPrincipal(
            id=manager.id,
            name=manager.name,
            email=manager.email,
            role=AdminRole.BRANCH_ADMIN.value,
            branch_id=manager.branch_id,
        )

    admin = (await db.execute(select(Admin).where(Admin.id == user_id))).scalar_one_or_none()
    if admin is None or not admin.is_active:
        return None
    return AdminPrincipal(
        id=admin.id,
        name=admin.name,
        email=admin.email,
        role=admin.role,
        branch_id=admin.branch_id,
    )


async def protect(
    payload: dict = Depends(require_admin_token),
    db: AsyncSession = Depends(get_db),
) -> AdminPrincipal:
    """Resolve the admin or branch manager behind a signed token."""
    principal = await load_admin_principal(db, payload)
    if principal is None:
        raise HTTPException(status_code=401, detail="Not authorized, user not found or inactive")
    return principal


def authorize(*roles: str):
    """Dependency factory: 403 unless the caller holds one of `roles`."""

    async def role_checker(principal: AdminPrincipal = Depends(protect)) -> AdminPrincipal:
        if principal.role not in roles:
            raise HTTPException(
                status_code=403,
                detail=f"User role {principal.role} is not authorized to access this route",
            )
        return principal

    return role_checker


super_admin_only = authorize(AdminRole.SUPER_ADMIN.value)
any_admin = authorize(AdminRole.SUPER_ADMIN.value, AdminRole.BRANCH_ADMIN.value)


async def resolve_customer(db: AsyncSession, provider, token: str) -> Customer:
    try:
        claims = await provider.verify_id_token(token)
    except IdentityTokenError:
        raise HTTPException(status_code=401, detail="Not authorized, invalid token")

    customer = (await db.execute(
        select(Customer).where(Customer.firebase_uid == claims.get("uid"))
    )).scalar_one_or_none()
    if customer is None:
        raise HTTPException(status_code=401, detail="Customer not found with this token")
    if not customer.is_verified:
        raise HTTPException(status_code=401, detail="Customer account is not verified")
    return customer


async def get_current_customer(
    token: str = Depends(require_bearer_token),
    db: AsyncSession = Depends(get_db),
    provider=Depends(get_identity_provider),
) -> Customer:
    return await resolve_customer(db, provider, token)


async def get_optional_customer(
    token: Optional[str] = Depends(optional_bearer_token),
    db: AsyncSession = Depends(get_db),
    provider=Depends(get_identity_provider),
) -> Optional[Customer]:
    if token is None:
        return None
    try:
        return await resolve_customer(db, provider, token)
    except HTTPException:
        return None


@dataclass
class Caller:
    """Either a verified customer or an admin, never both."""
    customer: Optional[Customer] = None
    admin: Optional[AdminPrincipal] = None


async def protect_admin_or_customer(
    token: str = Depends(require_bearer_token),
    db: AsyncSession = Depends(get_db),
    provider=Depends(get_identity_provider),
) -> Caller:
    """Try the customer token path first, then the admin token path."""
    try:
        return Caller(customer=await resolve_customer(db, provider, token))
    except HTTPException:
        pass

    payload = decode_jwt(token)
    if payload:
        principal = await load_admin_principal(db, payload)
        if principal is not None:
            return Caller(admin=principal)
    raise HTTPException(status_code=401, detail="Not authorized, invalid token")
