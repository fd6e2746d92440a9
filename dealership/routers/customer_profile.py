import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.auth.dependencies import Caller, any_admin, get_current_customer, protect_admin_or_customer
from dealership.auth.rbac import AdminPrincipal
from dealership.core.db import get_db
from dealership.models.customer import Customer, CustomerProfile
from dealership.schemas.customer import CustomerOut, ProfileCreate, ProfileOut, ProfileUpdate
from dealership.services.lookups import get_customer_or_404
from dealership.services.pagination import paginate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/customer-profile", tags=["customer-profile"])


def _profile_values(data: dict) -> dict:
    if data.get("blood_group") is not None:
        data["blood_group"] = getattr(data["blood_group"], "value", data["blood_group"])
    if data.get("email"):
        data["email"] = data["email"].lower()
    return data


@router.post("/create", status_code=201)
async def create_profile(
    payload: ProfileCreate,
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db),
):
    if customer.profile is not None:
        raise HTTPException(status_code=400, detail="Profile already exists")

    customer.profile = CustomerProfile(**_profile_values(payload.model_dump()), profile_completed=True)
    await db.commit()
    logger.info("Customer profile created", extra={"customer_id": customer.id})
    return {
        "success": True,
        "message": "Profile created successfully",
        "data": CustomerOut.model_validate(customer),
    }


@router.get("/get")
async def get_own_profile(customer: Customer = Depends(get_current_customer)):
    if customer.profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return {"success": True, "data": CustomerOut.model_validate(customer)}


@router.patch("/update")
async def update_own_profile(
    payload: ProfileUpdate,
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db),
):
    profile = customer.profile
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")

    for field, value in _profile_values(payload.model_dump(exclude_unset=True)).items():
        setattr(profile, field, value)
    await db.commit()
    return {
        "success": True,
        "message": "Profile updated successfully",
        "data": ProfileOut.model_validate(profile),
    }


@router.get("/")
async def list_profiles(
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(Customer).join(CustomerProfile, CustomerProfile.customer_id == Customer.id)
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(
            Customer.phone_number.ilike(pattern),
            CustomerProfile.first_name.ilike(pattern),
            CustomerProfile.last_name.ilike(pattern),
            CustomerProfile.village.ilike(pattern),
            CustomerProfile.district.ilike(pattern),
        ))
    stmt = stmt.order_by(Customer.created_at.desc(), Customer.id.desc())
    result = await paginate(db, stmt, page, limit)
    return result.envelope([CustomerOut.model_validate(c) for c in result.items])


@router.get("/{customer_id}")
async def get_profile(
    customer_id: int,
    caller: Caller = Depends(protect_admin_or_customer),
    db: AsyncSession = Depends(get_db),
):
    if caller.customer is not None and caller.customer.id != customer_id:
        raise HTTPException(status_code=403, detail="Not authorized to access this profile")

    customer = await get_customer_or_404(db, customer_id)
    if customer.profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return {"success": True, "data": CustomerOut.model_validate(customer)}
