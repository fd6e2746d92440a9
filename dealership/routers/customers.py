import logging
import re

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.auth.identity_provider import IdentityTokenError, get_identity_provider
from dealership.core.db import get_db
from dealership.models.customer import Customer
from dealership.schemas.base import PHONE_IN_PATTERN
from dealership.schemas.customer import (
    CheckPhoneRequest,
    CheckPhonesBatchRequest,
    CustomerLoginRequest,
    SaveAuthDataRequest,
    normalize_phone,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/customer", tags=["customers"])

PHONE_RE = re.compile(PHONE_IN_PATTERN)


def customer_summary(customer: Customer) -> dict:
    return {
        "id": customer.id,
        "phoneNumber": customer.phone_number,
        "isVerified": customer.is_verified,
        "profileCompleted": bool(customer.profile and customer.profile.profile_completed),
    }


@router.post("/save-auth-data")
async def save_auth_data(payload: SaveAuthDataRequest, db: AsyncSession = Depends(get_db)):
    """Create or refresh the base customer after the client finished OTP verification."""
    customer = (await db.execute(
        select(Customer).where(Customer.phone_number == payload.phone_number)
    )).scalar_one_or_none()

    if customer:
        customer.is_verified = True
        customer.firebase_uid = payload.firebase_uid
    else:
        customer = Customer(
            phone_number=payload.phone_number,
            firebase_uid=payload.firebase_uid,
            is_verified=True,
            profile=None,
        )
        db.add(customer)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="This identity is already linked to another phone number")

    logger.info("OTP verified for customer", extra={"customer_id": customer.id})
    return {
        "success": True,
        "message": "OTP verification successful",
        "data": {"customer": customer_summary(customer)},
    }


@router.post("/login")
async def login_customer(
    payload: CustomerLoginRequest,
    db: AsyncSession = Depends(get_db),
    provider=Depends(get_identity_provider),
):
    try:
        claims = await provider.verify_id_token(payload.id_token)
    except IdentityTokenError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    phone_number = claims.get("phone_number")
    if not phone_number:
        raise HTTPException(status_code=400, detail="Phone number not found in token")
    phone_number = normalize_phone(phone_number)

    customer = (await db.execute(
        select(Customer).where(Customer.phone_number == phone_number)
    )).scalar_one_or_none()
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found. Please register first.")
    if not customer.is_verified:
        raise HTTPException(status_code=401, detail="Customer account is not verified")

    logger.info("Customer logged in", extra={"customer_id": customer.id})
    return {
        "success": True,
        "message": "Login successful",
        "data": {"customer": customer_summary(customer), "token": payload.id_token},
    }


@router.post("/check-phone")
async def check_phone(payload: CheckPhoneRequest, db: AsyncSession = Depends(get_db)):
    customer = (await db.execute(
        select(Customer).where(Customer.phone_number == payload.phone_number)
    )).scalar_one_or_none()
    exists = customer is not None
    return {
        "success": True,
        "exists": exists,
        "data": {"phoneNumber": customer.phone_number, "isVerified": customer.is_verified} if exists else None,
        "message": "Phone number found in database" if exists else "Phone number not found in database",
    }


@router.post("/check-phones-batch")
async def check_phones_batch(payload: CheckPhonesBatchRequest, db: AsyncSession = Depends(get_db)):
    invalid = [phone for phone in payload.phone_numbers if not PHONE_RE.match(phone)]
    if invalid:
        raise HTTPException(status_code=400, detail=f"Invalid phone number format: {', '.join(invalid)}")

    found = {
        row.phone_number: row.is_verified
        for row in (await db.execute(
            select(Customer.phone_number, Customer.is_verified).where(
                Customer.phone_number.in_(payload.phone_numbers)
            )
        )).all()
    }
    results = [
        {"phoneNumber": phone, "exists": phone in found, "isVerified": found.get(phone, False)}
        for phone in payload.phone_numbers
    ]
    return {
        "success": True,
        "data": results,
        "message": f"Checked {len(payload.phone_numbers)} phone numbers",
    }
