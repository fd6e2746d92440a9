import logging
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.auth.dependencies import (
    Caller,
    any_admin,
    get_current_customer,
    get_optional_customer,
    protect_admin_or_customer,
)
from dealership.auth.rbac import AdminPrincipal, can_access_branch, ensure_branch_access, scoped_branch_filter
from dealership.core.db import get_db
from dealership.core.timeutils import today
from dealership.models.customer import Customer
from dealership.models.enums import BookingStatus
from dealership.models.service_booking import ServiceBooking
from dealership.schemas.service_booking import BookingCreate, BookingOut, BookingStatusUpdate, CancelBookingRequest
from dealership.services.booking_service import ACTIVE_STATUSES, BookingService
from dealership.services.lookups import count_rows
from dealership.services.pagination import paginate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/service-bookings", tags=["service-bookings"])


async def get_booking_or_404(db: AsyncSession, booking_ref: str) -> ServiceBooking:
    """Booking by numeric id or SB-... booking id."""
    if booking_ref.isdigit():
        condition = ServiceBooking.id == int(booking_ref)
    else:
        condition = ServiceBooking.booking_id == booking_ref.upper()
    booking = (await db.execute(select(ServiceBooking).where(condition))).scalar_one_or_none()
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


def ensure_booking_access(caller: Caller, booking: ServiceBooking) -> None:
    if caller.customer is not None:
        if booking.customer_id != caller.customer.id:
            raise HTTPException(status_code=403, detail="Not authorized to access this booking")
    elif not can_access_branch(caller.admin, booking.branch_id):
        raise HTTPException(status_code=403, detail="Not authorized to access this branch")


@router.post("/", status_code=201)
async def create_booking(
    payload: BookingCreate,
    customer: Optional[Customer] = Depends(get_optional_customer),
    db: AsyncSession = Depends(get_db),
):
    booking = await BookingService(db).create(payload, customer)
    return {
        "success": True,
        "message": "Service booking created successfully",
        "data": BookingOut.model_validate(booking),
    }


@router.get("/availability")
async def availability(
    branch_id: int = Query(..., alias="branchId"),
    appointment_date: date = Query(..., alias="date"),
    db: AsyncSession = Depends(get_db),
):
    slots = await BookingService(db).available_slots(branch_id, appointment_date)
    return {"success": True, "data": slots}


@router.get("/my-bookings")
async def my_bookings(
    status: Optional[BookingStatus] = None,
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(ServiceBooking).where(ServiceBooking.customer_id == customer.id)
    if status:
        stmt = stmt.where(ServiceBooking.status == status.value)
    bookings = (await db.execute(
        stmt.order_by(ServiceBooking.appointment_date.desc(), ServiceBooking.appointment_time.desc())
    )).scalars().all()
    return {"success": True, "count": len(bookings), "data": [BookingOut.model_validate(b) for b in bookings]}


@router.get("/admin/all")
async def list_bookings(
    status: Optional[BookingStatus] = None,
    branch_id: Optional[int] = Query(None, alias="branchId"),
    appointment_date: Optional[date] = Query(None, alias="date"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(ServiceBooking)
    branch_filter = scoped_branch_filter(principal, branch_id)
    if branch_filter is not None:
        stmt = stmt.where(ServiceBooking.branch_id == branch_filter)
    if status:
        stmt = stmt.where(ServiceBooking.status == status.value)
    if appointment_date:
        stmt = stmt.where(ServiceBooking.appointment_date == appointment_date)
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(
            ServiceBooking.booking_id.ilike(pattern),
            ServiceBooking.first_name.ilike(pattern),
            ServiceBooking.last_name.ilike(pattern),
            ServiceBooking.phone.ilike(pattern),
            ServiceBooking.registration_number.ilike(pattern),
        ))
    stmt = stmt.order_by(ServiceBooking.appointment_date.desc(), ServiceBooking.appointment_time, ServiceBooking.id)
    result = await paginate(db, stmt, page, limit)
    return result.envelope([BookingOut.model_validate(b) for b in result.items])


@router.get("/admin/stats")
async def booking_stats(
    branch_id: Optional[int] = Query(None, alias="branchId"),
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    base = select(ServiceBooking)
    branch_filter = scoped_branch_filter(principal, branch_id)
    if branch_filter is not None:
        base = base.where(ServiceBooking.branch_id == branch_filter)

    by_status = {status.value: 0 for status in BookingStatus}
    for row in (await db.execute(
        base.with_only_columns(ServiceBooking.status, func.count(ServiceBooking.id).label("count"))
        .group_by(ServiceBooking.status)
    )).all():
        by_status[row.status] = row.count

    on = today()
    return {
        "success": True,
        "data": {
            "total": sum(by_status.values()),
            "byStatus": by_status,
            "today": await count_rows(db, base.where(ServiceBooking.appointment_date == on)),
            "upcoming": await count_rows(db, base.where(
                ServiceBooking.appointment_date > on,
                ServiceBooking.status.in_(ACTIVE_STATUSES),
            )),
        },
    }


@router.get("/branch/{branch_id}/upcoming")
async def upcoming_for_branch(
    branch_id: int,
    days: int = Query(7, ge=1, le=90),
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    ensure_branch_access(principal, branch_id)
    on = today()
    bookings = (await db.execute(
        select(ServiceBooking)
        .where(
            ServiceBooking.branch_id == branch_id,
            ServiceBooking.appointment_date >= on,
            ServiceBooking.appointment_date <= on + timedelta(days=days),
            ServiceBooking.status.in_(ACTIVE_STATUSES),
        )
        .order_by(ServiceBooking.appointment_date, ServiceBooking.appointment_time)
    )).scalars().all()
    return {"success": True, "count": len(bookings), "data": [BookingOut.model_validate(b) for b in bookings]}


@router.get("/{booking_ref}")
async def get_booking(
    booking_ref: str,
    caller: Caller = Depends(protect_admin_or_customer),
    db: AsyncSession = Depends(get_db),
):
    booking = await get_booking_or_404(db, booking_ref)
    ensure_booking_access(caller, booking)
    return {"success": True, "data": BookingOut.model_validate(booking)}


@router.patch("/{booking_ref}/status")
async def update_booking_status(
    booking_ref: str,
    payload: BookingStatusUpdate,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    booking = await get_booking_or_404(db, booking_ref)
    ensure_branch_access(principal, booking.branch_id)
    booking = await BookingService(db).change_status(booking, payload, actor=principal.label)
    return {
        "success": True,
        "message": f"Booking status updated to {booking.status}",
        "data": BookingOut.model_validate(booking),
    }


@router.post("/{booking_ref}/cancel")
async def cancel_booking(
    booking_ref: str,
    payload: Optional[CancelBookingRequest] = None,
    caller: Caller = Depends(protect_admin_or_customer),
    db: AsyncSession = Depends(get_db),
):
    booking = await get_booking_or_404(db, booking_ref)
    ensure_booking_access(caller, booking)
    actor = caller.admin.label if caller.admin else f"customer:{caller.customer.id}"
    booking = await BookingService(db).cancel(booking, payload.reason if payload else None, actor=actor)
    return {
        "success": True,
        "message": "Booking cancelled successfully",
        "data": BookingOut.model_validate(booking),
    }
