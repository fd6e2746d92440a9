import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.core.prometheus_metrics import prometheus_collector
from dealership.core.retry import RetryableError, async_retry
from dealership.core.timeutils import today, utcnow
from dealership.models.customer import Customer
from dealership.models.enums import BookingStatus
from dealership.models.service_booking import ServiceBooking
from dealership.schemas.service_booking import BookingCreate, BookingStatusUpdate
from dealership.services.booking_state import ensure_transition
from dealership.services.exceptions import ConflictError, InvalidRequestError
from dealership.services.ids import booking_id
from dealership.services.lookups import get_branch_or_404

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (
    BookingStatus.PENDING.value,
    BookingStatus.CONFIRMED.value,
    BookingStatus.IN_PROGRESS.value,
)

LUNCH_BREAK_SLOTS = frozenset({"13:00", "13:30"})


def daily_slots() -> List[str]:
    """09:00 to 17:30 every half hour, lunch break excluded."""
    slots = []
    for hour in range(9, 18):
        for minute in (0, 30):
            slot = f"{hour:02d}:{minute:02d}"
            if slot not in LUNCH_BREAK_SLOTS:
                slots.append(slot)
    return slots


class BookingService:
    """Service appointment creation, availability and status changes."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, payload: BookingCreate, customer: Optional[Customer] = None) -> ServiceBooking:
        if not payload.terms_accepted:
            raise InvalidRequestError("You must accept the terms and conditions")

        await get_branch_or_404(self.db, payload.branch_id)

        if payload.appointment_date <= today():
            raise InvalidRequestError("Appointment date must be in the future")

        if await self._slot_taken(payload.branch_id, payload.appointment_date, payload.appointment_time):
            raise ConflictError("Time slot is already booked. Please choose another time.")

        try:
            booking = await self._insert(payload, customer.id if customer else None)
        except RetryableError:
            raise ConflictError("Could not allocate a booking number, please try again")

        logger.info(
            "Service booking created",
            extra={"booking_id": booking.booking_id, "branch_id": booking.branch_id},
        )
        return booking

    @async_retry(max_attempts=3)
    async def _insert(self, payload: BookingCreate, customer_id: Optional[int]) -> ServiceBooking:
        day = today()
        start_of_day = datetime(day.year, day.month, day.day)
        created_today = (await self.db.execute(
            select(func.count()).select_from(ServiceBooking).where(
                ServiceBooking.created_at >= start_of_day,
                ServiceBooking.created_at < start_of_day + timedelta(days=1),
            )
        )).scalar_one()

        booking = ServiceBooking(
            booking_id=booking_id(day, created_today),
            customer_id=customer_id,
            **payload.model_dump(exclude={"terms_accepted"}),
            terms_accepted=True,
            status=BookingStatus.PENDING.value,
        )
        self.db.add(booking)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise RetryableError(f"Booking id {booking.booking_id} already taken") from e
        return booking

    async def _slot_taken(self, branch_id: int, appointment_date: date, appointment_time: str,
                          exclude_id: Optional[int] = None) -> bool:
        stmt = select(ServiceBooking.id).where(
            ServiceBooking.branch_id == branch_id,
            ServiceBooking.appointment_date == appointment_date,
            ServiceBooking.appointment_time == appointment_time,
            ServiceBooking.status.in_(ACTIVE_STATUSES),
        )
        if exclude_id is not None:
            stmt = stmt.where(ServiceBooking.id != exclude_id)
        return (await self.db.execute(stmt.limit(1))).first() is not None

    async def available_slots(self, branch_id: int, appointment_date: date) -> dict:
        await get_branch_or_404(self.db, branch_id)
        booked = set((await self.db.execute(
            select(ServiceBooking.appointment_time).where(
                ServiceBooking.branch_id == branch_id,
                ServiceBooking.appointment_date == appointment_date,
                ServiceBooking.status.in_(ACTIVE_STATUSES),
            )
        )).scalars().all())
        slots = daily_slots()
        return {
            "date": appointment_date.isoformat(),
            "branchId": branch_id,
            "availableSlots": [slot for slot in slots if slot not in booked],
            "bookedSlots": sorted(booked),
        }

    async def change_status(self, booking: ServiceBooking, update: BookingStatusUpdate, actor: str) -> ServiceBooking:
        """
        Applies a status change through the booking state machine.

        Confirming stamps confirmedAt; completing stamps completedAt and takes
        the actual cost and service notes; cancelling records the reason in the
        internal notes.
        """
        previous = booking.status
        target = update.status.value
        ensure_transition(previous, target)

        now = utcnow()
        booking.status = target
        if target == BookingStatus.CONFIRMED.value:
            booking.confirmed_at = now
        elif target == BookingStatus.COMPLETED.value:
            booking.completed_at = now
            if update.actual_cost is not None:
                booking.actual_cost = update.actual_cost
            if update.service_notes:
                booking.service_notes = update.service_notes
        elif target == BookingStatus.CANCELLED.value:
            self._append_note(booking, f"Cancelled: {update.reason or 'No reason provided'}")

        if update.estimated_cost is not None:
            booking.estimated_cost = update.estimated_cost
        if update.internal_notes:
            self._append_note(booking, update.internal_notes)

        await self.db.commit()
        prometheus_collector.record_booking_transition(previous, target)
        logger.info(
            "Booking status changed",
            extra={"booking_id": booking.booking_id, "from": previous, "to": target, "actor": actor},
        )
        return booking

    async def cancel(self, booking: ServiceBooking, reason: Optional[str], actor: str) -> ServiceBooking:
        return await self.change_status(
            booking,
            BookingStatusUpdate(status=BookingStatus.CANCELLED, reason=reason),
            actor,
        )

    @staticmethod
    def _append_note(booking: ServiceBooking, note: str) -> None:
        booking.internal_notes = f"{booking.internal_notes}\n{note}" if booking.internal_notes else note
