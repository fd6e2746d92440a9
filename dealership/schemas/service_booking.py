from datetime import date, datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from dealership.models.enums import BookingStatus
from dealership.schemas.base import CamelModel, OrmModel, TIME_SLOT_PATTERN


class BookingCreate(CamelModel):
    model_name: str = Field(..., min_length=1)
    registration_number: Optional[str] = None
    vehicle_age: str = Field(..., min_length=1)
    mileage: str = Field(..., min_length=1)
    service_type: str = Field(..., min_length=1)
    additional_services: Optional[str] = None
    branch_id: int
    appointment_date: date
    appointment_time: str = Field(..., pattern=TIME_SLOT_PATTERN)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: EmailStr
    phone: str = Field(..., min_length=10, max_length=15)
    special_requests: Optional[str] = None
    vehicle_id: Optional[int] = None
    terms_accepted: bool

    @field_validator("email")
    def lower_email(cls, v):
        return v.lower()

    @field_validator("appointment_time")
    def pad_time(cls, v):
        hours, minutes = v.split(":")
        return f"{int(hours):02d}:{minutes}"


class BookingStatusUpdate(CamelModel):
    status: BookingStatus
    estimated_cost: Optional[float] = Field(None, ge=0)
    actual_cost: Optional[float] = Field(None, ge=0)
    service_notes: Optional[str] = None
    internal_notes: Optional[str] = None
    reason: Optional[str] = None


class CancelBookingRequest(CamelModel):
    reason: Optional[str] = None


class BookingOut(OrmModel):
    id: int
    booking_id: str
    customer_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    model_name: str
    registration_number: Optional[str] = None
    vehicle_age: str
    mileage: str
    first_name: str
    last_name: str
    email: str
    phone: str
    service_type: str
    additional_services: Optional[str] = None
    branch_id: int
    appointment_date: date
    appointment_time: str
    special_requests: Optional[str] = None
    status: str
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    estimated_cost: Optional[float] = None
    actual_cost: Optional[float] = None
    service_notes: Optional[str] = None
    internal_notes: Optional[str] = None
    created_at: Optional[datetime] = None
