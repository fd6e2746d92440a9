from datetime import date, datetime
from typing import List, Optional

from pydantic import Field, field_validator

from dealership.models.enums import VehicleServiceType
from dealership.schemas.base import CamelModel, OrmModel, NUMBER_PLATE_PATTERN, RTO_CODE_PATTERN


def _not_in_future(v):
    if v is not None and v > date.today():
        raise ValueError("date cannot be in the future")
    return v


def _upper_or_none(v):
    return v.strip().upper() if isinstance(v, str) and v.strip() else None


class RtoInfo(CamelModel):
    rto_code: str = Field(..., pattern=RTO_CODE_PATTERN)
    rto_name: Optional[str] = None
    state: str = "AS"

    @field_validator("rto_code", "state", mode="before")
    def upper(cls, v):
        return v.strip().upper() if isinstance(v, str) else v


class VehicleCreate(CamelModel):
    customer_id: int
    stock_item_id: Optional[int] = None
    model_name: str = Field(..., min_length=1)
    category: Optional[str] = None
    engine_capacity: Optional[int] = Field(None, ge=0)
    fuel_norms: Optional[str] = None
    color: Optional[str] = None
    engine_number: str = Field(..., min_length=1)
    chassis_number: str = Field(..., min_length=1)
    fitness_upto: Optional[int] = None
    unique_book_record: Optional[str] = None
    registration_date: Optional[date] = None
    purchase_date: Optional[date] = None
    number_plate: Optional[str] = Field(None, pattern=NUMBER_PLATE_PATTERN)
    registered_owner_name: Optional[str] = Field(None, max_length=100)
    insurance: bool = False
    is_paid: bool = False
    is_finance: bool = False
    rto_info: Optional[RtoInfo] = None

    @field_validator("engine_number", "chassis_number")
    def upper_serial(cls, v):
        return v.strip().upper()

    @field_validator("number_plate", mode="before")
    def upper_plate(cls, v):
        return _upper_or_none(v)

    @field_validator("registration_date", "purchase_date")
    def dates_not_in_future(cls, v):
        return _not_in_future(v)


class VehicleUpdate(CamelModel):
    color: Optional[str] = None
    fitness_upto: Optional[int] = None
    registration_date: Optional[date] = None
    purchase_date: Optional[date] = None
    number_plate: Optional[str] = Field(None, pattern=NUMBER_PLATE_PATTERN)
    registered_owner_name: Optional[str] = Field(None, max_length=100)
    insurance: Optional[bool] = None
    is_paid: Optional[bool] = None
    is_finance: Optional[bool] = None
    rto_info: Optional[RtoInfo] = None

    @field_validator("number_plate", mode="before")
    def upper_plate(cls, v):
        return _upper_or_none(v)

    @field_validator("registration_date", "purchase_date")
    def dates_not_in_future(cls, v):
        return _not_in_future(v)


class ServiceStatusUpdate(CamelModel):
    last_service_date: Optional[date] = None
    next_service_due: Optional[date] = None
    service_type: Optional[VehicleServiceType] = None
    kilometers: Optional[int] = Field(None, ge=0)


class TransferRequest(CamelModel):
    new_customer_id: int
    new_owner_name: Optional[str] = Field(None, max_length=100)


class EnrollmentOut(OrmModel):
    id: int
    service_id: int
    activated_date: date
    expiry_date: date
    purchase_price: float
    coverage_years: int
    is_active: bool
    deactivation_reason: Optional[str] = None


class ServiceStatusOut(OrmModel):
    last_service_date: Optional[date] = None
    next_service_due: Optional[date] = None
    service_type: str
    kilometers: int
    service_history: int


class VehicleOut(OrmModel):
    id: int
    stock_item_id: Optional[int] = None
    customer_id: int
    model_name: str
    category: Optional[str] = None
    engine_capacity: Optional[int] = None
    fuel_norms: Optional[str] = None
    color: Optional[str] = None
    engine_number: str
    chassis_number: str
    fitness_upto: Optional[int] = None
    registration_date: Optional[date] = None
    purchase_date: Optional[date] = None
    number_plate: Optional[str] = None
    registered_owner_name: Optional[str] = None
    insurance: bool
    is_paid: bool
    is_finance: bool
    rto_info: Optional[RtoInfo] = None
    service_status: ServiceStatusOut
    active_value_added_services: List[EnrollmentOut] = Field(default_factory=list)
    is_active: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, vehicle) -> "VehicleOut":
        return cls(
            id=vehicle.id,
            stock_item_id=vehicle.stock_item_id,
            customer_id=vehicle.customer_id,
            model_name=vehicle.model_name,
            category=vehicle.category,
            engine_capacity=vehicle.engine_capacity,
            fuel_norms=vehicle.fuel_norms,
            color=vehicle.color,
            engine_number=vehicle.engine_number,
            chassis_number=vehicle.chassis_number,
            fitness_upto=vehicle.fitness_upto,
            registration_date=vehicle.registration_date,
            purchase_date=vehicle.purchase_date,
            number_plate=vehicle.number_plate,
            registered_owner_name=vehicle.registered_owner_name,
            insurance=vehicle.insurance,
            is_paid=vehicle.is_paid,
            is_finance=vehicle.is_finance,
            rto_info=RtoInfo(
                rto_code=vehicle.rto_code, rto_name=vehicle.rto_name, state=vehicle.rto_state or "AS"
            ) if vehicle.rto_code else None,
            service_status=ServiceStatusOut.model_validate(vehicle),
            active_value_added_services=[
                EnrollmentOut.model_validate(e) for e in vehicle.enrollments if e.is_active
            ],
            is_active=vehicle.is_active,
            created_at=vehicle.created_at,
        )
