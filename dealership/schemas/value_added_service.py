from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import Field, model_validator

from dealership.models.enums import VasServiceType
from dealership.schemas.base import CamelModel, OrmModel


class Badge(CamelModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    is_active: bool = True


class VehicleEligibility(CamelModel):
    max_engine_capacity: int = Field(2000, ge=0)
    categories: List[str] = Field(default_factory=list)


class PriceStructure(CamelModel):
    base_price: float = Field(..., ge=0)
    price_per_year: float = Field(0, ge=0)
    engine_capacity_multiplier: float = Field(1, ge=0)


class VasCreate(CamelModel):
    service_name: str = Field(..., min_length=1, max_length=100)
    service_type: VasServiceType
    description: str = Field(..., min_length=1)
    coverage_years: int = Field(..., ge=1, le=10)
    max_enrollment_period: int = Field(12, ge=1)
    vehicle_eligibility: VehicleEligibility = Field(default_factory=VehicleEligibility)
    price_structure: PriceStructure
    benefits: List[str] = Field(default_factory=list)
    coverage: Dict[str, bool] = Field(default_factory=dict)
    terms: List[str] = Field(default_factory=list)
    exclusions: List[str] = Field(default_factory=list)
    badges: List[Badge] = Field(default_factory=list)
    applicable_branches: List[int] = Field(default_factory=list)
    valid_from: Optional[date] = None
    valid_until: date
    is_active: bool = True

    @model_validator(mode="after")
    def check_validity_window(self):
        if self.valid_from and self.valid_until <= self.valid_from:
            raise ValueError("validUntil must be after validFrom")
        return self


class VasUpdate(CamelModel):
    service_name: Optional[str] = Field(None, min_length=1, max_length=100)
    service_type: Optional[VasServiceType] = None
    description: Optional[str] = None
    coverage_years: Optional[int] = Field(None, ge=1, le=10)
    max_enrollment_period: Optional[int] = Field(None, ge=1)
    vehicle_eligibility: Optional[VehicleEligibility] = None
    price_structure: Optional[PriceStructure] = None
    benefits: Optional[List[str]] = None
    coverage: Optional[Dict[str, bool]] = None
    terms: Optional[List[str]] = None
    exclusions: Optional[List[str]] = None
    badges: Optional[List[Badge]] = None
    applicable_branches: Optional[List[int]] = None
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    is_active: Optional[bool] = None


class ActivateServiceRequest(CamelModel):
    customer_id: int
    vehicle_id: int
    service_id: int
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.valid_from and self.valid_until and self.valid_until <= self.valid_from:
            raise ValueError("validUntil must be after validFrom")
        return self


class DeactivateServiceRequest(CamelModel):
    vehicle_id: int
    service_id: int
    reason: str = Field(..., min_length=1)


class PriceRequest(CamelModel):
    service_id: int
    vehicle_id: Optional[int] = None
    engine_capacity: Optional[int] = Field(None, ge=0)
    selected_years: Optional[int] = Field(None, ge=1, le=10)


class VasOut(OrmModel):
    id: int
    service_name: str
    service_type: str
    description: str
    coverage_years: int
    max_enrollment_period: int
    vehicle_eligibility: VehicleEligibility
    price_structure: PriceStructure
    benefits: List[str]
    coverage: Dict[str, bool]
    terms: List[str]
    exclusions: List[str]
    badges: List[Badge]
    applicable_branches: List[int]
    valid_from: date
    valid_until: date
    is_active: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, service) -> "VasOut":
        return cls(
            id=service.id,
            service_name=service.service_name,
            service_type=service.service_type,
            description=service.description,
            coverage_years=service.coverage_years,
            max_enrollment_period=service.max_enrollment_period,
            vehicle_eligibility=VehicleEligibility(
                max_engine_capacity=service.max_engine_capacity,
                categories=service.eligible_categories or [],
            ),
            price_structure=PriceStructure(
                base_price=service.base_price,
                price_per_year=service.price_per_year,
                engine_capacity_multiplier=service.engine_capacity_multiplier,
            ),
            benefits=service.benefits or [],
            coverage=service.coverage or {},
            terms=service.terms or [],
            exclusions=service.exclusions or [],
            badges=[Badge.model_validate(b) for b in service.badges or []],
            applicable_branches=service.applicable_branches or [],
            valid_from=service.valid_from,
            valid_until=service.valid_until,
            is_active=service.is_active,
            created_at=service.created_at,
        )
