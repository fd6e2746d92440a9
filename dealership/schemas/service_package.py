from datetime import date, datetime
from typing import List, Optional

from pydantic import Field, model_validator

from dealership.schemas.base import CamelModel, OrmModel


class ServicePackageCreate(CamelModel):
    name: str = Field(..., min_length=1)
    kilometers: int = Field(..., ge=500)
    months: int = Field(..., ge=1)
    is_free: bool = False
    cost: float = Field(0, ge=0)
    items: List[str] = Field(default_factory=list)
    labor_charges: float = Field(0, ge=0)
    parts_replaced: List[str] = Field(default_factory=list)
    estimated_time: int = Field(60, ge=30)
    valid_from: Optional[date] = None
    valid_until: date
    branch_id: int
    is_active: bool = True

    @model_validator(mode="after")
    def check_package(self):
        if self.valid_from and self.valid_until <= self.valid_from:
            raise ValueError("validUntil must be after validFrom")
        if self.is_free and self.cost:
            raise ValueError("A free service package cannot have a cost")
        return self


class ServicePackageUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    kilometers: Optional[int] = Field(None, ge=500)
    months: Optional[int] = Field(None, ge=1)
    is_free: Optional[bool] = None
    cost: Optional[float] = Field(None, ge=0)
    items: Optional[List[str]] = None
    labor_charges: Optional[float] = Field(None, ge=0)
    parts_replaced: Optional[List[str]] = None
    estimated_time: Optional[int] = Field(None, ge=30)
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    is_active: Optional[bool] = None


class ServicePackageOut(OrmModel):
    id: int
    name: str
    kilometers: int
    months: int
    is_free: bool
    cost: float
    items: List[str]
    labor_charges: float
    parts_replaced: List[str]
    estimated_time: int
    valid_from: date
    valid_until: date
    branch_id: int
    is_active: bool
    created_at: Optional[datetime] = None
