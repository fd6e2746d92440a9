from datetime import date, datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from dealership.models.enums import ApplicationStatus, CreditScoreRange, EmploymentType
from dealership.schemas.base import CamelModel, OrmModel, INTERNATIONAL_PHONE_PATTERN


class ApplicationCreate(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    phone: str = Field(..., pattern=INTERNATIONAL_PHONE_PATTERN)
    employment_type: EmploymentType
    monthly_income: float = Field(..., ge=0)
    credit_score_range: CreditScoreRange
    bike_model: Optional[str] = None
    bike_price: Optional[float] = Field(None, ge=0)
    down_payment: Optional[float] = Field(None, ge=0)
    tenure_months: Optional[int] = Field(None, ge=6, le=84)
    interest_rate: Optional[float] = Field(None, ge=0, le=40)
    branch_id: Optional[int] = None
    terms_accepted: bool = False
    privacy_policy_accepted: bool = False

    @field_validator("email")
    def lower_email(cls, v):
        return v.lower()

    @field_validator("phone", mode="before")
    def strip_spaces(cls, v):
        return v.replace(" ", "") if isinstance(v, str) else v


class ApplicationStatusUpdate(CamelModel):
    status: ApplicationStatus
    review_notes: Optional[str] = Field(None, max_length=1000)
    pre_approval_amount: Optional[float] = Field(None, ge=0)
    valid_days: int = Field(30, ge=1, le=365)


class CheckStatusRequest(CamelModel):
    email: EmailStr
    application_id: str = Field(..., min_length=1)

    @field_validator("email")
    def lower_email(cls, v):
        return v.lower()

    @field_validator("application_id")
    def upper_id(cls, v):
        return v.strip().upper()


class EmiRequest(CamelModel):
    price: float = Field(..., gt=0)
    down_payment: float = Field(0, ge=0)
    interest_rate: float = Field(..., ge=0, le=40)
    tenure_months: int = Field(..., ge=1, le=120)


class ApplicationOut(OrmModel):
    id: int
    application_id: str
    first_name: str
    last_name: str
    email: str
    phone: str
    employment_type: str
    monthly_income: float
    credit_score_range: str
    bike_model: Optional[str] = None
    bike_price: Optional[float] = None
    down_payment: Optional[float] = None
    tenure_months: Optional[int] = None
    interest_rate: Optional[float] = None
    status: str
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    pre_approval_amount: Optional[float] = None
    pre_approval_valid_until: Optional[date] = None
    branch_id: Optional[int] = None
    terms_accepted: bool
    privacy_policy_accepted: bool
    created_at: Optional[datetime] = None


class ApplicationStatusOut(OrmModel):
    """Public view returned by the status check."""
    application_id: str
    first_name: str
    status: str
    pre_approval_amount: Optional[float] = None
    pre_approval_valid_until: Optional[date] = None
    created_at: Optional[datetime] = None
