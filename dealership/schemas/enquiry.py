from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from dealership.models.enums import EnquiryStatus
from dealership.schemas.base import CamelModel, OrmModel, PHONE_IN_PATTERN


def capitalize_words(v):
    if not isinstance(v, str):
        return v
    return " ".join(word.capitalize() for word in v.strip().split())


class EnquiryAddress(CamelModel):
    village: Optional[str] = None
    district: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    pin_code: Optional[str] = Field(None, pattern=r"^\d{1,6}$")

    @field_validator("district", "state", mode="before")
    def capitalize(cls, v):
        return capitalize_words(v)


class EnquiryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone_number: str = Field(..., pattern=PHONE_IN_PATTERN)
    address: EnquiryAddress
    bike_model: Optional[str] = None
    message: Optional[str] = Field(None, max_length=1000)
    branch_id: Optional[int] = None

    @field_validator("phone_number", mode="before")
    def strip_country_code(cls, v):
        if isinstance(v, str):
            v = v.replace(" ", "")
            if v.startswith("+91"):
                v = v[3:]
        return v


class EnquiryStatusUpdate(CamelModel):
    status: EnquiryStatus


class EnquiryOut(OrmModel):
    id: int
    name: str
    phone_number: str
    address: EnquiryAddress
    bike_model: Optional[str] = None
    message: Optional[str] = None
    branch_id: Optional[int] = None
    status: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, enquiry) -> "EnquiryOut":
        return cls(
            id=enquiry.id,
            name=enquiry.name,
            phone_number=enquiry.phone_number,
            address=EnquiryAddress(
                village=enquiry.village,
                district=enquiry.district,
                state=enquiry.state,
                pin_code=enquiry.pin_code,
            ),
            bike_model=enquiry.bike_model,
            message=enquiry.message,
            branch_id=enquiry.branch_id,
            status=enquiry.status,
            created_at=enquiry.created_at,
        )
