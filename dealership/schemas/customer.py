from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field, field_validator

from dealership.models.enums import BloodGroup
from dealership.schemas.base import CamelModel, OrmModel, PHONE_IN_PATTERN


def normalize_phone(v: str) -> str:
    """Strip spaces and a leading +91 country code."""
    v = (v or "").replace(" ", "").strip()
    if v.startswith("+91"):
        v = v[3:]
    return v


class SaveAuthDataRequest(CamelModel):
    firebase_uid: str = Field(..., min_length=1)
    phone_number: str = Field(..., pattern=PHONE_IN_PATTERN)

    @field_validator("phone_number", mode="before")
    def strip_country_code(cls, v):
        return normalize_phone(v)


class CustomerLoginRequest(CamelModel):
    id_token: str = Field(..., min_length=1)


class CheckPhoneRequest(CamelModel):
    phone_number: str = Field(..., pattern=PHONE_IN_PATTERN)

    @field_validator("phone_number", mode="before")
    def strip_country_code(cls, v):
        return normalize_phone(v)


class CheckPhonesBatchRequest(CamelModel):
    phone_numbers: List[str] = Field(..., min_length=1, max_length=10)

    @field_validator("phone_numbers", mode="before")
    def strip_country_codes(cls, v):
        return [normalize_phone(p) for p in v] if isinstance(v, list) else v


class ProfileBase(CamelModel):
    first_name: str = Field(..., min_length=2, max_length=30)
    middle_name: Optional[str] = Field(None, max_length=30)
    last_name: str = Field(..., min_length=2, max_length=30)
    email: Optional[EmailStr] = None
    village: str = Field(..., min_length=1)
    post_office: str = Field(..., min_length=1)
    police_station: str = Field(..., min_length=1)
    district: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    blood_group: Optional[BloodGroup] = None
    family_number_1: Optional[str] = Field(None, pattern=PHONE_IN_PATTERN, alias="familyNumber1")
    family_number_2: Optional[str] = Field(None, pattern=PHONE_IN_PATTERN, alias="familyNumber2")


class ProfileCreate(ProfileBase):
    pass


class ProfileUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=2, max_length=30)
    middle_name: Optional[str] = Field(None, max_length=30)
    last_name: Optional[str] = Field(None, min_length=2, max_length=30)
    email: Optional[EmailStr] = None
    village: Optional[str] = None
    post_office: Optional[str] = None
    police_station: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None
    blood_group: Optional[BloodGroup] = None
    family_number_1: Optional[str] = Field(None, pattern=PHONE_IN_PATTERN, alias="familyNumber1")
    family_number_2: Optional[str] = Field(None, pattern=PHONE_IN_PATTERN, alias="familyNumber2")


class ProfileOut(OrmModel):
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    email: Optional[str] = None
    village: str
    post_office: str
    police_station: str
    district: str
    state: str
    blood_group: Optional[str] = None
    family_number_1: Optional[str] = Field(None, alias="familyNumber1")
    family_number_2: Optional[str] = Field(None, alias="familyNumber2")
    profile_completed: bool


class CustomerOut(OrmModel):
    id: int
    phone_number: str
    is_verified: bool
    profile: Optional[ProfileOut] = None
    created_at: Optional[datetime] = None
