from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from dealership.schemas.base import CamelModel, OrmModel


class SuperAdminLoginSchema(CamelModel):
    email: EmailStr = Field(...)
    password: str = Field(..., min_length=1)

    @field_validator("email")
    def lower_email(cls, v):
        return v.lower()


class BranchManagerLoginSchema(CamelModel):
    application_id: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @field_validator("application_id")
    def upper_application_id(cls, v):
        return v.strip().upper()


class BranchManagerCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr = Field(...)
    branch: str = Field(..., description="Branch slug or numeric id")

    @field_validator("email")
    def lower_email(cls, v):
        return v.lower()


class BranchManagerUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    branch: Optional[str] = None
    is_active: Optional[bool] = None


class BranchManagerOut(OrmModel):
    id: int
    name: str
    email: str
    application_id: str
    branch_id: int
    is_active: bool
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None


class AdminOut(OrmModel):
    id: int
    name: str
    email: str
    role: str
    branch_id: Optional[int] = None
