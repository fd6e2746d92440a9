from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from dealership.models.branch import DEFAULT_HOURS
from dealership.schemas.base import CamelModel, OrmModel


class BranchHours(CamelModel):
    weekdays: str = DEFAULT_HOURS["weekdays"]
    saturday: str = DEFAULT_HOURS["saturday"]
    sunday: str = DEFAULT_HOURS["sunday"]


class BranchCreate(CamelModel):
    branch_name: str = Field(..., min_length=2)
    address: str = Field(..., min_length=2)
    phone: str = Field(..., min_length=5)
    email: EmailStr
    hours: BranchHours = Field(default_factory=BranchHours)
    map_url: Optional[str] = None


class BranchUpdate(CamelModel):
    branch_name: Optional[str] = Field(None, min_length=2)
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    hours: Optional[BranchHours] = None
    map_url: Optional[str] = None


class BranchOut(OrmModel):
    id: int
    slug: str
    branch_name: str
    address: str
    phone: str
    email: str
    hours: BranchHours
    map_url: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, branch) -> "BranchOut":
        return cls(
            id=branch.id,
            slug=branch.slug,
            branch_name=branch.branch_name,
            address=branch.address,
            phone=branch.phone,
            email=branch.email,
            hours=BranchHours(
                weekdays=branch.weekday_hours,
                saturday=branch.saturday_hours,
                sunday=branch.sunday_hours,
            ),
            map_url=branch.map_url,
            created_at=branch.created_at,
        )
