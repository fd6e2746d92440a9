from dataclasses import dataclass
from typing import Optional

from dealership.models.enums import AdminRole
from dealership.services.exceptions import ForbiddenError


@dataclass
class AdminPrincipal:
    """Authenticated Super-Admin or Branch-Admin"""
    id: int
    name: str
    email: str
    role: str
    branch_id: Optional[int] = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == AdminRole.SUPER_ADMIN.value

    @property
    def label(self) -> str:
        return f"{self.role}:{self.email}"


def can_access_branch(principal: AdminPrincipal, branch_id: Optional[int]) -> bool:
    """Super-Admin reaches every branch; Branch-Admin only its own."""
    if principal.is_super_admin:
        return True
    return branch_id is not None and principal.branch_id == branch_id


def ensure_branch_access(principal: AdminPrincipal, branch_id: Optional[int]) -> None:
    if not can_access_branch(principal, branch_id):
        raise ForbiddenError("Not authorized to access this branch")


def scoped_branch_filter(principal: AdminPrincipal, requested_branch_id: Optional[int]) -> Optional[int]:
    """Branch filter a list query must apply for this principal."""
    if principal.is_super_admin:
        return requested_branch_id
    if requested_branch_id is not None and requested_branch_id != principal.branch_id:
        raise ForbiddenError("Not authorized to access this branch")
    return principal.branch_id
