# Overview: Service-layer operations for access scope; resolves what an actor may see and change.

"""
Access Scope

WHY: Role checks used to be re-derived in every handler by comparing role
strings. Instead, each request resolves one AccessScope right after
authentication and every service consumes it:

- admin    -> kind "all"
- manager  -> kind "department" (own department only)
- employee -> kind "self"
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..errors import Forbidden
from ..models import Employee, ROLE_ADMIN, ROLE_MANAGER


SCOPE_SELF = "self"
SCOPE_DEPARTMENT = "department"
SCOPE_ALL = "all"


@dataclass(frozen=True)
class AccessScope:
    actor_id: int
    role: str
    department: Optional[str]
    kind: str

    @property
    def is_manager(self) -> bool:
        return self.kind in (SCOPE_DEPARTMENT, SCOPE_ALL)

    def can_access(self, employee: Employee) -> bool:
        if self.kind == SCOPE_ALL:
            return True
        if employee.id == self.actor_id:
            return True
        if self.kind == SCOPE_DEPARTMENT:
            return self.department is not None and employee.department == self.department
        return False

    def require_access(self, employee: Employee) -> None:
        if not self.can_access(employee):
            raise Forbidden(
                "Access denied for this employee",
                employee_id=employee.id,
                scope=self.kind,
            )

    def require_manager(self) -> None:
        if not self.is_manager:
            raise Forbidden("Manager or admin role required", scope=self.kind)

    def require_admin(self) -> None:
        if self.kind != SCOPE_ALL:
            raise Forbidden("Admin role required", scope=self.kind)

    def filter_employees(self, query):
        """Restrict an Employee query to what this scope can see."""
        if self.kind == SCOPE_ALL:
            return query
        if self.kind == SCOPE_DEPARTMENT:
            return query.filter(
                (Employee.department == self.department) | (Employee.id == self.actor_id)
            )
        return query.filter(Employee.id == self.actor_id)


def resolve_scope(employee: Employee) -> AccessScope:
    if employee.role == ROLE_ADMIN:
        kind = SCOPE_ALL
    elif employee.role == ROLE_MANAGER:
        kind = SCOPE_DEPARTMENT
    else:
        kind = SCOPE_SELF
    return AccessScope(
        actor_id=employee.id,
        role=employee.role,
        department=employee.department,
        kind=kind,
    )
