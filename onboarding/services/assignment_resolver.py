# =====================================================
# FILE: onboarding/services/assignment_resolver.py
# Step owner resolution
# =====================================================

from dataclasses import dataclass
from typing import Optional
import logging

from sqlalchemy.orm import Session

from onboarding.models.organization import Employee, Profile
from onboarding.schemas.step_config import AssignmentMode, AssignmentRule, AssignmentStrategy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmployeeContext:
    """The employee facts an assignment rule may depend on"""
    employee_id: str
    org_id: str
    manager_profile_id: Optional[str] = None

    @classmethod
    def from_employee(cls, employee: Employee) -> "EmployeeContext":
        return cls(
            employee_id=employee.id,
            org_id=employee.org_id,
            manager_profile_id=employee.manager_profile_id,
        )


class AssignmentResolver:
    """
    Turns an assignment rule into an owner profile id.

    Role lookups pick the active profile with the lowest id, so repeated
    calls over unchanged data always return the same owner.
    """

    def __init__(self, db: Session):
        self.db = db

    def resolve(
        self,
        rule: Optional[AssignmentRule],
        employee: EmployeeContext,
        org_id: str
    ) -> Optional[str]:
        """Return the owner profile id for ``rule``, or None when unresolvable"""
        if rule is None:
            return None

        if rule.mode == AssignmentMode.USER:
            return rule.user_id or None

        if rule.mode == AssignmentMode.ROLE:
            return self._first_profile_with_role(rule.role, org_id)

        if rule.mode == AssignmentMode.DYNAMIC:
            if rule.strategy == AssignmentStrategy.EMPLOYEE_MANAGER:
                return employee.manager_profile_id
            logger.debug(f"Unknown dynamic assignment strategy '{rule.strategy}'")
            return None

        logger.debug(f"Unknown assignment mode '{rule.mode}'")
        return None

    def _first_profile_with_role(self, role: Optional[str], org_id: str) -> Optional[str]:
        if not role:
            return None

        profile = self.db.query(Profile.id).filter(
            Profile.org_id == org_id,
            Profile.role == role,
            Profile.active.is_(True)
        ).order_by(Profile.id.asc()).first()

        return profile.id if profile else None
