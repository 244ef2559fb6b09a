# =====================================================
# FILE: onboarding/models/organization.py
# Organizations, Profiles and Employees
# =====================================================

from sqlalchemy import Column, String, Boolean, DateTime, Date, ForeignKey
import uuid

from onboarding.core.database import Base
from onboarding.utils.datetime_helpers import utcnow


def new_id() -> str:
    return str(uuid.uuid4())


class ProfileRole:
    ADMIN = "admin"
    HR = "hr"
    MANAGER = "manager"
    IT = "it"
    EMPLOYEE = "employee"

    ALL = (ADMIN, HR, MANAGER, IT, EMPLOYEE)


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    def __repr__(self):
        return f"<Organization(id={self.id}, name={self.name})>"


class Profile(Base):
    """
    A signed-in member of an organization; steps are assigned to profiles
    """
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id", ondelete="CASCADE"), index=True)
    email = Column(String(255))
    full_name = Column(String(255))
    role = Column(String(50), nullable=False, default=ProfileRole.EMPLOYEE)
    active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)


class Employee(Base):
    """
    The subject of an onboarding run
    """
    __tablename__ = "employees"

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    department = Column(String(100))
    job_title = Column(String(100))
    manager_profile_id = Column(String(36), ForeignKey("profiles.id"))
    status = Column(String(50), default="onboarding")
    start_date = Column(Date)
    created_at = Column(DateTime, default=utcnow)
