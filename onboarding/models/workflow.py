# =====================================================
# FILE: onboarding/models/workflow.py
# Workflow templates, step definitions, runs and step instances
# =====================================================

from sqlalchemy import Column, String, Boolean, DateTime, Integer, ForeignKey, Text, JSON, UniqueConstraint

from onboarding.core.database import Base
from onboarding.models.organization import new_id
from onboarding.utils.datetime_helpers import utcnow


class StepType:
    FORM = "form"
    TASK = "task"
    EMAIL = "email"
    SIGNATURE = "signature"
    WAIT = "wait"

    ALL = (FORM, TASK, EMAIL, SIGNATURE, WAIT)


class RunStatus:
    RUNNING = "running"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    ACTIVE = (RUNNING, PAUSED)
    TERMINAL = (CANCELLED, COMPLETED)
    ALL = ACTIVE + TERMINAL


class StepStatus:
    PENDING = "pending"
    DONE = "done"
    SKIPPED = "skipped"


class Workflow(Base):
    __tablename__ = "workflows"

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)


class WorkflowStep(Base):
    __tablename__ = "workflow_steps"
    __table_args__ = (
        UniqueConstraint("workflow_id", "ordinal", name="uq_workflow_steps_ordinal"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    workflow_id = Column(String(36), ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False, index=True)
    ordinal = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False)
    owner_role = Column(String(50), nullable=False)
    due_days_from_start = Column(Integer, default=0)
    auto_advance = Column(Boolean, default=False)
    config = Column(JSON)


class Run(Base):
    __tablename__ = "runs"

    id = Column(String(36), primary_key=True, default=new_id)
    workflow_id = Column(String(36), ForeignKey("workflows.id"), nullable=False, index=True)
    employee_id = Column(String(36), ForeignKey("employees.id"), nullable=False, index=True)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    started_at = Column(DateTime, default=utcnow)
    started_by = Column(String(36), ForeignKey("profiles.id"))
    status = Column(String(50), nullable=False, default=RunStatus.RUNNING)
    completed_at = Column(DateTime)


class RunStepInstance(Base):
    __tablename__ = "run_step_instances"

    id = Column(String(36), primary_key=True, default=new_id)
    run_id = Column(String(36), ForeignKey("runs.id"), nullable=False, index=True)
    workflow_step_id = Column(String(36), ForeignKey("workflow_steps.id", ondelete="SET NULL"))
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    # Frozen copy of the definition's ordinal at instantiation
    ordinal = Column(Integer, nullable=False)
    assigned_to = Column(String(36), ForeignKey("profiles.id"), index=True)
    status = Column(String(50), nullable=False, default=StepStatus.PENDING)
    due_at = Column(DateTime)
    completed_at = Column(DateTime)
    payload = Column(JSON)
    created_at = Column(DateTime, default=utcnow)
