# =====================================================
# FILE: onboarding/models/__init__.py
# =====================================================

from onboarding.core.database import Base

from onboarding.models.organization import Organization, Profile, Employee, ProfileRole
from onboarding.models.workflow import (
    Workflow,
    WorkflowStep,
    Run,
    RunStepInstance,
    StepType,
    RunStatus,
    StepStatus,
)

__all__ = [
    "Base",

    # Directory
    "Organization",
    "Profile",
    "Employee",
    "ProfileRole",

    # Workflow engine
    "Workflow",
    "WorkflowStep",
    "Run",
    "RunStepInstance",
    "StepType",
    "RunStatus",
    "StepStatus",
]
