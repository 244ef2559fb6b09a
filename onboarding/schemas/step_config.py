"""
Step Config Schemas
File: onboarding/schemas/step_config.py
Description: Per-type validation of the step definition ``config`` payload.

The payload is stored as JSON on the step definition and copied verbatim to
each step instance. The step's ``type`` column selects which model below
validates it.
"""

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError
from typing import Any, Dict, List, Optional, Type

from onboarding.core.exceptions import ValidationError
from onboarding.models.workflow import StepType


# =====================================================
# ASSIGNMENT RULE
# =====================================================

class AssignmentMode:
    USER = "user"
    ROLE = "role"
    DYNAMIC = "dynamic"


class AssignmentStrategy:
    EMPLOYEE_MANAGER = "employee_manager"


class AssignmentRule(BaseModel):
    """Declarative owner rule, resolved into a profile id at run creation"""
    # Free-form on purpose: unknown modes resolve to "unassigned"
    mode: str
    user_id: Optional[str] = None
    role: Optional[str] = None
    strategy: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {"mode": "role", "role": "hr"}
        }


# =====================================================
# PER-TYPE CONFIGS
# =====================================================

class StepConfig(BaseModel):
    """Base for every step config variant"""

    def assignment_rule(self) -> Optional[AssignmentRule]:
        return None


class FormStepConfig(StepConfig):
    form_template_id: Optional[str] = None
    fields: List[Dict[str, Any]] = []


class ChecklistItem(BaseModel):
    text: str = ""
    done: bool = False


class TaskStepConfig(StepConfig):
    description: str = ""
    checklist: List[ChecklistItem] = []
    assignment: Optional[AssignmentRule] = None

    def assignment_rule(self) -> Optional[AssignmentRule]:
        return self.assignment


class EmailStepConfig(StepConfig):
    subject: str = ""
    body: str = ""
    # Recipient only; the step owner comes from ``assignment``
    to: Optional[AssignmentRule] = None
    assignment: Optional[AssignmentRule] = None

    def assignment_rule(self) -> Optional[AssignmentRule]:
        return self.assignment


class SignatureStepConfig(StepConfig):
    document_id: str = ""
    signers: List[str] = []
    assignment: Optional[AssignmentRule] = None

    def assignment_rule(self) -> Optional[AssignmentRule]:
        return self.assignment


class WaitStepConfig(StepConfig):
    # Descriptive only, nothing fires on it
    hours: int = Field(0, ge=0)


STEP_CONFIG_MODELS: Dict[str, Type[StepConfig]] = {
    StepType.FORM: FormStepConfig,
    StepType.TASK: TaskStepConfig,
    StepType.EMAIL: EmailStepConfig,
    StepType.SIGNATURE: SignatureStepConfig,
    StepType.WAIT: WaitStepConfig,
}


def parse_step_config(step_type: str, raw: Optional[Dict[str, Any]]) -> StepConfig:
    """
    Validate a raw config payload against the model for ``step_type``

    Raises:
        ValidationError: unknown step type or payload not matching its schema
    """
    model = STEP_CONFIG_MODELS.get(step_type)
    if model is None:
        raise ValidationError(f"Unknown step type '{step_type}'")

    try:
        return model.model_validate(raw or {})
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(f"Invalid {step_type} step config: {problems}") from e
