"""
Workflow Template Schemas
File: onboarding/api/api_v1/workflows/schemas.py
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, Optional

from onboarding.models.workflow import StepType


class ReorderStepsRequest(BaseModel):
    from_ordinal: int = Field(..., ge=1, description="Current 1-based position")
    to_ordinal: int = Field(..., ge=1, description="Target 1-based position")

    class Config:
        json_schema_extra = {
            "example": {"from_ordinal": 1, "to_ordinal": 3}
        }


class ReorderStepsResponse(BaseModel):
    success: bool = True
    updated: int


class DuplicateWorkflowResponse(BaseModel):
    success: bool = True
    workflowId: str
    stepsCount: int


class WorkflowStepCreate(BaseModel):
    """Schema for appending a step definition"""
    title: str = Field(..., min_length=1, max_length=255)
    type: str
    owner_role: str
    due_days_from_start: int = Field(0, ge=0)
    auto_advance: bool = False
    config: Optional[Dict[str, Any]] = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        if v not in StepType.ALL:
            raise ValueError(f"type must be one of {', '.join(StepType.ALL)}")
        return v

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Send welcome email",
                "type": "email",
                "owner_role": "hr",
                "due_days_from_start": 0,
                "auto_advance": False,
                "config": {
                    "subject": "Welcome aboard",
                    "body": "Hi {{employee.full_name}}",
                    "to": {"mode": "dynamic", "strategy": "employee_manager"}
                }
            }
        }


class WorkflowStepUpdate(BaseModel):
    """Schema for editing a step definition; omitted fields are left unchanged"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[str] = None
    owner_role: Optional[str] = None
    due_days_from_start: Optional[int] = Field(None, ge=0)
    auto_advance: Optional[bool] = None
    config: Optional[Dict[str, Any]] = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        if v is not None and v not in StepType.ALL:
            raise ValueError(f"type must be one of {', '.join(StepType.ALL)}")
        return v

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if v is None:
            return v
        if not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()


class WorkflowStepResponse(BaseModel):
    id: str
    workflow_id: str
    ordinal: int
    title: str
    type: str
    owner_role: str
    due_days_from_start: Optional[int] = None
    auto_advance: Optional[bool] = None
    config: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True
