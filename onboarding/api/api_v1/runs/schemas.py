"""
Run Schemas
File: onboarding/api/api_v1/runs/schemas.py
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime


class CreateRunRequest(BaseModel):
    workflow_id: str = Field(..., min_length=1)
    employee_id: str = Field(..., min_length=1)
    start_date: Optional[datetime] = Field(None, description="Run start; defaults to now")

    class Config:
        json_schema_extra = {
            "example": {
                "workflow_id": "5b0c2a9e-1d7f-4a53-9a53-0e4c1f3a7b21",
                "employee_id": "c3f1e2d4-8b9a-4c7d-a6e5-f4d3c2b1a098",
                "start_date": "2025-03-03T09:00:00Z"
            }
        }


class CreateRunResponse(BaseModel):
    run_id: str


class TogglePauseResponse(BaseModel):
    success: bool = True
    status: str


class CancelRunResponse(BaseModel):
    success: bool = True
    run_id: str
    new_status: str


class RunSummaryResponse(BaseModel):
    id: str
    workflow_id: str
    employee_id: str
    started_at: Optional[datetime] = None
    status: str
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StepInstanceResponse(BaseModel):
    id: str
    run_id: str
    workflow_step_id: Optional[str] = None
    ordinal: int
    assigned_to: Optional[str] = None
    status: str
    due_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    payload: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True


class RunDetailResponse(BaseModel):
    id: str
    workflow_id: str
    employee_id: str
    org_id: str
    started_at: Optional[datetime] = None
    started_by: Optional[str] = None
    status: str
    completed_at: Optional[datetime] = None
    steps: List[StepInstanceResponse] = []

    class Config:
        from_attributes = True
