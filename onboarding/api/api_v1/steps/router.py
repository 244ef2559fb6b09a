# =====================================================
# FILE: onboarding/api/api_v1/steps/router.py
# Step Instance API Routes
# =====================================================

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from typing import List
import logging

from onboarding.core.auth import CallerContext
from onboarding.core.database import get_db
from onboarding.core.dependencies import get_current_caller
from onboarding.core.exceptions import EngineError, InternalError
from onboarding.api.api_v1.runs.schemas import StepInstanceResponse
from onboarding.services.step_progression import StepProgressionEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/steps", tags=["steps"])

# =====================================================
# Pydantic Schemas
# =====================================================

class ReassignStepRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class SuccessResponse(BaseModel):
    success: bool = True

# =====================================================
# API Endpoints
# =====================================================

@router.get("/assigned", response_model=List[StepInstanceResponse])
async def get_my_steps(
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_current_caller)
):
    """Pending step instances assigned to the caller"""
    return StepProgressionEngine(db).list_assigned(caller)


@router.post("/{step_instance_id}/complete", response_model=SuccessResponse)
async def complete_step(
    step_instance_id: str,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_current_caller)
):
    """Mark a step done; repeating the call is a no-op"""
    try:
        StepProgressionEngine(db).complete(caller, step_instance_id)
        return {"success": True}
    except EngineError:
        raise
    except Exception as e:
        logger.error(f"Error completing step {step_instance_id}: {str(e)}")
        raise InternalError("Failed to complete step") from e


@router.post("/{step_instance_id}/skip", response_model=SuccessResponse)
async def skip_step(
    step_instance_id: str,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_current_caller)
):
    """Mark a step skipped; repeating the call is a no-op"""
    try:
        StepProgressionEngine(db).skip(caller, step_instance_id)
        return {"success": True}
    except EngineError:
        raise
    except Exception as e:
        logger.error(f"Error skipping step {step_instance_id}: {str(e)}")
        raise InternalError("Failed to skip step") from e


@router.post("/{step_instance_id}/reassign", response_model=SuccessResponse)
async def reassign_step(
    step_instance_id: str,
    request: ReassignStepRequest,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_current_caller)
):
    """Assign a step to another user of the same organization"""
    try:
        StepProgressionEngine(db).reassign(caller, step_instance_id, request.user_id)
        return {"success": True}
    except EngineError:
        raise
    except Exception as e:
        logger.error(f"Error reassigning step {step_instance_id}: {str(e)}")
        raise InternalError("Failed to update step assignment") from e
