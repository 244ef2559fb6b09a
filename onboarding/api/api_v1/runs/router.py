# =====================================================
# FILE: onboarding/api/api_v1/runs/router.py
# Run API Routes
# =====================================================

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from onboarding.core.auth import CallerContext
from onboarding.core.database import get_db
from onboarding.core.dependencies import get_current_caller
from onboarding.core.exceptions import EngineError, InternalError
from onboarding.api.api_v1.runs.schemas import (
    CancelRunResponse,
    CreateRunRequest,
    CreateRunResponse,
    RunDetailResponse,
    RunSummaryResponse,
    StepInstanceResponse,
    TogglePauseResponse,
)
from onboarding.services.run_instantiator import RunInstantiator, get_run, get_run_instances, list_runs
from onboarding.services.run_pause import RunPauseController

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/runs", tags=["runs"])


@router.post("", response_model=CreateRunResponse)
async def create_run(
    request: CreateRunRequest,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_current_caller)
):
    """Start an onboarding run of a workflow for an employee"""
    try:
        run = RunInstantiator(db).create_run(
            caller,
            workflow_id=request.workflow_id,
            employee_id=request.employee_id,
            start_date=request.start_date,
        )
        return {"run_id": run.id}
    except EngineError:
        raise
    except Exception as e:
        logger.error(f"Error creating run: {str(e)}")
        raise InternalError("Failed to create run") from e


@router.get("", response_model=List[RunSummaryResponse])
async def list_org_runs(
    assigned_to_me: bool = Query(False, description="Only runs with a step assigned to the caller"),
    status: Optional[str] = Query(None, description="Filter by run status"),
    workflow_id: Optional[str] = Query(None, description="Filter by workflow"),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_current_caller)
):
    """List the organization's runs, newest first"""
    return list_runs(db, caller, assigned_to_me=assigned_to_me, status=status, workflow_id=workflow_id)


@router.get("/{run_id}", response_model=RunDetailResponse)
async def get_run_detail(
    run_id: str,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_current_caller)
):
    """Get a run with its step instances in ordinal order"""
    run = get_run(db, caller, run_id)
    detail = RunDetailResponse.model_validate(run)
    detail.steps = [StepInstanceResponse.model_validate(i) for i in get_run_instances(db, run)]
    return detail


@router.post("/{run_id}/toggle-pause", response_model=TogglePauseResponse)
async def toggle_run_pause(
    run_id: str,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_current_caller)
):
    """Pause a running run or resume a paused one"""
    try:
        new_status = RunPauseController(db).toggle(caller, run_id)
        return {"success": True, "status": new_status}
    except EngineError:
        raise
    except Exception as e:
        logger.error(f"Error toggling run {run_id}: {str(e)}")
        raise InternalError("Failed to update run status") from e


@router.post("/{run_id}/cancel", response_model=CancelRunResponse)
async def cancel_run(
    run_id: str,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_current_caller)
):
    """Cancel a running or paused run"""
    try:
        new_status = RunPauseController(db).cancel(caller, run_id)
        return {"success": True, "run_id": run_id, "new_status": new_status}
    except EngineError:
        raise
    except Exception as e:
        logger.error(f"Error cancelling run {run_id}: {str(e)}")
        raise InternalError("Failed to cancel run") from e
