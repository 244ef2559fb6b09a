# =====================================================
# FILE: onboarding/api/api_v1/workflows/router.py
# Workflow Template API Routes
# =====================================================

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
import logging

from onboarding.core.auth import CallerContext
from onboarding.core.database import get_db
from onboarding.core.dependencies import get_current_caller
from onboarding.core.exceptions import EngineError, InternalError
from onboarding.api.api_v1.workflows.schemas import (
    DuplicateWorkflowResponse,
    ReorderStepsRequest,
    ReorderStepsResponse,
    WorkflowStepCreate,
    WorkflowStepResponse,
    WorkflowStepUpdate,
)
from onboarding.services.step_reorderer import StepReorderer
from onboarding.services.workflow_duplicator import WorkflowDuplicator
from onboarding.services.workflow_template_service import WorkflowTemplateService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflows", tags=["workflows"])


@router.post("/{workflow_id}/reorder-steps", response_model=ReorderStepsResponse)
async def reorder_steps(
    workflow_id: str,
    request: ReorderStepsRequest,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_current_caller)
):
    """Move one step to a new position, shifting the steps in between"""
    try:
        updated = StepReorderer(db).reorder(
            caller, workflow_id, request.from_ordinal, request.to_ordinal
        )
        return {"success": True, "updated": updated}
    except EngineError:
        raise
    except Exception as e:
        logger.error(f"Error reordering steps of workflow {workflow_id}: {str(e)}")
        raise InternalError("Failed to reorder steps") from e


@router.post("/{workflow_id}/duplicate", response_model=DuplicateWorkflowResponse)
async def duplicate_workflow(
    workflow_id: str,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_current_caller)
):
    """Copy a workflow and all of its steps"""
    try:
        clone, steps_count = WorkflowDuplicator(db).duplicate(caller, workflow_id)
        return {"success": True, "workflowId": clone.id, "stepsCount": steps_count}
    except EngineError:
        raise
    except Exception as e:
        logger.error(f"Error duplicating workflow {workflow_id}: {str(e)}")
        raise InternalError("Failed to duplicate workflow") from e


@router.get("/{workflow_id}/steps", response_model=List[WorkflowStepResponse])
async def list_steps(
    workflow_id: str,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_current_caller)
):
    """Get a workflow's steps in ordinal order"""
    return WorkflowTemplateService(db).list_steps(caller, workflow_id)


@router.post("/{workflow_id}/steps", response_model=WorkflowStepResponse, status_code=201)
async def add_step(
    workflow_id: str,
    step: WorkflowStepCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_current_caller)
):
    """Append a step to the end of a workflow"""
    try:
        return WorkflowTemplateService(db).add_step(
            caller,
            workflow_id,
            title=step.title,
            step_type=step.type,
            owner_role=step.owner_role,
            due_days_from_start=step.due_days_from_start,
            auto_advance=step.auto_advance,
            config=step.config,
        )
    except EngineError:
        raise
    except Exception as e:
        logger.error(f"Error adding step to workflow {workflow_id}: {str(e)}")
        raise InternalError("Failed to create workflow step") from e


@router.patch("/{workflow_id}/steps/{step_id}", response_model=WorkflowStepResponse)
async def update_step(
    workflow_id: str,
    step_id: str,
    step: WorkflowStepUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_current_caller)
):
    """Edit a step definition; its position is left unchanged"""
    try:
        return WorkflowTemplateService(db).update_step(
            caller,
            workflow_id,
            step_id,
            title=step.title,
            step_type=step.type,
            owner_role=step.owner_role,
            due_days_from_start=step.due_days_from_start,
            auto_advance=step.auto_advance,
            config=step.config,
        )
    except EngineError:
        raise
    except Exception as e:
        logger.error(f"Error updating step {step_id}: {str(e)}")
        raise InternalError("Failed to update workflow step") from e


@router.delete("/{workflow_id}/steps/{step_id}")
async def remove_step(
    workflow_id: str,
    step_id: str,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_current_caller)
):
    """Delete a step and renumber the ones after it"""
    try:
        renumbered = WorkflowTemplateService(db).remove_step(caller, workflow_id, step_id)
        return {"success": True, "renumbered": renumbered}
    except EngineError:
        raise
    except Exception as e:
        logger.error(f"Error removing step {step_id}: {str(e)}")
        raise InternalError("Failed to remove workflow step") from e
