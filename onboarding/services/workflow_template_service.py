# =====================================================
# FILE: onboarding/services/workflow_template_service.py
# Workflow template and step definition store
# =====================================================

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from onboarding.core.auth import CallerContext
from onboarding.core.exceptions import InternalError, NotFoundError, ValidationError
from onboarding.models.organization import ProfileRole
from onboarding.models.workflow import Workflow, WorkflowStep
from onboarding.schemas.step_config import parse_step_config

logger = logging.getLogger(__name__)


def get_workflow(db: Session, caller: CallerContext, workflow_id: str, lock: bool = False) -> Workflow:
    """
    Load a workflow visible to the caller

    ``lock`` takes a row lock so concurrent step edits on the same template
    serialize behind each other.
    """
    query = db.query(Workflow).filter(
        Workflow.id == workflow_id,
        Workflow.org_id == caller.org_id
    )
    if lock:
        query = query.with_for_update()

    workflow = query.first()
    if not workflow:
        raise NotFoundError("Workflow not found")
    return workflow


def get_steps(db: Session, workflow_id: str) -> List[WorkflowStep]:
    return db.query(WorkflowStep).filter(
        WorkflowStep.workflow_id == workflow_id
    ).order_by(WorkflowStep.ordinal.asc()).all()


class WorkflowTemplateService:
    """
    Step definition editing that keeps ordinals dense (1..N)
    """

    def __init__(self, db: Session):
        self.db = db

    def list_steps(self, caller: CallerContext, workflow_id: str) -> List[WorkflowStep]:
        workflow = get_workflow(self.db, caller, workflow_id)
        return get_steps(self.db, workflow.id)

    def add_step(
        self,
        caller: CallerContext,
        workflow_id: str,
        title: str,
        step_type: str,
        owner_role: str,
        due_days_from_start: int = 0,
        auto_advance: bool = False,
        config: Optional[Dict[str, Any]] = None
    ) -> WorkflowStep:
        """Append a step at the end of the template"""
        if owner_role not in ProfileRole.ALL:
            raise ValidationError(f"Unknown owner role '{owner_role}'")
        if due_days_from_start < 0:
            raise ValidationError("due_days_from_start must be >= 0")
        parse_step_config(step_type, config)

        workflow = get_workflow(self.db, caller, workflow_id, lock=True)

        try:
            max_ordinal = self.db.query(func.max(WorkflowStep.ordinal)).filter(
                WorkflowStep.workflow_id == workflow.id
            ).scalar() or 0

            step = WorkflowStep(
                workflow_id=workflow.id,
                ordinal=max_ordinal + 1,
                title=title,
                type=step_type,
                owner_role=owner_role,
                due_days_from_start=due_days_from_start,
                auto_advance=auto_advance,
                config=config or {},
            )
            self.db.add(step)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to add step to workflow {workflow_id}: {str(e)}")
            raise InternalError("Failed to create workflow step") from e

        logger.info(f"Step {step.id} added to workflow {workflow.id} at ordinal {step.ordinal}")
        return step

    def update_step(
        self,
        caller: CallerContext,
        workflow_id: str,
        step_id: str,
        title: Optional[str] = None,
        step_type: Optional[str] = None,
        owner_role: Optional[str] = None,
        due_days_from_start: Optional[int] = None,
        auto_advance: Optional[bool] = None,
        config: Optional[Dict[str, Any]] = None
    ) -> WorkflowStep:
        """
        Edit a step definition in place; fields left as None keep their value

        The ordinal never changes here, reordering has its own operation.
        Existing runs keep the payload they were created with.
        """
        if owner_role is not None and owner_role not in ProfileRole.ALL:
            raise ValidationError(f"Unknown owner role '{owner_role}'")
        if due_days_from_start is not None and due_days_from_start < 0:
            raise ValidationError("due_days_from_start must be >= 0")

        workflow = get_workflow(self.db, caller, workflow_id, lock=True)
        step = self._get_step(workflow.id, step_id)

        # The resulting type/config pair must still match
        parse_step_config(
            step_type if step_type is not None else step.type,
            config if config is not None else step.config
        )

        changes = {
            "title": title,
            "type": step_type,
            "owner_role": owner_role,
            "due_days_from_start": due_days_from_start,
            "auto_advance": auto_advance,
            "config": config,
        }

        try:
            for field, value in changes.items():
                if value is not None:
                    setattr(step, field, value)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update step {step_id}: {str(e)}")
            raise InternalError("Failed to update workflow step") from e

        logger.info(f"Step {step_id} of workflow {workflow.id} updated")
        return step

    def remove_step(self, caller: CallerContext, workflow_id: str, step_id: str) -> int:
        """
        Delete a step definition and close the ordinal gap it leaves

        Returns:
            Number of remaining steps renumbered
        """
        workflow = get_workflow(self.db, caller, workflow_id, lock=True)
        step = self._get_step(workflow.id, step_id)

        try:
            removed_ordinal = step.ordinal
            self.db.delete(step)
            self.db.flush()

            # Ascending order keeps every intermediate state collision-free
            later = self.db.query(WorkflowStep).filter(
                WorkflowStep.workflow_id == workflow.id,
                WorkflowStep.ordinal > removed_ordinal
            ).order_by(WorkflowStep.ordinal.asc()).all()
            for later_step in later:
                later_step.ordinal -= 1
                self.db.flush()

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to remove step {step_id}: {str(e)}")
            raise InternalError("Failed to remove workflow step") from e

        logger.info(f"Step {step_id} removed from workflow {workflow.id}; {len(later)} steps renumbered")
        return len(later)

    def _get_step(self, workflow_id: str, step_id: str) -> WorkflowStep:
        step = self.db.query(WorkflowStep).filter(
            WorkflowStep.id == step_id,
            WorkflowStep.workflow_id == workflow_id
        ).first()
        if not step:
            raise NotFoundError("Step not found")
        return step
