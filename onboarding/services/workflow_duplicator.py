# =====================================================
# FILE: onboarding/services/workflow_duplicator.py
# Deep copy of a workflow template
# =====================================================

from typing import Tuple
import copy
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from onboarding.core.auth import CallerContext
from onboarding.core.exceptions import InternalError
from onboarding.models.workflow import Workflow, WorkflowStep
from onboarding.services.workflow_template_service import get_steps, get_workflow

logger = logging.getLogger(__name__)

COPY_SUFFIX = " (Copy)"


class WorkflowDuplicator:
    """Copies a template and its steps under new ids; runs are never copied"""

    def __init__(self, db: Session):
        self.db = db

    def duplicate(self, caller: CallerContext, workflow_id: str) -> Tuple[Workflow, int]:
        source = get_workflow(self.db, caller, workflow_id)
        steps = get_steps(self.db, source.id)

        try:
            clone = Workflow(
                org_id=source.org_id,
                name=f"{source.name}{COPY_SUFFIX}",
                description=source.description,
                is_active=source.is_active,
            )
            self.db.add(clone)
            self.db.flush()

            self.db.add_all([
                WorkflowStep(
                    workflow_id=clone.id,
                    ordinal=step.ordinal,
                    title=step.title,
                    type=step.type,
                    owner_role=step.owner_role,
                    due_days_from_start=step.due_days_from_start,
                    auto_advance=step.auto_advance,
                    config=copy.deepcopy(step.config),
                )
                for step in steps
            ])
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to duplicate workflow {workflow_id}: {str(e)}")
            raise InternalError("Failed to duplicate workflow") from e

        logger.info(f"Workflow {source.id} duplicated as {clone.id} with {len(steps)} steps")
        return clone, len(steps)
