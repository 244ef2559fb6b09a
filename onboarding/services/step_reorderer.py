# =====================================================
# FILE: onboarding/services/step_reorderer.py
# Moving a step definition to a new ordinal
# =====================================================

from typing import Dict, Iterable, Tuple
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from onboarding.core.auth import CallerContext
from onboarding.core.exceptions import InternalError, NotFoundError, ValidationError
from onboarding.services.workflow_template_service import get_steps, get_workflow

logger = logging.getLogger(__name__)


def plan_reorder(steps: Iterable[Tuple[str, int]], from_ordinal: int, to_ordinal: int) -> Dict[str, int]:
    """
    Compute the new ordinal of every step that moves.

    Args:
        steps: (step_id, ordinal) pairs of one workflow
        from_ordinal: current ordinal of the step being moved
        to_ordinal: ordinal it should end up at

    Returns:
        step_id -> new ordinal, only for steps whose ordinal changes

    Raises:
        NotFoundError: no step sits at ``from_ordinal``
    """
    steps = list(steps)
    moving = next((step_id for step_id, ordinal in steps if ordinal == from_ordinal), None)
    if moving is None:
        raise NotFoundError(f"Step with ordinal {from_ordinal} not found")

    if from_ordinal == to_ordinal:
        return {}

    targets = {moving: to_ordinal}
    for step_id, ordinal in steps:
        if step_id == moving:
            continue
        if from_ordinal < to_ordinal and from_ordinal < ordinal <= to_ordinal:
            targets[step_id] = ordinal - 1
        elif from_ordinal > to_ordinal and to_ordinal <= ordinal < from_ordinal:
            targets[step_id] = ordinal + 1
    return targets


class StepReorderer:
    """
    Applies a reorder plan to a workflow's step definitions atomically.

    The plan is written in two phases inside one transaction: every moving
    row is first parked at the negative of its target, then set to the
    target. No intermediate state ever holds a duplicate ordinal.
    """

    def __init__(self, db: Session):
        self.db = db

    def reorder(self, caller: CallerContext, workflow_id: str, from_ordinal: int, to_ordinal: int) -> int:
        """
        Move the step at ``from_ordinal`` to ``to_ordinal``

        Returns:
            Number of steps whose ordinal changed
        """
        if from_ordinal < 1 or to_ordinal < 1:
            raise ValidationError("Ordinals are 1-based")

        workflow = get_workflow(self.db, caller, workflow_id, lock=True)
        steps = get_steps(self.db, workflow.id)

        if not steps:
            raise NotFoundError("No steps found for this workflow")
        if to_ordinal > len(steps):
            raise ValidationError(f"to_ordinal {to_ordinal} is outside 1..{len(steps)}")

        targets = plan_reorder(((s.id, s.ordinal) for s in steps), from_ordinal, to_ordinal)
        if not targets:
            return 0

        moving = [s for s in steps if s.id in targets]
        try:
            for step in moving:
                step.ordinal = -targets[step.id]
            self.db.flush()

            for step in moving:
                step.ordinal = targets[step.id]
            self.db.flush()

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to reorder steps of workflow {workflow_id}: {str(e)}")
            raise InternalError("Failed to reorder steps") from e

        logger.info(f"Reordered {len(targets)} steps of workflow {workflow.id}: {from_ordinal} -> {to_ordinal}")
        return len(targets)
