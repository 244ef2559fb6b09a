# =====================================================
# FILE: onboarding/services/step_progression.py
# Step instance transitions and run closure
# =====================================================

from dataclasses import dataclass
from typing import List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from onboarding.core.auth import CallerContext
from onboarding.core.exceptions import ConflictError, InternalError, NotFoundError
from onboarding.models.organization import Profile
from onboarding.models.workflow import Run, RunStatus, RunStepInstance, StepStatus
from onboarding.utils.datetime_helpers import utcnow

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    step_instance_id: str
    status: str
    # False when the call found the instance already in the target state
    changed: bool
    run_completed: bool = False


class StepProgressionEngine:
    """
    Drives step instances from pending to done or skipped.

    Transitions are compare-and-set on the current status, so a repeated
    delivery of the same request is a no-op instead of a second transition.
    """

    def __init__(self, db: Session):
        self.db = db

    def complete(self, caller: CallerContext, step_instance_id: str) -> TransitionResult:
        """
        Mark an instance done and close the run when nothing is left after it
        """
        instance = self._get_instance(caller, step_instance_id)

        try:
            now = utcnow()
            if not self._compare_and_set(instance.id, StepStatus.DONE, now):
                self.db.rollback()
                return self._already_transitioned(instance, StepStatus.DONE)

            run_completed = False
            next_pending = self.db.query(RunStepInstance.id).filter(
                RunStepInstance.run_id == instance.run_id,
                RunStepInstance.status == StepStatus.PENDING,
                RunStepInstance.ordinal > instance.ordinal
            ).order_by(RunStepInstance.ordinal.asc()).first()

            if next_pending is None:
                # Cancelled runs keep their terminal status
                closed = self.db.query(Run).filter(
                    Run.id == instance.run_id,
                    Run.status.in_(RunStatus.ACTIVE)
                ).update(
                    {Run.status: RunStatus.COMPLETED, Run.completed_at: now},
                    synchronize_session="evaluate"
                )
                run_completed = closed == 1

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to complete step instance {step_instance_id}: {str(e)}")
            raise InternalError("Failed to complete step") from e

        logger.info(f"Step instance {instance.id} completed by {caller.caller_id}")
        if run_completed:
            logger.info(f"Run {instance.run_id} completed")

        return TransitionResult(
            step_instance_id=instance.id,
            status=StepStatus.DONE,
            changed=True,
            run_completed=run_completed,
        )

    def skip(self, caller: CallerContext, step_instance_id: str) -> TransitionResult:
        """
        Mark an instance skipped.

        Skipping never closes the run, even when it was the last pending step.
        """
        instance = self._get_instance(caller, step_instance_id)

        try:
            if not self._compare_and_set(instance.id, StepStatus.SKIPPED, utcnow()):
                self.db.rollback()
                return self._already_transitioned(instance, StepStatus.SKIPPED)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to skip step instance {step_instance_id}: {str(e)}")
            raise InternalError("Failed to skip step") from e

        logger.info(f"Step instance {instance.id} skipped by {caller.caller_id}")
        return TransitionResult(step_instance_id=instance.id, status=StepStatus.SKIPPED, changed=True)

    def reassign(self, caller: CallerContext, step_instance_id: str, user_id: str) -> RunStepInstance:
        """
        Point an instance at another owner in the same org; status is untouched
        """
        instance = self._get_instance(caller, step_instance_id)

        target = self.db.query(Profile).filter(
            Profile.id == user_id,
            Profile.org_id == instance.org_id
        ).first()
        if not target:
            raise NotFoundError("Target user not found")

        run_status = self._run_status(instance.run_id)
        if run_status is None or run_status in RunStatus.TERMINAL:
            raise ConflictError(f"Cannot reassign a step of a {run_status or 'missing'} run")

        try:
            # Lands only while the owning run is still running or paused
            active_run = select(Run.id).where(
                Run.id == instance.run_id,
                Run.status.in_(RunStatus.ACTIVE)
            )
            updated = self.db.query(RunStepInstance).filter(
                RunStepInstance.id == instance.id,
                RunStepInstance.run_id.in_(active_run)
            ).update({RunStepInstance.assigned_to: target.id}, synchronize_session=False)

            if updated != 1:
                self.db.rollback()
                raise ConflictError("Run was closed before the step could be reassigned")

            self.db.commit()
            self.db.refresh(instance)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to reassign step instance {step_instance_id}: {str(e)}")
            raise InternalError("Failed to update step assignment") from e

        logger.info(f"Step instance {instance.id} reassigned to {target.id}")
        return instance

    def list_assigned(self, caller: CallerContext) -> List[RunStepInstance]:
        """Pending instances owned by the caller, soonest due first"""
        return self.db.query(RunStepInstance).filter(
            RunStepInstance.org_id == caller.org_id,
            RunStepInstance.assigned_to == caller.caller_id,
            RunStepInstance.status == StepStatus.PENDING
        ).order_by(
            RunStepInstance.due_at.is_(None),
            RunStepInstance.due_at.asc(),
            RunStepInstance.ordinal.asc()
        ).all()

    # =====================================================
    # Helpers
    # =====================================================

    def _get_instance(self, caller: CallerContext, step_instance_id: str) -> RunStepInstance:
        instance = self.db.query(RunStepInstance).filter(
            RunStepInstance.id == step_instance_id,
            RunStepInstance.org_id == caller.org_id
        ).first()
        if not instance:
            raise NotFoundError("Step instance not found")
        return instance

    def _run_status(self, run_id: str) -> Optional[str]:
        return self.db.query(Run.status).filter(Run.id == run_id).scalar()

    def _compare_and_set(self, step_instance_id: str, new_status: str, at) -> bool:
        updated = self.db.query(RunStepInstance).filter(
            RunStepInstance.id == step_instance_id,
            RunStepInstance.status == StepStatus.PENDING
        ).update(
            {RunStepInstance.status: new_status, RunStepInstance.completed_at: at},
            synchronize_session="evaluate"
        )
        return updated == 1

    def _already_transitioned(self, instance: RunStepInstance, target: str) -> TransitionResult:
        self.db.refresh(instance)
        if instance.status == target:
            logger.info(f"Step instance {instance.id} already {target}; nothing to do")
            return TransitionResult(step_instance_id=instance.id, status=target, changed=False)
        raise ConflictError(f"Step instance is already {instance.status}")
