# =====================================================
# FILE: onboarding/services/run_pause.py
# Run pause/resume and cancellation
# =====================================================

from typing import Dict, List, Sequence
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from onboarding.core.auth import CallerContext
from onboarding.core.exceptions import ConflictError, InternalError
from onboarding.models.workflow import Run, RunStatus
from onboarding.services.run_instantiator import get_run

logger = logging.getLogger(__name__)


class RunPauseController:
    """
    Pause, resume and cancel runs.

    These are passive flags on the run; step instances are never touched.
    """

    # Transitions this controller performs; completion belongs to step progression
    STATUS_TRANSITIONS: Dict[str, List[str]] = {
        RunStatus.RUNNING: [RunStatus.PAUSED, RunStatus.CANCELLED],
        RunStatus.PAUSED: [RunStatus.RUNNING, RunStatus.CANCELLED],
        RunStatus.CANCELLED: [],
        RunStatus.COMPLETED: [],
    }

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def validate_status_transition(current_status: str, new_status: str) -> bool:
        """Check if status transition is valid"""
        allowed = RunPauseController.STATUS_TRANSITIONS.get(current_status, [])
        return new_status in allowed

    def toggle(self, caller: CallerContext, run_id: str) -> str:
        """Flip running <-> paused and return the new status"""
        run = get_run(self.db, caller, run_id)

        new_status = RunStatus.PAUSED if run.status == RunStatus.RUNNING else RunStatus.RUNNING
        if not self.validate_status_transition(run.status, new_status):
            raise ConflictError(f"Cannot toggle a {run.status} run")

        self._transition(run, [run.status], new_status)

        logger.info(f"Run {run.id} {'paused' if new_status == RunStatus.PAUSED else 'resumed'} by {caller.caller_id}")
        return new_status

    def cancel(self, caller: CallerContext, run_id: str) -> str:
        run = get_run(self.db, caller, run_id)

        if not self.validate_status_transition(run.status, RunStatus.CANCELLED):
            raise ConflictError(f"Cannot cancel a {run.status} run")

        self._transition(run, RunStatus.ACTIVE, RunStatus.CANCELLED)

        logger.info(f"Run {run.id} cancelled by {caller.caller_id}")
        return RunStatus.CANCELLED

    def _transition(self, run: Run, expected: Sequence[str], new_status: str) -> None:
        """Compare-and-set the run status; losing a race is a conflict"""
        try:
            updated = self.db.query(Run).filter(
                Run.id == run.id,
                Run.status.in_(list(expected))
            ).update({Run.status: new_status}, synchronize_session="evaluate")

            if updated != 1:
                self.db.rollback()
                self.db.refresh(run)
                raise ConflictError(f"Run status changed concurrently; now {run.status}")

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update run {run.id} status: {str(e)}")
            raise InternalError("Failed to update run status") from e
