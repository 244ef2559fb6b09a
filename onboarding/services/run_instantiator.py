# =====================================================
# FILE: onboarding/services/run_instantiator.py
# Run creation from a workflow template
# =====================================================

from datetime import datetime, timedelta
from typing import Dict, List, Optional, Set
import copy
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from onboarding.core.auth import CallerContext
from onboarding.core.exceptions import InternalError, NotFoundError, ValidationError
from onboarding.models.organization import Employee, Profile
from onboarding.models.workflow import (
    Run,
    RunStatus,
    RunStepInstance,
    StepStatus,
    Workflow,
    WorkflowStep,
)
from onboarding.schemas.step_config import parse_step_config
from onboarding.services.assignment_resolver import AssignmentResolver, EmployeeContext
from onboarding.utils.datetime_helpers import to_naive_utc, utcnow

logger = logging.getLogger(__name__)


class RunInstantiator:
    """
    Materializes a run and its step instances from a template snapshot.

    The run and every instance are written in one transaction: either the
    full, template-matching set exists afterwards or nothing does.
    """

    def __init__(self, db: Session):
        self.db = db
        self.resolver = AssignmentResolver(db)

    def create_run(
        self,
        caller: CallerContext,
        workflow_id: str,
        employee_id: str,
        start_date: Optional[datetime] = None
    ) -> Run:
        workflow = self.db.query(Workflow).filter(
            Workflow.id == workflow_id,
            Workflow.org_id == caller.org_id,
            Workflow.is_active.is_(True)
        ).first()
        if not workflow:
            raise NotFoundError("Workflow not found")

        employee = self.db.query(Employee).filter(
            Employee.id == employee_id,
            Employee.org_id == caller.org_id
        ).first()
        if not employee:
            raise NotFoundError("Employee not found")

        steps = self.db.query(WorkflowStep).filter(
            WorkflowStep.workflow_id == workflow.id
        ).order_by(WorkflowStep.ordinal.asc()).all()

        started_at = to_naive_utc(start_date) if start_date else utcnow()
        employee_context = EmployeeContext.from_employee(employee)

        # Resolve owners before touching the session; a bad config fails closed
        owners: Dict[str, Optional[str]] = {}
        for step in steps:
            config = parse_step_config(step.type, step.config)
            owners[step.id] = self.resolver.resolve(
                config.assignment_rule(), employee_context, caller.org_id
            )
        owners = self._drop_foreign_owners(owners, caller.org_id)

        try:
            run = Run(
                workflow_id=workflow.id,
                employee_id=employee.id,
                org_id=caller.org_id,
                started_by=caller.caller_id,
                status=RunStatus.RUNNING,
                started_at=started_at,
            )
            self.db.add(run)
            self.db.flush()

            instances = self._build_instances(run, steps, owners, started_at)
            self.db.add_all(instances)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create run for workflow {workflow_id}: {str(e)}")
            raise InternalError("Failed to create run") from e

        logger.info(
            f"Run {run.id} created for employee {employee.id} "
            f"from workflow {workflow.id} with {len(instances)} step instances"
        )
        return run

    def _build_instances(
        self,
        run: Run,
        steps: List[WorkflowStep],
        owners: Dict[str, Optional[str]],
        started_at: datetime
    ) -> List[RunStepInstance]:
        instances = []
        for step in steps:
            due_days = step.due_days_from_start or 0
            instances.append(RunStepInstance(
                run_id=run.id,
                workflow_step_id=step.id,
                org_id=run.org_id,
                ordinal=step.ordinal,
                assigned_to=owners.get(step.id),
                status=StepStatus.PENDING,
                due_at=started_at + timedelta(days=due_days),
                payload=copy.deepcopy(step.config or {}),
            ))
        return instances

    def _drop_foreign_owners(
        self,
        owners: Dict[str, Optional[str]],
        org_id: str
    ) -> Dict[str, Optional[str]]:
        """Unassign owners that are not profiles of ``org_id``"""
        candidates: Set[str] = {owner for owner in owners.values() if owner}
        if not candidates:
            return owners

        known = {
            row.id for row in self.db.query(Profile.id).filter(
                Profile.id.in_(candidates),
                Profile.org_id == org_id
            ).all()
        }

        checked = {}
        for step_id, owner in owners.items():
            if owner and owner not in known:
                logger.warning(f"Resolved owner {owner} is not a profile of org {org_id}; leaving step unassigned")
                owner = None
            checked[step_id] = owner
        return checked


def get_run(db: Session, caller: CallerContext, run_id: str) -> Run:
    """Load a run visible to the caller"""
    run = db.query(Run).filter(
        Run.id == run_id,
        Run.org_id == caller.org_id
    ).first()
    if not run:
        raise NotFoundError("Run not found")
    return run


def get_run_instances(db: Session, run: Run) -> List[RunStepInstance]:
    return db.query(RunStepInstance).filter(
        RunStepInstance.run_id == run.id
    ).order_by(RunStepInstance.ordinal.asc()).all()


def list_runs(
    db: Session,
    caller: CallerContext,
    assigned_to_me: bool = False,
    status: Optional[str] = None,
    workflow_id: Optional[str] = None
) -> List[Run]:
    """
    Runs of the caller's org, newest first

    Args:
        assigned_to_me: keep only runs with at least one step assigned to the caller
        status: keep only runs in this status
        workflow_id: keep only runs of this workflow
    """
    if status and status not in RunStatus.ALL:
        raise ValidationError(f"Unknown run status '{status}'")

    query = db.query(Run).filter(Run.org_id == caller.org_id)

    if assigned_to_me:
        assigned_runs = select(RunStepInstance.run_id).where(
            RunStepInstance.org_id == caller.org_id,
            RunStepInstance.assigned_to == caller.caller_id
        )
        query = query.filter(Run.id.in_(assigned_runs))
    if status:
        query = query.filter(Run.status == status)
    if workflow_id:
        query = query.filter(Run.workflow_id == workflow_id)

    return query.order_by(Run.started_at.desc(), Run.id.asc()).all()
