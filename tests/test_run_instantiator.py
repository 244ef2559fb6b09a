from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import SQLAlchemyError

from onboarding.core.auth import CallerContext
from onboarding.core.exceptions import InternalError, NotFoundError, ValidationError
from onboarding.models import Profile, ProfileRole, Run, RunStatus, RunStepInstance, StepStatus
from onboarding.services.run_instantiator import RunInstantiator, get_run, get_run_instances, list_runs
from onboarding.services.run_pause import RunPauseController
from onboarding.services.step_reorderer import StepReorderer
from tests.factories import (
    ADMIN_A,
    DEFAULT_STEPS,
    EMPLOYEE_A,
    EMPLOYEE_B,
    EMPLOYEE_NO_MANAGER,
    HR_LOW,
    MANAGER_A,
    ORG_A,
    ORG_B,
    make_workflow,
)


@pytest.fixture
def instantiator(seeded):
    return RunInstantiator(seeded)


class TestCreateRun:

    def test_three_step_workflow_creates_one_run_and_three_instances(self, seeded, instantiator, caller):
        workflow = make_workflow(seeded)

        run = instantiator.create_run(caller, workflow.id, EMPLOYEE_A)

        assert seeded.query(Run).count() == 1
        instances = get_run_instances(seeded, run)
        assert [i.ordinal for i in instances] == [1, 2, 3]
        assert all(i.status == StepStatus.PENDING for i in instances)
        assert all(i.org_id == caller.org_id for i in instances)
        assert run.status == RunStatus.RUNNING
        assert run.started_by == ADMIN_A
        assert run.completed_at is None

    def test_payload_is_snapshot_of_config(self, seeded, instantiator, caller):
        workflow = make_workflow(seeded)

        run = instantiator.create_run(caller, workflow.id, EMPLOYEE_A)

        payloads = [i.payload for i in get_run_instances(seeded, run)]
        assert payloads == [step["config"] for step in DEFAULT_STEPS[:3]]

    def test_assignees_resolved_per_step(self, seeded, instantiator, caller):
        workflow = make_workflow(seeded, steps=DEFAULT_STEPS)

        run = instantiator.create_run(caller, workflow.id, EMPLOYEE_A)

        owners = [i.assigned_to for i in get_run_instances(seeded, run)]
        # form: no rule, task: role hr, email: manager via assignment, signature: fixed user, wait: no rule
        assert owners == [None, HR_LOW, MANAGER_A, ADMIN_A, None]

    def test_employee_without_manager_leaves_manager_step_unassigned(self, seeded, instantiator, caller):
        workflow = make_workflow(seeded)

        run = instantiator.create_run(caller, workflow.id, EMPLOYEE_NO_MANAGER)

        assert get_run_instances(seeded, run)[2].assigned_to is None

    def test_email_recipient_rule_does_not_pick_owner(self, seeded, instantiator, caller):
        seeded.add(Profile(id="p-emp-x", org_id=ORG_A, role=ProfileRole.EMPLOYEE, active=True))
        seeded.commit()
        steps = [{
            "title": "Welcome mail", "type": "email", "owner_role": "hr", "due_days_from_start": 0,
            "config": {"subject": "Hi", "body": "Welcome", "to": {"mode": "role", "role": "employee"}},
        }]
        workflow = make_workflow(seeded, steps=steps)

        run = instantiator.create_run(caller, workflow.id, EMPLOYEE_A)

        assert get_run_instances(seeded, run)[0].assigned_to is None

    def test_owner_outside_org_is_dropped(self, seeded, instantiator, caller):
        steps = [{
            "title": "Foreign owner", "type": "task", "owner_role": "hr", "due_days_from_start": 0,
            "config": {"assignment": {"mode": "user", "user_id": "p-admin-b"}},
        }]
        workflow = make_workflow(seeded, steps=steps)

        run = instantiator.create_run(caller, workflow.id, EMPLOYEE_A)

        assert get_run_instances(seeded, run)[0].assigned_to is None

    def test_start_date_and_due_dates(self, seeded, instantiator, caller):
        workflow = make_workflow(seeded)
        start = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)

        run = instantiator.create_run(caller, workflow.id, EMPLOYEE_A, start_date=start)

        assert run.started_at == datetime(2025, 3, 3, 9, 0)
        due = [i.due_at for i in get_run_instances(seeded, run)]
        assert due == [run.started_at + timedelta(days=d) for d in (0, 2, 5)]

    def test_started_at_defaults_to_now(self, seeded, instantiator, caller):
        workflow = make_workflow(seeded)
        before = datetime.now(timezone.utc).replace(tzinfo=None)

        run = instantiator.create_run(caller, workflow.id, EMPLOYEE_A)

        assert run.started_at >= before - timedelta(seconds=1)

    def test_empty_workflow_creates_run_without_instances(self, seeded, instantiator, caller):
        workflow = make_workflow(seeded, steps=[])

        run = instantiator.create_run(caller, workflow.id, EMPLOYEE_A)

        assert get_run_instances(seeded, run) == []
        assert run.status == RunStatus.RUNNING


class TestCreateRunPreconditions:

    def test_unknown_workflow(self, instantiator, caller):
        with pytest.raises(NotFoundError):
            instantiator.create_run(caller, "missing", EMPLOYEE_A)

    def test_inactive_workflow(self, seeded, instantiator, caller):
        workflow = make_workflow(seeded, is_active=False)

        with pytest.raises(NotFoundError):
            instantiator.create_run(caller, workflow.id, EMPLOYEE_A)

    def test_workflow_from_other_org(self, seeded, instantiator, caller):
        workflow = make_workflow(seeded, org_id=ORG_B)

        with pytest.raises(NotFoundError):
            instantiator.create_run(caller, workflow.id, EMPLOYEE_A)

    def test_employee_from_other_org(self, seeded, instantiator, caller):
        workflow = make_workflow(seeded)

        with pytest.raises(NotFoundError):
            instantiator.create_run(caller, workflow.id, EMPLOYEE_B)
        assert seeded.query(Run).count() == 0

    def test_invalid_step_config_creates_nothing(self, seeded, instantiator, caller):
        steps = [{"title": "Broken wait", "type": "wait", "owner_role": "hr",
                  "due_days_from_start": 0, "config": {"hours": -4}}]
        workflow = make_workflow(seeded, steps=steps)

        with pytest.raises(ValidationError):
            instantiator.create_run(caller, workflow.id, EMPLOYEE_A)
        assert seeded.query(Run).count() == 0
        assert seeded.query(RunStepInstance).count() == 0


class TestCreateRunAtomicity:

    def test_failure_while_inserting_instances_rolls_back_run(self, seeded, instantiator, caller, monkeypatch):
        workflow = make_workflow(seeded)

        def explode(*args, **kwargs):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(instantiator, "_build_instances", explode)

        with pytest.raises(InternalError):
            instantiator.create_run(caller, workflow.id, EMPLOYEE_A)

        assert seeded.query(Run).count() == 0
        assert seeded.query(RunStepInstance).count() == 0


class TestFrozenOrdinals:

    def test_template_reorder_does_not_touch_existing_runs(self, seeded, instantiator, caller):
        workflow = make_workflow(seeded)
        run = instantiator.create_run(caller, workflow.id, EMPLOYEE_A)
        before = {i.workflow_step_id: i.ordinal for i in get_run_instances(seeded, run)}

        StepReorderer(seeded).reorder(caller, workflow.id, 1, 3)

        after = {i.workflow_step_id: i.ordinal for i in get_run_instances(seeded, run)}
        assert after == before


class TestGetRun:

    def test_cross_org_run_is_not_found(self, seeded, instantiator, caller, other_caller):
        workflow = make_workflow(seeded)
        run = instantiator.create_run(caller, workflow.id, EMPLOYEE_A)

        assert get_run(seeded, caller, run.id).id == run.id
        with pytest.raises(NotFoundError):
            get_run(seeded, other_caller, run.id)


class TestListRuns:

    @pytest.fixture
    def runs(self, seeded, instantiator, caller):
        workflow = make_workflow(seeded)
        older = instantiator.create_run(caller, workflow.id, EMPLOYEE_A, start_date=datetime(2025, 1, 6))
        newer = instantiator.create_run(caller, workflow.id, EMPLOYEE_NO_MANAGER, start_date=datetime(2025, 2, 3))
        return older, newer

    def test_newest_first(self, seeded, caller, runs):
        older, newer = runs

        assert [r.id for r in list_runs(seeded, caller)] == [newer.id, older.id]

    def test_assigned_to_me(self, seeded, runs):
        older, _ = runs
        manager = CallerContext(caller_id=MANAGER_A, org_id=ORG_A, role=ProfileRole.MANAGER)

        # Only the employee with a manager has a step owned by that manager
        assert [r.id for r in list_runs(seeded, manager, assigned_to_me=True)] == [older.id]

    def test_status_filter(self, seeded, caller, runs):
        older, newer = runs
        RunPauseController(seeded).cancel(caller, older.id)

        assert [r.id for r in list_runs(seeded, caller, status=RunStatus.CANCELLED)] == [older.id]
        assert [r.id for r in list_runs(seeded, caller, status=RunStatus.RUNNING)] == [newer.id]

    def test_unknown_status_is_rejected(self, seeded, caller, runs):
        with pytest.raises(ValidationError):
            list_runs(seeded, caller, status="archived")

    def test_other_org_sees_nothing(self, seeded, other_caller, runs):
        assert list_runs(seeded, other_caller) == []
