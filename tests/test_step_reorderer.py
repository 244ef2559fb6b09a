import random

import pytest
from sqlalchemy.exc import SQLAlchemyError

from onboarding.core.exceptions import InternalError, NotFoundError, ValidationError
from onboarding.services.step_reorderer import StepReorderer, plan_reorder
from tests.factories import ORG_B, make_workflow, step_ordinals, titled_steps


@pytest.fixture
def reorderer(seeded):
    return StepReorderer(seeded)


@pytest.fixture
def workflow(seeded):
    return make_workflow(seeded, steps=titled_steps(["A", "B", "C", "D"]))


class TestPlanReorder:

    STEPS = [("a", 1), ("b", 2), ("c", 3), ("d", 4)]

    def test_move_down_shifts_in_between_up(self):
        assert plan_reorder(self.STEPS, 1, 3) == {"a": 3, "b": 1, "c": 2}

    def test_move_up_shifts_in_between_down(self):
        assert plan_reorder(self.STEPS, 4, 2) == {"d": 2, "b": 3, "c": 4}

    def test_same_ordinal_is_empty_plan(self):
        assert plan_reorder(self.STEPS, 2, 2) == {}

    def test_missing_from_ordinal(self):
        with pytest.raises(NotFoundError):
            plan_reorder(self.STEPS, 9, 1)


class TestStepReorderer:

    def test_move_first_to_third(self, seeded, reorderer, caller, workflow):
        updated = reorderer.reorder(caller, workflow.id, 1, 3)

        assert updated == 3
        assert step_ordinals(seeded, workflow.id) == {"B": 1, "C": 2, "A": 3, "D": 4}

    def test_move_last_to_first(self, seeded, reorderer, caller, workflow):
        reorderer.reorder(caller, workflow.id, 4, 1)

        assert step_ordinals(seeded, workflow.id) == {"D": 1, "A": 2, "B": 3, "C": 4}

    def test_same_position_changes_nothing(self, seeded, reorderer, caller, workflow):
        assert reorderer.reorder(caller, workflow.id, 2, 2) == 0
        assert step_ordinals(seeded, workflow.id) == {"A": 1, "B": 2, "C": 3, "D": 4}

    def test_random_moves_keep_ordinals_dense(self, seeded, reorderer, caller):
        titles = [f"Step {n}" for n in range(1, 8)]
        workflow = make_workflow(seeded, steps=titled_steps(titles))
        rng = random.Random(1234)
        expected = list(titles)

        for _ in range(25):
            from_ordinal = rng.randint(1, len(titles))
            to_ordinal = rng.randint(1, len(titles))
            reorderer.reorder(caller, workflow.id, from_ordinal, to_ordinal)
            expected.insert(to_ordinal - 1, expected.pop(from_ordinal - 1))

            seeded.expire_all()
            ordinals = step_ordinals(seeded, workflow.id)
            assert sorted(ordinals.values()) == list(range(1, len(titles) + 1))
            assert ordinals == {title: i for i, title in enumerate(expected, start=1)}

    def test_target_past_the_end_is_rejected(self, seeded, reorderer, caller, workflow):
        with pytest.raises(ValidationError):
            reorderer.reorder(caller, workflow.id, 1, 5)
        assert step_ordinals(seeded, workflow.id) == {"A": 1, "B": 2, "C": 3, "D": 4}

    def test_zero_ordinal_is_rejected(self, reorderer, caller, workflow):
        with pytest.raises(ValidationError):
            reorderer.reorder(caller, workflow.id, 0, 1)

    def test_missing_source_step(self, seeded, reorderer, caller):
        workflow = make_workflow(seeded, steps=titled_steps(["A", "B"]))

        with pytest.raises(NotFoundError):
            reorderer.reorder(caller, workflow.id, 3, 1)

    def test_workflow_without_steps(self, seeded, reorderer, caller):
        workflow = make_workflow(seeded, steps=[])

        with pytest.raises(NotFoundError):
            reorderer.reorder(caller, workflow.id, 1, 1)

    def test_other_org_workflow_is_not_found(self, seeded, reorderer, caller):
        workflow = make_workflow(seeded, org_id=ORG_B, steps=titled_steps(["A", "B"]))

        with pytest.raises(NotFoundError):
            reorderer.reorder(caller, workflow.id, 1, 2)
        assert step_ordinals(seeded, workflow.id) == {"A": 1, "B": 2}


class TestStepReordererAtomicity:

    def test_failure_between_phases_restores_ordinals(self, seeded, reorderer, caller, workflow, monkeypatch):
        real_flush = seeded.flush
        flushes = []

        def failing_flush(*args, **kwargs):
            flushes.append(1)
            if len(flushes) == 2:
                raise SQLAlchemyError("connection lost")
            return real_flush(*args, **kwargs)

        monkeypatch.setattr(seeded, "flush", failing_flush)

        with pytest.raises(InternalError):
            reorderer.reorder(caller, workflow.id, 1, 3)

        monkeypatch.undo()
        assert step_ordinals(seeded, workflow.id) == {"A": 1, "B": 2, "C": 3, "D": 4}
