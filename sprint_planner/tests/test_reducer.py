"""Tests for the pure room transitions in sprint_room.room.reducer."""

import pytest

from sprint_room.core.errors import NotFoundError, ValidationError, WorkflowError
from sprint_room.room.models import Constraints, GeneratedPlan, Member, Task
from sprint_room.room.reducer import (
    AddTask,
    CastVote,
    FinalizeRoom,
    JoinRoom,
    RecordPlan,
    ReplaceConstraints,
    apply,
    snapshot_inputs,
)
from sprint_room.room.store import new_room_state
from sprint_room.room.workflow import WorkflowState

from conftest import plan_dict


def make_task(task_id="task_1", created_at=1000, **kw):
    data = dict(id=task_id, title="Fix bug", effort=2, impact=4, created_at=created_at, created_by="alice")
    data.update(kw)
    return Task(**data)


def plan():
    return GeneratedPlan.model_validate(plan_dict())


@pytest.fixture
def room():
    return new_room_state("r1", now=1000)


@pytest.fixture
def room_with_task(room):
    return apply(room, AddTask(make_task()), now=2000)


class TestJoin:
    def test_rejoin_overwrites_member(self, room):
        s1 = apply(room, JoinRoom(Member(name="alice", joined_at=1)), now=10)
        s2 = apply(s1, JoinRoom(Member(name="alice", joined_at=2)), now=20)
        assert list(s2.members) == ["alice"]
        assert s2.members["alice"].joined_at == 2
        assert s2.updated_at == 20

    def test_original_state_untouched(self, room):
        apply(room, JoinRoom(Member(name="bob", joined_at=1)), now=10)
        assert room.members == {}
        assert room.updated_at == 1000


class TestTasks:
    def test_add_task_keeps_draft(self, room_with_task):
        assert room_with_task.workflow_state == WorkflowState.DRAFT
        assert room_with_task.tasks["task_1"].votes == 0

    def test_duplicate_id_rejected(self, room_with_task):
        with pytest.raises(ValidationError):
            apply(room_with_task, AddTask(make_task()), now=3000)

    def test_vote_increments_by_one(self, room_with_task):
        s = apply(room_with_task, CastVote("task_1"), now=3000)
        s = apply(s, CastVote("task_1"), now=4000)
        assert s.tasks["task_1"].votes == 2
        assert room_with_task.tasks["task_1"].votes == 0

    def test_vote_unknown_task(self, room_with_task):
        with pytest.raises(NotFoundError):
            apply(room_with_task, CastVote("nope"), now=3000)


class TestConstraints:
    def test_replaced_whole(self, room):
        new = Constraints(sprint_length_days=7, capacity_points=20)
        s = apply(room, ReplaceConstraints(new), now=10)
        assert s.constraints == new


class TestRecordPlan:
    def test_first_plan_is_version_one(self, room_with_task):
        s = apply(room_with_task, RecordPlan(plan(), snapshot_inputs(room_with_task)), now=5000)
        assert [pv.version for pv in s.plan_versions] == [1]
        assert s.current_plan_version == 1
        assert s.workflow_state == WorkflowState.GENERATED
        assert s.plan_versions[0].generated_at == 5000

    def test_versions_are_sequential(self, room_with_task):
        s = room_with_task
        for i in range(3):
            s = apply(s, RecordPlan(plan(), snapshot_inputs(s)), now=5000 + i)
        assert [pv.version for pv in s.plan_versions] == [1, 2, 3]
        assert s.current_plan_version == 3

    def test_no_tasks(self, room):
        with pytest.raises(ValidationError, match="No tasks"):
            apply(room, RecordPlan(plan(), snapshot_inputs(room)), now=5000)

    def test_snapshot_not_affected_by_later_votes(self, room_with_task):
        s = apply(room_with_task, RecordPlan(plan(), snapshot_inputs(room_with_task)), now=5000)
        s = apply(s, CastVote("task_1"), now=6000)
        s = apply(s, ReplaceConstraints(Constraints(sprint_length_days=1, capacity_points=1)), now=7000)
        snap = s.plan_versions[0].input_snapshot
        assert snap.tasks[0].votes == 0
        assert snap.constraints.capacity_points == 40


class TestFinalize:
    def test_finalize_only_changes_workflow(self, room_with_task):
        generated = apply(room_with_task, RecordPlan(plan(), snapshot_inputs(room_with_task)), now=5000)
        final = apply(generated, FinalizeRoom(), now=6000)
        assert final.workflow_state == WorkflowState.FINALIZED
        assert final.plan_versions == generated.plan_versions
        assert final.tasks == generated.tasks

    def test_finalized_rejects_add_task(self, room_with_task):
        generated = apply(room_with_task, RecordPlan(plan(), snapshot_inputs(room_with_task)), now=5000)
        final = apply(generated, FinalizeRoom(), now=6000)
        with pytest.raises(WorkflowError):
            apply(final, AddTask(make_task("task_2")), now=7000)
        # vote still goes through
        voted = apply(final, CastVote("task_1"), now=7000)
        assert voted.tasks["task_1"].votes == 1
