"""
Pure room transitions.
What it does:
- Describes each mutation as a small operation value
- apply(state, op, now) -> new RoomState, never touching storage
- Runs workflow and invariant guards before building anything

And, the main purpose:
Keep every rule about how a room may change in one testable place.
"""


from dataclasses import dataclass, field
from typing import Union

from sprint_room.core.errors import NotFoundError, ValidationError
from sprint_room.room.models import (
    Constraints,
    GeneratedPlan,
    InputSnapshot,
    Member,
    PlanVersion,
    RoomState,
    Task,
)
from sprint_room.room.workflow import Operation, next_state


@dataclass(frozen=True)
class JoinRoom:
    member: Member
    operation: Operation = field(default=Operation.JOIN, init=False)


@dataclass(frozen=True)
class AddTask:
    task: Task
    operation: Operation = field(default=Operation.ADD_TASK, init=False)


@dataclass(frozen=True)
class CastVote:
    task_id: str
    operation: Operation = field(default=Operation.VOTE, init=False)


@dataclass(frozen=True)
class ReplaceConstraints:
    constraints: Constraints
    operation: Operation = field(default=Operation.UPDATE_CONSTRAINTS, init=False)


@dataclass(frozen=True)
class RecordPlan:
    plan: GeneratedPlan
    snapshot: InputSnapshot
    operation: Operation = field(default=Operation.GENERATE_PLAN, init=False)


@dataclass(frozen=True)
class FinalizeRoom:
    operation: Operation = field(default=Operation.FINALIZE, init=False)


RoomOp = Union[JoinRoom, AddTask, CastVote, ReplaceConstraints, RecordPlan, FinalizeRoom]


def snapshot_inputs(state: RoomState) -> InputSnapshot:
    """Deep copy of the tasks and constraints as they are right now."""
    return InputSnapshot(
        tasks=[t.model_copy(deep=True) for t in state.tasks_in_order()],
        constraints=state.constraints.model_copy(deep=True),
    )


def _join(state: RoomState, op: JoinRoom, now: int) -> dict:
    return {"members": {**state.members, op.member.name: op.member}}


def _add_task(state: RoomState, op: AddTask, now: int) -> dict:
    if op.task.id in state.tasks:
        raise ValidationError(f"Task id already exists: {op.task.id}")
    return {"tasks": {**state.tasks, op.task.id: op.task}}


def _vote(state: RoomState, op: CastVote, now: int) -> dict:
    task = state.tasks.get(op.task_id)
    if task is None:
        raise NotFoundError("Task not found")
    voted = task.model_copy(update={"votes": task.votes + 1})
    return {"tasks": {**state.tasks, op.task_id: voted}}


def _constraints(state: RoomState, op: ReplaceConstraints, now: int) -> dict:
    return {"constraints": op.constraints}


def _record_plan(state: RoomState, op: RecordPlan, now: int) -> dict:
    if not state.tasks:
        raise ValidationError("No tasks to plan. Add some tasks first!")
    version = PlanVersion(
        version=len(state.plan_versions) + 1,
        plan=op.plan,
        generated_at=now,
        input_snapshot=op.snapshot,
    )
    return {
        "plan_versions": [*state.plan_versions, version],
        "current_plan_version": version.version,
    }


def _finalize(state: RoomState, op: FinalizeRoom, now: int) -> dict:
    return {}


_HANDLERS = {
    JoinRoom: _join,
    AddTask: _add_task,
    CastVote: _vote,
    ReplaceConstraints: _constraints,
    RecordPlan: _record_plan,
    FinalizeRoom: _finalize,
}


def apply(state: RoomState, op: RoomOp, now: int) -> RoomState:
    """Return the room as it looks after `op`. Raises before building anything if a guard fails."""
    handler = _HANDLERS.get(type(op))
    if handler is None:
        raise TypeError(f"Unknown room operation: {type(op).__name__}")

    workflow_state = next_state(state.workflow_state, op.operation)
    update = handler(state, op, now)
    update["workflow_state"] = workflow_state
    update["updated_at"] = now
    return state.model_copy(update=update)
