"""Room workflow: DRAFT -> GENERATED -> FINALIZED, on the transitions library.

Each room operation is a trigger. Edits (add_task, update_constraints)
are internal transitions, so they are legal only in the states listed
but never move the room. join and vote are internal transitions from
every state, including FINALIZED.

The service asks `ensure_allowed()` before computing a new state and
`next_state()` for where the room ends up after the operation commits.
"""

from enum import Enum

from transitions import Machine, MachineError

from sprint_room.core.errors import WorkflowError


class WorkflowState(str, Enum):
    DRAFT = "DRAFT"
    GENERATED = "GENERATED"
    FINALIZED = "FINALIZED"


class Operation(str, Enum):
    JOIN = "join"
    ADD_TASK = "addTask"
    VOTE = "vote"
    UPDATE_CONSTRAINTS = "updateConstraints"
    GENERATE_PLAN = "generatePlan"
    FINALIZE = "finalize"


STATES = [s.value for s in WorkflowState]

_EDITABLE = [WorkflowState.DRAFT.value, WorkflowState.GENERATED.value]

# dest None = internal transition, the room keeps its state
TRANSITIONS = [
    {"trigger": "join", "source": "*", "dest": None},
    {"trigger": "vote", "source": "*", "dest": None},
    {"trigger": "add_task", "source": _EDITABLE, "dest": None},
    {"trigger": "update_constraints", "source": _EDITABLE, "dest": None},
    {"trigger": "generate_plan", "source": _EDITABLE, "dest": WorkflowState.GENERATED.value},
    {"trigger": "finalize", "source": WorkflowState.GENERATED.value, "dest": WorkflowState.FINALIZED.value},
]

TRIGGERS: dict[Operation, str] = {
    Operation.JOIN: "join",
    Operation.VOTE: "vote",
    Operation.ADD_TASK: "add_task",
    Operation.UPDATE_CONSTRAINTS: "update_constraints",
    Operation.GENERATE_PLAN: "generate_plan",
    Operation.FINALIZE: "finalize",
}

_REJECTIONS: dict[tuple[WorkflowState, Operation], str] = {
    (WorkflowState.DRAFT, Operation.FINALIZE): "Must generate a plan before finalizing",
    (WorkflowState.FINALIZED, Operation.FINALIZE): "Room is already finalized",
    (WorkflowState.FINALIZED, Operation.ADD_TASK): "Room is finalized, cannot add tasks",
    (WorkflowState.FINALIZED, Operation.UPDATE_CONSTRAINTS): "Room is finalized, cannot update constraints",
    (WorkflowState.FINALIZED, Operation.GENERATE_PLAN): "Room is finalized, cannot generate new plans",
}


def _rejection(state: WorkflowState, op: Operation) -> str:
    return _REJECTIONS.get((state, op), f"Cannot {op.value} while room is {state.value}")


class RoomWorkflow:
    """State machine for one room, started from the room's stored workflow state."""

    def __init__(self, state: WorkflowState):
        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=WorkflowState(state).value,
            auto_transitions=False,
        )

    @property
    def current(self) -> WorkflowState:
        return WorkflowState(self.state)

    def can(self, op: Operation) -> bool:
        return TRIGGERS[op] in self.machine.get_triggers(self.state)

    def run(self, op: Operation) -> WorkflowState:
        """Fire the trigger for `op`; WorkflowError if the current state does not accept it."""
        before = self.current
        try:
            self.trigger(TRIGGERS[op])
        except MachineError as e:
            raise WorkflowError(_rejection(before, op)) from e
        return self.current


def is_allowed(state: WorkflowState, op: Operation) -> bool:
    return RoomWorkflow(state).can(op)


def ensure_allowed(state: WorkflowState, op: Operation) -> None:
    """Raise WorkflowError if `op` may not run while the room is in `state`."""
    if not is_allowed(state, op):
        raise WorkflowError(_rejection(WorkflowState(state), op))


def next_state(state: WorkflowState, op: Operation) -> WorkflowState:
    """State after `op` succeeds."""
    return RoomWorkflow(state).run(op)
