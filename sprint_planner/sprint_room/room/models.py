"""
Room data model and it defines:
- Members, tasks and sprint constraints
- Generated plans and their versions
- RoomState, the aggregate root of one room

Field names go over the wire in camelCase (orderedBacklog, joinedAt, ...).
All models are frozen: a mutation builds a new RoomState.

Main purpose:
One value type per room that can be loaded, transformed and committed whole.
"""


from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, model_validator
from pydantic.alias_generators import to_camel

from sprint_room.room.workflow import WorkflowState


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Member(CamelModel):
    name: str
    joined_at: int


class Task(CamelModel):
    id: str
    title: str
    effort: int
    impact: int
    tags: List[str] = Field(default_factory=list)
    notes: str = ""
    votes: int = 0
    created_at: int
    created_by: str


class Constraints(CamelModel):
    sprint_length_days: int = Field(..., gt=0, strict=True)
    capacity_points: int = Field(..., gt=0, strict=True)
    notes: Optional[str] = ""


class TaskInput(CamelModel):
    title: str
    effort: StrictInt
    impact: StrictInt
    tags: Optional[List[str]] = None
    notes: Optional[str] = None
    created_by: str


class PlanItem(CamelModel):
    model_config = ConfigDict(extra="ignore")

    task_id: str
    title: str
    reason: str = ""


class GeneratedPlan(CamelModel):
    model_config = ConfigDict(extra="ignore")

    ordered_backlog: List[PlanItem]
    excluded: List[PlanItem]
    risks: List[str]
    assumptions: List[str]
    summary: str


class InputSnapshot(CamelModel):
    tasks: List[Task]
    constraints: Constraints


class PlanVersion(CamelModel):
    version: int = Field(..., ge=1)
    plan: GeneratedPlan
    generated_at: int
    input_snapshot: InputSnapshot


class RoomState(CamelModel):
    room_id: str
    members: Dict[str, Member] = Field(default_factory=dict)
    tasks: Dict[str, Task] = Field(default_factory=dict)
    constraints: Constraints
    workflow_state: WorkflowState = WorkflowState.DRAFT
    plan_versions: List[PlanVersion] = Field(default_factory=list)
    current_plan_version: Optional[int] = None
    created_at: int
    updated_at: int

    @model_validator(mode="after")
    def _check_versions(self) -> "RoomState":
        for idx, pv in enumerate(self.plan_versions, start=1):
            if pv.version != idx:
                raise ValueError(f"plan versions must be 1..n without gaps (found {pv.version} at {idx})")
        if self.current_plan_version is not None and not (
            1 <= self.current_plan_version <= len(self.plan_versions)
        ):
            raise ValueError(f"currentPlanVersion {self.current_plan_version} does not exist")
        return self

    def tasks_in_order(self) -> List[Task]:
        return sorted(self.tasks.values(), key=lambda t: (t.created_at, t.id))

    def current_plan(self) -> Optional[PlanVersion]:
        if self.current_plan_version is None:
            return None
        return self.plan_versions[self.current_plan_version - 1]

    def status(self) -> dict:
        return {
            "success": True,
            "message": "Room is alive!",
            "roomId": self.room_id,
            "members": list(self.members.keys()),
            "taskCount": len(self.tasks),
            "workflowState": self.workflow_state.value,
            "currentPlanVersion": self.current_plan_version,
        }
