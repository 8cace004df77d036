"""
Room Service: the operations a client can call on a room.

Every mutation follows the same path under the room's lock:
load -> workflow/input guards -> reducer.apply -> store.commit.
A guard that fails raises before commit, so callers never observe a
half-applied change.

generate_plan keeps the room lock across the LLM call. A second
generate_plan on the same room waits for the first to commit or fail,
so two versions can never be built from the same starting state.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional

from sprint_room.core.config import settings
from sprint_room.core.errors import GenerationError, NotFoundError, ValidationError
from sprint_room.core.ids import new_room_id, new_task_id, now_ms
from sprint_room.core.logging import get_logger, snippet
from sprint_room.llm import router
from sprint_room.llm.prompts import PLANNER_SYSTEM, build_plan_prompt
from sprint_room.llm.schemas import GenerationResponse, RawResponse
from sprint_room.room.models import Constraints, Member, PlanVersion, RoomState, Task, TaskInput
from sprint_room.room.reducer import (
    AddTask,
    CastVote,
    FinalizeRoom,
    JoinRoom,
    RecordPlan,
    ReplaceConstraints,
    RoomOp,
    apply,
    snapshot_inputs,
)
from sprint_room.room.store import RoomStore, normalize_room_id
from sprint_room.room.tracer import GenerationTracer
from sprint_room.room.validator import unknown_task_ids, validate_plan
from sprint_room.room.workflow import Operation, ensure_allowed

log = get_logger("room.service")

GenerateFn = Callable[[str, str, int, float], Awaitable[GenerationResponse]]


def _clean_tags(tags: Optional[List[str]]) -> List[str]:
    seen: list[str] = []
    for tag in tags or []:
        t = str(tag).strip()
        if t and t not in seen:
            seen.append(t)
    return seen


def _build_task(data: TaskInput, existing_ids) -> Task:
    title = (data.title or "").strip()
    created_by = (data.created_by or "").strip()
    if not title:
        raise ValidationError("Invalid task data: title required")
    if not settings.TASK_EFFORT_MIN <= data.effort <= settings.TASK_EFFORT_MAX:
        raise ValidationError(
            f"Invalid task data: effort must be {settings.TASK_EFFORT_MIN}-{settings.TASK_EFFORT_MAX}"
        )
    if not settings.TASK_IMPACT_MIN <= data.impact <= settings.TASK_IMPACT_MAX:
        raise ValidationError(
            f"Invalid task data: impact must be {settings.TASK_IMPACT_MIN}-{settings.TASK_IMPACT_MAX}"
        )
    if not created_by:
        raise ValidationError("Invalid task data: createdBy required")

    task_id = new_task_id()
    while task_id in existing_ids:
        task_id = new_task_id()

    return Task(
        id=task_id,
        title=title,
        effort=data.effort,
        impact=data.impact,
        tags=_clean_tags(data.tags),
        notes=data.notes or "",
        votes=0,
        created_at=now_ms(),
        created_by=created_by,
    )


class RoomService:
    def __init__(
        self,
        store: RoomStore,
        tracer: GenerationTracer | None = None,
        generate: GenerateFn = router.generate,
        timeout_seconds: float | None = None,
    ):
        self.store = store
        self.tracer = tracer
        self._generate = generate
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.LLM_TIMEOUT_SECONDS

    async def _mutate(self, room_id: str, make_op: Callable[[RoomState], RoomOp]) -> RoomState:
        rid = normalize_room_id(room_id)
        async with self.store.lock(rid):
            state, revision = await self.store.load(rid)
            op = make_op(state)
            new_state = apply(state, op, now_ms())
            await self.store.commit(new_state, revision)
            return new_state

    # ----------------------------
    # Reads
    # ----------------------------

    async def get_state(self, room_id: str) -> RoomState:
        return await self.store.read(normalize_room_id(room_id))

    async def status(self, room_id: str) -> dict:
        return (await self.get_state(room_id)).status()

    async def get_plan(self, room_id: str, version: int) -> PlanVersion:
        state = await self.get_state(room_id)
        if not 1 <= version <= len(state.plan_versions):
            raise NotFoundError(f"Plan version {version} not found")
        return state.plan_versions[version - 1]

    async def create_room(self) -> RoomState:
        while True:
            rid = new_room_id()
            state, revision = await self.store.load(rid)
            if revision == 0 and not state.members and not state.tasks:
                return state

    async def generation_trace(self, room_id: str) -> list[dict]:
        if self.tracer is None:
            return []
        return await self.tracer.entries(normalize_room_id(room_id))

    # ----------------------------
    # Mutations
    # ----------------------------

    async def join(self, room_id: str, name: str) -> Member:
        clean = (name or "").strip()
        if not clean:
            raise ValidationError("Name is required")

        state = await self._mutate(room_id, lambda s: JoinRoom(Member(name=clean, joined_at=now_ms())))
        log.info(f"{state.room_id}: {clean} joined")
        return state.members[clean]

    async def add_task(self, room_id: str, data: TaskInput) -> Task:
        created: list[Task] = []

        def make_op(state: RoomState) -> RoomOp:
            ensure_allowed(state.workflow_state, Operation.ADD_TASK)
            created.append(_build_task(data, state.tasks))
            return AddTask(created[0])

        state = await self._mutate(room_id, make_op)
        task = created[0]
        log.info(f"{state.room_id}: task {task.id} added by {task.created_by}")
        return task

    async def vote(self, room_id: str, task_id: str) -> None:
        await self._mutate(room_id, lambda s: CastVote(task_id))

    async def update_constraints(self, room_id: str, constraints: Constraints) -> None:
        state = await self._mutate(room_id, lambda s: ReplaceConstraints(constraints))
        log.info(
            f"{state.room_id}: constraints set to {constraints.capacity_points} points / "
            f"{constraints.sprint_length_days} days"
        )

    async def finalize(self, room_id: str) -> None:
        state = await self._mutate(room_id, lambda s: FinalizeRoom())
        log.info(f"{state.room_id}: finalized at plan version {state.current_plan_version}")

    async def generate_plan(self, room_id: str) -> PlanVersion:
        rid = normalize_room_id(room_id)
        async with self.store.lock(rid):
            state, revision = await self.store.load(rid)
            ensure_allowed(state.workflow_state, Operation.GENERATE_PLAN)
            if not state.tasks:
                raise ValidationError("No tasks to plan. Add some tasks first!")

            snapshot = snapshot_inputs(state)
            prompt = build_plan_prompt(snapshot.tasks, snapshot.constraints)

            response: GenerationResponse | None = None
            try:
                response = await asyncio.wait_for(
                    self._generate(PLANNER_SYSTEM, prompt, settings.LLM_MAX_TOKENS, settings.LLM_TEMPERATURE),
                    timeout=self.timeout_seconds,
                )
                plan = validate_plan(response)
            except asyncio.TimeoutError:
                raise await self._failure(rid, f"AI call timed out after {self.timeout_seconds:g}s", response)
            except GenerationError as e:
                raise await self._failure(rid, e.message, response)
            except Exception as e:
                raise await self._failure(rid, str(e) or type(e).__name__, response) from e

            new_state = apply(state, RecordPlan(plan=plan, snapshot=snapshot), now_ms())
            await self.store.commit(new_state, revision)

        version = new_state.current_plan()
        log.info(f"{rid}: plan version {version.version} generated ({len(plan.ordered_backlog)} in backlog)")
        await self._trace(rid, "plan_generated", {
            "version": version.version,
            "summary": plan.summary,
            "backlog": len(plan.ordered_backlog),
            "excluded": len(plan.excluded),
            "unknownTaskIds": unknown_task_ids(plan, state.tasks.keys()),
        })
        return version

    async def _failure(self, room_id: str, reason: str, response: GenerationResponse | None) -> GenerationError:
        log.warning(f"{room_id}: plan generation failed: {reason}")
        payload = {"error": reason}
        if isinstance(response, RawResponse):
            payload["raw"] = snippet(response.text)
        await self._trace(room_id, "generation_failed", payload)
        return GenerationError(f"Failed to generate plan: {reason}")

    async def _trace(self, room_id: str, event_type: str, payload: dict) -> None:
        if self.tracer is None:
            return
        try:
            await self.tracer.record(room_id, event_type, payload)
        except Exception as e:
            log.warning(f"{room_id}: could not write {event_type} trace: {e}")
