from typing import Any, Awaitable, Callable, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError as PydanticValidationError

from sprint_room.api.types import JoinRequest, RpcRequest, VoteRequest
from sprint_room.core.errors import ValidationError, describe_errors
from sprint_room.db.session import SessionLocal
from sprint_room.room.models import Constraints, TaskInput
from sprint_room.room.service import RoomService
from sprint_room.room.store import RoomStore
from sprint_room.room.tracer import GenerationTracer


"""
FastAPI routes for interacting with a room.
What it provides:
- One endpoint per room operation (join, tasks, vote, constraints, plan, finalize)
- Full-state read, status and per-version plan read
- RPC endpoint that dispatches {method, params} to the same operations
- Generation trace

And, the main purpose:
Expose the room service over HTTP.
"""

router = APIRouter()

_service: RoomService | None = None


def get_service() -> RoomService:
    global _service
    if _service is None:
        _service = RoomService(RoomStore(SessionLocal), GenerationTracer(SessionLocal))
    return _service


# ----------------------------
# Operation results (shared by REST + RPC)
# ----------------------------

async def _join(svc: RoomService, room_id: str, body: JoinRequest) -> dict:
    member = await svc.join(room_id, body.name)
    return {"success": True, "member": member.to_wire()}

async def _add_task(svc: RoomService, room_id: str, body: TaskInput) -> dict:
    task = await svc.add_task(room_id, body)
    return {"success": True, "task": task.to_wire()}

async def _vote(svc: RoomService, room_id: str, body: VoteRequest) -> dict:
    await svc.vote(room_id, body.task_id)
    return {"success": True}

async def _update_constraints(svc: RoomService, room_id: str, body: Constraints) -> dict:
    await svc.update_constraints(room_id, body)
    return {"success": True}

async def _generate_plan(svc: RoomService, room_id: str, body: None = None) -> dict:
    pv = await svc.generate_plan(room_id)
    return {"success": True, "plan": pv.plan.to_wire(), "version": pv.version}

async def _finalize(svc: RoomService, room_id: str, body: None = None) -> dict:
    await svc.finalize(room_id)
    return {"success": True}


# method -> (body model or None, handler)
RPC_METHODS: Dict[str, tuple[type[BaseModel] | None, Callable[..., Awaitable[dict]]]] = {
    "join": (JoinRequest, _join),
    "addTask": (TaskInput, _add_task),
    "vote": (VoteRequest, _vote),
    "updateConstraints": (Constraints, _update_constraints),
    "generatePlan": (None, _generate_plan),
    "finalize": (None, _finalize),
}


def _rpc_body(model: type[BaseModel], params: list[Any]) -> BaseModel:
    if not params or not isinstance(params[0], dict):
        raise ValidationError(f"{model.__name__} expects an object as params[0]")
    try:
        return model.model_validate(params[0])
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid {model.__name__}: {describe_errors(e.errors())}") from e


# ----------------------------
# Routes
# ----------------------------

@router.post("/rooms")
async def api_create_room(svc: RoomService = Depends(get_service)):
    state = await svc.create_room()
    return state.to_wire()

@router.get("/rooms/{room_id}")
async def api_get_room(room_id: str, svc: RoomService = Depends(get_service)):
    state = await svc.get_state(room_id)
    return state.to_wire()

@router.get("/rooms/{room_id}/status")
async def api_room_status(room_id: str, svc: RoomService = Depends(get_service)):
    return await svc.status(room_id)

@router.post("/rooms/{room_id}/join")
async def api_join(room_id: str, req: JoinRequest, svc: RoomService = Depends(get_service)):
    return await _join(svc, room_id, req)

@router.post("/rooms/{room_id}/tasks")
async def api_add_task(room_id: str, req: TaskInput, svc: RoomService = Depends(get_service)):
    return await _add_task(svc, room_id, req)

@router.post("/rooms/{room_id}/vote")
async def api_vote(room_id: str, req: VoteRequest, svc: RoomService = Depends(get_service)):
    return await _vote(svc, room_id, req)

@router.put("/rooms/{room_id}/constraints")
async def api_update_constraints(room_id: str, req: Constraints, svc: RoomService = Depends(get_service)):
    return await _update_constraints(svc, room_id, req)

@router.post("/rooms/{room_id}/plan")
async def api_generate_plan(room_id: str, svc: RoomService = Depends(get_service)):
    return await _generate_plan(svc, room_id)

@router.get("/rooms/{room_id}/plans/{version}")
async def api_get_plan(room_id: str, version: int, svc: RoomService = Depends(get_service)):
    pv = await svc.get_plan(room_id, version)
    return pv.to_wire()

@router.post("/rooms/{room_id}/finalize")
async def api_finalize(room_id: str, svc: RoomService = Depends(get_service)):
    return await _finalize(svc, room_id)

@router.get("/rooms/{room_id}/trace")
async def api_trace(room_id: str, svc: RoomService = Depends(get_service)):
    return await svc.generation_trace(room_id)

@router.post("/rooms/{room_id}/rpc")
async def api_rpc(room_id: str, req: RpcRequest, svc: RoomService = Depends(get_service)):
    if req.method not in RPC_METHODS:
        return JSONResponse(status_code=400, content={"error": "unknown_method", "detail": f"Unknown method: {req.method}"})

    model, handler = RPC_METHODS[req.method]
    body = _rpc_body(model, req.params) if model is not None else None
    return await handler(svc, room_id, body)
