"""
API request schemas.
What it defines:
- Join / vote payloads
- The RPC envelope used by scripts: {"method": ..., "params": [...]}

Task and constraints bodies reuse TaskInput / Constraints from the room model.
"""


from typing import Any, List

from pydantic import Field

from sprint_room.room.models import CamelModel

class JoinRequest(CamelModel):
    name: str

class VoteRequest(CamelModel):
    task_id: str = Field(..., description="Id returned by addTask")

class RpcRequest(CamelModel):
    method: str
    params: List[Any] = Field(default_factory=list)
