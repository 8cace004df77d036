"""
Stores what happened on every plan generation attempt.
What it records:
- Successful versions (summary, backlog size, unknown task ids)
- Failures (error message, snippet of the raw model output)

And, the main purpose:
Observability of the LLM without touching room state.
"""


import json
from sprint_room.core.ids import new_id
from sprint_room.db.models import GenerationTrace
from sprint_room.db.repo import add_trace, get_trace
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

async def trace(db: AsyncSession, room_id: str, event_type: str, payload: dict):
    tr = GenerationTrace(
        id=new_id("tr"),
        room_id=room_id,
        event_type=event_type,
        payload=payload,
    )
    await add_trace(db, tr)


class GenerationTracer:
    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]):
        self._sessionmaker = sessionmaker

    async def record(self, room_id: str, event_type: str, payload: dict) -> None:
        async with self._sessionmaker() as db:
            await trace(db, room_id, event_type, payload)

    async def entries(self, room_id: str) -> list[dict]:
        async with self._sessionmaker() as db:
            rows = await get_trace(db, room_id)
        return [
            {
                "id": tr.id,
                "type": tr.event_type,
                "payload": json.loads(tr.payload),
                "at": tr.created_at.isoformat(),
            }
            for tr in rows
        ]
