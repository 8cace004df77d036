# sprint_room/db/repo.py

import json
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sprint_room.db.models import GenerationTrace, Room, _utcnow


def _serialize_sqlite_value(value: Any) -> Any:
    """
    SQLite cannot bind dict/list directly into TEXT parameters.
    Convert dict/list to JSON string so commit never fails.
    """
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return value


async def get_room(db: AsyncSession, room_id: str) -> Room | None:
    res = await db.execute(select(Room).where(Room.room_id == room_id))
    return res.scalar_one_or_none()


async def create_room(db: AsyncSession, room: Room) -> Room:
    room.state = _serialize_sqlite_value(room.state)
    db.add(room)
    await db.commit()
    await db.refresh(room)
    return room


async def swap_room_state(db: AsyncSession, room_id: str, expected_revision: int, state: Any) -> bool:
    """Write `state` only if nobody committed since `expected_revision`. Returns False on a lost race."""
    res = await db.execute(
        update(Room)
        .where(Room.room_id == room_id, Room.revision == expected_revision)
        .values(
            state=_serialize_sqlite_value(state),
            revision=expected_revision + 1,
            updated_at=_utcnow(),
        )
    )
    await db.commit()
    return res.rowcount == 1


async def add_trace(db: AsyncSession, tr: GenerationTrace) -> GenerationTrace:
    tr.payload = _serialize_sqlite_value(tr.payload)
    db.add(tr)
    await db.commit()
    await db.refresh(tr)
    return tr


async def get_trace(db: AsyncSession, room_id: str) -> list[GenerationTrace]:
    res = await db.execute(
        select(GenerationTrace)
        .where(GenerationTrace.room_id == room_id)
        .order_by(GenerationTrace.created_at)
    )
    return list(res.scalars().all())
