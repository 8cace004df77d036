"""
Room State Store.
What it does:
- Loads a room's state, creating a DRAFT room on first access
- Commits a whole new RoomState with a revision compare-and-swap
- Hands out one asyncio.Lock per room so operations on a room run one at a time

And, the main purpose:
Single source of truth for each room, with serialized writes.
"""


import asyncio
import weakref
from typing import Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sprint_room.core.config import settings
from sprint_room.core.errors import ConcurrencyError, ValidationError
from sprint_room.core.ids import now_ms
from sprint_room.core.logging import get_logger
from sprint_room.db.models import Room
from sprint_room.db.repo import create_room, get_room, swap_room_state
from sprint_room.room.models import Constraints, RoomState

log = get_logger("room.store")


def normalize_room_id(room_id: str) -> str:
    rid = (room_id or "").strip()
    if not rid:
        raise ValidationError("Room id is required")
    return rid


def new_room_state(room_id: str, now: int) -> RoomState:
    return RoomState(
        room_id=room_id,
        constraints=Constraints(
            sprint_length_days=settings.DEFAULT_SPRINT_LENGTH_DAYS,
            capacity_points=settings.DEFAULT_CAPACITY_POINTS,
            notes="",
        ),
        created_at=now,
        updated_at=now,
    )


def _dump(state: RoomState) -> dict:
    return state.to_wire()


class RoomStore:
    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]):
        self._sessionmaker = sessionmaker
        # a room's lock lives only while some operation holds or waits on it
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def lock(self, room_id: str) -> asyncio.Lock:
        """The room's mutation slot. Hold it from load() through commit()."""
        lock = self._locks.get(room_id)
        if lock is None:
            lock = self._locks[room_id] = asyncio.Lock()
        return lock

    async def load(self, room_id: str) -> Tuple[RoomState, int]:
        """Current state and revision; a room that does not exist yet is created as DRAFT."""
        async with self._sessionmaker() as db:
            row = await get_room(db, room_id)
            if row is not None:
                return RoomState.model_validate_json(row.state), row.revision

            state = new_room_state(room_id, now_ms())
            try:
                row = await create_room(db, Room(room_id=room_id, state=_dump(state), revision=0))
                log.info(f"Created room {room_id}")
                return state, row.revision
            except IntegrityError:
                # another process created it between our read and insert
                await db.rollback()
                row = await get_room(db, room_id)
                return RoomState.model_validate_json(row.state), row.revision

    async def read(self, room_id: str) -> RoomState:
        state, _ = await self.load(room_id)
        return state

    async def commit(self, state: RoomState, expected_revision: int) -> int:
        async with self._sessionmaker() as db:
            ok = await swap_room_state(db, state.room_id, expected_revision, _dump(state))
        if not ok:
            raise ConcurrencyError(
                f"Room {state.room_id} was modified concurrently (expected revision {expected_revision})"
            )
        return expected_revision + 1
