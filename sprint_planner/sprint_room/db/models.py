"""
Database table definitions and it stores:
- Rooms (one JSON document per room + a revision counter)
- Generation traces
Main purpose:
Define persistent data structure.
"""



from sqlalchemy import String, Text, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from sprint_room.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Room(Base):
    __tablename__ = "rooms"
    room_id: Mapped[str] = mapped_column(String, primary_key=True)
    state: Mapped[str] = mapped_column(Text)  # RoomState JSON, camelCase keys
    revision: Mapped[int] = mapped_column(Integer, default=0)  # bumped by every commit
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)


class GenerationTrace(Base):
    __tablename__ = "generation_traces"
    id: Mapped[str] = mapped_column(String, primary_key=True)
    room_id: Mapped[str] = mapped_column(String, index=True)
    event_type: Mapped[str] = mapped_column(String)  # plan_generated|generation_failed
    payload: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
