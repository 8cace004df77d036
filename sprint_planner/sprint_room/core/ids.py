import secrets
import string
import time
import uuid

_ROOM_ALPHABET = string.ascii_lowercase + string.digits


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


def new_task_id() -> str:
    # millisecond clock + random suffix, same shape the clients already know
    return f"task_{now_ms()}_{secrets.token_hex(5)[:9]}"


def new_room_id() -> str:
    return "room-" + "".join(secrets.choice(_ROOM_ALPHABET) for _ in range(9))


def now_ms() -> int:
    return int(time.time() * 1000)

"""
ID and clock utilities & it provides:
- Task IDs (timestamp + randomness)
- Room IDs for quick-start rooms
- Trace IDs
- Epoch-millisecond timestamps used across the room model

The main purpose:
Consistent identifier creation across system.
"""
