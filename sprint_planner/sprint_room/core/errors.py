"""
Error taxonomy for room operations.
What it defines:
- ValidationError: bad caller input
- WorkflowError: operation illegal in the room's current state
- NotFoundError: referenced entity absent
- GenerationError: LLM call or plan validation failed (safe to retry)
- ConcurrencyError: another writer committed first

And, the main purpose:
Every failure reaches the caller with a kind, an HTTP status and a readable message.
"""


class RoomError(Exception):
    kind = "room_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.message}


class ValidationError(RoomError):
    kind = "validation_error"
    status_code = 422


class WorkflowError(RoomError):
    kind = "workflow_error"
    status_code = 409


class NotFoundError(RoomError):
    kind = "not_found"
    status_code = 404


class GenerationError(RoomError):
    kind = "generation_error"
    status_code = 502


class ConcurrencyError(RoomError):
    kind = "concurrency_error"
    status_code = 409


def describe_errors(errors) -> str:
    """One line per pydantic error list: `field.path: message; ...` (the leading `body` is dropped)."""
    parts = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ())]
        if len(loc) > 1 and loc[0] == "body":
            loc = loc[1:]
        parts.append(f"{'.'.join(loc)}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)
