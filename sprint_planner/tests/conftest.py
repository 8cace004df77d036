"""Shared fixtures: a throwaway SQLite database per test and a scripted LLM."""

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from sprint_room.db.session import init_db
from sprint_room.llm.schemas import RawResponse, StructuredResponse
from sprint_room.room.models import TaskInput
from sprint_room.room.service import RoomService
from sprint_room.room.store import RoomStore
from sprint_room.room.tracer import GenerationTracer


def plan_dict(task_ids=("task_1",), summary="Ship the bug fix first."):
    return {
        "orderedBacklog": [
            {"taskId": tid, "title": f"Title {tid}", "reason": "High impact, low effort"}
            for tid in task_ids
        ],
        "excluded": [],
        "risks": ["Scope creep"],
        "assumptions": ["Team at full capacity"],
        "summary": summary,
    }


class FakeGenerator:
    """Replays scripted responses: dict -> structured, str -> raw text, Exception -> raised."""

    def __init__(self, *responses):
        self.responses = list(responses) or [plan_dict()]
        self.calls = []

    async def __call__(self, system, user, max_tokens, temperature):
        self.calls.append({"system": system, "user": user, "max_tokens": max_tokens, "temperature": temperature})
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, dict):
            return StructuredResponse(value=item)
        return RawResponse(text=item)


def task_input(**overrides) -> TaskInput:
    data = {"title": "Fix bug", "effort": 2, "impact": 4, "createdBy": "alice"}
    data.update(overrides)
    return TaskInput.model_validate(data)


@pytest.fixture
async def sessionmaker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'rooms.db'}")
    await init_db(engine)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def store(sessionmaker):
    return RoomStore(sessionmaker)


@pytest.fixture
def tracer(sessionmaker):
    return GenerationTracer(sessionmaker)


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def service(store, tracer, generator):
    return RoomService(store, tracer, generate=generator, timeout_seconds=5)
