"""Tests for sprint_room.room.store."""

import gc
import json

import pytest

from sprint_room.core.errors import ConcurrencyError, ValidationError
from sprint_room.db.repo import get_room
from sprint_room.room.models import Member
from sprint_room.room.reducer import JoinRoom, apply
from sprint_room.room.store import normalize_room_id
from sprint_room.room.workflow import WorkflowState


class TestNormalizeRoomId:
    def test_trims(self):
        assert normalize_room_id("  room-1 ") == "room-1"

    def test_empty(self):
        with pytest.raises(ValidationError):
            normalize_room_id("   ")


class TestLoad:
    async def test_creates_draft_room_on_first_access(self, store):
        state, revision = await store.load("room-1")
        assert revision == 0
        assert state.room_id == "room-1"
        assert state.workflow_state == WorkflowState.DRAFT
        assert state.constraints.sprint_length_days == 14
        assert state.constraints.capacity_points == 40
        assert state.plan_versions == []
        assert state.current_plan_version is None

    async def test_second_load_returns_same_room(self, store):
        first, _ = await store.load("room-1")
        second, _ = await store.load("room-1")
        assert first == second


class TestCommit:
    async def test_commit_bumps_revision(self, store):
        state, revision = await store.load("room-1")
        joined = apply(state, JoinRoom(Member(name="alice", joined_at=1)), now=state.updated_at + 1)
        assert await store.commit(joined, revision) == 1

        reloaded, new_revision = await store.load("room-1")
        assert new_revision == 1
        assert reloaded.members["alice"].name == "alice"
        assert reloaded.updated_at == joined.updated_at

    async def test_stale_revision_rejected(self, store):
        state, revision = await store.load("room-1")
        a = apply(state, JoinRoom(Member(name="alice", joined_at=1)), now=2)
        b = apply(state, JoinRoom(Member(name="bob", joined_at=1)), now=3)
        await store.commit(a, revision)
        with pytest.raises(ConcurrencyError):
            await store.commit(b, revision)

        reloaded = await store.read("room-1")
        assert list(reloaded.members) == ["alice"]


class TestLocks:
    async def test_one_lock_per_room(self, store):
        assert store.lock("a") is store.lock("a")
        assert store.lock("a") is not store.lock("b")

    async def test_idle_locks_are_dropped(self, store):
        async with store.lock("busy"):
            assert "busy" in store._locks
        gc.collect()
        assert "busy" not in store._locks

    async def test_held_lock_is_shared(self, store):
        held = store.lock("busy")
        async with held:
            assert store.lock("busy") is held


class TestSerialization:
    async def test_state_row_is_json_text(self, store, sessionmaker):
        await store.load("room-1")
        async with sessionmaker() as db:
            row = await get_room(db, "room-1")
        assert isinstance(row.state, str)
        assert json.loads(row.state)["workflowState"] == "DRAFT"

    async def test_trace_payload_dict_is_serialized(self, tracer):
        await tracer.record("room-1", "plan_generated", {"version": 1, "unknownTaskIds": []})
        entries = await tracer.entries("room-1")
        assert entries[0]["payload"] == {"version": 1, "unknownTaskIds": []}
