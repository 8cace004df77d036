"""Tests for the LLM client in sprint_room.llm.router."""

import pytest

from sprint_room.core.config import settings
from sprint_room.llm import router
from sprint_room.llm.prompts import PLANNER_SYSTEM, build_plan_prompt
from sprint_room.llm.schemas import RawResponse, StructuredResponse
from sprint_room.room.models import Constraints, Task
from sprint_room.room.validator import validate_plan


class TestToResponse:
    def test_dict_is_structured(self):
        resp = router._to_response({"summary": "x"})
        assert isinstance(resp, StructuredResponse)

    def test_text_is_raw(self):
        resp = router._to_response("```json\n{}\n```")
        assert isinstance(resp, RawResponse)

    def test_other_types_rejected(self):
        with pytest.raises(router.LLMError):
            router._to_response(None)


class TestProviders:
    async def test_unsupported_provider(self, monkeypatch):
        monkeypatch.setattr(settings, "LLM_PROVIDER", "openai")
        with pytest.raises(router.LLMError, match="Unsupported LLM_PROVIDER"):
            await router.generate("s", "u", 10, 0.1)

    async def test_groq_requires_key(self, monkeypatch):
        monkeypatch.setattr(settings, "LLM_PROVIDER", "groq")
        monkeypatch.setattr(settings, "GROQ_API_KEY", "")
        with pytest.raises(router.LLMError, match="Missing GROQ_API_KEY"):
            await router.generate("s", "u", 10, 0.1)

    async def test_mock_plan_passes_validation(self, monkeypatch):
        monkeypatch.setattr(settings, "LLM_PROVIDER", "mock")
        tasks = [
            Task(id="task_big", title="Rewrite", effort=30, impact=5, created_at=1, created_by="a"),
            Task(id="task_small", title="Typo", effort=1, impact=3, votes=4, created_at=2, created_by="b"),
        ]
        prompt = build_plan_prompt(tasks, Constraints(sprint_length_days=14, capacity_points=10))

        resp = await router.generate(PLANNER_SYSTEM, prompt, 2048, 0.7)
        plan = validate_plan(resp)

        assert [i.task_id for i in plan.ordered_backlog] == ["task_small"]
        assert [i.task_id for i in plan.excluded] == ["task_big"]
