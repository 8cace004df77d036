"""
Turns whatever the LLM returned into a GeneratedPlan, or refuses.

Acceptance runs in a fixed order:
1. structured responses skip text cleanup
2. raw text loses its code fences and is parsed as JSON
3. the top-level fields are checked one by one
4. backlog / excluded entries are checked as PlanItems

Nothing here touches room state; any failure is a GenerationError.
"""

from typing import Any, List

from pydantic import ValidationError as PydanticValidationError

from sprint_room.core.errors import GenerationError
from sprint_room.llm.json_parse import extract_json
from sprint_room.llm.schemas import GenerationResponse, StructuredResponse
from sprint_room.room.models import GeneratedPlan, PlanItem

PLAN_ITEM_FIELDS = ("orderedBacklog", "excluded")
STRING_LIST_FIELDS = ("risks", "assumptions")


def parse_response(response: GenerationResponse) -> dict:
    if isinstance(response, StructuredResponse):
        return response.value

    try:
        parsed = extract_json(response.text)
    except ValueError as e:
        raise GenerationError(f"AI returned invalid JSON: {e}")
    if not isinstance(parsed, dict):
        raise GenerationError(f"AI returned invalid JSON: expected an object, got {type(parsed).__name__}")
    return parsed


def _check_items(name: str, value: Any) -> List[PlanItem]:
    if not isinstance(value, list):
        raise GenerationError(f"Invalid plan format: missing {name}")
    items = []
    for i, entry in enumerate(value):
        if not isinstance(entry, dict):
            raise GenerationError(f"Invalid plan format: {name}[{i}] must be an object")
        try:
            items.append(PlanItem.model_validate(entry))
        except PydanticValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise GenerationError(f"Invalid plan format: {name}[{i}] has bad fields ({fields})")
    return items


def _check_strings(name: str, value: Any) -> List[str]:
    if not isinstance(value, list):
        raise GenerationError(f"Invalid plan format: missing {name}")
    if not all(isinstance(x, str) for x in value):
        raise GenerationError(f"Invalid plan format: {name} must be a list of strings")
    return list(value)


def validate_fields(parsed: dict) -> GeneratedPlan:
    ordered_backlog = _check_items("orderedBacklog", parsed.get("orderedBacklog"))
    excluded = _check_items("excluded", parsed.get("excluded"))
    risks = _check_strings("risks", parsed.get("risks"))
    assumptions = _check_strings("assumptions", parsed.get("assumptions"))

    summary = parsed.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        raise GenerationError("Invalid plan format: missing summary")

    return GeneratedPlan(
        ordered_backlog=ordered_backlog,
        excluded=excluded,
        risks=risks,
        assumptions=assumptions,
        summary=summary,
    )


def validate_plan(response: GenerationResponse) -> GeneratedPlan:
    return validate_fields(parse_response(response))


def unknown_task_ids(plan: GeneratedPlan, task_ids) -> List[str]:
    """Task ids the plan mentions that the room does not have. Reported, never enforced."""
    known = set(task_ids)
    seen = [item.task_id for item in (*plan.ordered_backlog, *plan.excluded)]
    return sorted({tid for tid in seen if tid not in known})
