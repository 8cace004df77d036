import json
from typing import Iterable

from sprint_room.room.models import Constraints, Task


PLANNER_SYSTEM = "You are a sprint planning assistant. You MUST respond with valid JSON only, no other text."


# Keys and nesting must match GeneratedPlan; the validator accepts exactly this.
PLAN_SHAPE = """{
  "orderedBacklog": [
    {
      "taskId": "task_xxx",
      "title": "Task title",
      "reason": "Brief explanation why this task is prioritized here"
    }
  ],
  "excluded": [
    {
      "taskId": "task_yyy",
      "title": "Task title",
      "reason": "Brief explanation why this task is excluded"
    }
  ],
  "risks": ["Risk 1", "Risk 2"],
  "assumptions": ["Assumption 1", "Assumption 2"],
  "summary": "Brief summary of the sprint plan strategy"
}"""


def _dump(value) -> str:
    return json.dumps(value, ensure_ascii=False, indent=2)


def build_plan_prompt(tasks: Iterable[Task], constraints: Constraints) -> str:
    ordered = sorted(tasks, key=lambda t: (t.created_at, t.id))
    tasks_json = _dump([t.to_wire() for t in ordered])
    constraints_json = _dump(constraints.to_wire())

    return f"""You are a sprint planning expert. Given these tasks and constraints, create an optimal sprint plan.

TASKS:
{tasks_json}

CONSTRAINTS:
{constraints_json}

Create a sprint plan that:
1. Prioritizes tasks by value (impact / effort ratio, votes, and business value)
2. Fits within the capacity ({constraints.capacity_points} story points)
3. Considers the sprint length ({constraints.sprint_length_days} days)
4. Balances quick wins with high-impact work

Every task must appear exactly once, either in "orderedBacklog" or in "excluded", using its exact "id" as "taskId".

Respond with ONLY valid JSON in this EXACT format (no markdown, no extra text):
{PLAN_SHAPE}"""
