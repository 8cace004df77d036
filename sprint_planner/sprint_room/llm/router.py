"""
LLM call wrapper and it does:
- Sends the system + user prompt to the model provider
- Retries transient provider failures with backoff
- Hands back either a parsed object or the raw text (never guesses which)

Main purpose:
The one external generation function the room service depends on.
"""


import asyncio
import json
from typing import Any

import httpx

from sprint_room.core.config import settings
from sprint_room.core.logging import get_logger, snippet
from sprint_room.llm.schemas import GenerationResponse, RawResponse, StructuredResponse

log = get_logger("llm.router")


class LLMError(RuntimeError):
    pass


def _to_response(content: Any) -> GenerationResponse:
    if isinstance(content, dict):
        return StructuredResponse(value=content)
    if isinstance(content, str):
        return RawResponse(text=content)
    raise LLMError(f"Could not extract plan from AI response (got {type(content).__name__})")


async def _groq_chat(system: str, user: str, max_tokens: int, temperature: float) -> Any:
    if not settings.GROQ_API_KEY:
        raise LLMError("Missing GROQ_API_KEY. Put it in your .env")

    url = f"{settings.GROQ_BASE_URL.rstrip('/')}/chat/completions"
    headers = {"Authorization": f"Bearer {settings.GROQ_API_KEY}"}
    payload = {
        "model": settings.LLM_MODEL,
        "messages": [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ],
        "max_tokens": max_tokens,
        "temperature": temperature,
    }

    timeout = httpx.Timeout(40.0, connect=10.0)

    last_err: Exception | None = None
    for attempt in range(3):
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                r = await client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            last_err = e
            backoff = 0.6 * (2**attempt)
            log.warning(f"Groq call failed: {e}. retrying in {backoff:.1f}s (attempt {attempt+1}/3)")
            await asyncio.sleep(backoff)
            continue

        # Retry transient errors
        if r.status_code in (429, 500, 502, 503, 504):
            msg = f"Groq transient {r.status_code}: {r.text}"
            last_err = LLMError(msg)
            backoff = 0.6 * (2**attempt)
            log.warning(f"{msg}. retrying in {backoff:.1f}s (attempt {attempt+1}/3)")
            await asyncio.sleep(backoff)
            continue

        if r.status_code >= 400:
            raise LLMError(f"Groq error {r.status_code}: {r.text}")

        data = r.json()
        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise LLMError(f"Unexpected Groq response: {snippet(json.dumps(data))}")

    raise LLMError(f"Groq call failed after retries: {last_err}")


def _mock_plan(user: str) -> str:
    """Offline stand-in: orders the prompt's tasks by votes and impact/effort, fills capacity."""
    try:
        tasks_block = user.split("TASKS:\n", 1)[1].split("\n\nCONSTRAINTS:\n", 1)
        tasks = json.loads(tasks_block[0])
        constraints = json.loads(tasks_block[1].split("\n\n", 1)[0])
    except (IndexError, ValueError) as e:
        raise LLMError(f"Mock provider could not read the prompt: {e}")

    ranked = sorted(tasks, key=lambda t: (-t["votes"], -t["impact"] / t["effort"], t["id"]))
    capacity = constraints["capacityPoints"]
    used = 0
    backlog, excluded = [], []
    for t in ranked:
        ratio = t["impact"] / t["effort"]
        if used + t["effort"] <= capacity:
            used += t["effort"]
            backlog.append({"taskId": t["id"], "title": t["title"],
                            "reason": f"{t['votes']} votes, impact/effort {ratio:.2f}"})
        else:
            excluded.append({"taskId": t["id"], "title": t["title"],
                             "reason": f"Does not fit the remaining capacity ({capacity - used} points)"})

    plan = {
        "orderedBacklog": backlog,
        "excluded": excluded,
        "risks": [],
        "assumptions": ["Effort is expressed in story points"],
        "summary": f"{len(backlog)} tasks planned using {used} of {capacity} points.",
    }
    return "```json\n" + json.dumps(plan, indent=2) + "\n```"


async def generate(system: str, user: str, max_tokens: int, temperature: float) -> GenerationResponse:
    """
    Calls the configured provider once (with transport retries).
    Output is NOT validated here; that is the plan validator's job.
    """
    provider = (settings.LLM_PROVIDER or "").lower().strip()

    if provider == "mock":
        return RawResponse(text=_mock_plan(user))

    if provider != "groq":
        raise LLMError(f"Unsupported LLM_PROVIDER={settings.LLM_PROVIDER}. Use groq or mock.")

    log.info(f"Calling {settings.LLM_MODEL} (max_tokens={max_tokens}, temperature={temperature})")
    content = await _groq_chat(system, user, max_tokens, temperature)
    return _to_response(content)
