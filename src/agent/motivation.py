from __future__ import annotations

import json
import random
from datetime import UTC, datetime

import structlog
from pydantic import BaseModel, ValidationError

from src.agent.model_client import ModelClient
from src.infra.errors import LLMError

logger = structlog.get_logger()


class Motivation(BaseModel):
    code: str
    text: str


MOTIVATIONS: tuple[Motivation, ...] = (
    Motivation(code="RISE-5", text="Every expert was once a beginner. Keep pushing forward."),
    Motivation(code="FOCUS-3", text="Small progress is still progress. One step at a time."),
    Motivation(code="START-1", text="The best time to start was yesterday. The next best time is now."),
    Motivation(code="BOLD-7", text="Your only limit is the one you set for yourself."),
    Motivation(code="LEARN-2", text="Mistakes are proof that you're trying. Learn and adapt."),
    Motivation(code="HABIT-9", text="Success is the sum of small efforts repeated daily."),
)

_PROMPT = (
    "Write one short, original motivational line for someone working on personal "
    "growth. Respond with JSON only, shaped as "
    '{"code": "WORD-N", "text": "..."} where WORD is one uppercase word and N a digit.'
)


def local_motivation(now: datetime | None = None) -> Motivation:
    """Built-in motivation; the choice is stable within a minute."""
    current = now or datetime.now(UTC)
    minute = int(current.timestamp() // 60)
    return random.Random(minute).choice(MOTIVATIONS)


def _parse(raw: str) -> Motivation:
    text = raw.strip()
    if text.startswith("```"):
        text = text.strip("`").removeprefix("json").strip()
    return Motivation.model_validate(json.loads(text))


async def get_motivation(
    model_client: ModelClient,
    model: str,
    *,
    now: datetime | None = None,
) -> Motivation:
    """Ask the model for a motivation, falling back to the built-in list."""
    try:
        raw = await model_client.chat([{"role": "user", "content": _PROMPT}], model)
        return _parse(raw)
    except LLMError as e:
        logger.warning("motivation_llm_failed", error=str(e))
    except (ValueError, ValidationError) as e:
        logger.warning("motivation_parse_failed", error=str(e))
    return local_motivation(now)
