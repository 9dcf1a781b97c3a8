"""Rule-based memory extraction from a conversation turn.

Each rule is (category, source, pattern, confidence, context). Rules run in
table order: goal, challenge, breakthrough and decision scan the user message,
insight scans the assistant reply. Every capture ends at sentence punctuation
or end of text.

Post-processing:
- Triviality: stop-list words, fewer than 2 tokens, or too short are dropped.
- Dedup: a candidate whose token-Jaccard similarity with any earlier candidate
  exceeds duplicate_threshold is dropped. Because categories run in fixed
  order, overlapping captures from different categories resolve to the
  earlier category.
- Confidence: only candidates strictly above min_confidence are returned.

The explicit "remember this" path (is_memory_request / extract_memory_request)
is separate from extract() and is evaluated on the user message only.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from src.infra.text import token_jaccard
from src.memory.models import ExtractedMemory, MemoryCategory

if TYPE_CHECKING:
    from src.config.settings import MemorySettings

logger = structlog.get_logger()

_CLAUSE = r"([^.!?]+)"
_I_AM = r"i(?:['’]m|\s+am)"

TRIVIAL_PHRASES = frozenset({
    "this", "that", "it", "something", "anything", "everything", "nothing",
    "ok", "sure", "yes", "no", "a lot", "more", "less",
})

EXPLICIT_REQUEST_CONTEXT = "explicit user request"


class Source(StrEnum):
    user = "user"
    assistant = "assistant"


@dataclass(frozen=True)
class ExtractionRule:
    category: MemoryCategory
    source: Source
    pattern: re.Pattern[str]
    confidence: float
    context: str
    min_length: int = 10


def _rule(
    category: MemoryCategory,
    source: Source,
    pattern: str,
    confidence: float,
    context: str,
    min_length: int = 10,
) -> ExtractionRule:
    return ExtractionRule(
        category, source, re.compile(pattern, re.IGNORECASE), confidence, context, min_length
    )


_GOAL = (MemoryCategory.goal, Source.user, 0.9, "User explicitly stated goal")
_CHALLENGE = (MemoryCategory.challenge, Source.user, 0.85, "User mentioned a challenge")
_BREAKTHROUGH = (MemoryCategory.breakthrough, Source.user, 0.88, "User achieved a win")
_DECISION = (MemoryCategory.decision, Source.user, 0.87, "User made a commitment")
_INSIGHT = (MemoryCategory.insight, Source.assistant, 0.8, "Key insight from mentoring")

RULES: tuple[ExtractionRule, ...] = (
    # goals
    _rule(_GOAL[0], _GOAL[1],
          r"\b(?:my\s+)?(?:goal|aim|objective|target|dream|vision)(?:\s+is|\s+to)?\s+" + _CLAUSE,
          _GOAL[2], _GOAL[3]),
    _rule(_GOAL[0], _GOAL[1],
          r"\bi\s+want(?:\s+to)?\s+" + _CLAUSE,
          _GOAL[2], _GOAL[3]),
    _rule(_GOAL[0], _GOAL[1],
          rf"\b{_I_AM}\s+(?:trying|planning|going)\s+to\s+" + _CLAUSE,
          _GOAL[2], _GOAL[3]),
    _rule(_GOAL[0], _GOAL[1],
          r"\bi\s+(?:need|have)\s+to\s+" + _CLAUSE,
          _GOAL[2], _GOAL[3]),
    # challenges
    _rule(_CHALLENGE[0], _CHALLENGE[1],
          rf"\b(?:{_I_AM}\s+struggling\s+with|{_I_AM}\s+having\s+trouble\s+with"
          rf"|{_I_AM}\s+facing|problem|challenge|issue)\s+" + _CLAUSE,
          _CHALLENGE[2], _CHALLENGE[3]),
    _rule(_CHALLENGE[0], _CHALLENGE[1],
          rf"\b(?:{_I_AM}\s+stuck|blocked)\s+(?:on|with)\s+" + _CLAUSE,
          _CHALLENGE[2], _CHALLENGE[3]),
    _rule(_CHALLENGE[0], _CHALLENGE[1],
          r"\b(?:can['’]t|cannot|can\s+not|unable\s+to)\s+" + _CLAUSE,
          _CHALLENGE[2], _CHALLENGE[3]),
    # breakthroughs
    _rule(_BREAKTHROUGH[0], _BREAKTHROUGH[1],
          r"\bi\s+(?:finally\s+)?(?:did|completed|finished|achieved|accomplished)\s+" + _CLAUSE,
          _BREAKTHROUGH[2], _BREAKTHROUGH[3]),
    _rule(_BREAKTHROUGH[0], _BREAKTHROUGH[1],
          r"\bi\s+(?:finally\s+)?(?:figured\s+out|realized|understood)\s+" + _CLAUSE,
          _BREAKTHROUGH[2], _BREAKTHROUGH[3]),
    _rule(_BREAKTHROUGH[0], _BREAKTHROUGH[1],
          r"\b(?:breakthrough|success|won|victory)\s+" + _CLAUSE,
          _BREAKTHROUGH[2], _BREAKTHROUGH[3]),
    # decisions
    _rule(_DECISION[0], _DECISION[1],
          r"\bi(?:['’]ve|\s+have)?\s+(?:decided|committed)(?:\s+to)?\s+" + _CLAUSE,
          _DECISION[2], _DECISION[3]),
    _rule(_DECISION[0], _DECISION[1],
          r"\bi(?:['’]ll|\s+will)\s+" + _CLAUSE,
          _DECISION[2], _DECISION[3]),
    _rule(_DECISION[0], _DECISION[1],
          rf"\b(?:from\s+now\s+on|starting\s+(?:now|today)|{_I_AM}\s+going\s+to\s+start)[,\s]+"
          + _CLAUSE,
          _DECISION[2], _DECISION[3]),
    # insights from the mentor's reply
    _rule(_INSIGHT[0], _INSIGHT[1],
          r"\b(?:the\s+key\s+is|remember|important|crucial|vital)\s+" + _CLAUSE,
          _INSIGHT[2], _INSIGHT[3], min_length=15),
    _rule(_INSIGHT[0], _INSIGHT[1],
          r"\byou\s+(?:need\s+to|must|should)\s+focus\s+on\s+" + _CLAUSE,
          _INSIGHT[2], _INSIGHT[3], min_length=15),
)


def is_trivial(content: str, *, min_length: int = 10) -> bool:
    """True when content is too generic or too short to be worth remembering."""
    normalized = content.strip().lower()
    return (
        normalized in TRIVIAL_PHRASES
        or len(normalized.split()) < 2
        or len(normalized) < min_length
    )


class MemoryExtractor:
    """Extract categorized memory candidates from one conversation turn.

    Stateless apart from thresholds: the same inputs always give the same output.
    """

    def __init__(
        self,
        settings: MemorySettings | None = None,
        *,
        rules: tuple[ExtractionRule, ...] = RULES,
    ) -> None:
        self._min_confidence = settings.min_confidence if settings else 0.75
        self._duplicate_threshold = settings.duplicate_threshold if settings else 0.7
        self._rules = rules

    def extract(self, user_message: str, assistant_reply: str = "") -> list[ExtractedMemory]:
        """Return memories in rule order after triviality, dedup and confidence filters."""
        texts = {Source.user: user_message or "", Source.assistant: assistant_reply or ""}
        candidates: list[ExtractedMemory] = []

        for rule in self._rules:
            for m in rule.pattern.finditer(texts[rule.source]):
                content = m.group(1).strip()
                if is_trivial(content, min_length=rule.min_length):
                    continue
                candidates.append(
                    ExtractedMemory(
                        type=rule.category,
                        content=content,
                        confidence=rule.confidence,
                        context=rule.context,
                    )
                )

        unique = [
            c for i, c in enumerate(candidates)
            if not any(self._is_similar(prev.content, c.content) for prev in candidates[:i])
        ]
        result = [c for c in unique if c.confidence > self._min_confidence]

        if result:
            logger.debug(
                "memories_extracted",
                candidates=len(candidates),
                returned=len(result),
                categories=[m.type.value for m in result],
            )
        return result

    def _is_similar(self, a: str, b: str) -> bool:
        return token_jaccard(a, b) > self._duplicate_threshold


# ---------------------------------------------------------------------------
# Explicit "remember this" requests
# ---------------------------------------------------------------------------

_MEMORY_REQUEST_PATTERNS = [
    re.compile(r"\bremember\s+(?:that|this|when|how)\b", re.IGNORECASE),
    re.compile(r"\bsave\s+(?:this|that|my)\b", re.IGNORECASE),
    re.compile(r"\b(?:please\s+)?remember\s+(?:me|what|i)\b", re.IGNORECASE),
    re.compile(r"\b(?:don['’]?t|do\s+not|never)\s+forget\b", re.IGNORECASE),
    re.compile(r"\bthis\s+is\s+(?:important|critical|vital)\b", re.IGNORECASE),
    re.compile(r"\bmake\s+(?:a\s+)?note\s+of\b", re.IGNORECASE),
]

_REQUEST_CLAUSE = re.compile(
    r"\b(?:remember|save|note)\s+(?:(?:that|this|when|how)\b)?\s*:?\s*(.+?)(?:[.!?]|$)",
    re.IGNORECASE,
)
# Quote characters glued to letters are apostrophes ("don't"), not quotes.
_QUOTED = re.compile(r"(?<![A-Za-z])[\"']([^\"']+)[\"'](?![A-Za-z])")


def is_memory_request(message: str) -> bool:
    """True if the user explicitly asks the mentor to remember something."""
    return any(p.search(message) for p in _MEMORY_REQUEST_PATTERNS)


def extract_memory_request(message: str) -> str | None:
    """Return the clause the user asked to remember, or None.

    Tries the clause after remember/save/note first, then the first quoted
    substring.
    """
    m = _REQUEST_CLAUSE.search(message)
    if m:
        clause = m.group(1).strip().strip("\"'").strip()
        if clause and clause.lower() not in TRIVIAL_PHRASES:
            return clause

    quoted = _QUOTED.search(message)
    if quoted:
        return quoted.group(1).strip()
    return None


def explicit_memory(message: str) -> ExtractedMemory | None:
    """Build the memory proposal for an explicit request, or None if nothing to save."""
    content = extract_memory_request(message)
    if not content:
        return None
    return ExtractedMemory(
        type=MemoryCategory.decision,
        content=content,
        confidence=1.0,
        context=EXPLICIT_REQUEST_CONTEXT,
    )
