"""
Free-text intent detection for trainer messages.

Decides whether a message asks for a new challenge and pulls out a duration
and a category hint, so "give me a 20 min focus task" works without buttons.
"""

import re
from dataclasses import dataclass
from typing import Any, Optional

from looped.models.challenge import CATEGORIES, MAX_MINUTES, MIN_MINUTES

CREATE_TRIGGERS = (
    "new challenge",
    "create challenge",
    "make a challenge",
    "give me a challenge",
    "task for",
    "give me a",
    "plan a task",
    "challenge me",
    "start a challenge",
)

# First substring hit wins, so longer words sharing a prefix come first
CATEGORY_SYNONYMS = {
    "exercise": "energy",
    "workout": "energy",
    "run": "energy",
    "walk": "energy",
    "movement": "energy",
    "fitness": "energy",
    "mindset": "mindset",
    "meditate": "mindset",
    "gratitude": "mindset",
    "journal": "mindset",
    "reframing": "mindset",
    "focus": "focus",
    "work": "focus",
    "study": "focus",
    "productivity": "focus",
    "deepwork": "focus",
    "relationships": "relationships",
    "social": "relationships",
    "friend": "relationships",
    "family": "relationships",
    "connect": "relationships",
    "home": "home",
    "environment": "home",
    "declutter": "home",
    "clean": "home",
    "organize": "home",
    "finance": "finance",
    "money": "finance",
    "budget": "finance",
    "spend": "finance",
    "save": "finance",
    "creativity": "creativity",
    "create": "creativity",
    "art": "creativity",
    "draw": "creativity",
    "write": "creativity",
    "music": "creativity",
    "recovery": "recovery",
    "sleep": "recovery",
    "rest": "recovery",
    "wind": "recovery",
    "winddown": "recovery",
}

_BARE_WORD_RE = re.compile(r"(^|\s)(challenge|task)(\s|$)")
_HOURS_RE = re.compile(r"(\d+)\s*(h|hr|hrs|hour|hours)\b")
_MINUTES_RE = re.compile(r"(\d+)\s*(m|min|mins|minute|minutes)\b")
_FOR_RE = re.compile(r"\bfor\s+(\d+)\b")
_SOLO_NUMBER_RE = re.compile(r"\b(\d{1,3})\b")


@dataclass(frozen=True)
class ParsedIntent:
    should_create: bool
    category: Optional[str] = None
    minutes: Optional[int] = None


def clamp_category(value: Any) -> Optional[str]:
    """Return the category if it is one of the known ones, else None."""
    if not isinstance(value, str):
        return None
    key = value.strip().lower()
    return key if key in CATEGORIES else None


def minutes_or_none(value: Any) -> Optional[int]:
    """Round and clamp a numeric duration into [1, 1440]; None for non-numbers."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value != value or value in (float("inf"), float("-inf")):
        return None
    return max(MIN_MINUTES, min(MAX_MINUTES, int(round(value))))


def parse_intent(raw: Optional[str]) -> ParsedIntent:
    text = (raw or "").lower()

    should_create = any(trigger in text for trigger in CREATE_TRIGGERS) or bool(_BARE_WORD_RE.search(text))

    minutes: Optional[int] = None
    hours = _HOURS_RE.search(text)
    if hours:
        minutes = int(hours.group(1)) * 60
    explicit = _MINUTES_RE.search(text)
    if explicit:
        minutes = int(explicit.group(1))
    if not minutes:
        bare = _FOR_RE.search(text)
        if bare:
            minutes = int(bare.group(1))
    if not minutes and should_create:
        solo = _SOLO_NUMBER_RE.search(text)
        if solo and MIN_MINUTES <= int(solo.group(1)) <= MAX_MINUTES:
            minutes = int(solo.group(1))

    category = None
    for word, mapped in CATEGORY_SYNONYMS.items():
        if word in text:
            category = mapped
            break

    return ParsedIntent(should_create=should_create, category=category, minutes=minutes_or_none(minutes))
