"""
Trainer conversation service.

One chat turn: detect intent, record the transcript, ask the model, and for
challenge requests turn the reply into a custom challenge for today.
"""

from dataclasses import dataclass
from datetime import date
import json
from typing import Any, Dict, Optional

from looped.core.config import settings
from looped.core.errors import UpstreamError, ValidationError
from looped.core.logging import log_event
from looped.features.challenges.persistence import ChallengePersistence
from looped.features.challenges.service import (
    ChallengeService,
    MAX_DESCRIPTION_LENGTH,
    MAX_TITLE_LENGTH,
    challenge_service,
)
from looped.features.settings.service import TrainerSettingsService, trainer_settings_service
from looped.features.trainer import prompts, transcript
from looped.features.trainer.client import TrainerClient
from looped.features.trainer.intent import clamp_category, minutes_or_none, parse_intent
from looped.models.challenge import DEFAULT_CATEGORY
from looped.models.trainer import MAX_DIFFICULTY, MIN_DIFFICULTY, TRAINER_ACTIONS, TrainerReply

DEFAULT_TRAINER_MINUTES = 10
DEFAULT_DIFFICULTY = 2
DEFAULT_DESCRIPTION = "A small, specific step for today."


@dataclass(frozen=True)
class ParsedTrainerReply:
    """Caller-side view of a trainer response: a challenge or plain text."""

    kind: str
    text: str
    challenge: Optional[Dict[str, Any]] = None

    @property
    def is_challenge(self) -> bool:
        return self.kind == "challenge"


def parse_trainer_reply(raw: Optional[str]) -> ParsedTrainerReply:
    """Strict JSON object with a title and estimated_minutes is a challenge; anything else is text."""
    text = raw or ""
    try:
        data = json.loads(text)
    except (TypeError, ValueError):
        return ParsedTrainerReply(kind="text", text=text)
    if isinstance(data, dict) and data.get("title") and "estimated_minutes" in data:
        return ParsedTrainerReply(kind="challenge", text=text, challenge=data)
    return ParsedTrainerReply(kind="text", text=text)


def _text_or(value: Any, fallback: Optional[str]) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return fallback


def fallback_challenge(category: Optional[str], minutes: Optional[int]) -> Dict[str, Any]:
    mins = minutes_or_none(minutes) or DEFAULT_TRAINER_MINUTES
    return {
        "title": prompts.FALLBACK_TITLE,
        "description": prompts.FALLBACK_DESCRIPTION,
        "category": clamp_category(category) or DEFAULT_CATEGORY,
        "estimated_minutes": mins,
        "difficulty": 1 if mins <= 10 else 2 if mins <= 30 else 3,
        "benefit": prompts.FALLBACK_BENEFIT,
    }


def normalize_challenge(data: Dict[str, Any], category: Optional[str], minutes: Optional[int]) -> Dict[str, Any]:
    """Coerce a model-produced challenge into storable values."""
    difficulty = data.get("difficulty")
    if isinstance(difficulty, bool) or difficulty not in range(MIN_DIFFICULTY, MAX_DIFFICULTY + 1):
        difficulty = DEFAULT_DIFFICULTY
    return {
        "title": _text_or(data.get("title"), "Custom Challenge")[:MAX_TITLE_LENGTH],
        "description": _text_or(data.get("description"), DEFAULT_DESCRIPTION)[:MAX_DESCRIPTION_LENGTH],
        "category": clamp_category(data.get("category")) or category or DEFAULT_CATEGORY,
        "minutes": minutes_or_none(data.get("estimated_minutes")) or minutes or DEFAULT_TRAINER_MINUTES,
        "difficulty": difficulty,
        "benefit": _text_or(data.get("benefit"), None),
    }


class TrainerService:
    def __init__(
        self,
        client: Optional[TrainerClient] = None,
        challenges: Optional[ChallengeService] = None,
        settings_service: Optional[TrainerSettingsService] = None,
        history_limit: Optional[int] = None,
    ):
        self.client = client or TrainerClient()
        self.challenges = challenges or challenge_service
        self.settings = settings_service or trainer_settings_service
        self.history_limit = history_limit or settings.TRAINER_HISTORY_LIMIT

    def chat(
        self,
        *,
        user_id: str,
        message: Optional[str] = "",
        action: str = "general",
        category: Optional[str] = None,
        time_minutes: Optional[float] = None,
        goal: Optional[str] = None,
        today: Optional[date] = None,
    ) -> TrainerReply:
        if action not in TRAINER_ACTIONS:
            raise ValidationError(f"Unknown action: {action!r}")
        message = (message or "").strip()

        is_new_user = ChallengePersistence.count_all(user_id) == 0
        if is_new_user and (not message or action == "greeting") and action != "create_challenge":
            transcript.append_message(user_id, "trainer", prompts.WELCOME_MESSAGE)
            return TrainerReply(response=prompts.WELCOME_MESSAGE, success=True, action="greeting")

        hints = {
            "category": clamp_category(category),
            "minutes": minutes_or_none(time_minutes),
            "goal": _text_or(goal, None),
        }
        if action != "create_challenge":
            parsed = parse_intent(message)
            if parsed.should_create:
                action = "create_challenge"
                hints["category"] = hints["category"] or parsed.category
                hints["minutes"] = hints["minutes"] or parsed.minutes

        if message:
            transcript.append_message(user_id, "user", message)

        creating = action == "create_challenge"
        try:
            content = self.client.complete(self._build_messages(user_id, message, action, hints), json_mode=creating)
        except UpstreamError as e:
            log_event(
                "error",
                "trainer.upstream_failed",
                user_id=user_id,
                event_type=f"trainer.{action}",
                error_code=e.code,
                extra={"reason": e.message},
            )
            return TrainerReply(response=prompts.UPSTREAM_FAILURE_MESSAGE, success=False, action=action)

        transcript.append_message(user_id, "trainer", content)
        reply = TrainerReply(response=content, success=True, action=action)

        if creating:
            parsed_reply = parse_trainer_reply(content)
            if parsed_reply.is_challenge:
                data = parsed_reply.challenge
            else:
                data = fallback_challenge(hints["category"], hints["minutes"])
            values = normalize_challenge(data, hints["category"], hints["minutes"])
            created = self.challenges.create_custom_challenge(
                user_id=user_id,
                title=values["title"],
                description=values["description"],
                category=values["category"],
                minutes=values["minutes"],
                created_by="trainer",
                benefit=values["benefit"],
                today=today,
            )
            reply.created_challenge_id = created.id

        log_event(
            "info",
            "trainer.reply",
            user_id=user_id,
            event_type=f"trainer.{action}",
            extra={"created_challenge_id": reply.created_challenge_id},
        )
        return reply

    def _build_messages(self, user_id: str, message: str, action: str, hints: dict) -> list:
        context = {
            "settings": self.settings.get_settings(user_id).to_dict(),
            "recent_messages": [m.to_dict() for m in transcript.recent_messages(user_id, self.history_limit)],
            "hints": hints,
        }
        if action == "create_challenge":
            user_prompt = prompts.build_create_prompt(message, hints["category"], hints["minutes"], hints["goal"])
        else:
            user_prompt = message or prompts.DEFAULT_USER_PROMPT
        return [
            {"role": "system", "content": prompts.COACH_SYSTEM_PROMPT},
            {"role": "system", "content": "User Context:\n" + json.dumps(context, indent=2, default=str)},
            {"role": "user", "content": user_prompt},
        ]


# Singleton service used by routes
trainer_service = TrainerService()
