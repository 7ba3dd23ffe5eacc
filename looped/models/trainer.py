from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional

from looped.models.challenge import DEFAULT_CATEGORY

MessageType = Literal["user", "trainer"]
TrainerAction = Literal["general", "create_challenge", "greeting", "schedule_challenge"]
TRAINER_ACTIONS: tuple[str, ...] = ("general", "create_challenge", "greeting", "schedule_challenge")

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5


@dataclass
class TrainerSettings:
    """Per-user trainer configuration captured at onboarding."""

    user_id: str
    time_budget: int = 15
    focus_areas: list[str] = field(default_factory=list)
    goals: Optional[str] = None
    constraints: Optional[str] = None
    difficulty_preference: int = 2
    onboarding_completed: bool = False
    timezone: Optional[str] = None
    persisted: bool = False

    @property
    def preferred_category(self) -> str:
        return self.focus_areas[0] if self.focus_areas else DEFAULT_CATEGORY

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "time_budget": self.time_budget,
            "focus_areas": list(self.focus_areas),
            "goals": self.goals,
            "constraints": self.constraints,
            "difficulty_preference": self.difficulty_preference,
            "onboarding_completed": self.onboarding_completed,
            "timezone": self.timezone,
        }


@dataclass
class TrainerMessage:
    user_id: str
    message_type: MessageType
    content: str
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "message_type": self.message_type,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class TrainerReply:
    """What the chat endpoint returns, plus the challenge it created (if any)."""

    response: str
    success: bool
    action: TrainerAction = "general"
    created_challenge_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {"response": self.response, "success": self.success}
