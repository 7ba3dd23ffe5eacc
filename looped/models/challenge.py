from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal, Optional, Union

Category = Literal[
    "energy",
    "mindset",
    "focus",
    "relationships",
    "home",
    "finance",
    "creativity",
    "recovery",
]
CATEGORIES: tuple[str, ...] = (
    "energy",
    "mindset",
    "focus",
    "relationships",
    "home",
    "finance",
    "creativity",
    "recovery",
)
DEFAULT_CATEGORY: Category = "mindset"

ChallengeStatus = Literal["pending", "in_progress", "completed", "snoozed", "skipped"]
ACTIVE_STATUSES: tuple[str, ...] = ("pending", "in_progress")
NON_TERMINAL_STATUSES: tuple[str, ...] = ("pending", "in_progress", "snoozed")

CreatedBy = Literal["system", "user", "trainer"]
Feedback = Literal["too_easy", "just_right", "too_hard"]
FEEDBACK_VALUES: tuple[str, ...] = ("too_easy", "just_right", "too_hard")

MIN_MINUTES = 1
MAX_MINUTES = 24 * 60


@dataclass(frozen=True)
class CatalogChallenge:
    """Immutable catalog template, keyed by category and ordinal day."""

    id: str
    category: Category
    day_number: int
    title: str
    description: str
    difficulty: int
    estimated_minutes: int
    benefit: Optional[str] = None


@dataclass(frozen=True)
class CatalogContent:
    challenge: CatalogChallenge
    kind: Literal["catalog"] = "catalog"


@dataclass(frozen=True)
class CustomContent:
    title: str
    description: str
    category: Category
    minutes: int
    kind: Literal["custom"] = "custom"


ChallengeContent = Union[CatalogContent, CustomContent]


@dataclass(frozen=True)
class ChallengeView:
    """Display struct resolved once from either content variant."""

    title: str
    description: str
    category: Category
    estimated_minutes: int
    source: Literal["catalog", "custom"]
    difficulty: Optional[int] = None
    benefit: Optional[str] = None
    day_number: Optional[int] = None
    challenge_id: Optional[str] = None

    @classmethod
    def from_content(cls, content: ChallengeContent, benefit: Optional[str] = None) -> "ChallengeView":
        if isinstance(content, CatalogContent):
            c = content.challenge
            return cls(
                title=c.title,
                description=c.description,
                category=c.category,
                estimated_minutes=c.estimated_minutes,
                source="catalog",
                difficulty=c.difficulty,
                benefit=c.benefit,
                day_number=c.day_number,
                challenge_id=c.id,
            )
        return cls(
            title=content.title,
            description=content.description,
            category=content.category,
            estimated_minutes=content.minutes,
            source="custom",
            benefit=benefit,
        )


@dataclass
class UserChallenge:
    """One user's assignment of a catalog or custom challenge."""

    id: str
    user_id: str
    content: ChallengeContent
    status: ChallengeStatus = "pending"
    created_by: CreatedBy = "system"
    scheduled_date: Optional[date] = None
    assignment_key: Optional[str] = None
    completion_date: Optional[datetime] = None
    feedback: Optional[str] = None
    notes: Optional[str] = None
    trainer_response: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_custom(self) -> bool:
        return isinstance(self.content, CustomContent)

    @property
    def view(self) -> ChallengeView:
        return ChallengeView.from_content(self.content, benefit=self.trainer_response)

    def to_dict(self) -> dict:
        view = self.view
        return {
            "id": self.id,
            "user_id": self.user_id,
            "status": self.status,
            "is_custom": self.is_custom,
            "created_by": self.created_by,
            "scheduled_date": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "completion_date": self.completion_date.isoformat() if self.completion_date else None,
            "feedback": self.feedback,
            "notes": self.notes,
            "trainer_response": self.trainer_response,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "challenge": {
                "title": view.title,
                "description": view.description,
                "category": view.category,
                "estimated_minutes": view.estimated_minutes,
                "difficulty": view.difficulty,
                "benefit": view.benefit,
                "day_number": view.day_number,
                "source": view.source,
                "challenge_id": view.challenge_id,
            },
        }


TodayReason = Literal["existing", "assigned", "wrapped", "no_catalog", "slot_closed"]


@dataclass
class TodayChallengeResult:
    """Today's challenge, or an explicit empty state with a reason."""

    challenge: Optional[UserChallenge]
    day_number: int
    reason: TodayReason
    created: bool = False

    @property
    def is_empty(self) -> bool:
        return self.challenge is None

    def to_dict(self) -> dict:
        return {
            "challenge": self.challenge.to_dict() if self.challenge else None,
            "day_number": self.day_number,
            "reason": self.reason,
            "created": self.created,
        }


@dataclass
class CompletionResult:
    challenge: UserChallenge
    already_completed: bool = False
    streak: Optional[dict] = None
    streak_synced: bool = True
    difficulty_preference: Optional[int] = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "challenge": self.challenge.to_dict(),
            "already_completed": self.already_completed,
            "streak": self.streak,
            "streak_synced": self.streak_synced,
            "difficulty_preference": self.difficulty_preference,
            "warnings": list(self.warnings),
        }
