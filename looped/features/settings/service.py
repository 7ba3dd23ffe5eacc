"""
Trainer settings: onboarding answers, preferences and the user's timezone.

Users without a stored row get defaults; the row is created at onboarding.
"""

from datetime import date, datetime
from typing import Iterable, List, Optional

from sqlalchemy import select, insert, update
from sqlalchemy.exc import IntegrityError

from looped.core.config import settings as app_settings
from looped.core.database import get_db_session, trainer_settings
from looped.core.dates import local_date, resolve_timezone, utc_now
from looped.core.errors import ValidationError
from looped.core.logging import log_event
from looped.models.challenge import CATEGORIES, MAX_MINUTES, MIN_MINUTES
from looped.models.trainer import MAX_DIFFICULTY, MIN_DIFFICULTY, TrainerSettings

_UPDATABLE = ("time_budget", "focus_areas", "goals", "constraints", "difficulty_preference", "timezone")


def _clean_focus_areas(focus_areas: Iterable[str]) -> List[str]:
    cleaned: List[str] = []
    for area in focus_areas:
        key = (area or "").strip().lower()
        if key not in CATEGORIES:
            raise ValidationError(f"Unknown focus area: {area!r}")
        if key not in cleaned:
            cleaned.append(key)
    return cleaned


def _validate_changes(changes: dict) -> dict:
    clean = {}
    for key, value in changes.items():
        if key not in _UPDATABLE:
            raise ValidationError(f"Unknown setting: {key}")
        if key == "time_budget":
            if isinstance(value, bool) or not isinstance(value, int) or not MIN_MINUTES <= value <= MAX_MINUTES:
                raise ValidationError(f"time_budget must be between {MIN_MINUTES} and {MAX_MINUTES} minutes")
        elif key == "difficulty_preference":
            if isinstance(value, bool) or not isinstance(value, int) or not MIN_DIFFICULTY <= value <= MAX_DIFFICULTY:
                raise ValidationError(f"difficulty_preference must be between {MIN_DIFFICULTY} and {MAX_DIFFICULTY}")
        elif key == "focus_areas":
            value = _clean_focus_areas(value or [])
        elif key == "timezone" and value:
            resolve_timezone(value)
        elif key in ("goals", "constraints") and value is not None:
            value = value.strip() or None
        clean[key] = value
    return clean


class TrainerSettingsService:
    def get_settings(self, user_id: str) -> TrainerSettings:
        with get_db_session() as session:
            row = session.execute(select(trainer_settings).where(trainer_settings.c.user_id == user_id)).first()
        if row is None:
            return TrainerSettings(user_id=user_id)
        return TrainerSettings(
            user_id=user_id,
            time_budget=row.time_budget,
            focus_areas=list(row.focus_areas or []),
            goals=row.goals,
            constraints=row.constraints,
            difficulty_preference=row.difficulty_preference,
            onboarding_completed=bool(row.onboarding_completed),
            timezone=row.timezone,
            persisted=True,
        )

    def complete_onboarding(
        self,
        user_id: str,
        *,
        time_budget: int = 15,
        focus_areas: Iterable[str] = (),
        goals: Optional[str] = None,
        constraints: Optional[str] = None,
        difficulty_preference: int = 2,
        timezone: Optional[str] = None,
    ) -> TrainerSettings:
        changes = _validate_changes(
            {
                "time_budget": time_budget,
                "focus_areas": list(focus_areas),
                "goals": goals,
                "constraints": constraints,
                "difficulty_preference": difficulty_preference,
                "timezone": timezone,
            }
        )
        changes["onboarding_completed"] = True
        self._upsert(user_id, changes)
        log_event("info", "settings.onboarding_completed", user_id=user_id, event_type="settings.onboarding")
        return self.get_settings(user_id)

    def update_settings(self, user_id: str, **changes) -> TrainerSettings:
        """Partial update; keys left out keep their stored (or default) value."""
        clean = _validate_changes(changes)
        if clean:
            self._upsert(user_id, clean)
        return self.get_settings(user_id)

    def adjust_difficulty(self, user_id: str, feedback: Optional[str]) -> Optional[int]:
        """
        Nudge difficulty from completion feedback.

        too_easy raises it by one (ceiling 5), too_hard lowers it by one
        (floor 1), anything else leaves it. Users without stored settings are
        left alone.

        Returns:
            The resulting preference, or None when the user has no settings row
        """
        column = trainer_settings.c.difficulty_preference
        stmt = None
        if feedback == "too_easy":
            stmt = (
                update(trainer_settings)
                .where(trainer_settings.c.user_id == user_id, column < MAX_DIFFICULTY)
                .values(difficulty_preference=column + 1, updated_at=utc_now())
            )
        elif feedback == "too_hard":
            stmt = (
                update(trainer_settings)
                .where(trainer_settings.c.user_id == user_id, column > MIN_DIFFICULTY)
                .values(difficulty_preference=column - 1, updated_at=utc_now())
            )

        with get_db_session() as session:
            if stmt is not None:
                session.execute(stmt)
            value = session.execute(select(column).where(trainer_settings.c.user_id == user_id)).scalar()

        if value is not None and stmt is not None:
            log_event(
                "info",
                "settings.difficulty_adjusted",
                user_id=user_id,
                event_type="settings.difficulty",
                extra={"feedback": feedback, "difficulty_preference": value},
            )
        return value

    def timezone_for(self, user_id: str) -> str:
        return self.get_settings(user_id).timezone or app_settings.DEFAULT_TIMEZONE

    def local_today(self, user_id: str, now: Optional[datetime] = None) -> date:
        return local_date(now or utc_now(), self.timezone_for(user_id))

    def _upsert(self, user_id: str, values: dict) -> None:
        now = utc_now()
        stmt = update(trainer_settings).where(trainer_settings.c.user_id == user_id).values(updated_at=now, **values)
        with get_db_session() as session:
            if session.execute(stmt).rowcount == 1:
                return

        row = {
            "user_id": user_id,
            "time_budget": 15,
            "focus_areas": [],
            "difficulty_preference": 2,
            "onboarding_completed": False,
            "created_at": now,
            "updated_at": now,
        }
        row.update(values)
        try:
            with get_db_session() as session:
                session.execute(insert(trainer_settings).values(**row))
        except IntegrityError:
            # Created concurrently; apply the change on top of it
            with get_db_session() as session:
                session.execute(stmt)


# Singleton service used by routes
trainer_settings_service = TrainerSettingsService()
