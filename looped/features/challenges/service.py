"""
Day numbering and daily challenge assignment.

Today's challenge is resolved in priority order:
1. a pending challenge scheduled for, or created on, the user's local today
2. the catalog entry for the preferred category at the current day number
3. the same category at day 1 (wrap-around once the track is exhausted)
4. an explicit empty result when the catalog has nothing to offer

Auto-assignments carry an assignment key unique per user, so concurrent
requests for the same day converge on one row.
"""

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from looped.core.dates import local_date, local_day_bounds, utc_now
from looped.core.errors import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from looped.core.auth import ensure_owner
from looped.core.logging import log_event
from looped.features.challenges.persistence import ChallengePersistence
from looped.features.settings.service import TrainerSettingsService, trainer_settings_service
from looped.features.streaks.service import StreakService, streak_service
from looped.models.challenge import (
    ACTIVE_STATUSES,
    CATEGORIES,
    CatalogChallenge,
    CompletionResult,
    CustomContent,
    FEEDBACK_VALUES,
    MAX_MINUTES,
    MIN_MINUTES,
    NON_TERMINAL_STATUSES,
    TodayChallengeResult,
    UserChallenge,
)
from looped.models.trainer import TrainerSettings

STREAK_SYNC_WARNING = "Challenge completed, but your streak could not be updated right now."
MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 2000


def assignment_key(day: date, day_number: int) -> str:
    return f"auto:{day.isoformat()}:{day_number}"


def pick_catalog_entry(candidates: List[CatalogChallenge], prefs: TrainerSettings) -> Optional[CatalogChallenge]:
    """Prefer entries within the user's difficulty and time budget, then easier, then by id."""
    if not candidates:
        return None

    def rank(entry: CatalogChallenge):
        fits = entry.difficulty <= prefs.difficulty_preference and entry.estimated_minutes <= prefs.time_budget
        return (0 if fits else 1, entry.difficulty, entry.id)

    return sorted(candidates, key=rank)[0]


class ChallengeService:
    def __init__(
        self,
        streaks: Optional[StreakService] = None,
        settings_service: Optional[TrainerSettingsService] = None,
        store: type = ChallengePersistence,
    ):
        self.streaks = streaks or streak_service
        self.settings = settings_service or trainer_settings_service
        self.store = store

    # ------------------------------------------------------------------
    # Day numbering and assignment

    def get_current_day_number(self, user_id: str) -> int:
        return self.store.count_with_status(user_id, "completed") + 1

    def get_today_challenge(self, *, user_id: str, today: Optional[date] = None) -> TodayChallengeResult:
        prefs = self.settings.get_settings(user_id)
        tz_name = prefs.timezone
        if today is None:
            today = self.settings.local_today(user_id)

        day_start, day_end = local_day_bounds(today, tz_name)
        existing = self.store.find_pending_for_day(user_id, today, day_start, day_end)
        day_number = self.get_current_day_number(user_id)
        if existing is not None:
            return TodayChallengeResult(challenge=existing, day_number=day_number, reason="existing")

        category = prefs.preferred_category
        entry = pick_catalog_entry(self.store.catalog_candidates(category, day_number), prefs)
        reason = "assigned"
        if entry is None and day_number != 1:
            entry = pick_catalog_entry(self.store.catalog_candidates(category, 1), prefs)
            reason = "wrapped"
        if entry is None:
            log_event(
                "warning",
                "challenge.catalog_empty",
                user_id=user_id,
                event_type="challenge.no_catalog",
                extra={"category": category, "day_number": day_number},
            )
            return TodayChallengeResult(challenge=None, day_number=day_number, reason="no_catalog")

        key = assignment_key(today, day_number)
        try:
            row_id = self.store.insert(
                user_id=user_id,
                challenge_id=entry.id,
                scheduled_date=today,
                assignment_key=key,
                created_by="system",
            )
        except IntegrityError:
            # Lost the race for today's slot: return whatever won it
            winner = self.store.find_by_assignment_key(user_id, key)
            if winner is not None and winner.status in ACTIVE_STATUSES:
                return TodayChallengeResult(challenge=winner, day_number=day_number, reason="existing")
            return TodayChallengeResult(challenge=None, day_number=day_number, reason="slot_closed")

        log_event(
            "info",
            "challenge.assigned",
            user_id=user_id,
            event_type=f"challenge.{reason}",
            extra={"challenge_id": entry.id, "day_number": day_number},
        )
        return TodayChallengeResult(
            challenge=self.store.get(row_id),
            day_number=day_number,
            reason=reason,
            created=True,
        )

    # ------------------------------------------------------------------
    # Lifecycle

    def get_challenge(self, *, user_id: str, user_challenge_id: str) -> UserChallenge:
        challenge = self.store.get(user_challenge_id)
        if challenge is None:
            raise NotFoundError("Challenge not found")
        ensure_owner(challenge.user_id, user_id, "challenge")
        return challenge

    def complete_challenge(
        self,
        *,
        user_id: str,
        user_challenge_id: str,
        feedback: Optional[str] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> CompletionResult:
        """
        Mark a pending or in-progress challenge completed and advance the streak.

        Completing an already-completed challenge is a no-op reported with
        `already_completed=True`; the streak is not touched again. A streak
        write failure does not undo the completion, it is reported as a warning.
        """
        if feedback is not None and feedback not in FEEDBACK_VALUES:
            raise ValidationError(f"feedback must be one of {', '.join(FEEDBACK_VALUES)}")

        challenge = self.get_challenge(user_id=user_id, user_challenge_id=user_challenge_id)
        if challenge.status == "completed":
            return self._already_completed(challenge)
        if challenge.status not in ACTIVE_STATUSES:
            raise InvalidTransitionError(f"Cannot complete a {challenge.status} challenge")

        now = now or utc_now()
        changed = self.store.transition(
            user_challenge_id,
            user_id,
            ACTIVE_STATUSES,
            {"status": "completed", "completion_date": now, "feedback": feedback, "notes": notes},
        )
        if not changed:
            current = self.store.get(user_challenge_id)
            if current is not None and current.status == "completed":
                return self._already_completed(current)
            raise InvalidTransitionError("Challenge changed state, reload and try again")

        result = CompletionResult(challenge=self.store.get(user_challenge_id))
        try:
            completion_day = local_date(now, self.settings.timezone_for(user_id))
            state = self.streaks.record_completion(user_id=user_id, completion_date=completion_day)
            result.streak = state.to_dict()
        except (SQLAlchemyError, ConflictError) as e:
            result.streak_synced = False
            result.warnings.append(STREAK_SYNC_WARNING)
            log_event(
                "warning",
                "challenge.streak_sync_failed",
                user_id=user_id,
                event_type="challenge.completed",
                error_code="streak_sync_failed",
                extra={"user_challenge_id": user_challenge_id, "error": str(e)},
            )

        try:
            result.difficulty_preference = self.settings.adjust_difficulty(user_id, feedback)
        except SQLAlchemyError as e:
            log_event(
                "warning",
                "challenge.difficulty_adjust_failed",
                user_id=user_id,
                error_code="difficulty_adjust_failed",
                extra={"error": str(e)},
            )

        log_event(
            "info",
            "challenge.completed",
            user_id=user_id,
            event_type="challenge.completed",
            extra={"user_challenge_id": user_challenge_id, "feedback": feedback},
        )
        return result

    def start_challenge(self, *, user_id: str, user_challenge_id: str) -> UserChallenge:
        return self._move(user_id, user_challenge_id, ("pending", "snoozed"), "in_progress")

    def snooze_challenge(self, *, user_id: str, user_challenge_id: str) -> UserChallenge:
        return self._move(user_id, user_challenge_id, ACTIVE_STATUSES, "snoozed")

    def skip_challenge(self, *, user_id: str, user_challenge_id: str) -> UserChallenge:
        return self._move(user_id, user_challenge_id, ("pending",), "skipped")

    def delete_challenge(self, *, user_id: str, user_challenge_id: str) -> None:
        challenge = self.get_challenge(user_id=user_id, user_challenge_id=user_challenge_id)
        if challenge.status not in NON_TERMINAL_STATUSES:
            raise InvalidTransitionError(f"Cannot delete a {challenge.status} challenge")
        if not self.store.delete(user_challenge_id, user_id, NON_TERMINAL_STATUSES):
            raise InvalidTransitionError("Challenge changed state, reload and try again")
        log_event("info", "challenge.deleted", user_id=user_id, event_type="challenge.deleted")

    def create_custom_challenge(
        self,
        *,
        user_id: str,
        title: str,
        description: str,
        category: str,
        minutes: int,
        created_by: str = "user",
        benefit: Optional[str] = None,
        today: Optional[date] = None,
    ) -> UserChallenge:
        title = (title or "").strip()
        description = (description or "").strip()
        category = (category or "").strip().lower()
        if not title:
            raise ValidationError("Title is required")
        if not description:
            raise ValidationError("Description is required")
        if len(title) > MAX_TITLE_LENGTH:
            raise ValidationError(f"Title must be {MAX_TITLE_LENGTH} characters or fewer")
        if len(description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(f"Description must be {MAX_DESCRIPTION_LENGTH} characters or fewer")
        if category not in CATEGORIES:
            raise ValidationError(f"Unknown category: {category!r}")
        if isinstance(minutes, bool) or not isinstance(minutes, int) or not MIN_MINUTES <= minutes <= MAX_MINUTES:
            raise ValidationError(f"Minutes must be between {MIN_MINUTES} and {MAX_MINUTES}")
        if created_by not in ("user", "trainer"):
            raise ValidationError("created_by must be 'user' or 'trainer'")

        row_id = self.store.insert(
            user_id=user_id,
            custom=CustomContent(title=title, description=description, category=category, minutes=minutes),
            created_by=created_by,
            scheduled_date=today or self.settings.local_today(user_id),
            trainer_response=benefit,
        )
        log_event(
            "info",
            "challenge.custom_created",
            user_id=user_id,
            event_type="challenge.custom_created",
            extra={"created_by": created_by, "category": category},
        )
        return self.store.get(row_id)

    def list_history(self, *, user_id: str, limit: int = 30) -> List[UserChallenge]:
        if limit < 1:
            raise ValidationError("limit must be positive")
        return self.store.list_for_user(user_id, limit=min(limit, 200))

    def list_in_progress(self, *, user_id: str) -> List[UserChallenge]:
        return self.store.list_for_user(user_id, statuses=("in_progress",))

    # ------------------------------------------------------------------

    def _move(self, user_id: str, user_challenge_id: str, from_statuses, to_status: str) -> UserChallenge:
        challenge = self.get_challenge(user_id=user_id, user_challenge_id=user_challenge_id)
        if challenge.status not in from_statuses:
            raise InvalidTransitionError(f"Cannot move a {challenge.status} challenge to {to_status}")
        if not self.store.transition(user_challenge_id, user_id, from_statuses, {"status": to_status}):
            raise InvalidTransitionError("Challenge changed state, reload and try again")
        log_event(
            "info",
            "challenge.status_changed",
            user_id=user_id,
            event_type=f"challenge.{to_status}",
            extra={"user_challenge_id": user_challenge_id, "from": challenge.status},
        )
        return self.store.get(user_challenge_id)

    def _already_completed(self, challenge: UserChallenge) -> CompletionResult:
        return CompletionResult(
            challenge=challenge,
            already_completed=True,
            streak=self.streaks.get_streak(challenge.user_id).to_dict(),
        )


# Singleton service used by routes
challenge_service = ChallengeService()
