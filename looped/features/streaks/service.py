from __future__ import annotations

from datetime import date

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError

from looped.core.database import get_db_session, streaks
from looped.core.dates import utc_now
from looped.core.errors import ConflictError
from looped.core.logging import log_event
from looped.models.streak import StreakState


class StreakService:
    """Consecutive-calendar-day completion counter, one row per user.

    Writes are compare-and-swap against the row as it was read, so two
    completions racing on the same day can never both increment.
    """

    def __init__(self, max_attempts: int = 3):
        self._max_attempts = max_attempts

    def get_streak(self, user_id: str) -> StreakState:
        with get_db_session() as session:
            row = session.execute(select(streaks).where(streaks.c.user_id == user_id)).first()
        return self._to_state(user_id, row)

    def record_completion(self, *, user_id: str, completion_date: date) -> StreakState:
        for _ in range(self._max_attempts):
            with get_db_session() as session:
                row = session.execute(select(streaks).where(streaks.c.user_id == user_id)).first()
                state = self._to_state(user_id, row)
                new_state, transition = state.advance(completion_date)
                if transition == "unchanged":
                    return state

                values = {
                    "current_streak": new_state.current_streak,
                    "longest_streak": new_state.longest_streak,
                    "last_completion_date": new_state.last_completion_date,
                    "streak_start_date": new_state.streak_start_date,
                    "updated_at": utc_now(),
                }
                if row is None:
                    try:
                        session.execute(insert(streaks).values(user_id=user_id, **values))
                    except IntegrityError:
                        # Another request created the row first; re-read it
                        session.rollback()
                        continue
                else:
                    if state.last_completion_date is None:
                        last_guard = streaks.c.last_completion_date.is_(None)
                    else:
                        last_guard = streaks.c.last_completion_date == state.last_completion_date
                    result = session.execute(
                        update(streaks)
                        .where(
                            streaks.c.user_id == user_id,
                            streaks.c.current_streak == state.current_streak,
                            last_guard,
                        )
                        .values(**values)
                    )
                    if result.rowcount != 1:
                        continue

            log_event(
                "info",
                "streak.updated",
                user_id=user_id,
                event_type=f"streak.{transition}",
                extra={"current_streak": new_state.current_streak, "day": completion_date.isoformat()},
            )
            return new_state

        raise ConflictError("Streak is being updated concurrently, try again")

    def reset_progress(self, user_id: str) -> StreakState:
        """Restart the journey: zero both counters and forget the last date."""
        with get_db_session() as session:
            session.execute(
                update(streaks)
                .where(streaks.c.user_id == user_id)
                .values(
                    current_streak=0,
                    longest_streak=0,
                    last_completion_date=None,
                    streak_start_date=None,
                    updated_at=utc_now(),
                )
            )
        log_event("info", "streak.reset", user_id=user_id, event_type="streak.reset")
        return StreakState(user_id=user_id)

    @staticmethod
    def _to_state(user_id: str, row) -> StreakState:
        if row is None:
            return StreakState(user_id=user_id)
        return StreakState(
            user_id=user_id,
            current_streak=row.current_streak or 0,
            longest_streak=row.longest_streak or 0,
            last_completion_date=row.last_completion_date,
            streak_start_date=row.streak_start_date,
        )


# Singleton service used by routes
streak_service = StreakService()
