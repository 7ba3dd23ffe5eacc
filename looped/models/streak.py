from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Literal, Optional

StreakTransition = Literal["started", "continued", "restarted", "unchanged"]


@dataclass(frozen=True)
class StreakState:
    """
    Per-user streak counters. Day-level, local calendar dates, no DB concerns.
    """

    user_id: str
    current_streak: int = 0
    longest_streak: int = 0
    last_completion_date: Optional[date] = None
    streak_start_date: Optional[date] = None

    def advance(self, completion_date: date) -> tuple["StreakState", StreakTransition]:
        """Apply one completion on `completion_date`.

        Same day is a no-op, the day after continues, anything else
        (first completion, a gap, or a date before the last one) restarts at 1.
        """
        last = self.last_completion_date
        if last == completion_date:
            return self, "unchanged"

        if last is not None and last == completion_date - timedelta(days=1):
            current = self.current_streak + 1
            start = self.streak_start_date or completion_date
            transition: StreakTransition = "continued"
        else:
            current = 1
            start = completion_date
            transition = "started" if last is None else "restarted"

        return (
            replace(
                self,
                current_streak=current,
                longest_streak=max(self.longest_streak, current),
                last_completion_date=completion_date,
                streak_start_date=start,
            ),
            transition,
        )

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "last_completion_date": self.last_completion_date.isoformat() if self.last_completion_date else None,
            "streak_start_date": self.streak_start_date.isoformat() if self.streak_start_date else None,
        }
