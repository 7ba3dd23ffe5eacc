"""
Weekly insights and all-time progress, derived from challenge history.

Nothing here is stored; every figure is recomputed from `user_challenges`
and the streak row on request.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from looped.core.dates import utc_now
from looped.features.challenges.persistence import ChallengePersistence
from looped.features.settings.service import TrainerSettingsService, trainer_settings_service
from looped.features.streaks.service import StreakService, streak_service
from looped.models.challenge import UserChallenge

WEEK = timedelta(days=7)


def completion_rate(completed: int, total: int) -> int:
    """Rounded percentage, 0 when there is nothing to complete."""
    if total <= 0:
        return 0
    return int(round(completed * 100 / total))


def weekly_summary_message(rate: int) -> str:
    if rate >= 80:
        return "Outstanding week! You're building incredible momentum and consistency."
    if rate >= 60:
        return "Solid week! You're making great progress on your growth journey."
    if rate >= 40:
        return "Good effort! Remember, progress isn't always linear. Keep going!"
    return "Every step counts! Focus on small wins and building consistency."


def category_breakdown(items: List[UserChallenge]) -> Dict[str, dict]:
    stats: Dict[str, dict] = {}
    for item in items:
        entry = stats.setdefault(item.view.category, {"total": 0, "completed": 0})
        entry["total"] += 1
        if item.status == "completed":
            entry["completed"] += 1
    for entry in stats.values():
        entry["rate"] = completion_rate(entry["completed"], entry["total"])
    return stats


class InsightsService:
    def __init__(
        self,
        streaks: Optional[StreakService] = None,
        settings_service: Optional[TrainerSettingsService] = None,
    ):
        self.streaks = streaks or streak_service
        self.settings = settings_service or trainer_settings_service

    def weekly_insights(self, *, user_id: str, now: Optional[datetime] = None) -> dict:
        now = now or utc_now()
        week = ChallengePersistence.list_for_user(user_id, since=now - WEEK)
        completed = [c for c in week if c.status == "completed"]
        rate = completion_rate(len(completed), len(week))

        categories = category_breakdown(week)
        most_active = None
        if categories:
            most_active = sorted(categories.items(), key=lambda kv: (-kv[1]["completed"], kv[0]))[0][0]

        avg_minutes = 0
        if completed:
            avg_minutes = int(round(sum(c.view.estimated_minutes for c in completed) / len(completed)))

        return {
            "week_total": len(week),
            "week_completed": len(completed),
            "week_completion_rate": rate,
            "categories": categories,
            "most_active_category": most_active,
            "average_minutes": avg_minutes,
            "minutes_invested": avg_minutes * len(completed),
            "summary": weekly_summary_message(rate),
            "streak": self.streaks.get_streak(user_id).to_dict(),
        }

    def progress_summary(self, *, user_id: str) -> dict:
        total = ChallengePersistence.count_all(user_id)
        completed = ChallengePersistence.count_with_status(user_id, "completed")
        streak = self.streaks.get_streak(user_id)
        return {
            "total_completed": completed,
            "total_challenges": total,
            "completion_rate": completion_rate(completed, total),
            "current_day": completed + 1,
            "current_streak": streak.current_streak,
            "longest_streak": streak.longest_streak,
            "focus_area": self.settings.get_settings(user_id).preferred_category,
        }


# Singleton service used by routes
insights_service = InsightsService()
