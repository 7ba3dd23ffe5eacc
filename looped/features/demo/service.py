"""
Anonymous demo challenge picker for the landing page.

No user, no writes: pick one catalog entry that fits the visitor's answers,
or a hardcoded starter when nothing matches.
"""

import random
from typing import Iterable, List, Optional

from sqlalchemy import select, not_

from looped.core.database import get_db_session, challenges
from looped.core.logging import log_event
from looped.features.challenges.catalog import row_to_catalog
from looped.models.challenge import DEFAULT_CATEGORY

MAX_MATCHES = 5
KID_MODE_MAX_DIFFICULTY = 2
MAX_DIFFICULTY = 3

# constraint -> description keyword to exclude
CONSTRAINT_EXCLUSIONS = {
    "no-equipment": "equipment",
    "apartment-friendly": "jump",
}


def select_category(categories: Optional[Iterable[str]]) -> str:
    """Energy or movement wins, then mindset, then whatever was listed first."""
    picked = [c for c in (categories or []) if c]
    if not picked:
        return DEFAULT_CATEGORY
    if "energy" in picked or "movement" in picked:
        return "energy"
    if "mindset" in picked:
        return "mindset"
    return picked[0].lower()


def fallback_demo_challenge(category: str, minutes: int) -> dict:
    if category == "mindset":
        title = "Three Gratitudes"
        description = (
            "Write down three things you're grateful for today. "
            "Notice how this simple practice shifts your perspective."
        )
        benefit = "Gratitude rewires your brain to notice positive moments throughout your day."
    else:
        title = "Two-Minute Movement"
        description = (
            "Set a timer and move your body for two minutes. "
            "This could be stretching, dancing, or walking around your space."
        )
        benefit = "Short movement breaks boost energy and improve focus for the rest of your day."
    return {
        "id": "demo-fallback",
        "category": category,
        "title": title,
        "description": description,
        "benefit": benefit,
        "difficulty": 1,
        "estimated_minutes": minutes,
        "day_number": 1,
    }


class DemoChallengeService:
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def find_matches(self, category: str, minutes: int, constraints: Iterable[str], kid_mode: bool) -> List[dict]:
        query = select(challenges).where(
            challenges.c.category == category,
            challenges.c.estimated_minutes == minutes,
            challenges.c.difficulty <= (KID_MODE_MAX_DIFFICULTY if kid_mode else MAX_DIFFICULTY),
        )
        for constraint in constraints:
            keyword = CONSTRAINT_EXCLUSIONS.get(constraint)
            if keyword:
                query = query.where(not_(challenges.c.description.ilike(f"%{keyword}%")))
        query = query.order_by(challenges.c.day_number, challenges.c.id).limit(MAX_MATCHES)

        with get_db_session() as session:
            rows = session.execute(query).all()
        return [_catalog_dict(row) for row in rows]

    def pick(
        self,
        *,
        categories: Optional[List[str]] = None,
        time_minutes: int,
        constraints: Optional[List[str]] = None,
        kid_mode: bool = False,
        goal: Optional[str] = None,
    ) -> dict:
        category = select_category(categories)
        matches = self.find_matches(category, time_minutes, constraints or [], kid_mode)
        if matches:
            challenge = self.rng.choice(matches)
        else:
            challenge = fallback_demo_challenge(category, time_minutes)

        challenge["demoMessage"] = (
            f"Perfect! Based on your interests in {category}, here's your personalized Day 1 challenge."
        )
        if kid_mode:
            challenge["trainerNote"] = (
                "Great choice! This is perfect for building a daily habit. "
                "Tomorrow I'd suggest something similar but with a tiny twist."
            )
        else:
            challenge["trainerNote"] = (
                f"Nice work! I can see {category} resonates with you. "
                "Tomorrow I'll build on this momentum with something complementary."
            )

        log_event(
            "info",
            "demo.challenge_selected",
            event_type="demo.challenge",
            extra={"challenge_id": challenge["id"], "matches": len(matches), "has_goal": bool(goal)},
        )
        return challenge


def _catalog_dict(row) -> dict:
    entry = row_to_catalog(row)
    return {
        "id": entry.id,
        "category": entry.category,
        "title": entry.title,
        "description": entry.description,
        "benefit": entry.benefit,
        "difficulty": entry.difficulty,
        "estimated_minutes": entry.estimated_minutes,
        "day_number": entry.day_number,
    }


# Singleton service used by routes
demo_service = DemoChallengeService()
