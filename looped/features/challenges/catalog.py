"""
Seed catalog of daily challenges.

Five ordinal days per category. Seeding is idempotent: rows are keyed by a
stable id derived from category and day, so re-running only fills gaps.
"""

from typing import Iterable, List, Optional

from sqlalchemy import select, insert

from looped.core.database import get_db_session, challenges
from looped.core.logging import log_event
from looped.models.challenge import CatalogChallenge

# (category, day_number, title, description, difficulty, minutes, benefit)
SEED_ROWS = [
    ("energy", 1, "Two-Minute Movement", "Stand up and march in place, roll your shoulders and stretch your arms overhead for two minutes.", 1, 2, "A short burst of movement wakes up circulation and clears afternoon fog."),
    ("energy", 2, "Glass of Water First", "Drink a full glass of water before your first coffee or tea today.", 1, 2, "Starting hydrated steadies energy through the morning."),
    ("energy", 3, "Stair Sprint", "Take the stairs for every trip today, and do one extra flight at a brisk pace.", 2, 5, "Small bursts of effort add up to real cardiovascular work."),
    ("energy", 4, "Jumping Jack Reset", "Do three sets of 15 jumping jacks with a short rest between sets.", 2, 5, "Raising your heart rate for a few minutes boosts alertness."),
    ("energy", 5, "Ten-Minute Walk", "Go for a ten-minute walk outside without your phone in hand.", 2, 10, "Daylight and walking together reset your energy and mood."),
    ("mindset", 1, "Three Gratitudes", "Write down three specific things you are grateful for today.", 1, 5, "Naming what went well trains attention toward the positive."),
    ("mindset", 2, "Reframe One Worry", "Pick one worry and write a more balanced way to look at it.", 2, 5, "Reframing loosens the grip of anxious thinking."),
    ("mindset", 3, "One Kind Word to Yourself", "Notice one moment of self-criticism and replace it with what you would tell a friend.", 2, 2, "Self-compassion builds resilience faster than self-criticism."),
    ("mindset", 4, "Name Today's Win", "Before bed, name one thing you did well today, however small.", 1, 2, "Recognising progress keeps motivation alive."),
    ("mindset", 5, "Five-Minute Future Letter", "Write a short note from yourself one year from now describing what changed.", 3, 10, "Picturing a concrete future self makes today's choices easier."),
    ("focus", 1, "Single-Task Sprint", "Set a timer for 10 minutes and work on one task with every other tab closed.", 2, 10, "Single-tasking finishes work faster than switching."),
    ("focus", 2, "Phone in Another Room", "Put your phone in another room for your next block of focused work.", 2, 15, "Out of sight really does mean out of mind."),
    ("focus", 3, "Top Three List", "Write the three things that would make today a success and start with the first.", 1, 5, "Deciding in advance removes friction when it matters."),
    ("focus", 4, "Inbox to Zero for Five", "Spend five minutes archiving or answering the oldest messages in your inbox.", 2, 5, "Clearing small loops frees attention for deep work."),
    ("focus", 5, "Deep Work Block", "Protect a 25-minute block on your calendar for your most important task.", 3, 25, "Protected time is where meaningful progress happens."),
    ("relationships", 1, "Send a Thank-You", "Send a short message thanking someone for something specific they did.", 1, 5, "Expressed gratitude strengthens connection on both sides."),
    ("relationships", 2, "Ask a Better Question", "In one conversation today, ask a follow-up question and really listen to the answer.", 2, 10, "Curiosity makes people feel seen."),
    ("relationships", 3, "Reconnect", "Reach out to someone you have not talked to in a while.", 2, 5, "Small check-ins keep relationships from fading."),
    ("relationships", 4, "Phone-Free Meal", "Share one meal today with your phone put away.", 2, 15, "Undivided attention is a gift people remember."),
    ("relationships", 5, "Plan Something Together", "Propose a specific plan with a friend or family member for the coming week.", 3, 10, "Shared plans turn good intentions into time together."),
    ("home", 1, "Clear One Surface", "Clear and wipe down one surface in your home, like a desk or counter.", 1, 5, "A clear surface makes the whole room feel calmer."),
    ("home", 2, "Five-Item Reset", "Put away five things that are out of place.", 1, 2, "Tiny resets keep clutter from compounding."),
    ("home", 3, "Make Your Bed", "Make your bed as soon as you get up.", 1, 2, "An early completed task sets the tone for the day."),
    ("home", 4, "Donate Box", "Fill a small box with things you no longer use and set it by the door.", 2, 15, "Letting go of unused things frees space and attention."),
    ("home", 5, "Fix One Small Thing", "Fix one small thing you have been ignoring, using whatever equipment you already have.", 3, 15, "Finishing nagging tasks removes background stress."),
    ("finance", 1, "Check Your Balance", "Look at your account balances and note how you feel about them.", 1, 2, "Awareness is the first step to calmer money habits."),
    ("finance", 2, "Cancel One Subscription", "Review your subscriptions and cancel one you do not use.", 2, 10, "Small recurring savings add up over a year."),
    ("finance", 3, "Track Today's Spending", "Write down every purchase you make today.", 2, 5, "Tracking reveals patterns that budgets miss."),
    ("finance", 4, "Automate a Small Save", "Set up an automatic transfer of a small amount into savings.", 2, 10, "Automation makes saving happen without willpower."),
    ("finance", 5, "Plan Next Week's Meals", "Sketch next week's meals and the groceries they need.", 3, 15, "Meal planning cuts both food waste and spending."),
    ("creativity", 1, "Doodle for Two", "Doodle freely for two minutes without judging the result.", 1, 2, "Low-stakes creating loosens up creative thinking."),
    ("creativity", 2, "Ten Ideas", "List ten ideas for anything: gifts, projects, weekend plans.", 2, 5, "Idea quantity is the path to idea quality."),
    ("creativity", 3, "Photo Walk", "Take five photos of ordinary things that look interesting up close.", 2, 10, "Looking for beauty changes what you notice."),
    ("creativity", 4, "Write a Tiny Story", "Write a story in exactly six sentences.", 2, 10, "Constraints spark creativity."),
    ("creativity", 5, "Learn One Chord", "Learn one new chord, sketch technique or recipe from a short tutorial.", 3, 15, "Small skill gains build creative confidence."),
    ("recovery", 1, "Box Breathing", "Breathe in for four, hold for four, out for four, hold for four. Repeat for two minutes.", 1, 2, "Slow breathing calms the nervous system quickly."),
    ("recovery", 2, "Screen-Free Wind Down", "Spend the last 15 minutes before bed away from screens.", 2, 15, "Less screen time before bed improves sleep quality."),
    ("recovery", 3, "Gentle Stretch", "Do five minutes of gentle stretching for your neck, back and hips.", 1, 5, "Stretching releases tension you did not know you carried."),
    ("recovery", 4, "Body Scan", "Lie down and slowly notice each part of your body from toes to head.", 2, 10, "Body awareness helps you catch stress early."),
    ("recovery", 5, "Nature Break", "Spend ten minutes outside near trees, water or open sky.", 2, 10, "Time in nature lowers stress hormones."),
]


def catalog_id(category: str, day_number: int) -> str:
    return f"{category}-{day_number:02d}"


def seed_challenges() -> List[CatalogChallenge]:
    return [
        CatalogChallenge(
            id=catalog_id(category, day),
            category=category,
            day_number=day,
            title=title,
            description=description,
            difficulty=difficulty,
            estimated_minutes=minutes,
            benefit=benefit,
        )
        for category, day, title, description, difficulty, minutes, benefit in SEED_ROWS
    ]


def seed_catalog(entries: Optional[Iterable[CatalogChallenge]] = None) -> int:
    """
    Insert catalog rows that are not present yet.

    Args:
        entries: Catalog rows to seed (defaults to the built-in catalog)

    Returns:
        Number of rows inserted
    """
    rows = list(entries) if entries is not None else seed_challenges()
    inserted = 0
    with get_db_session() as session:
        existing = set(session.execute(select(challenges.c.id)).scalars())
        for entry in rows:
            if entry.id in existing:
                continue
            session.execute(insert(challenges).values(**_to_row(entry)))
            existing.add(entry.id)
            inserted += 1
    if inserted:
        log_event("info", "catalog.seeded", event_type="catalog.seeded", extra={"inserted": inserted})
    return inserted


def list_catalog(category: Optional[str] = None) -> List[CatalogChallenge]:
    query = select(challenges).order_by(challenges.c.category, challenges.c.day_number, challenges.c.id)
    if category:
        query = query.where(challenges.c.category == category)
    with get_db_session() as session:
        return [row_to_catalog(row) for row in session.execute(query)]


def row_to_catalog(row) -> CatalogChallenge:
    return CatalogChallenge(
        id=row.id,
        category=row.category,
        day_number=row.day_number,
        title=row.title,
        description=row.description,
        difficulty=row.difficulty,
        estimated_minutes=row.estimated_minutes,
        benefit=row.benefit,
    )


def _to_row(entry: CatalogChallenge) -> dict:
    return {
        "id": entry.id,
        "category": entry.category,
        "day_number": entry.day_number,
        "title": entry.title,
        "description": entry.description,
        "difficulty": entry.difficulty,
        "estimated_minutes": entry.estimated_minutes,
        "benefit": entry.benefit,
    }
