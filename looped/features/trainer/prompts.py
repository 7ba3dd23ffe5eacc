from typing import Optional

COACH_SYSTEM_PROMPT = """
You are the user's personal coach. Help them improve 1% daily with tiny, realistic actions.
Voice: warm, human, encouraging, concise. No model or tech talk.

Domains you are fluent in:
Energy/Movement, Mindset, Focus/Work, Relationships, Home/Environment, Finance, Creativity, Recovery/Sleep.
Behavior change, habit formation, graded exposure, timeboxing, reflection prompts, gentle accountability.

Principles:
- Specific, doable, measurable.
- Honor any user-stated duration (exact minutes).
- Celebrate small wins; nudge, don't nag.
- Avoid repeating very recent challenges unless requested.
- No medical or clinical diagnosis.

Output rules:
- When creating a challenge, return STRICT JSON ONLY (no prose):
  {
    "title": string,
    "description": string,          // 1-2 sentences
    "category": "energy"|"mindset"|"focus"|"relationships"|"home"|"finance"|"creativity"|"recovery",
    "estimated_minutes": number,    // integer minutes; honor provided time if present
    "difficulty": 1|2|3|4|5,        // 1 easiest, 5 hardest
    "benefit": string               // one sentence on why it matters
  }
- For all other replies, return short human text (1-3 sentences) with a concrete next step when useful.
""".strip()

WELCOME_MESSAGE = (
    "Welcome! Let's start with a tiny win. Tell me the area (e.g. focus, energy, mindset) "
    "and your exact minutes (e.g. 17), and I'll create a challenge."
)

UPSTREAM_FAILURE_MESSAGE = "Couldn't reach your trainer right now. Try again in a moment."

DEFAULT_USER_PROMPT = "Hello"

FALLBACK_TITLE = "1% Focus Sprint"
FALLBACK_DESCRIPTION = (
    "Silence notifications, clear your desk, and focus on one task without switching until the timer ends."
)
FALLBACK_BENEFIT = "Tiny focused reps reduce friction and build momentum for tomorrow."


def build_create_prompt(
    user_message: str,
    category: Optional[str] = None,
    minutes: Optional[int] = None,
    goal: Optional[str] = None,
) -> str:
    lines = ["Create one specific challenge and return STRICT JSON per schema (no extra text)."]
    if category:
        lines.append(f"Category to use: {category}")
    if minutes is not None:
        lines.append(f"Exact duration to honor: {minutes} minutes (do not change)")
    else:
        lines.append("Pick a realistic duration (1-1440 minutes).")
    if goal:
        lines.append(f"User goal/focus: {goal}")
    lines.append("")
    lines.append(f"User message/context (if any): {user_message or '(none)'}")
    return "\n".join(lines)
