from datetime import date, datetime, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from looped.core.errors import AuthorizationError, ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from looped.features.challenges.service import STREAK_SYNC_WARNING, challenge_service
from looped.features.settings.service import trainer_settings_service
from looped.features.streaks.service import streak_service

TODAY = date(2024, 1, 10)
NOON = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)


def _today(user_id="u1"):
    return challenge_service.get_today_challenge(user_id=user_id, today=TODAY).challenge


def _custom(user_id="u1", **overrides):
    fields = dict(title="Stretch", description="Stretch for five minutes", category="recovery", minutes=5, today=TODAY)
    fields.update(overrides)
    return challenge_service.create_custom_challenge(user_id=user_id, **fields)


def test_complete_marks_completed_and_starts_streak(seeded):
    challenge = _today()
    result = challenge_service.complete_challenge(
        user_id="u1", user_challenge_id=challenge.id, feedback="just_right", notes="felt good", now=NOON
    )
    assert result.already_completed is False
    assert result.streak_synced is True
    assert result.challenge.status == "completed"
    assert result.challenge.feedback == "just_right"
    assert result.challenge.notes == "felt good"
    assert result.challenge.completion_date == NOON
    assert result.streak["current_streak"] == 1
    assert result.streak["last_completion_date"] == "2024-01-10"
    assert challenge_service.get_current_day_number("u1") == 2


def test_completion_uses_local_calendar_date():
    """22:30 UTC on the 10th is the 11th in Auckland, so that is the streak day."""
    trainer_settings_service.update_settings("u1", timezone="Pacific/Auckland")
    challenge = _custom()
    late = datetime(2024, 1, 10, 22, 30, tzinfo=timezone.utc)
    result = challenge_service.complete_challenge(user_id="u1", user_challenge_id=challenge.id, now=late)
    assert result.streak["last_completion_date"] == "2024-01-11"


def test_recompleting_is_a_noop_that_does_not_touch_streak():
    challenge = _custom()
    challenge_service.complete_challenge(user_id="u1", user_challenge_id=challenge.id, now=NOON)
    next_day = datetime(2024, 1, 11, 12, 0, tzinfo=timezone.utc)
    again = challenge_service.complete_challenge(user_id="u1", user_challenge_id=challenge.id, now=next_day)
    assert again.already_completed is True
    assert again.streak["current_streak"] == 1
    assert again.streak["last_completion_date"] == "2024-01-10"
    assert again.challenge.completion_date == NOON


def test_two_completions_same_day_count_once():
    first, second = _custom(), _custom(title="Walk")
    challenge_service.complete_challenge(user_id="u1", user_challenge_id=first.id, now=NOON)
    result = challenge_service.complete_challenge(user_id="u1", user_challenge_id=second.id, now=NOON)
    assert result.streak["current_streak"] == 1
    assert challenge_service.get_current_day_number("u1") == 3


def test_too_hard_lowers_difficulty():
    trainer_settings_service.complete_onboarding("u1", difficulty_preference=3)
    challenge = _custom()
    result = challenge_service.complete_challenge(
        user_id="u1", user_challenge_id=challenge.id, feedback="too_hard", now=NOON
    )
    assert result.difficulty_preference == 2
    assert trainer_settings_service.get_settings("u1").difficulty_preference == 2


def test_too_easy_respects_ceiling():
    trainer_settings_service.complete_onboarding("u1", difficulty_preference=5)
    challenge = _custom()
    result = challenge_service.complete_challenge(
        user_id="u1", user_challenge_id=challenge.id, feedback="too_easy", now=NOON
    )
    assert result.difficulty_preference == 5


def test_too_hard_respects_floor():
    trainer_settings_service.complete_onboarding("u1", difficulty_preference=1)
    challenge = _custom()
    challenge_service.complete_challenge(user_id="u1", user_challenge_id=challenge.id, feedback="too_hard", now=NOON)
    assert trainer_settings_service.get_settings("u1").difficulty_preference == 1


def test_invalid_feedback_rejected_before_any_write():
    challenge = _custom()
    with pytest.raises(ValidationError):
        challenge_service.complete_challenge(user_id="u1", user_challenge_id=challenge.id, feedback="meh")
    assert challenge_service.get_challenge(user_id="u1", user_challenge_id=challenge.id).status == "pending"


def test_streak_failure_keeps_completion_with_warning():
    challenge = _custom()
    boom = OperationalError("UPDATE streaks", {}, Exception("database is locked"))
    with patch.object(streak_service, "record_completion", side_effect=boom):
        result = challenge_service.complete_challenge(user_id="u1", user_challenge_id=challenge.id, now=NOON)
    assert result.challenge.status == "completed"
    assert result.streak_synced is False
    assert result.warnings == [STREAK_SYNC_WARNING]


def test_streak_write_conflict_keeps_completion_with_warning():
    challenge = _custom()
    conflict = ConflictError("Streak is being updated concurrently, try again")
    with patch.object(streak_service, "record_completion", side_effect=conflict):
        result = challenge_service.complete_challenge(user_id="u1", user_challenge_id=challenge.id, now=NOON)
    assert result.streak_synced is False
    assert result.warnings == [STREAK_SYNC_WARNING]
    assert challenge_service.get_challenge(user_id="u1", user_challenge_id=challenge.id).status == "completed"


def test_settings_read_failure_keeps_completion_with_warning():
    challenge = _custom()
    boom = OperationalError("SELECT trainer_settings", {}, Exception("database is locked"))
    with patch.object(trainer_settings_service, "timezone_for", side_effect=boom):
        result = challenge_service.complete_challenge(user_id="u1", user_challenge_id=challenge.id, now=NOON)
    assert result.challenge.status == "completed"
    assert result.streak_synced is False
    assert streak_service.get_streak("u1").current_streak == 0


def test_difficulty_failure_does_not_fail_completion():
    challenge = _custom()
    boom = OperationalError("UPDATE trainer_settings", {}, Exception("database is locked"))
    with patch.object(trainer_settings_service, "adjust_difficulty", side_effect=boom):
        result = challenge_service.complete_challenge(
            user_id="u1", user_challenge_id=challenge.id, feedback="too_easy", now=NOON
        )
    assert result.challenge.status == "completed"
    assert result.difficulty_preference is None


def test_other_users_challenge_is_forbidden():
    challenge = _custom(user_id="owner")
    with pytest.raises(AuthorizationError) as exc:
        challenge_service.complete_challenge(user_id="intruder", user_challenge_id=challenge.id)
    assert exc.value.status_code == 403
    assert challenge_service.get_challenge(user_id="owner", user_challenge_id=challenge.id).status == "pending"


def test_missing_challenge_is_not_found():
    with pytest.raises(NotFoundError):
        challenge_service.complete_challenge(user_id="u1", user_challenge_id="nope")


def test_snooze_does_not_advance_day_or_streak():
    challenge = _custom()
    snoozed = challenge_service.snooze_challenge(user_id="u1", user_challenge_id=challenge.id)
    assert snoozed.status == "snoozed"
    assert challenge_service.get_current_day_number("u1") == 1
    assert streak_service.get_streak("u1").current_streak == 0


def test_snoozed_can_be_started_again_then_completed():
    challenge = _custom()
    challenge_service.snooze_challenge(user_id="u1", user_challenge_id=challenge.id)
    started = challenge_service.start_challenge(user_id="u1", user_challenge_id=challenge.id)
    assert started.status == "in_progress"
    assert [c.id for c in challenge_service.list_in_progress(user_id="u1")] == [challenge.id]
    result = challenge_service.complete_challenge(user_id="u1", user_challenge_id=challenge.id, now=NOON)
    assert result.challenge.status == "completed"


def test_snoozed_cannot_be_completed_directly():
    challenge = _custom()
    challenge_service.snooze_challenge(user_id="u1", user_challenge_id=challenge.id)
    with pytest.raises(InvalidTransitionError):
        challenge_service.complete_challenge(user_id="u1", user_challenge_id=challenge.id)


def test_skip_is_terminal():
    challenge = _custom()
    assert challenge_service.skip_challenge(user_id="u1", user_challenge_id=challenge.id).status == "skipped"
    for move in (challenge_service.start_challenge, challenge_service.snooze_challenge):
        with pytest.raises(InvalidTransitionError):
            move(user_id="u1", user_challenge_id=challenge.id)
    with pytest.raises(InvalidTransitionError):
        challenge_service.delete_challenge(user_id="u1", user_challenge_id=challenge.id)


def test_only_pending_can_be_skipped():
    challenge = _custom()
    challenge_service.start_challenge(user_id="u1", user_challenge_id=challenge.id)
    with pytest.raises(InvalidTransitionError):
        challenge_service.skip_challenge(user_id="u1", user_challenge_id=challenge.id)


def test_delete_removes_non_terminal_only():
    pending = _custom()
    challenge_service.delete_challenge(user_id="u1", user_challenge_id=pending.id)
    with pytest.raises(NotFoundError):
        challenge_service.get_challenge(user_id="u1", user_challenge_id=pending.id)

    done = _custom()
    challenge_service.complete_challenge(user_id="u1", user_challenge_id=done.id, now=NOON)
    with pytest.raises(InvalidTransitionError):
        challenge_service.delete_challenge(user_id="u1", user_challenge_id=done.id)


@pytest.mark.parametrize(
    "overrides",
    [
        {"title": "   "},
        {"description": ""},
        {"minutes": 0},
        {"minutes": 1441},
        {"category": "cooking"},
    ],
)
def test_custom_challenge_validation(overrides):
    with pytest.raises(ValidationError):
        _custom(**overrides)


def test_custom_challenge_bounds_are_inclusive():
    assert _custom(minutes=1).view.estimated_minutes == 1
    assert _custom(minutes=1440).view.estimated_minutes == 1440


def test_custom_challenge_content_and_view():
    challenge = _custom(title="  Plank  ", category="Energy", benefit="Core strength")
    assert challenge.is_custom
    assert challenge.created_by == "user"
    assert challenge.scheduled_date == TODAY
    view = challenge.view
    assert (view.title, view.category, view.source, view.benefit) == ("Plank", "energy", "custom", "Core strength")


def test_history_is_newest_first_and_limited():
    ids = [_custom(title=f"C{i}").id for i in range(3)]
    history = challenge_service.list_history(user_id="u1", limit=2)
    assert len(history) == 2
    assert set(c.id for c in history) <= set(ids)
    assert challenge_service.list_history(user_id="other") == []


def test_complete_endpoint_round_trip(client, user_headers):
    created = client.post(
        "/v1/challenges/custom",
        json={"title": "Read", "description": "Read ten pages", "category": "focus", "minutes": 15},
        headers=user_headers,
    )
    assert created.status_code == 201
    cid = created.json()["data"]["id"]

    res = client.post(
        f"/v1/challenges/{cid}/complete",
        params={"now": "2024-01-10T12:00:00Z"},
        json={"feedback": "too_easy"},
        headers=user_headers,
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["challenge"]["status"] == "completed"
    assert data["streak"]["current_streak"] == 1

    again = client.post(f"/v1/challenges/{cid}/complete", headers=user_headers)
    assert again.status_code == 200
    assert again.json()["data"]["already_completed"] is True


def test_endpoint_forbids_other_users(client):
    created = client.post(
        "/v1/challenges/custom",
        json={"title": "Read", "description": "Read ten pages", "category": "focus", "minutes": 15},
        headers={"X-User-Id": "owner"},
    )
    cid = created.json()["data"]["id"]
    res = client.post(f"/v1/challenges/{cid}/snooze", headers={"X-User-Id": "intruder"})
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "forbidden"


def test_endpoint_invalid_transition_is_conflict(client, user_headers):
    created = client.post(
        "/v1/challenges/custom",
        json={"title": "Read", "description": "Read ten pages", "category": "focus", "minutes": 15},
        headers=user_headers,
    )
    cid = created.json()["data"]["id"]
    client.post(f"/v1/challenges/{cid}/skip", headers=user_headers)
    res = client.post(f"/v1/challenges/{cid}/start", headers=user_headers)
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "invalid_transition"
