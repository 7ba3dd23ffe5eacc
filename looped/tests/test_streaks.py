from datetime import date, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import insert

from looped.core.database import get_db_session, streaks
from looped.core.dates import utc_now
from looped.core.errors import ConflictError
from looped.features.streaks.service import StreakService, streak_service
from looped.models.streak import StreakState


def _seed_streak(user_id: str, current: int, longest: int, last: date, start: date = None):
    with get_db_session() as session:
        session.execute(
            insert(streaks).values(
                user_id=user_id,
                current_streak=current,
                longest_streak=longest,
                last_completion_date=last,
                streak_start_date=start or last - timedelta(days=current - 1),
                updated_at=utc_now(),
            )
        )


def test_first_completion_starts_streak():
    """No streak row: the first completion starts at 1 on that day."""
    state = streak_service.record_completion(user_id="u1", completion_date=date(2024, 1, 10))
    assert state.to_dict() == {
        "user_id": "u1",
        "current_streak": 1,
        "longest_streak": 1,
        "last_completion_date": "2024-01-10",
        "streak_start_date": "2024-01-10",
    }
    assert streak_service.get_streak("u1") == state


def test_consecutive_day_increments_and_keeps_longest():
    _seed_streak("u1", current=5, longest=9, last=date(2024, 1, 10))
    state = streak_service.record_completion(user_id="u1", completion_date=date(2024, 1, 11))
    assert state.current_streak == 6
    assert state.longest_streak == 9
    assert state.last_completion_date == date(2024, 1, 11)
    assert state.streak_start_date == date(2024, 1, 6)


def test_gap_resets_to_one():
    _seed_streak("u1", current=5, longest=9, last=date(2024, 1, 10))
    state = streak_service.record_completion(user_id="u1", completion_date=date(2024, 1, 13))
    assert state.current_streak == 1
    assert state.longest_streak == 9
    assert state.last_completion_date == date(2024, 1, 13)
    assert state.streak_start_date == date(2024, 1, 13)


def test_same_day_completion_is_idempotent():
    first = streak_service.record_completion(user_id="u1", completion_date=date(2024, 1, 10))
    second = streak_service.record_completion(user_id="u1", completion_date=date(2024, 1, 10))
    assert second == first
    assert streak_service.get_streak("u1").current_streak == 1


def test_date_before_last_is_treated_as_break():
    _seed_streak("u1", current=3, longest=3, last=date(2024, 1, 10))
    state = streak_service.record_completion(user_id="u1", completion_date=date(2024, 1, 8))
    assert state.current_streak == 1
    assert state.longest_streak == 3
    assert state.streak_start_date == date(2024, 1, 8)


def test_longest_streak_is_monotonic_over_a_sequence():
    days = [1, 2, 3, 5, 6, 6, 7, 8, 9, 20, 21]
    longest_seen = 0
    for d in days:
        state = streak_service.record_completion(user_id="u1", completion_date=date(2024, 3, d))
        assert state.longest_streak >= longest_seen
        assert state.longest_streak >= state.current_streak
        longest_seen = state.longest_streak
    assert longest_seen == 5
    assert state.current_streak == 2


def test_advance_is_pure():
    """The transition never mutates the original state."""
    state = StreakState(user_id="u1", current_streak=2, longest_streak=2, last_completion_date=date(2024, 1, 1))
    new_state, transition = state.advance(date(2024, 1, 2))
    assert transition == "continued"
    assert state.current_streak == 2
    assert new_state.current_streak == 3


def test_advance_reports_transitions():
    empty = StreakState(user_id="u1")
    started, t1 = empty.advance(date(2024, 1, 1))
    _, t2 = started.advance(date(2024, 1, 1))
    _, t3 = started.advance(date(2024, 1, 5))
    assert (t1, t2, t3) == ("started", "unchanged", "restarted")


def test_lost_compare_and_swap_rereads_and_does_not_double_count():
    """
    Simulate a concurrent same-day completion landing between our read and
    our write: the retry sees the new row and becomes a no-op.
    """
    _seed_streak("u1", current=1, longest=1, last=date(2024, 1, 9))
    service = StreakService()
    original = service._to_state
    calls = {"n": 0}

    def racing_to_state(user_id, row):
        calls["n"] += 1
        if calls["n"] == 1:
            # The other request completes first
            streak_service.record_completion(user_id="u1", completion_date=date(2024, 1, 10))
        return original(user_id, row)

    with patch.object(service, "_to_state", side_effect=racing_to_state):
        state = service.record_completion(user_id="u1", completion_date=date(2024, 1, 10))

    assert state.current_streak == 2
    assert streak_service.get_streak("u1").current_streak == 2


def test_gives_up_after_bounded_retries():
    _seed_streak("u1", current=1, longest=1, last=date(2024, 1, 9))
    service = StreakService(max_attempts=2)
    stale = StreakState(user_id="u1", current_streak=7, longest_streak=7, last_completion_date=date(2024, 1, 1))

    with patch.object(service, "_to_state", return_value=stale):
        with pytest.raises(ConflictError):
            service.record_completion(user_id="u1", completion_date=date(2024, 1, 2))


def test_reset_progress_zeroes_counters():
    _seed_streak("u1", current=4, longest=8, last=date(2024, 1, 10))
    state = streak_service.reset_progress("u1")
    assert state.current_streak == 0
    stored = streak_service.get_streak("u1")
    assert stored.current_streak == 0
    assert stored.longest_streak == 0
    assert stored.last_completion_date is None
    assert stored.streak_start_date is None


def test_streak_api_requires_auth(client):
    res = client.get("/v1/streaks/current")
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "unauthorized"


def test_streak_api_returns_zero_state(client, user_headers):
    res = client.get("/v1/streaks/current", headers=user_headers)
    assert res.status_code == 200
    assert res.json()["data"]["current_streak"] == 0
