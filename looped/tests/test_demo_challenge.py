import random

from looped.features.challenges.catalog import seed_catalog
from looped.features.demo.service import DemoChallengeService, select_category
from looped.models.challenge import CatalogChallenge


def _entry(id, category="energy", minutes=5, difficulty=1, description="Move around."):
    return CatalogChallenge(
        id=id, category=category, day_number=1, title=id.title(), description=description,
        difficulty=difficulty, estimated_minutes=minutes, benefit="b",
    )


def test_select_category_prefers_energy_then_mindset():
    assert select_category(["focus", "movement"]) == "energy"
    assert select_category(["focus", "energy", "mindset"]) == "energy"
    assert select_category(["home", "mindset"]) == "mindset"
    assert select_category(["Home", "finance"]) == "home"
    assert select_category([]) == "mindset"
    assert select_category(None) == "mindset"


def test_filters_by_exact_minutes_and_difficulty():
    seed_catalog([
        _entry("fits", minutes=5, difficulty=3),
        _entry("too-long", minutes=10),
        _entry("too-hard", minutes=5, difficulty=4),
    ])
    service = DemoChallengeService(rng=random.Random(1))
    matches = service.find_matches("energy", 5, [], kid_mode=False)
    assert [m["id"] for m in matches] == ["fits"]
    assert service.find_matches("energy", 5, [], kid_mode=True) == []


def test_constraints_exclude_keywords_case_insensitively():
    seed_catalog([
        _entry("gear", description="Grab your Equipment and go."),
        _entry("jumps", description="Do ten JUMPing jacks."),
        _entry("plain", description="March in place."),
    ])
    service = DemoChallengeService()
    ids = [m["id"] for m in service.find_matches("energy", 5, ["no-equipment", "apartment-friendly"], False)]
    assert ids == ["plain"]
    assert len(service.find_matches("energy", 5, ["unknown-constraint"], False)) == 3


def test_at_most_five_candidates():
    seed_catalog([_entry(f"e{i}") for i in range(8)])
    assert len(DemoChallengeService().find_matches("energy", 5, [], False)) == 5


def test_pick_is_uniform_over_matches_with_injected_rng():
    seed_catalog([_entry("a"), _entry("b")])
    service = DemoChallengeService(rng=random.Random(42))
    seen = {service.pick(categories=["energy"], time_minutes=5)["id"] for _ in range(30)}
    assert seen == {"a", "b"}


def test_fallback_when_nothing_matches():
    service = DemoChallengeService()
    mindset = service.pick(categories=["mindset"], time_minutes=7)
    assert mindset["id"] == "demo-fallback"
    assert mindset["title"] == "Three Gratitudes"
    assert mindset["estimated_minutes"] == 7
    assert mindset["day_number"] == 1

    energy = service.pick(categories=["energy"], time_minutes=3, kid_mode=True)
    assert energy["title"] == "Two-Minute Movement"
    assert energy["trainerNote"].startswith("Great choice!")


def test_demo_messages_name_the_category(seeded):
    result = DemoChallengeService(rng=random.Random(0)).pick(categories=["focus"], time_minutes=10)
    assert result["category"] == "focus"
    assert "focus" in result["demoMessage"]
    assert "focus resonates with you" in result["trainerNote"]


def test_demo_endpoint_needs_no_auth(client, seeded):
    res = client.post(
        "/v1/demo/challenge",
        json={"categories": ["energy"], "timeMinutes": 2, "constraints": ["apartment-friendly"], "kidMode": True},
    )
    assert res.status_code == 200
    challenge = res.json()["challenge"]
    assert challenge["category"] == "energy"
    assert challenge["estimated_minutes"] == 2
    assert challenge["difficulty"] <= 2
    assert "demoMessage" in challenge


def test_demo_endpoint_validates_minutes(client):
    res = client.post("/v1/demo/challenge", json={"categories": [], "timeMinutes": 0, "constraints": []})
    assert res.status_code == 422
