from looped.core.config import Settings
from looped.core.ratelimit import InMemoryRateLimiter, RateLimitConfig, TokenBucket, trainer_rate_limit_config


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_token_bucket_refills_over_time():
    clock = FakeClock()
    bucket = TokenBucket(capacity=2, refill_rate_per_sec=1.0, time_fn=clock)
    assert bucket.allow()
    assert bucket.allow()
    assert not bucket.allow()
    clock.now = 1.0
    assert bucket.allow()
    assert not bucket.allow()


def test_bucket_never_exceeds_capacity():
    clock = FakeClock()
    bucket = TokenBucket(capacity=2, refill_rate_per_sec=1.0, time_fn=clock)
    clock.now = 100.0
    assert bucket.allow()
    assert bucket.allow()
    assert not bucket.allow()


def test_limiter_keys_are_independent():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(RateLimitConfig(per_minute=60, burst=1), time_fn=clock)
    assert limiter.allow("trainer:a")
    assert not limiter.allow("trainer:a")
    assert limiter.allow("trainer:b")
    limiter.reset()
    assert limiter.allow("trainer:a")


def test_disabled_limiter_always_allows():
    limiter = InMemoryRateLimiter(RateLimitConfig(enabled=False, burst=1), time_fn=FakeClock())
    assert all(limiter.allow("trainer:a") for _ in range(20))


def test_config_from_settings_floors_values():
    cfg = trainer_rate_limit_config(
        Settings(RATE_LIMIT_ENABLED=False, TRAINER_RATE_LIMIT_PER_MINUTE=0, TRAINER_RATE_LIMIT_BURST=-3)
    )
    assert cfg.enabled is False
    assert cfg.per_minute == 1
    assert cfg.burst == 1
