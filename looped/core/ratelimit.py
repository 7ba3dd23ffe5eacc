"""
Token-bucket rate limiter for trainer calls.

- In-memory, keyed by scope + user_id.
- Each trainer turn may hit the upstream LLM, so the chat route is guarded.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from looped.core.config import Settings, settings


@dataclass
class RateLimitConfig:
    enabled: bool = True
    per_minute: int = 10
    burst: int = 5


class TokenBucket:
    def __init__(self, capacity: int, refill_rate_per_sec: float, time_fn: Callable[[], float] = time.monotonic):
        self.capacity = max(1, capacity)
        self.tokens = float(self.capacity)
        self.refill_rate = max(0.0, refill_rate_per_sec)
        self.time_fn = time_fn
        self.last_refill = self.time_fn()

    def _refill(self) -> None:
        now = self.time_fn()
        elapsed = now - self.last_refill
        if elapsed <= 0:
            return
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    def allow(self, cost: float = 1.0) -> bool:
        self._refill()
        if self.tokens >= cost:
            self.tokens -= cost
            return True
        return False


class InMemoryRateLimiter:
    def __init__(self, config: RateLimitConfig, time_fn: Callable[[], float] = time.monotonic):
        self.config = config
        self.time_fn = time_fn
        self.buckets: Dict[str, TokenBucket] = {}

    def allow(self, key: str) -> bool:
        if not self.config.enabled:
            return True
        bucket = self.buckets.get(key)
        if bucket is None:
            bucket = TokenBucket(
                capacity=self.config.burst,
                refill_rate_per_sec=self.config.per_minute / 60.0,
                time_fn=self.time_fn,
            )
            self.buckets[key] = bucket
        return bucket.allow()

    def reset(self) -> None:
        self.buckets.clear()


def trainer_rate_limit_config(settings_obj: Optional[Settings] = None) -> RateLimitConfig:
    cfg = settings_obj or settings
    return RateLimitConfig(
        enabled=cfg.RATE_LIMIT_ENABLED,
        per_minute=max(1, cfg.TRAINER_RATE_LIMIT_PER_MINUTE),
        burst=max(1, cfg.TRAINER_RATE_LIMIT_BURST),
    )
