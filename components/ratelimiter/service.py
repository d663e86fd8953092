from __future__ import annotations

import time
from typing import Callable, Optional

from .contracts import Policy, ConsumeResult
from .store import StateStore, InMemoryStore

TimeFn = Callable[[], float]

class RateLimiterService:
    """Fixed-window counter: at most `policy.limit` hits per key per window."""

    def __init__(self, store: Optional[StateStore] = None, now: Optional[TimeFn] = None):
        self.store = store or InMemoryStore()
        self._now = now or time.monotonic
        self._next_sweep = 0.0

    def consume(self, key: str, policy: Policy) -> ConsumeResult:
        now = self._now()
        if now >= self._next_sweep:
            self.sweep()
            self._next_sweep = now + policy.window_seconds
        decision: dict = {}

        def upd(curr):
            if not curr or now >= curr["window_end"]:
                curr = {"count": 0, "window_end": now + policy.window_seconds}
            count = curr["count"] + 1
            decision.update({
                "allowed": count <= policy.limit,
                "remaining": max(0, policy.limit - count),
                "reset_after": max(0.0, curr["window_end"] - now),
            })
            return {"count": count, "window_end": curr["window_end"]}

        self.store.update(self._bucket_key(key, policy), upd)
        return ConsumeResult(policy=policy.name, key=key, **decision)

    def sweep(self) -> int:
        """Forget keys whose window has ended."""
        now = self._now()
        return self.store.purge(lambda state: now >= state["window_end"])

    def _bucket_key(self, key: str, policy: Policy) -> str:
        return f"ratelimiter:{policy.name}:{key}"
