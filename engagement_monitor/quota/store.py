"""
Quota Stores - persistence for per-subject quota state

InMemoryQuotaStore keeps state in process; RedisQuotaStore keeps the
request window in a sorted set and the lifetime counter in a plain key,
the same layout the core-service rate limiter uses.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import redis

logger = logging.getLogger(__name__)


@dataclass
class QuotaState:
    """Sliding-window timestamps plus a lifetime usage counter for one subject."""

    subject_id: str
    window_requests: List[float] = field(default_factory=list)
    total_usage: int = 0

    def prune(self, now: float, window_seconds: float) -> List[float]:
        """Drop timestamps that have left the window and return the remainder."""
        self.window_requests = [ts for ts in self.window_requests if now - ts < window_seconds]
        return self.window_requests


class QuotaStore(ABC):
    """Persistence collaborator for QuotaTracker."""

    @abstractmethod
    def load(self, policy: str, subject_id: str) -> Optional[QuotaState]:
        """Return stored state or None if the subject has never been seen."""

    @abstractmethod
    def save(self, policy: str, state: QuotaState, window_seconds: float):
        """Persist the (already pruned) state."""


class InMemoryQuotaStore(QuotaStore):
    """Process-local store; each load returns a copy."""

    def __init__(self):
        self._lock = threading.Lock()
        self._states: Dict[str, QuotaState] = {}

    def _key(self, policy: str, subject_id: str) -> str:
        return f"{policy}:{subject_id}"

    def load(self, policy: str, subject_id: str) -> Optional[QuotaState]:
        with self._lock:
            state = self._states.get(self._key(policy, subject_id))
            if state is None:
                return None
            return QuotaState(
                subject_id=state.subject_id,
                window_requests=list(state.window_requests),
                total_usage=state.total_usage
            )

    def save(self, policy: str, state: QuotaState, window_seconds: float):
        with self._lock:
            self._states[self._key(policy, state.subject_id)] = QuotaState(
                subject_id=state.subject_id,
                window_requests=list(state.window_requests),
                total_usage=state.total_usage
            )


class RedisQuotaStore(QuotaStore):
    """
    Redis-backed store.

    Keys:
        quota:{policy}:{subject}:window  sorted set, score = request timestamp
        quota:{policy}:{subject}:total   lifetime usage counter (no expiry)
    """

    def __init__(self, redis_url: str = None, client: "redis.Redis" = None):
        if client is None:
            client = redis.from_url(
                redis_url or "redis://localhost:6379",
                decode_responses=True,
                socket_timeout=5
            )
        self.redis_client = client

    def _window_key(self, policy: str, subject_id: str) -> str:
        return f"quota:{policy}:{subject_id}:window"

    def _total_key(self, policy: str, subject_id: str) -> str:
        return f"quota:{policy}:{subject_id}:total"

    def load(self, policy: str, subject_id: str) -> Optional[QuotaState]:
        pipe = self.redis_client.pipeline()
        pipe.zrange(self._window_key(policy, subject_id), 0, -1, withscores=True)
        pipe.get(self._total_key(policy, subject_id))
        entries, total = pipe.execute()

        if not entries and total is None:
            return None

        return QuotaState(
            subject_id=subject_id,
            window_requests=sorted(score for _, score in entries),
            total_usage=int(total or 0)
        )

    def save(self, policy: str, state: QuotaState, window_seconds: float):
        window_key = self._window_key(policy, state.subject_id)
        pipe = self.redis_client.pipeline()
        pipe.delete(window_key)
        if state.window_requests:
            # Member names carry the index so identical timestamps stay distinct
            pipe.zadd(window_key, {
                f"{ts:.6f}:{i}": ts for i, ts in enumerate(state.window_requests)
            })
            pipe.expire(window_key, int(window_seconds) + 60)  # Cleanup buffer
        pipe.set(self._total_key(policy, state.subject_id), state.total_usage)
        pipe.execute()
