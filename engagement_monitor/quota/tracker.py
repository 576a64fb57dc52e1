"""
Quota Tracker - sliding-window plus lifetime-cap admission control

Used for AI-chat rate limiting and discussion anti-spam. Limits are soft
UX guards: concurrent writers in different processes may overshoot by at
most one request per burst, since no cross-process lock is taken.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Any

from ..clock import Clock, SystemClock
from ..config import settings
from .store import QuotaState, QuotaStore, InMemoryQuotaStore, RedisQuotaStore

logger = logging.getLogger(__name__)


# ============================================================================
# Quota Policy Configuration
# ============================================================================

@dataclass(frozen=True)
class QuotaPolicy:
    """Window cap, window length and optional lifetime cap for one action."""

    name: str
    window_cap: int
    window_seconds: float
    lifetime_cap: Optional[int] = None


QUOTA_POLICIES: Dict[str, QuotaPolicy] = {
    # AI assistant messages: 6/hour, 100 for the lifetime of the account
    "ai_chat": QuotaPolicy(
        name="ai_chat",
        window_cap=settings.AI_CHAT_HOURLY_LIMIT,
        window_seconds=settings.AI_CHAT_WINDOW_SECONDS,
        lifetime_cap=settings.AI_CHAT_LIFETIME_LIMIT
    ),
    # Course discussion anti-spam: 3 messages per 10 seconds
    "discussion_message": QuotaPolicy(
        name="discussion_message",
        window_cap=settings.DISCUSSION_MESSAGE_LIMIT,
        window_seconds=settings.DISCUSSION_WINDOW_SECONDS
    ),
}


class QuotaOutcome(str, Enum):
    """Result of an admission check."""
    ACCEPTED = "accepted"
    RATE_LIMITED = "rate_limited"
    LIFETIME_EXHAUSTED = "lifetime_exhausted"


@dataclass(frozen=True)
class QuotaDecision:
    """Admission result. A rejection is a value, never an exception."""

    allowed: bool
    outcome: QuotaOutcome
    remaining_window: int
    remaining_lifetime: Optional[int]
    window_cap: int
    retry_after: int = 0

    def to_status(self) -> Dict[str, Any]:
        """Quota status in the shape callers surface to the learner."""
        return {
            "remainingRequests": self.remaining_window,
            "hourlyLimit": self.window_cap,
            "lifetimeRemaining": self.remaining_lifetime,
        }


# ============================================================================
# Quota Tracker
# ============================================================================

class QuotaTracker:
    """
    Per-subject sliding-window counter with a lifetime cap.

    Usage:
        tracker = QuotaTracker(QUOTA_POLICIES["ai_chat"])

        decision = tracker.check_and_consume(user_id)
        if not decision.allowed:
            return "Rate limit exceeded", 429
    """

    def __init__(
        self,
        policy: QuotaPolicy,
        store: QuotaStore = None,
        clock: Clock = None
    ):
        self.policy = policy
        self.store = store or InMemoryQuotaStore()
        self.clock = clock or SystemClock()
        # Serialises read-modify-write within this process only
        self._lock = threading.Lock()

    def _load(self, subject_id: str) -> QuotaState:
        state = self.store.load(self.policy.name, subject_id)
        return state or QuotaState(subject_id=subject_id)

    def _remaining_lifetime(self, state: QuotaState) -> Optional[int]:
        if self.policy.lifetime_cap is None:
            return None
        return max(0, self.policy.lifetime_cap - state.total_usage)

    def _retry_after(self, state: QuotaState, now: float) -> int:
        if not state.window_requests:
            return 0
        oldest = min(state.window_requests)
        return max(0, int(round(oldest + self.policy.window_seconds - now)))

    def check_and_consume(self, subject_id: str, now: float = None) -> QuotaDecision:
        """
        Admit or reject one request for a subject.

        Prunes the window, rejects on an exhausted lifetime cap first, then
        on a full window; otherwise records the request and accepts.
        """
        now = self.clock.now() if now is None else now
        policy = self.policy

        with self._lock:
            state = self._load(subject_id)
            window = state.prune(now, policy.window_seconds)

            if policy.lifetime_cap is not None and state.total_usage >= policy.lifetime_cap:
                self.store.save(policy.name, state, policy.window_seconds)
                logger.info(f"[Quota] {policy.name} lifetime cap reached for {subject_id}")
                return QuotaDecision(
                    allowed=False,
                    outcome=QuotaOutcome.LIFETIME_EXHAUSTED,
                    remaining_window=0,
                    remaining_lifetime=0,
                    window_cap=policy.window_cap
                )

            if len(window) >= policy.window_cap:
                self.store.save(policy.name, state, policy.window_seconds)
                retry_after = self._retry_after(state, now)
                logger.info(
                    f"[Quota] {policy.name} rate limited for {subject_id} "
                    f"(retry after {retry_after}s)"
                )
                return QuotaDecision(
                    allowed=False,
                    outcome=QuotaOutcome.RATE_LIMITED,
                    remaining_window=0,
                    remaining_lifetime=self._remaining_lifetime(state),
                    window_cap=policy.window_cap,
                    retry_after=retry_after
                )

            state.window_requests.append(now)
            state.total_usage += 1
            self.store.save(policy.name, state, policy.window_seconds)

            return QuotaDecision(
                allowed=True,
                outcome=QuotaOutcome.ACCEPTED,
                remaining_window=policy.window_cap - len(state.window_requests),
                remaining_lifetime=self._remaining_lifetime(state),
                window_cap=policy.window_cap
            )

    def status(self, subject_id: str, now: float = None) -> QuotaDecision:
        """Report what check_and_consume would decide, without consuming."""
        now = self.clock.now() if now is None else now
        policy = self.policy

        state = self._load(subject_id)
        window = state.prune(now, policy.window_seconds)
        remaining_lifetime = self._remaining_lifetime(state)

        if remaining_lifetime == 0:
            outcome = QuotaOutcome.LIFETIME_EXHAUSTED
        elif len(window) >= policy.window_cap:
            outcome = QuotaOutcome.RATE_LIMITED
        else:
            outcome = QuotaOutcome.ACCEPTED

        allowed = outcome == QuotaOutcome.ACCEPTED
        return QuotaDecision(
            allowed=allowed,
            outcome=outcome,
            remaining_window=max(0, policy.window_cap - len(window)) if allowed else 0,
            remaining_lifetime=remaining_lifetime,
            window_cap=policy.window_cap,
            retry_after=0 if allowed else self._retry_after(state, now)
        )


# ============================================================================
# Registry
# ============================================================================

_trackers: Dict[str, QuotaTracker] = {}


def get_quota_tracker(policy_name: str) -> QuotaTracker:
    """Get or create the tracker for a named policy (KeyError if unknown)."""
    if policy_name not in _trackers:
        policy = QUOTA_POLICIES[policy_name]
        if settings.QUOTA_BACKEND == "redis":
            store = RedisQuotaStore(redis_url=settings.REDIS_URL)
        else:
            store = InMemoryQuotaStore()
        _trackers[policy_name] = QuotaTracker(policy, store=store)
    return _trackers[policy_name]
