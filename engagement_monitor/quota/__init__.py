"""Quota tracking for AI chat and discussion messages"""

from .store import QuotaState, QuotaStore, InMemoryQuotaStore, RedisQuotaStore
from .tracker import (
    QUOTA_POLICIES,
    QuotaDecision,
    QuotaOutcome,
    QuotaPolicy,
    QuotaTracker,
    get_quota_tracker,
)

__all__ = [
    "QUOTA_POLICIES",
    "QuotaDecision",
    "QuotaOutcome",
    "QuotaPolicy",
    "QuotaState",
    "QuotaStore",
    "QuotaTracker",
    "InMemoryQuotaStore",
    "RedisQuotaStore",
    "get_quota_tracker",
]
