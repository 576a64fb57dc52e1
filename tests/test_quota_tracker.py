"""
Unit Tests for the Quota Tracker
"""
import pytest
from unittest.mock import Mock, patch

from engagement_monitor.quota import (
    QUOTA_POLICIES,
    InMemoryQuotaStore,
    QuotaOutcome,
    QuotaPolicy,
    QuotaState,
    QuotaTracker,
    RedisQuotaStore,
    get_quota_tracker,
)


class TestQuotaPolicies:
    """Tests for quota policy configuration"""

    def test_policies_defined(self):
        assert "ai_chat" in QUOTA_POLICIES
        assert "discussion_message" in QUOTA_POLICIES

    def test_ai_chat_policy(self):
        policy = QUOTA_POLICIES["ai_chat"]
        assert policy.window_cap == 6
        assert policy.window_seconds == 3600
        assert policy.lifetime_cap == 100

    def test_discussion_policy_has_no_lifetime_cap(self):
        policy = QUOTA_POLICIES["discussion_message"]
        assert policy.window_cap == 3
        assert policy.window_seconds == 10
        assert policy.lifetime_cap is None

    def test_unknown_policy_raises(self):
        with pytest.raises(KeyError):
            get_quota_tracker("file_upload")


class TestQuotaTracker:
    """Tests for sliding-window and lifetime admission"""

    @pytest.fixture
    def tracker(self, clock):
        return QuotaTracker(QUOTA_POLICIES["ai_chat"], store=InMemoryQuotaStore(), clock=clock)

    def test_first_request_accepted(self, tracker):
        decision = tracker.check_and_consume("user-1")

        assert decision.allowed is True
        assert decision.outcome == QuotaOutcome.ACCEPTED
        assert decision.remaining_window == 5
        assert decision.remaining_lifetime == 99

    def test_seventh_request_in_hour_rejected(self, tracker, clock):
        """6 requests fill the window; the 7th within the hour is rejected"""
        for _ in range(6):
            assert tracker.check_and_consume("user-1").allowed
            clock.advance(60)

        decision = tracker.check_and_consume("user-1")

        assert decision.allowed is False
        assert decision.outcome == QuotaOutcome.RATE_LIMITED
        assert decision.remaining_window == 0
        # Oldest entry at t=0 leaves the window at t=3600; now is t=360
        assert decision.retry_after == 3240

    def test_accepted_after_oldest_leaves_window(self, tracker, clock):
        for _ in range(6):
            tracker.check_and_consume("user-1")
            clock.advance(60)
        assert not tracker.check_and_consume("user-1").allowed

        clock.advance(3600 - 360)  # t=3600, the t=0 request has left the window

        decision = tracker.check_and_consume("user-1")
        assert decision.allowed is True
        assert decision.remaining_window == 0

    def test_rejection_does_not_consume(self, tracker, clock):
        for _ in range(6):
            tracker.check_and_consume("user-1")
        tracker.check_and_consume("user-1")
        tracker.check_and_consume("user-1")

        status = tracker.status("user-1")
        assert status.remaining_lifetime == 94

    def test_subjects_are_independent(self, tracker):
        for _ in range(6):
            tracker.check_and_consume("user-1")

        assert tracker.check_and_consume("user-2").allowed is True

    def test_lifetime_cap_exhausted(self, clock):
        policy = QuotaPolicy(name="tiny", window_cap=5, window_seconds=10, lifetime_cap=2)
        tracker = QuotaTracker(policy, clock=clock)

        tracker.check_and_consume("user-1")
        tracker.check_and_consume("user-1")
        clock.advance(60)

        decision = tracker.check_and_consume("user-1")
        assert decision.allowed is False
        assert decision.outcome == QuotaOutcome.LIFETIME_EXHAUSTED
        assert decision.remaining_window == 0
        assert decision.remaining_lifetime == 0

    def test_uncapped_policy_reports_no_lifetime(self, clock):
        tracker = QuotaTracker(QUOTA_POLICIES["discussion_message"], clock=clock)

        decision = tracker.check_and_consume("user-1")

        assert decision.remaining_lifetime is None
        assert decision.to_status()["lifetimeRemaining"] is None

    def test_discussion_spam_window(self, clock):
        """3 messages per 10 seconds"""
        tracker = QuotaTracker(QUOTA_POLICIES["discussion_message"], clock=clock)

        assert all(tracker.check_and_consume("user-1").allowed for _ in range(3))
        assert tracker.check_and_consume("user-1").allowed is False

        clock.advance(10)
        assert tracker.check_and_consume("user-1").allowed is True

    def test_status_does_not_consume(self, tracker):
        tracker.status("user-1")
        tracker.status("user-1")

        decision = tracker.status("user-1")
        assert decision.allowed is True
        assert decision.remaining_window == 6
        assert decision.remaining_lifetime == 100

    def test_status_shape(self, tracker):
        tracker.check_and_consume("user-1")

        assert tracker.status("user-1").to_status() == {
            "remainingRequests": 5,
            "hourlyLimit": 6,
            "lifetimeRemaining": 99,
        }

    def test_explicit_now_overrides_clock(self, tracker):
        for i in range(6):
            tracker.check_and_consume("user-1", now=float(i))

        assert tracker.check_and_consume("user-1", now=3599.0).allowed is False
        assert tracker.check_and_consume("user-1", now=3600.0).allowed is True


class TestQuotaState:
    """Tests for window pruning"""

    def test_prune_drops_entries_at_window_edge(self):
        state = QuotaState(subject_id="user-1", window_requests=[0.0, 5.0, 9.0])

        remaining = state.prune(now=10.0, window_seconds=10.0)

        assert remaining == [5.0, 9.0]


class TestRedisQuotaStore:
    """Tests for the Redis-backed store with a mocked client"""

    @pytest.fixture
    def redis_client(self):
        mock_client = Mock()
        mock_pipe = Mock()
        mock_client.pipeline.return_value = mock_pipe
        return mock_client

    @patch("redis.from_url")
    def test_builds_client_from_url(self, mock_from_url):
        RedisQuotaStore(redis_url="redis://cache:6379")

        mock_from_url.assert_called_once()
        args, kwargs = mock_from_url.call_args
        assert args[0] == "redis://cache:6379"
        assert kwargs["decode_responses"] is True

    def test_load_unknown_subject(self, redis_client):
        redis_client.pipeline.return_value.execute.return_value = [[], None]
        store = RedisQuotaStore(client=redis_client)

        assert store.load("ai_chat", "user-1") is None

    def test_load_existing_state(self, redis_client):
        redis_client.pipeline.return_value.execute.return_value = [
            [("20.000000:1", 20.0), ("10.000000:0", 10.0)],
            "7",
        ]
        store = RedisQuotaStore(client=redis_client)

        state = store.load("ai_chat", "user-1")

        assert state.window_requests == [10.0, 20.0]
        assert state.total_usage == 7

    def test_tracker_persists_through_pipeline(self, redis_client, clock):
        """Accepted request rewrites the window set and the lifetime counter"""
        mock_pipe = redis_client.pipeline.return_value
        mock_pipe.execute.side_effect = [[[("1.000000:0", 1.0)], "4"], [1, 1, True, True]]
        clock.advance(100)

        tracker = QuotaTracker(
            QUOTA_POLICIES["ai_chat"],
            store=RedisQuotaStore(client=redis_client),
            clock=clock
        )
        decision = tracker.check_and_consume("user-1")

        assert decision.allowed is True
        assert decision.remaining_window == 4
        assert decision.remaining_lifetime == 95
        mock_pipe.delete.assert_called_with("quota:ai_chat:user-1:window")
        mock_pipe.zadd.assert_called_with(
            "quota:ai_chat:user-1:window",
            {"1.000000:0": 1.0, "100.000000:1": 100.0}
        )
        mock_pipe.set.assert_called_with("quota:ai_chat:user-1:total", 5)
