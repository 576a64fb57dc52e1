"""
Playback Integrity Guard - prevents seek and speed manipulation of watch time

The guard bounds the maximum playback position ever observed, not just the
latest one, so seeking forward and rewinding cannot hide a jump. It runs on
the client and is UX friction only; the server-side completion check stays
authoritative.
"""

import logging
import math
from typing import Optional

from ..clock import Clock, SystemClock
from ..config import settings
from .events import EventType
from .recorder import AttentionRecorder

logger = logging.getLogger(__name__)


class PlaybackIntegrityGuard:
    """
    Classifies player time updates and returns the position the player
    must be held to.

    Args:
        clock: Time source for expected-elapsed computation
        recorder: Receives one fast_forward event per detected skip
        tolerance: Extra seconds allowed beyond wall-clock elapsed time
        min_jump: Jumps at or below this size are treated as timer jitter
        max_rate: Highest playback rate accepted
    """

    def __init__(
        self,
        clock: Clock = None,
        recorder: Optional[AttentionRecorder] = None,
        tolerance: float = None,
        min_jump: float = None,
        max_rate: float = None
    ):
        self.clock = clock or SystemClock()
        self.recorder = recorder
        self.tolerance = settings.SEEK_TOLERANCE_SECONDS if tolerance is None else tolerance
        self.min_jump = settings.MIN_SEEK_JUMP_SECONDS if min_jump is None else min_jump
        self.max_rate = settings.MAX_PLAYBACK_RATE if max_rate is None else max_rate

        self.max_observed_time = 0.0
        self.last_reported_time = 0.0
        self.last_check_time = self.clock.now()
        self.playback_rate = 1.0
        # Nothing is credited until the player reports play
        self.is_paused = True

        self.fast_forward_count = 0
        self.rate_violation_count = 0

    @property
    def watched_duration(self) -> float:
        """Watch time that may be reported upstream."""
        return self.max_observed_time

    def resume_from(self, position: float):
        """Seed the guard with a previously credited position; stays paused."""
        if position is None or math.isnan(position) or position < 0:
            return
        self.max_observed_time = max(self.max_observed_time, position)
        self.last_reported_time = position
        self.last_check_time = self.clock.now()

    def pause(self):
        """Stop crediting wall-clock time while the player is paused."""
        self.is_paused = True

    def resume(self):
        """Start crediting wall-clock time again."""
        self.is_paused = False
        self.last_check_time = self.clock.now()

    def on_time_update(self, reported_time: float) -> float:
        """
        Classify a reported playback position.

        Returns the corrected position: the reported time when plausible,
        otherwise max_observed_time, which the caller must seek back to.
        """
        now = self.clock.now()

        if reported_time is None or math.isnan(reported_time):
            return self.max_observed_time
        reported_time = max(0.0, float(reported_time))

        expected_elapsed = 0.0 if self.is_paused else (now - self.last_check_time) * self.max_rate
        self.last_check_time = now

        # Rewinding or replaying watched content is always allowed
        if reported_time <= self.max_observed_time:
            self.last_reported_time = reported_time
            return reported_time

        jump = reported_time - self.max_observed_time
        if jump > expected_elapsed + self.tolerance and jump > self.min_jump:
            self.fast_forward_count += 1
            logger.info(
                f"Forward skip blocked: {reported_time:.1f}s reported, "
                f"max observed {self.max_observed_time:.1f}s, expected +{expected_elapsed:.1f}s"
            )
            if self.recorder is not None:
                self.recorder.record_event(
                    EventType.FAST_FORWARD,
                    f"Fast forwarded {round(jump)} seconds"
                )
            self.last_reported_time = self.max_observed_time
            return self.max_observed_time

        self.max_observed_time = reported_time
        self.last_reported_time = reported_time
        return reported_time

    def on_rate_change(self, rate: float) -> float:
        """Clamp playback rate; returns the rate the player must use."""
        if rate is None or math.isnan(rate) or rate <= 0:
            return self.playback_rate
        if rate > self.max_rate:
            self.rate_violation_count += 1
            logger.info(f"Playback rate {rate}x rejected, clamped to {self.max_rate}x")
            self.playback_rate = self.max_rate
            return self.max_rate
        self.playback_rate = rate
        return rate
