"""
Lesson View Session - one learner watching one lesson

Wires the attention recorder, playback guard, heartbeat aggregator and
completion calculator behind a start()/stop() lifecycle. Each session owns
its heartbeat timer, so concurrent sessions (two tabs) never share state.
"""

import uuid
import logging
from typing import Optional

from ..clock import Clock, SystemClock
from ..config import settings
from ..progress.completion import CompletionResult, LessonCompletionCalculator
from ..utils.logging import log_session_start, log_session_end
from .events import AttentionEvent, EventType
from .heartbeat import HeartbeatAggregator, HeartbeatTransport, LessonContext
from .playback_guard import PlaybackIntegrityGuard
from .recorder import AttentionRecorder

logger = logging.getLogger(__name__)


class LessonViewSession:
    """
    Client-side monitor for a lesson video.

    Usage:
        async with LessonViewSession(context, transport, user_id="u1") as session:
            position = session.on_time_update(player.current_time)
            ...
    """

    def __init__(
        self,
        context: LessonContext,
        transport: HeartbeatTransport,
        user_id: str = "",
        clock: Clock = None,
        heartbeat_interval: float = None,
        inactivity_threshold: float = None,
        completion_threshold: float = None,
        resume_position: float = 0.0,
        session_id: Optional[str] = None
    ):
        self.id = session_id or f"LSN_{uuid.uuid4().hex[:6].upper()}"
        self.context = context
        self.user_id = user_id
        self.clock = clock or SystemClock()
        self.heartbeat_interval = (
            settings.HEARTBEAT_INTERVAL_SECONDS
            if heartbeat_interval is None else heartbeat_interval
        )

        self.recorder = AttentionRecorder(
            clock=self.clock,
            inactivity_threshold=inactivity_threshold,
            listener=self._on_event
        )
        self.guard = PlaybackIntegrityGuard(clock=self.clock, recorder=self.recorder)
        self.guard.resume_from(resume_position)
        self.aggregator = HeartbeatAggregator(
            context=context,
            transport=transport,
            clock=self.clock,
            interval=self.heartbeat_interval,
            position_source=lambda: self.guard.watched_duration,
            session_id=self.id
        )
        self.calculator = LessonCompletionCalculator(threshold=completion_threshold)

        self._timer = None
        self.is_active = False

    # --- Lifecycle ---

    def start(self):
        """Start the heartbeat timer and send the opening heartbeat."""
        if self.is_active:
            return
        self.is_active = True
        self._timer = self.clock.call_every(self.heartbeat_interval, self._tick)

        log_session_start(self.id, "lesson", self.user_id or "-")
        self.recorder.record_event(EventType.HEARTBEAT, "Session started")
        self.aggregator.flush(self.watched_duration)

    def stop(self):
        """Cancel the timer and schedule one final best-effort flush."""
        if not self.is_active:
            return
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        self.recorder.record_event(EventType.HEARTBEAT, "Session ended")
        self.aggregator.flush(self.watched_duration, force=True)
        self.is_active = False

        log_session_end(self.id, "lesson", {
            "watched": round(self.watched_duration, 1),
            "status": self.calculator.status.value,
            "events": len(self.recorder.events),
            "tab_switches": self.recorder.tab_switch_count,
            "fast_forwards": self.guard.fast_forward_count,
            "failed_flushes": self.aggregator.failed_count
        })

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False

    async def aclose(self):
        """Stop the session and wait for scheduled heartbeats to be delivered."""
        self.stop()
        await self.aggregator.drain()

    async def __aenter__(self):
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
        return False

    def _tick(self):
        self.recorder.record_event(EventType.HEARTBEAT)
        self.recorder.check_inactivity()
        self.aggregator.flush(self.watched_duration)

    def _on_event(self, event: AttentionEvent):
        # Events outside start()/stop() stay in the local log only
        if self.is_active:
            self.aggregator.enqueue(event)

    # --- Signals ---

    @property
    def watched_duration(self) -> float:
        return self.guard.watched_duration

    @property
    def completion(self) -> CompletionResult:
        return CompletionResult(percentage=self.calculator.percentage, status=self.calculator.status)

    def on_time_update(self, reported_time: float) -> float:
        """Returns the position the player must be held to."""
        corrected = self.guard.on_time_update(reported_time)
        self.calculator.update(self.guard.watched_duration, self.context.total_duration)
        return corrected

    def on_rate_change(self, rate: float) -> float:
        return self.guard.on_rate_change(rate)

    def on_pause(self):
        self.guard.pause()

    def on_play(self):
        self.guard.resume()

    def on_user_activity(self, signal: str = "mousemove"):
        self.recorder.on_user_activity(signal)

    def on_visibility_change(self, hidden: bool):
        self.recorder.on_visibility_change(hidden)

    def reset_warnings(self):
        self.recorder.reset_warnings()
