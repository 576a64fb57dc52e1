"""
Heartbeat Aggregator - batches attention events and playback position
into periodic upstream reports

Plain heartbeats are throttled to one report per interval; critical events
(fast_forward, inactivity, tab_switch) are flushed immediately so they are
recorded even if the session ends abruptly. Delivery is fire-and-forget:
flush() schedules the send on the clock and returns, a failed report is
logged and never retried, the next one supersedes it.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set

from ..clock import Clock, SystemClock
from ..config import settings
from ..utils.logging import log_delivery_failure
from .events import AttentionEvent, EventType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LessonContext:
    """Identifies the lesson a viewing session reports on."""

    course_id: str
    module_id: str
    lesson_id: str
    total_duration: float


class HeartbeatTransport(ABC):
    """Upstream collaborator that receives heartbeat payloads."""

    @abstractmethod
    async def send(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Deliver one payload; may raise on transport failure."""


class HeartbeatAggregator:
    """
    Owns the pending event queue of one viewing session.

    Args:
        context: Lesson being watched
        transport: Upstream heartbeat collaborator
        clock: Time source for throttling, runs background sends
        interval: Minimum seconds between plain heartbeats
        position_source: Returns the current credited watch time
        session_id: Used in log lines
    """

    def __init__(
        self,
        context: LessonContext,
        transport: HeartbeatTransport,
        clock: Clock = None,
        interval: float = None,
        position_source: Callable[[], float] = None,
        session_id: str = "-"
    ):
        self.context = context
        self.transport = transport
        self.clock = clock or SystemClock()
        self.interval = settings.HEARTBEAT_INTERVAL_SECONDS if interval is None else interval
        self.position_source = position_source or (lambda: 0.0)
        self.session_id = session_id

        self.pending_events: List[AttentionEvent] = []
        self.last_heartbeat_time: Optional[float] = None
        self.last_ack: Optional[Dict[str, Any]] = None

        self.sent_count = 0
        self.failed_count = 0

        self._in_flight: Set[asyncio.Task] = set()
        self._send_lock: Optional[asyncio.Lock] = None

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def enqueue(self, event: AttentionEvent):
        """Buffer an event; critical events trigger an immediate flush."""
        self.pending_events.append(event)
        if event.is_critical:
            self.flush(self.position_source(), event)

    def build_payload(
        self,
        current_time: float,
        events: List[AttentionEvent],
        latest_event: Optional[AttentionEvent] = None
    ) -> Dict[str, Any]:
        payload = {
            "courseId": self.context.course_id,
            "moduleId": self.context.module_id,
            "lessonId": self.context.lesson_id,
            "currentTime": current_time,
            "totalDuration": self.context.total_duration,
            "events": [e.to_dict() for e in events],
        }
        if latest_event is not None:
            payload["event"] = latest_event.to_dict()
        return payload

    def flush(
        self,
        current_time: float,
        latest_event: Optional[AttentionEvent] = None,
        force: bool = False
    ) -> bool:
        """
        Schedule the pending batch for delivery and return immediately.

        Returns False when the call was throttled. Pending events are
        cleared on every scheduled send, whether or not it later succeeds.
        """
        now = self.clock.now()

        throttled = latest_event is None or latest_event.event_type == EventType.HEARTBEAT
        if (
            throttled and not force
            and self.last_heartbeat_time is not None
            and now - self.last_heartbeat_time < self.interval
        ):
            return False

        self.last_heartbeat_time = now
        batch, self.pending_events = self.pending_events, []
        payload = self.build_payload(current_time, batch, latest_event)

        task = self.clock.spawn(self._deliver(payload))
        if task is not None:
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)
        return True

    async def _deliver(self, payload: Dict[str, Any]):
        # Sends go out one at a time, in the order they were scheduled
        if self._send_lock is None:
            self._send_lock = asyncio.Lock()
        async with self._send_lock:
            try:
                self.last_ack = await self.transport.send(payload)
                self.sent_count += 1
            except Exception as e:
                self.failed_count += 1
                log_delivery_failure(self.session_id, "heartbeat", e)

    async def drain(self):
        """Wait until every scheduled send has finished."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)
