"""
Attention Monitoring

Turns raw player and browser signals into a typed attention event log,
guards watch time against seeking, and reports heartbeats upstream.
"""

from .events import AttentionEvent, EventType, CRITICAL_EVENT_TYPES
from .recorder import AttentionRecorder, AttentionState, ACTIVITY_SIGNALS
from .playback_guard import PlaybackIntegrityGuard
from .heartbeat import HeartbeatAggregator, HeartbeatTransport, LessonContext
from .session import LessonViewSession

__all__ = [
    "ACTIVITY_SIGNALS",
    "CRITICAL_EVENT_TYPES",
    "AttentionEvent",
    "AttentionRecorder",
    "AttentionState",
    "EventType",
    "HeartbeatAggregator",
    "HeartbeatTransport",
    "LessonContext",
    "LessonViewSession",
    "PlaybackIntegrityGuard",
]
