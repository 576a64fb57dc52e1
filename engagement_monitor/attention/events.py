"""
Attention Events - typed, immutable records of classified browser signals
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class EventType(str, Enum):
    """Kinds of attention event. Branching logic keys off these values."""
    HEARTBEAT = "heartbeat"
    INACTIVITY = "inactivity"
    TAB_SWITCH = "tab_switch"
    FAST_FORWARD = "fast_forward"
    ACTIVITY_RESUMED = "activity_resumed"


# Events that bypass heartbeat throttling and are flushed immediately
CRITICAL_EVENT_TYPES = frozenset({
    EventType.FAST_FORWARD,
    EventType.INACTIVITY,
    EventType.TAB_SWITCH,
})


@dataclass(frozen=True)
class AttentionEvent:
    """One entry of a viewing session's ordered event log."""

    timestamp: datetime
    event_type: EventType
    details: Optional[str] = None

    @property
    def is_critical(self) -> bool:
        return self.event_type in CRITICAL_EVENT_TYPES

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "timestamp": self.timestamp.isoformat(),
            "eventType": self.event_type.value,
        }
        if self.details is not None:
            data["details"] = self.details
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AttentionEvent":
        timestamp = data["timestamp"]
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        return cls(
            timestamp=timestamp,
            event_type=EventType(data["eventType"]),
            details=data.get("details")
        )
