"""
Attention Event Recorder - classifies raw browser signals into attention events

State machine for the attention dimension:

    ACTIVE      --(no activity for inactivity threshold)-->  INACTIVE   emits inactivity
    ACTIVE/INACTIVE --(document hidden)------------------->  TAB_HIDDEN emits tab_switch
    INACTIVE    --(activity signal)----------------------->  ACTIVE     emits activity_resumed
    TAB_HIDDEN  --(document visible)---------------------->  ACTIVE     emits activity_resumed

Tab-hide and inactivity are independent signals: a brief hidden tab is not
disengagement, sustained inactivity while visible is.
"""

import logging
from enum import Enum
from typing import Callable, List, Optional

from ..clock import Clock, SystemClock
from ..config import settings
from .events import AttentionEvent, EventType

logger = logging.getLogger(__name__)


# Raw DOM events that count as user activity
ACTIVITY_SIGNALS = frozenset({"mousedown", "keydown", "mousemove", "wheel", "touchstart"})


class AttentionState(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    TAB_HIDDEN = "tab_hidden"


EventListener = Callable[[AttentionEvent], None]


class AttentionRecorder:
    """
    Keeps the ordered event log of one viewing session and decides when
    the inactivity threshold is crossed.

    Never raises on bad input; unknown signals are ignored.
    """

    def __init__(
        self,
        clock: Clock = None,
        inactivity_threshold: float = None,
        listener: Optional[EventListener] = None
    ):
        self.clock = clock or SystemClock()
        self.inactivity_threshold = (
            settings.INACTIVITY_THRESHOLD_SECONDS
            if inactivity_threshold is None else inactivity_threshold
        )
        self.listener = listener

        self.state = AttentionState.ACTIVE
        self.events: List[AttentionEvent] = []
        self.last_activity_at = self.clock.now()
        self.tab_switch_count = 0

        # User-facing warnings
        self.show_inactive_warning = False
        self.show_tab_switch_warning = False
        self.show_fast_forward_warning = False

    @property
    def is_active(self) -> bool:
        return self.state == AttentionState.ACTIVE

    def record_event(self, event_type: EventType, details: Optional[str] = None) -> AttentionEvent:
        """Append an event to the log and hand it to the listener."""
        event = AttentionEvent(
            timestamp=self.clock.utcnow(),
            event_type=EventType(event_type),
            details=details
        )
        self.events.append(event)

        if event.event_type == EventType.FAST_FORWARD:
            self.show_fast_forward_warning = True
        elif event.event_type == EventType.INACTIVITY:
            self.show_inactive_warning = True
        elif event.event_type == EventType.TAB_SWITCH:
            self.show_tab_switch_warning = True

        if event.event_type != EventType.HEARTBEAT:
            logger.debug(f"Attention event: {event.event_type.value} {details or ''}".rstrip())

        if self.listener is not None:
            self.listener(event)
        return event

    def on_user_activity(self, signal: str = "mousemove"):
        """Register a raw activity signal; resumes from INACTIVE."""
        if signal not in ACTIVITY_SIGNALS:
            logger.debug(f"Ignoring unknown activity signal: {signal}")
            return

        self.last_activity_at = self.clock.now()

        # A hidden document cannot receive input; only a visibility change leaves TAB_HIDDEN
        if self.state == AttentionState.INACTIVE:
            self._resume()

    def on_visibility_change(self, hidden: bool):
        """Handle document visibility changes."""
        if hidden:
            if self.state == AttentionState.TAB_HIDDEN:
                return
            self.state = AttentionState.TAB_HIDDEN
            self.tab_switch_count += 1
            self.record_event(EventType.TAB_SWITCH, "User switched tab or minimized window")
            return

        self.show_tab_switch_warning = False
        self.last_activity_at = self.clock.now()
        if self.state != AttentionState.ACTIVE:
            self._resume()

    def check_inactivity(self) -> bool:
        """
        Transition ACTIVE -> INACTIVE once the threshold has elapsed without
        activity. Returns True when the transition happens.
        """
        if self.state != AttentionState.ACTIVE:
            return False

        idle = self.clock.now() - self.last_activity_at
        if idle < self.inactivity_threshold:
            return False

        self.state = AttentionState.INACTIVE
        self.record_event(EventType.INACTIVITY, f"Inactive for {round(idle / 60)} minutes")
        return True

    def _resume(self):
        self.state = AttentionState.ACTIVE
        self.show_inactive_warning = False
        self.record_event(EventType.ACTIVITY_RESUMED)

    def reset_warnings(self):
        self.show_inactive_warning = False
        self.show_tab_switch_warning = False
        self.show_fast_forward_warning = False
