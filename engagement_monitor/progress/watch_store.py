"""
Lesson Watch Store - server-side heartbeat ingestion

Authoritative side of completion tracking: the client guard can be
bypassed by a hostile client, so completion is decided here with the same
canonical threshold the client calculator uses.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..attention.events import AttentionEvent
from ..clock import Clock, SystemClock
from ..config import settings
from .completion import LessonStatus, compute_status, merge_status

logger = logging.getLogger(__name__)

WatchKey = Tuple[str, str, str, str]  # (user, course, module, lesson)


@dataclass
class LessonWatchSession:
    """Watch record for one (user, course, module, lesson); mutated by each heartbeat."""

    course_id: str
    module_id: str
    lesson_id: str
    user_id: str
    start_time: datetime
    watched_duration: float = 0.0
    total_duration: float = 0.0
    completed: bool = False
    end_time: Optional[datetime] = None
    status: LessonStatus = LessonStatus.NOT_STARTED
    percentage_watched: float = 0.0
    attention_events: List[AttentionEvent] = field(default_factory=list)
    last_updated: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "courseId": self.course_id,
            "moduleId": self.module_id,
            "lessonId": self.lesson_id,
            "userId": self.user_id,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "watchedDuration": self.watched_duration,
            "totalDuration": self.total_duration,
            "completed": self.completed,
            "status": self.status.value,
            "percentageWatched": self.percentage_watched,
            "attentionEvents": [e.to_dict() for e in self.attention_events],
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
        }


@dataclass(frozen=True)
class HeartbeatAck:
    success: bool
    percentage_watched: float
    status: LessonStatus

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "percentageWatched": self.percentage_watched,
            "status": self.status.value,
        }


class LessonWatchStore:
    """In-memory store of LessonWatchSession records keyed per user and lesson."""

    def __init__(self, clock: Clock = None, completion_threshold: float = None):
        self.clock = clock or SystemClock()
        self.completion_threshold = (
            settings.COMPLETION_THRESHOLD_PERCENT
            if completion_threshold is None else completion_threshold
        )
        self._lock = threading.Lock()
        self._sessions: Dict[WatchKey, LessonWatchSession] = {}

    def record_heartbeat(
        self,
        user_id: str,
        course_id: str,
        module_id: str,
        lesson_id: str,
        current_time: Optional[float],
        total_duration: Optional[float],
        events: Iterable[AttentionEvent] = ()
    ) -> HeartbeatAck:
        """
        Apply one heartbeat. The record is created on the first heartbeat;
        `completed` and `end_time` are set once and never unset.
        """
        key = (user_id, course_id, module_id, lesson_id)
        now = self.clock.utcnow()

        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                session = LessonWatchSession(
                    course_id=course_id,
                    module_id=module_id,
                    lesson_id=lesson_id,
                    user_id=user_id,
                    start_time=now,
                )
                self._sessions[key] = session
                logger.info(f"Watch session created: user={user_id} lesson={course_id}/{module_id}/{lesson_id}")

            if current_time is not None:
                session.watched_duration = max(0.0, float(current_time))
            if total_duration:
                session.total_duration = float(total_duration)

            result = compute_status(
                session.watched_duration,
                session.total_duration,
                self.completion_threshold
            )
            session.percentage_watched = result.percentage
            # A recorded watch session is at least in progress, even at 0 s
            session.status = merge_status(
                merge_status(session.status, LessonStatus.IN_PROGRESS),
                result.status
            )

            if session.status == LessonStatus.COMPLETED and not session.completed:
                session.completed = True
                session.end_time = now
                logger.info(
                    f"Lesson completed: user={user_id} lesson={course_id}/{module_id}/{lesson_id} "
                    f"at {result.percentage:.1f}%"
                )

            session.attention_events.extend(events)
            session.last_updated = now

            return HeartbeatAck(
                success=True,
                percentage_watched=session.percentage_watched,
                status=session.status
            )

    def get_session(
        self,
        user_id: str,
        course_id: str,
        module_id: str,
        lesson_id: str
    ) -> Optional[LessonWatchSession]:
        with self._lock:
            return self._sessions.get((user_id, course_id, module_id, lesson_id))

    def sessions_for(self, user_id: str, course_id: str) -> List[LessonWatchSession]:
        with self._lock:
            return [
                s for (uid, cid, _, _), s in self._sessions.items()
                if uid == user_id and cid == course_id
            ]

    def completed_lessons(self, user_id: str, course_id: str) -> Set[Tuple[str, str]]:
        """(module_id, lesson_id) pairs the user has completed in a course."""
        return {
            (s.module_id, s.lesson_id)
            for s in self.sessions_for(user_id, course_id)
            if s.completed
        }
