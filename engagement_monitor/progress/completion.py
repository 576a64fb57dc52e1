"""
Lesson Completion Calculator - watch time to percentage and status

One canonical threshold (settings.COMPLETION_THRESHOLD_PERCENT) is shared
by the client-side calculator and the server-side watch store.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum

from ..config import settings

logger = logging.getLogger(__name__)


class LessonStatus(str, Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]


_STATUS_RANK = {
    LessonStatus.NOT_STARTED: 0,
    LessonStatus.IN_PROGRESS: 1,
    LessonStatus.COMPLETED: 2,
}


@dataclass(frozen=True)
class CompletionResult:
    percentage: float
    status: LessonStatus

    def to_dict(self) -> dict:
        return {"percentage": self.percentage, "status": self.status.value}


def compute_status(
    watched_duration: float,
    total_duration: float,
    threshold: float = None
) -> CompletionResult:
    """
    Stateless percentage and status for a single sample.

    percentage = watched / total * 100, clamped to [0, 100]; a missing or
    non-positive total yields 0.
    """
    threshold = settings.COMPLETION_THRESHOLD_PERCENT if threshold is None else threshold

    if (
        watched_duration is None or total_duration is None
        or math.isnan(watched_duration) or math.isnan(total_duration)
        or total_duration <= 0
    ):
        percentage = 0.0
    else:
        percentage = min(100.0, max(0.0, (watched_duration / total_duration) * 100))

    if percentage >= threshold:
        status = LessonStatus.COMPLETED
    elif percentage > 0:
        status = LessonStatus.IN_PROGRESS
    else:
        status = LessonStatus.NOT_STARTED

    return CompletionResult(percentage=percentage, status=status)


def merge_status(previous: LessonStatus, current: LessonStatus) -> LessonStatus:
    """Monotone max of two statuses."""
    return current if current.rank > previous.rank else previous


class LessonCompletionCalculator:
    """
    Tracks lesson status as a monotone max over all samples, so a later,
    shorter viewing never reverts a completed lesson.
    """

    def __init__(self, threshold: float = None):
        self.threshold = settings.COMPLETION_THRESHOLD_PERCENT if threshold is None else threshold
        self.status = LessonStatus.NOT_STARTED
        self.percentage = 0.0

    @property
    def completed(self) -> bool:
        return self.status == LessonStatus.COMPLETED

    def update(self, watched_duration: float, total_duration: float) -> CompletionResult:
        """Fold one sample in; percentage is the latest sample's value."""
        sample = compute_status(watched_duration, total_duration, self.threshold)
        previous = self.status
        self.status = merge_status(self.status, sample.status)
        self.percentage = sample.percentage

        if previous != LessonStatus.COMPLETED and self.status == LessonStatus.COMPLETED:
            logger.info(f"Lesson completed at {sample.percentage:.1f}% (threshold {self.threshold}%)")

        return CompletionResult(percentage=self.percentage, status=self.status)
