"""Lesson completion and course progress"""

from .completion import (
    CompletionResult,
    LessonCompletionCalculator,
    LessonStatus,
    compute_status,
    merge_status,
)

__all__ = [
    "CompletionResult",
    "LessonCompletionCalculator",
    "LessonStatus",
    "compute_status",
    "merge_status",
]
