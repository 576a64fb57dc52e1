"""
Course Progress - completed lessons across a syllabus and assessment eligibility
"""

from dataclasses import dataclass
from typing import Dict, List, Set, Tuple

from ..utils.rounding import round_half_up


@dataclass(frozen=True)
class CourseProgress:
    course_id: str
    total_lessons: int
    completed_lessons: int
    completion_percentage: int
    eligible_for_assessment: bool

    def to_dict(self) -> dict:
        return {
            "courseId": self.course_id,
            "totalLessons": self.total_lessons,
            "completedLessons": self.completed_lessons,
            "completionPercentage": self.completion_percentage,
            "isEligibleForAssessment": self.eligible_for_assessment,
        }


def course_progress(
    course_id: str,
    syllabus: Dict[str, List[str]],
    completed: Set[Tuple[str, str]]
) -> CourseProgress:
    """
    Args:
        course_id: Course being summarised
        syllabus: module_id -> ordered lesson ids
        completed: (module_id, lesson_id) pairs marked completed

    The assessment unlocks only when every lesson is completed; a rounded
    percentage of 100 is not enough on its own.
    """
    lessons = {(module_id, lesson_id) for module_id, ids in syllabus.items() for lesson_id in ids}
    total = len(lessons)
    done = len(lessons & completed)
    percentage = round_half_up(done / total * 100) if total else 0

    return CourseProgress(
        course_id=course_id,
        total_lessons=total,
        completed_lessons=done,
        completion_percentage=percentage,
        eligible_for_assessment=total > 0 and done == total
    )
