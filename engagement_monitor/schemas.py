"""
Request/Response models for the monitor API

Wire names are camelCase; Python attributes stay snake_case.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .attention.events import AttentionEvent, EventType
from .proctor.state import CapturedAnswer


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ============== Heartbeat ==============

class AttentionEventModel(CamelModel):
    """One attention event as sent by the viewing client"""
    timestamp: datetime
    event_type: EventType = Field(..., alias="eventType")
    details: Optional[str] = None

    def to_event(self) -> AttentionEvent:
        return AttentionEvent(
            timestamp=self.timestamp,
            event_type=self.event_type,
            details=self.details
        )


class HeartbeatRequest(CamelModel):
    """Periodic playback and attention report for one lesson"""
    course_id: str = Field(..., alias="courseId")
    module_id: str = Field(..., alias="moduleId")
    lesson_id: str = Field(..., alias="lessonId")
    current_time: float = Field(..., alias="currentTime", ge=0, description="Credited watch time in seconds")
    total_duration: float = Field(..., alias="totalDuration", gt=0, description="Lesson length in seconds")
    event: Optional[AttentionEventModel] = None
    events: Optional[List[AttentionEventModel]] = Field(
        None, description="Pending events since the previous heartbeat, in order"
    )

    def attention_events(self) -> List[AttentionEvent]:
        if self.events is not None:
            return [e.to_event() for e in self.events]
        return [self.event.to_event()] if self.event else []


class HeartbeatResponse(CamelModel):
    success: bool
    percentage_watched: float = Field(..., alias="percentageWatched")
    status: Literal["completed", "in-progress"]


# ============== Course progress ==============

class CourseProgressResponse(CamelModel):
    course_id: str = Field(..., alias="courseId")
    total_lessons: int = Field(..., alias="totalLessons")
    completed_lessons: int = Field(..., alias="completedLessons")
    completion_percentage: int = Field(..., alias="completionPercentage")
    is_eligible_for_assessment: bool = Field(..., alias="isEligibleForAssessment")


# ============== Assessment ==============

class AnswerModel(CamelModel):
    question_id: str = Field(..., alias="questionId")
    answer: int = Field(..., ge=-1, description="Selected option index, -1 when unanswered")

    def to_answer(self) -> CapturedAnswer:
        return CapturedAnswer(question_id=self.question_id, answer=self.answer)


class SubmitAssessmentRequest(CamelModel):
    answers: List[AnswerModel]


class AssessmentResultResponse(CamelModel):
    score: int
    passed: bool
    correct_answers: int = Field(..., alias="correctAnswers")
    total_questions: int = Field(..., alias="totalQuestions")


# ============== Quota ==============

class QuotaStatusResponse(CamelModel):
    allowed: bool
    remaining_requests: int = Field(..., alias="remainingRequests")
    hourly_limit: int = Field(..., alias="hourlyLimit")
    lifetime_remaining: Optional[int] = Field(None, alias="lifetimeRemaining")
    retry_after: int = Field(0, alias="retryAfter")
