"""
Engagement Monitor API - FastAPI endpoints for the ingestion side

Endpoints:
- POST /api/monitor/heartbeat - Ingest a lesson heartbeat
- GET /api/monitor/lessons/{user_id}/{course_id} - Stored watch sessions
- GET /api/monitor/courses/{user_id}/{course_id}/progress - Course progress and eligibility
- POST /api/monitor/assessments/{course_id}/submit - Score an answer batch
- GET /api/monitor/quota/{policy}/{subject_id} - Quota status
- POST /api/monitor/quota/{policy}/{subject_id} - Consume one request
"""

import logging
from typing import Dict, List, Sequence, Tuple

from fastapi import APIRouter, Depends, Header, HTTPException

from .progress.eligibility import course_progress
from .progress.watch_store import LessonWatchStore
from .proctor.scoring import AssessmentBank, AssessmentScorer
from .quota.tracker import QUOTA_POLICIES, QuotaDecision, QuotaTracker, get_quota_tracker
from .schemas import (
    AssessmentResultResponse,
    CourseProgressResponse,
    HeartbeatRequest,
    HeartbeatResponse,
    QuotaStatusResponse,
    SubmitAssessmentRequest
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/monitor", tags=["Engagement Monitor"])

# In-process state (swap LessonWatchStore for a persistent store in production)
_watch_store = LessonWatchStore()
_assessment_bank = AssessmentBank()
_syllabi: Dict[str, Dict[str, List[str]]] = {}


# ============== Dependencies ==============

def get_watch_store() -> LessonWatchStore:
    return _watch_store


def get_assessment_bank() -> AssessmentBank:
    return _assessment_bank


def get_syllabi() -> Dict[str, Dict[str, List[str]]]:
    return _syllabi


def get_tracker(policy: str) -> QuotaTracker:
    if policy not in QUOTA_POLICIES:
        raise HTTPException(status_code=404, detail=f"Unknown quota policy: {policy}")
    return get_quota_tracker(policy)


def register_syllabus(course_id: str, syllabus: Dict[str, List[str]]):
    """Register the module -> lessons layout used for course progress."""
    _syllabi[course_id] = {module_id: list(lessons) for module_id, lessons in syllabus.items()}


def register_assessment(course_id: str, questions: Sequence[Tuple[str, int]], passing_score: int = None):
    """Register the (question_id, correct_option) answer key for a course."""
    _assessment_bank.register(course_id, AssessmentScorer(questions, passing_score=passing_score))


def _quota_response(decision: QuotaDecision) -> QuotaStatusResponse:
    return QuotaStatusResponse(
        allowed=decision.allowed,
        remaining_requests=decision.remaining_window,
        hourly_limit=decision.window_cap,
        lifetime_remaining=decision.remaining_lifetime,
        retry_after=decision.retry_after
    )


# ============== Endpoints ==============

@router.post("/heartbeat", response_model=HeartbeatResponse)
async def ingest_heartbeat(
    request: HeartbeatRequest,
    x_user_id: str = Header(..., alias="X-User-Id"),
    store: LessonWatchStore = Depends(get_watch_store)
):
    """
    Record a heartbeat. Completion is decided here, with the same
    threshold the client calculator uses.
    """
    ack = store.record_heartbeat(
        user_id=x_user_id,
        course_id=request.course_id,
        module_id=request.module_id,
        lesson_id=request.lesson_id,
        current_time=request.current_time,
        total_duration=request.total_duration,
        events=request.attention_events()
    )
    return HeartbeatResponse(
        success=ack.success,
        percentage_watched=ack.percentage_watched,
        status=ack.status.value
    )


@router.get("/lessons/{user_id}/{course_id}")
async def get_lesson_sessions(
    user_id: str,
    course_id: str,
    store: LessonWatchStore = Depends(get_watch_store)
):
    """Watch sessions recorded for a user in a course."""
    sessions = store.sessions_for(user_id, course_id)
    return {
        "courseId": course_id,
        "userId": user_id,
        "sessions": [s.to_dict() for s in sessions]
    }


@router.get("/courses/{user_id}/{course_id}/progress", response_model=CourseProgressResponse)
async def get_course_progress(
    user_id: str,
    course_id: str,
    store: LessonWatchStore = Depends(get_watch_store),
    syllabi: Dict[str, Dict[str, List[str]]] = Depends(get_syllabi)
):
    """Completed lessons across the course and assessment eligibility."""
    syllabus = syllabi.get(course_id)
    if syllabus is None:
        raise HTTPException(status_code=404, detail="Course not found")

    progress = course_progress(course_id, syllabus, store.completed_lessons(user_id, course_id))
    return CourseProgressResponse.model_validate(progress.to_dict())


@router.post("/assessments/{course_id}/submit", response_model=AssessmentResultResponse)
async def submit_assessment(
    course_id: str,
    request: SubmitAssessmentRequest,
    x_user_id: str = Header(..., alias="X-User-Id"),
    bank: AssessmentBank = Depends(get_assessment_bank)
):
    """Score a completed answer batch."""
    scorer = bank.get(course_id)
    if scorer is None:
        raise HTTPException(status_code=404, detail="Assessment not found")

    result = scorer.score([a.to_answer() for a in request.answers])
    logger.info(
        f"Assessment submitted: user={x_user_id} course={course_id} "
        f"score={result.score} passed={result.passed}"
    )
    return AssessmentResultResponse(
        score=result.score,
        passed=result.passed,
        correct_answers=result.correct_answers,
        total_questions=result.total_questions
    )


@router.get("/quota/{policy}/{subject_id}", response_model=QuotaStatusResponse)
def get_quota_status(subject_id: str, tracker: QuotaTracker = Depends(get_tracker)):
    """Current quota status without consuming a request."""
    return _quota_response(tracker.status(subject_id))


@router.post("/quota/{policy}/{subject_id}", response_model=QuotaStatusResponse)
def consume_quota(subject_id: str, tracker: QuotaTracker = Depends(get_tracker)):
    """Consume one request; 429 with Retry-After when rejected."""
    decision = tracker.check_and_consume(subject_id)
    if not decision.allowed:
        headers = {"Retry-After": str(decision.retry_after)} if decision.retry_after else None
        raise HTTPException(
            status_code=429,
            detail={
                "error": "Rate limit exceeded",
                "outcome": decision.outcome.value,
                **decision.to_status()
            },
            headers=headers
        )
    return _quota_response(decision)
