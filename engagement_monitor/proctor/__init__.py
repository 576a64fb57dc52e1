"""
Proctored assessment: fullscreen enforcement, per-question countdown,
answer capture and scoring.
"""

from .state import (
    UNANSWERED,
    AssessmentPhase,
    AssessmentState,
    CapturedAnswer,
    initial_state,
    enter_fullscreen,
    exit_fullscreen,
    select_option,
    capture_answer,
    tick,
    restart
)
from .scoring import (
    AssessmentResult,
    AssessmentScorer,
    AssessmentBank,
    AssessmentSubmitter,
    LocalAssessmentSubmitter
)
from .session import ProctoredAssessment, TIME_EXPIRED_NOTICE

__all__ = [
    "UNANSWERED",
    "AssessmentPhase",
    "AssessmentState",
    "CapturedAnswer",
    "initial_state",
    "enter_fullscreen",
    "exit_fullscreen",
    "select_option",
    "capture_answer",
    "tick",
    "restart",
    "AssessmentResult",
    "AssessmentScorer",
    "AssessmentBank",
    "AssessmentSubmitter",
    "LocalAssessmentSubmitter",
    "ProctoredAssessment",
    "TIME_EXPIRED_NOTICE",
]
