"""
Proctored Assessment State - immutable state and pure transitions

    AWAITING_FULLSCREEN --enter_fullscreen--> IN_PROGRESS
    IN_PROGRESS --exit_fullscreen x max--> NEEDS_RESTART --restart--> IN_PROGRESS
    IN_PROGRESS --last question captured--> COMPLETE

Every transition is a function (state, ...) -> new state. Inputs that do
not apply in the current phase return the state unchanged.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

UNANSWERED = -1


class AssessmentPhase(str, Enum):
    AWAITING_FULLSCREEN = "awaiting_fullscreen"
    IN_PROGRESS = "in_progress"
    NEEDS_RESTART = "needs_restart"
    COMPLETE = "complete"


@dataclass(frozen=True)
class CapturedAnswer:
    question_id: str
    answer: int

    def to_dict(self) -> dict:
        return {"questionId": self.question_id, "answer": self.answer}


@dataclass(frozen=True)
class AssessmentState:
    """Snapshot of one assessment attempt held by the learner's view."""

    course_id: str
    question_ids: Tuple[str, ...]
    time_limit: int
    phase: AssessmentPhase = AssessmentPhase.AWAITING_FULLSCREEN
    current_question_index: int = 0
    answers: Tuple[CapturedAnswer, ...] = ()
    selected_option: Optional[int] = None
    fullscreen_exit_count: int = 0
    time_left_seconds: int = 0
    is_fullscreen: bool = False

    @property
    def needs_restart(self) -> bool:
        return self.phase == AssessmentPhase.NEEDS_RESTART

    @property
    def complete(self) -> bool:
        return self.phase == AssessmentPhase.COMPLETE

    @property
    def timer_running(self) -> bool:
        """The countdown only runs in progress and in fullscreen."""
        return self.phase == AssessmentPhase.IN_PROGRESS and self.is_fullscreen

    @property
    def current_question_id(self) -> Optional[str]:
        if self.current_question_index < len(self.question_ids):
            return self.question_ids[self.current_question_index]
        return None


def initial_state(course_id: str, question_ids, time_limit: int) -> AssessmentState:
    return AssessmentState(
        course_id=course_id,
        question_ids=tuple(question_ids),
        time_limit=time_limit,
        time_left_seconds=time_limit
    )


def enter_fullscreen(state: AssessmentState) -> AssessmentState:
    """
    User-initiated fullscreen request. Starts the attempt from
    AWAITING_FULLSCREEN and resumes it after an exit below the limit.
    The first entry counts as exit_count 1.
    """
    if state.phase in (AssessmentPhase.NEEDS_RESTART, AssessmentPhase.COMPLETE):
        return state
    if state.timer_running:
        return state

    exit_count = state.fullscreen_exit_count or 1
    if state.phase == AssessmentPhase.AWAITING_FULLSCREEN and not state.question_ids:
        return replace(
            state,
            phase=AssessmentPhase.COMPLETE,
            is_fullscreen=True,
            fullscreen_exit_count=exit_count
        )

    return replace(
        state,
        phase=AssessmentPhase.IN_PROGRESS,
        is_fullscreen=True,
        fullscreen_exit_count=exit_count
    )


def exit_fullscreen(state: AssessmentState, max_exits: int) -> AssessmentState:
    """Count an exit while in progress; reaching max_exits forces a restart."""
    if state.phase != AssessmentPhase.IN_PROGRESS or not state.is_fullscreen:
        return replace(state, is_fullscreen=False) if state.is_fullscreen else state

    exit_count = state.fullscreen_exit_count + 1
    phase = AssessmentPhase.NEEDS_RESTART if exit_count >= max_exits else state.phase
    return replace(
        state,
        phase=phase,
        is_fullscreen=False,
        fullscreen_exit_count=exit_count
    )


def select_option(state: AssessmentState, option: int) -> AssessmentState:
    """Record the learner's current choice; ignored unless the timer is running."""
    if not state.timer_running or option is None or option < 0:
        return state
    return replace(state, selected_option=option)


def capture_answer(state: AssessmentState) -> AssessmentState:
    """
    Capture the selected option (or UNANSWERED) for the current question
    and advance. Forward-only; the last capture completes the attempt.
    """
    if not state.timer_running:
        return state

    question_id = state.current_question_id
    answer = CapturedAnswer(
        question_id=question_id,
        answer=state.selected_option if state.selected_option is not None else UNANSWERED
    )
    answers = tuple(a for a in state.answers if a.question_id != question_id) + (answer,)

    next_index = state.current_question_index + 1
    if next_index >= len(state.question_ids):
        return replace(
            state,
            phase=AssessmentPhase.COMPLETE,
            answers=answers,
            selected_option=None,
            time_left_seconds=state.time_limit
        )

    return replace(
        state,
        current_question_index=next_index,
        answers=answers,
        selected_option=None,
        time_left_seconds=state.time_limit
    )


def tick(state: AssessmentState) -> AssessmentState:
    """One second of countdown; at zero the current answer is captured."""
    if not state.timer_running:
        return state
    if state.time_left_seconds <= 1:
        return capture_answer(state)
    return replace(state, time_left_seconds=state.time_left_seconds - 1)


def restart(state: AssessmentState) -> AssessmentState:
    """
    Hard reset after too many fullscreen exits, then re-enter fullscreen.
    The exit counter restarts at 1 because fullscreen is re-entered.
    """
    if state.phase != AssessmentPhase.NEEDS_RESTART:
        return state
    return AssessmentState(
        course_id=state.course_id,
        question_ids=state.question_ids,
        time_limit=state.time_limit,
        phase=AssessmentPhase.IN_PROGRESS,
        current_question_index=0,
        answers=(),
        selected_option=None,
        fullscreen_exit_count=1,
        time_left_seconds=state.time_limit,
        is_fullscreen=True
    )
