"""
Proctored Assessment - controller around the pure assessment state

Owns the single per-question countdown timer and the submitter. The timer
only runs while the attempt is in progress and in fullscreen; every
transition re-syncs it.
"""

import uuid
import logging
from typing import Callable, Optional, Sequence

from ..clock import Clock, SystemClock, TimerHandle
from ..config import settings
from ..exceptions import AssessmentSubmissionError
from ..utils.logging import (
    log_monitor_event,
    log_policy_violation,
    log_session_start,
    log_session_end
)
from . import state as transitions
from .scoring import AssessmentResult, AssessmentSubmitter
from .state import AssessmentPhase, AssessmentState

logger = logging.getLogger(__name__)

TICK_SECONDS = 1.0
TIME_EXPIRED_NOTICE = "Time's up! Moving to the next question."


class ProctoredAssessment:
    """
    One learner's attempt at a course assessment.

    Usage:
        exam = ProctoredAssessment("course-1", ["q1", "q2"], submitter)
        exam.request_fullscreen()
        exam.select_option(2)
        exam.next_question()
        ...
        result = await exam.submit()
    """

    def __init__(
        self,
        course_id: str,
        question_ids: Sequence[str],
        submitter: AssessmentSubmitter,
        clock: Clock = None,
        time_limit: int = None,
        max_exits: int = None,
        session_id: Optional[str] = None,
        on_change: Optional[Callable[[AssessmentState], None]] = None
    ):
        self.id = session_id or f"EXM_{uuid.uuid4().hex[:6].upper()}"
        self.submitter = submitter
        self.clock = clock or SystemClock()
        self.max_exits = settings.MAX_FULLSCREEN_EXITS if max_exits is None else max_exits
        self.on_change = on_change

        limit = settings.QUESTION_TIME_LIMIT_SECONDS if time_limit is None else time_limit
        self._state = transitions.initial_state(course_id, question_ids, limit)
        self._timer: Optional[TimerHandle] = None

        self.warning: Optional[str] = None
        self.time_expired_notice: Optional[str] = None
        self.results: Optional[AssessmentResult] = None
        self.submit_error: Optional[str] = None
        self._submitting = False
        self.closed = False

        log_session_start(self.id, "assessment", course_id)

    @property
    def state(self) -> AssessmentState:
        return self._state

    @property
    def timer_active(self) -> bool:
        return self._timer is not None and self._timer.active

    # --- Transitions ---

    def _apply(self, new_state: AssessmentState, action: str = "tick"):
        if new_state is self._state:
            if action != "tick":
                logger.debug(f"Ignored {action} in phase {self._state.phase.value} session={self.id}")
            return
        self._state = new_state
        self._sync_timer()
        if self.on_change:
            self.on_change(new_state)

    def _sync_timer(self):
        if self._state.timer_running and not self.closed:
            if not self.timer_active:
                self._timer = self.clock.call_every(TICK_SECONDS, self._tick)
        elif self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def request_fullscreen(self):
        """User gesture: start the attempt or resume after an exit."""
        before = self._state.phase
        self._apply(transitions.enter_fullscreen(self._state), "enter_fullscreen")
        if self._state.phase != before:
            log_monitor_event(self.id, "phase_change", {
                "from": before.value,
                "to": self._state.phase.value
            })

    def on_fullscreen_exit(self):
        before = self._state.fullscreen_exit_count
        self._apply(transitions.exit_fullscreen(self._state, self.max_exits), "exit_fullscreen")
        count = self._state.fullscreen_exit_count
        if count == before:
            return

        self.warning = f"Fullscreen Exit Warning ({count}/{self.max_exits})"
        log_policy_violation(self.id, "fullscreen_exit", count, self.max_exits)
        if self._state.needs_restart:
            log_monitor_event(self.id, "needs_restart", {"exits": count}, level="warning")

    def select_option(self, option: int):
        self._apply(transitions.select_option(self._state, option), "select_option")

    def next_question(self):
        """Submit the selected answer for the current question and advance."""
        self.time_expired_notice = None
        self._apply(transitions.capture_answer(self._state), "next_question")

    def restart(self):
        """Hard reset after the exit limit; fullscreen is re-entered."""
        if not self._state.needs_restart:
            return
        self.warning = None
        self.time_expired_notice = None
        self._apply(transitions.restart(self._state), "restart")
        log_monitor_event(self.id, "restart", {"exits": self._state.fullscreen_exit_count})

    def _tick(self):
        index = self._state.current_question_index
        self._apply(transitions.tick(self._state))
        advanced = (
            self._state.current_question_index != index
            or self._state.phase == AssessmentPhase.COMPLETE
        )
        if advanced:
            self.time_expired_notice = TIME_EXPIRED_NOTICE
            log_monitor_event(self.id, "question_timeout", {"question": index}, level="debug")

    # --- Submission ---

    async def submit(self) -> AssessmentResult:
        """
        Send the completed answer batch for scoring. An attempt is scored
        at most once; after a successful submit it is finished.

        Raises:
            AssessmentSubmissionError: attempt not complete, already
            submitted, or the submitter failed. Captured answers are kept
            after a failure so the caller can retry.
        """
        if self.results is not None:
            raise AssessmentSubmissionError("Assessment already submitted")
        if not self._state.complete:
            raise AssessmentSubmissionError("Assessment is not complete")
        if self._submitting:
            raise AssessmentSubmissionError("Assessment submission already in progress")

        self._submitting = True
        try:
            result = await self.submitter.submit(self._state.course_id, self._state.answers)
        except Exception as e:
            self.submit_error = f"Failed to submit assessment: {e}"
            logger.error(f"Assessment submission failed session={self.id}: {e}")
            raise AssessmentSubmissionError(self.submit_error) from e
        finally:
            self._submitting = False

        self.results = result
        self.submit_error = None
        log_session_end(self.id, "assessment", {
            "score": result.score,
            "passed": result.passed
        })
        return result

    def close(self):
        """Cancel the countdown; safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        self._sync_timer()
        if self.results is None:
            log_session_end(self.id, "assessment", {
                "phase": self._state.phase.value,
                "answered": len(self._state.answers)
            })

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
