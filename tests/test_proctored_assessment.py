"""
Tests for the Proctored Assessment controller
"""
import asyncio

import pytest
from unittest.mock import AsyncMock

from engagement_monitor.exceptions import AssessmentSubmissionError, DeliveryError
from engagement_monitor.proctor import (
    AssessmentBank,
    AssessmentPhase,
    AssessmentResult,
    AssessmentScorer,
    LocalAssessmentSubmitter,
    ProctoredAssessment,
    TIME_EXPIRED_NOTICE,
)

QUESTIONS = [("q1", 0), ("q2", 1)]


@pytest.fixture
def submitter():
    bank = AssessmentBank()
    bank.register("course-1", AssessmentScorer(QUESTIONS, passing_score=75))
    return LocalAssessmentSubmitter(bank)


@pytest.fixture
def exam(submitter, clock):
    assessment = ProctoredAssessment(
        "course-1", ["q1", "q2"], submitter, clock=clock, session_id="EXM_TEST"
    )
    yield assessment
    assessment.close()


class TestTimer:
    """The single countdown timer follows the phase"""

    def test_no_timer_before_fullscreen(self, exam, clock):
        clock.advance(120)

        assert exam.timer_active is False
        assert exam.state.time_left_seconds == 60

    def test_countdown_runs_in_fullscreen(self, exam, clock):
        exam.request_fullscreen()
        clock.advance(15)

        assert exam.timer_active is True
        assert clock.active_timers == 1
        assert exam.state.time_left_seconds == 45

    def test_timeout_advances_with_notice(self, exam, clock):
        exam.request_fullscreen()
        clock.advance(60)

        assert exam.state.current_question_index == 1
        assert exam.state.answers[0].answer == -1
        assert exam.time_expired_notice == TIME_EXPIRED_NOTICE

    def test_timer_stops_on_completion(self, exam, clock):
        exam.request_fullscreen()
        clock.advance(120)

        assert exam.state.phase == AssessmentPhase.COMPLETE
        assert clock.active_timers == 0

    def test_close_cancels_timer(self, exam, clock):
        exam.request_fullscreen()
        exam.close()
        clock.advance(30)

        assert clock.active_timers == 0
        assert exam.state.time_left_seconds == 60


class TestFullscreenPolicy:
    """Fullscreen exits, warnings and restart"""

    def test_exit_shows_warning_and_pauses(self, exam, clock):
        exam.request_fullscreen()
        clock.advance(5)

        exam.on_fullscreen_exit()
        clock.advance(30)

        assert exam.warning == "Fullscreen Exit Warning (2/3)"
        assert exam.timer_active is False
        assert exam.state.time_left_seconds == 55

    def test_reaching_limit_needs_restart(self, exam):
        exam.request_fullscreen()
        exam.on_fullscreen_exit()
        exam.request_fullscreen()
        exam.on_fullscreen_exit()

        assert exam.warning == "Fullscreen Exit Warning (3/3)"
        assert exam.state.needs_restart is True

    def test_violation_logged(self, exam, caplog):
        exam.request_fullscreen()

        with caplog.at_level("WARNING"):
            exam.on_fullscreen_exit()

        assert "session=EXM_TEST event=policy_violation" in caplog.text

    def test_restart_resets_and_resumes(self, exam, clock):
        exam.request_fullscreen()
        exam.select_option(0)
        exam.next_question()
        exam.on_fullscreen_exit()
        exam.request_fullscreen()
        exam.on_fullscreen_exit()

        exam.restart()

        assert exam.state.phase == AssessmentPhase.IN_PROGRESS
        assert exam.state.answers == ()
        assert exam.state.current_question_index == 0
        assert exam.state.fullscreen_exit_count == 1
        assert exam.warning is None
        assert exam.timer_active is True

    def test_on_change_notified(self, submitter, clock):
        seen = []
        exam = ProctoredAssessment("course-1", ["q1"], submitter, clock=clock, on_change=seen.append)

        exam.request_fullscreen()
        clock.advance(2)
        exam.close()

        assert [s.time_left_seconds for s in seen] == [60, 59, 58]


class TestSubmission:
    """Submission failures surface and keep the answers"""

    def answer_all(self, exam):
        exam.request_fullscreen()
        exam.select_option(0)
        exam.next_question()
        exam.select_option(1)
        exam.next_question()

    @pytest.mark.asyncio
    async def test_submit_scores(self, exam):
        self.answer_all(exam)

        result = await exam.submit()

        assert result.score == 100
        assert result.passed is True
        assert exam.results == result

    @pytest.mark.asyncio
    async def test_submit_before_complete_rejected(self, exam):
        exam.request_fullscreen()

        with pytest.raises(AssessmentSubmissionError):
            await exam.submit()

    @pytest.mark.asyncio
    async def test_failed_submission_keeps_answers(self, clock):
        failing = AsyncMock()
        failing.submit.side_effect = DeliveryError("scoring unavailable", status_code=503)
        exam = ProctoredAssessment("course-1", ["q1", "q2"], failing, clock=clock)
        self.answer_all(exam)

        with pytest.raises(AssessmentSubmissionError):
            await exam.submit()

        assert exam.submit_error.startswith("Failed to submit assessment")
        assert len(exam.state.answers) == 2
        assert exam.results is None

        failing.submit.side_effect = None
        failing.submit.return_value = AssessmentResult(50, False, 1, 2)
        assert (await exam.submit()).score == 50
        assert exam.submit_error is None

    @pytest.mark.asyncio
    async def test_second_submit_rejected(self, clock):
        scorer = AsyncMock()
        scorer.submit.return_value = AssessmentResult(100, True, 2, 2)
        exam = ProctoredAssessment("course-1", ["q1", "q2"], scorer, clock=clock)
        self.answer_all(exam)
        first = await exam.submit()

        with pytest.raises(AssessmentSubmissionError, match="already submitted"):
            await exam.submit()

        assert exam.results is first
        assert scorer.submit.await_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_submit_rejected(self, clock):
        release = asyncio.Event()

        async def slow_submit(course_id, answers):
            await release.wait()
            return AssessmentResult(100, True, 2, 2)

        scorer = AsyncMock()
        scorer.submit.side_effect = slow_submit
        exam = ProctoredAssessment("course-1", ["q1", "q2"], scorer, clock=clock)
        self.answer_all(exam)

        pending = asyncio.ensure_future(exam.submit())
        await asyncio.sleep(0)

        with pytest.raises(AssessmentSubmissionError, match="in progress"):
            await exam.submit()

        release.set()
        assert (await pending).score == 100
        assert scorer.submit.await_count == 1
