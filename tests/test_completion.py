"""
Tests for the Lesson Completion Calculator
"""
import pytest

from engagement_monitor.progress import (
    LessonCompletionCalculator,
    LessonStatus,
    compute_status,
    merge_status,
)


class TestComputeStatus:
    """Stateless percentage and status"""

    def test_not_started(self):
        result = compute_status(0, 600, threshold=90)
        assert result.percentage == 0
        assert result.status == LessonStatus.NOT_STARTED

    def test_in_progress(self):
        result = compute_status(300, 600, threshold=90)
        assert result.percentage == 50
        assert result.status == LessonStatus.IN_PROGRESS

    def test_threshold_is_inclusive(self):
        assert compute_status(540, 600, threshold=90).status == LessonStatus.COMPLETED

    def test_percentage_clamped(self):
        assert compute_status(900, 600).percentage == 100
        assert compute_status(-10, 600).percentage == 0

    def test_invalid_total(self):
        assert compute_status(100, 0).percentage == 0
        assert compute_status(100, None).status == LessonStatus.NOT_STARTED
        assert compute_status(float("nan"), 600).percentage == 0

    def test_default_threshold_is_90(self):
        assert compute_status(539, 600).status == LessonStatus.IN_PROGRESS
        assert compute_status(540, 600).status == LessonStatus.COMPLETED


class TestMergeStatus:

    def test_monotone_max(self):
        assert merge_status(LessonStatus.COMPLETED, LessonStatus.IN_PROGRESS) == LessonStatus.COMPLETED
        assert merge_status(LessonStatus.NOT_STARTED, LessonStatus.IN_PROGRESS) == LessonStatus.IN_PROGRESS


class TestLessonCompletionCalculator:
    """Status never reverts once completed"""

    def test_heartbeat_sequence(self):
        """600s lesson at 90%: 500, 550, 590 -> 83.3, 91.7 completed, 98.3 completed"""
        calculator = LessonCompletionCalculator(threshold=90)

        first = calculator.update(500, 600)
        assert first.percentage == pytest.approx(83.33, abs=0.01)
        assert first.status == LessonStatus.IN_PROGRESS

        second = calculator.update(550, 600)
        assert second.percentage == pytest.approx(91.67, abs=0.01)
        assert second.status == LessonStatus.COMPLETED

        third = calculator.update(590, 600)
        assert third.percentage == pytest.approx(98.33, abs=0.01)
        assert third.status == LessonStatus.COMPLETED

    def test_lower_sample_does_not_revert(self):
        calculator = LessonCompletionCalculator(threshold=90)
        calculator.update(580, 600)

        result = calculator.update(30, 600)

        assert result.status == LessonStatus.COMPLETED
        assert result.percentage == pytest.approx(5.0)
        assert calculator.completed is True

    def test_increasing_below_threshold_stays_in_progress(self):
        calculator = LessonCompletionCalculator(threshold=90)

        for watched in range(10, 540, 50):
            assert calculator.update(watched, 600).status == LessonStatus.IN_PROGRESS
