"""
Assessment Scoring - reference scoring collaborator

Answers are matched positionally: answer i only counts if it targets
question i and picks the correct option. Unanswered (-1) is never correct.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import settings
from ..utils.rounding import round_half_up
from .state import UNANSWERED, CapturedAnswer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssessmentResult:
    score: int
    passed: bool
    correct_answers: int
    total_questions: int

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "passed": self.passed,
            "correctAnswers": self.correct_answers,
            "totalQuestions": self.total_questions
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AssessmentResult":
        return cls(
            score=int(data["score"]),
            passed=bool(data["passed"]),
            correct_answers=int(data["correctAnswers"]),
            total_questions=int(data["totalQuestions"])
        )


class AssessmentScorer:
    """Scores one course assessment against its answer key."""

    def __init__(
        self,
        questions: Sequence[Tuple[str, int]],
        passing_score: Optional[int] = None
    ):
        self.questions = list(questions)
        self.passing_score = settings.PASSING_SCORE if passing_score is None else passing_score

    @property
    def question_ids(self) -> List[str]:
        return [question_id for question_id, _ in self.questions]

    def score(self, answers: Sequence[CapturedAnswer]) -> AssessmentResult:
        total = len(self.questions)
        correct = 0
        for (question_id, correct_option), answer in zip(self.questions, answers):
            if answer.answer == UNANSWERED:
                continue
            if answer.question_id == question_id and answer.answer == correct_option:
                correct += 1

        score = round_half_up(correct / total * 100) if total > 0 else 0
        return AssessmentResult(
            score=score,
            passed=score >= self.passing_score,
            correct_answers=correct,
            total_questions=total
        )


class AssessmentBank:
    """Registry of assessment answer keys by course."""

    def __init__(self):
        self._scorers: Dict[str, AssessmentScorer] = {}

    def register(self, course_id: str, scorer: AssessmentScorer):
        self._scorers[course_id] = scorer

    def get(self, course_id: str) -> Optional[AssessmentScorer]:
        return self._scorers.get(course_id)

    def __contains__(self, course_id: str) -> bool:
        return course_id in self._scorers


class AssessmentSubmitter(ABC):
    """Receives a completed answer batch and returns the scored result."""

    @abstractmethod
    async def submit(self, course_id: str, answers: Sequence[CapturedAnswer]) -> AssessmentResult:
        """Raise DeliveryError (or any MonitorError) when scoring is unavailable."""


class LocalAssessmentSubmitter(AssessmentSubmitter):
    """Scores in-process against an AssessmentBank."""

    def __init__(self, bank: AssessmentBank):
        self.bank = bank

    async def submit(self, course_id: str, answers: Sequence[CapturedAnswer]) -> AssessmentResult:
        scorer = self.bank.get(course_id)
        if scorer is None:
            raise KeyError(f"No assessment registered for course {course_id}")
        result = scorer.score(answers)
        logger.info(
            f"Scored assessment course={course_id} score={result.score} "
            f"correct={result.correct_answers}/{result.total_questions}"
        )
        return result
