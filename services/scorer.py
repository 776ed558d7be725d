"""
Scoring of quiz attempts.

Pure functions only: the scorer reads questions and persisted answers and
returns a fresh `ScoreResult`. It never mutates its inputs and never
overwrites a grade a human has already assigned.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, Iterable, Mapping, Optional

from models.quiz import QuestionType


@dataclass(frozen=True)
class QuestionScore:
    question_id: int
    is_correct: Optional[bool]
    points_earned: Optional[int]
    max_points: int
    auto_graded: bool

    @property
    def pending(self) -> bool:
        return self.points_earned is None


@dataclass(frozen=True)
class ScoreResult:
    per_question: Dict[int, QuestionScore] = field(default_factory=dict)
    total_points: int = 0
    max_points: int = 0
    score_percent: Optional[int] = None
    has_manual_grading_pending: bool = False


def _submitted_set(answer) -> frozenset:
    if answer is None or not answer.value:
        return frozenset()
    return frozenset(str(v) for v in answer.value)


def _score_choice(question, answer) -> QuestionScore:
    # Exact set equality: subsets and supersets earn nothing
    expected = frozenset(str(v) for v in (question.correct_answer or []))
    is_correct = bool(expected) and _submitted_set(answer) == expected
    return QuestionScore(
        question_id=question.id,
        is_correct=is_correct,
        points_earned=question.points if is_correct else 0,
        max_points=question.points,
        auto_graded=True,
    )


def _score_manual(question, answer) -> QuestionScore:
    if answer is not None and answer.points_earned is not None:
        return QuestionScore(
            question_id=question.id,
            is_correct=answer.is_correct,
            points_earned=answer.points_earned,
            max_points=question.points,
            auto_graded=False,
        )
    return QuestionScore(
        question_id=question.id,
        is_correct=None,
        points_earned=None,
        max_points=question.points,
        auto_graded=False,
    )


_GRADERS: Dict[QuestionType, Callable] = {
    QuestionType.MULTIPLE_CHOICE: _score_choice,
    QuestionType.MULTIPLE_SELECT: _score_choice,
    QuestionType.TRUE_FALSE: _score_choice,
    QuestionType.OPEN_ENDED: _score_manual,
    QuestionType.CODE: _score_manual,
}


def score_question(question, answer) -> QuestionScore:
    grader = _GRADERS.get(question.type)
    if grader is None:
        raise ValueError(f"Unsupported question type: {question.type!r}")
    return grader(question, answer)


def percent(total_points: int, max_points: int) -> int:
    """Half-up rounded percentage; an empty quiz scores 0."""
    if max_points <= 0:
        return 0
    ratio = Decimal(100 * total_points) / Decimal(max_points)
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def passed_for(score_percent: Optional[int], passing_score_percent: Optional[int]) -> Optional[bool]:
    if score_percent is None or passing_score_percent is None:
        return None
    return score_percent >= passing_score_percent


def score(questions: Iterable, answers: Mapping[int, object]) -> ScoreResult:
    """
    Score an attempt.

    Args:
        questions: Quiz questions (anything with id, type, points, correct_answer)
        answers: Persisted answers keyed by question id; missing keys are unanswered

    Returns:
        ScoreResult with per-question outcomes and the aggregate. The aggregate
        percent stays None while any question awaits manual grading.
    """
    per_question: Dict[int, QuestionScore] = {}
    total_points = 0
    max_points = 0
    pending = False

    for question in questions:
        result = score_question(question, answers.get(question.id))
        per_question[question.id] = result
        max_points += question.points
        if result.pending:
            pending = True
        else:
            total_points += result.points_earned

    return ScoreResult(
        per_question=per_question,
        total_points=total_points,
        max_points=max_points,
        score_percent=None if pending else percent(total_points, max_points),
        has_manual_grading_pending=pending,
    )
