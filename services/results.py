from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from models.attempt import Attempt, AttemptStatus, CompletionTrigger
from services.scorer import ScoreResult, passed_for


@dataclass
class QuestionOutcome:
    question_id: int
    type: str
    points: int
    answer_id: Optional[int] = None
    value: Optional[List[str]] = None
    is_correct: Optional[bool] = None
    points_earned: Optional[int] = None
    graded_at: Optional[datetime] = None
    # Only filled when results may be revealed to the requester
    correct_answer: Optional[List[str]] = None
    explanation: Optional[str] = None


@dataclass
class AttemptResult:
    attempt_id: int
    quiz_id: int
    learner_id: int
    status: AttemptStatus
    started_at: datetime
    completed_at: Optional[datetime]
    completion_trigger: Optional[CompletionTrigger]
    score_percent: Optional[int]
    passed: Optional[bool]
    total_points: int
    max_points: int
    has_manual_grading_pending: bool
    time_spent_seconds: Optional[int]
    questions: List[QuestionOutcome] = field(default_factory=list)

    @property
    def timed_out(self) -> bool:
        return self.completion_trigger == CompletionTrigger.TIMEOUT


@dataclass
class StartResult:
    attempt: Attempt
    questions: List[Dict[str, Any]]
    answers: List[Any]
    remaining_seconds: Optional[int]
    resumed: bool


def build_result(
    attempt: Attempt,
    quiz,
    questions,
    answers: Mapping[int, Any],
    scored: ScoreResult,
    reveal: bool,
) -> AttemptResult:
    """Assemble the learner/grader facing result of a completed attempt."""
    outcomes = []
    for question in sorted(questions, key=lambda q: (q.order, q.id)):
        answer = answers.get(question.id)
        qs = scored.per_question[question.id]
        outcomes.append(QuestionOutcome(
            question_id=question.id,
            type=question.type.value,
            points=question.points,
            answer_id=answer.id if answer is not None else None,
            value=list(answer.value) if answer is not None else None,
            is_correct=qs.is_correct,
            points_earned=qs.points_earned,
            graded_at=answer.graded_at if answer is not None else None,
            correct_answer=list(question.correct_answer) if reveal and question.correct_answer else None,
            explanation=question.explanation if reveal else None,
        ))

    return AttemptResult(
        attempt_id=attempt.id,
        quiz_id=attempt.quiz_id,
        learner_id=attempt.learner_id,
        status=attempt.status,
        started_at=attempt.started_at,
        completed_at=attempt.completed_at,
        completion_trigger=attempt.completion_trigger,
        score_percent=scored.score_percent,
        passed=passed_for(scored.score_percent, quiz.passing_score_percent),
        total_points=scored.total_points,
        max_points=scored.max_points,
        has_manual_grading_pending=scored.has_manual_grading_pending,
        time_spent_seconds=attempt.time_spent_seconds,
        questions=outcomes,
    )
