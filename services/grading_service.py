from datetime import datetime
from typing import Optional, List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from models.base import utcnow
from models.attempt import Attempt, Answer, AttemptStatus
from models.quiz import Question, MANUAL_TYPES
from services.attempt_store import AttemptStore
from services.quiz_service import QuizService
from services.enrollment_service import EnrollmentService
from services.scorer import score, passed_for
from core.exceptions import NotFound, Forbidden, InvalidState, InvalidAnswer
from constants.messages import Messages
from core.logger import logger

class GradingService:
    """Human grading of OPEN_ENDED / CODE answers on completed attempts."""

    def __init__(self, db: AsyncSession, enrollment=None):
        self.db = db
        self.store = AttemptStore(db)
        self.quizzes = QuizService(db)
        self.enrollment = enrollment or EnrollmentService(db)

    async def _require_grader(self, grader_id: int, course_id: int):
        if not await self.enrollment.is_grader(grader_id, course_id):
            raise Forbidden(Messages.get("NOT_GRADER"))

    async def grade_answer(
        self,
        attempt_id: int,
        answer_id: int,
        points_earned: int,
        grader_id: int,
        is_correct: Optional[bool] = None,
        now: Optional[datetime] = None,
    ) -> Answer:
        """
        Record a human grade and refresh the attempt's aggregate.

        Args:
            attempt_id: Completed attempt the answer belongs to
            answer_id: Answer row to grade
            points_earned: Points between 0 and the question's worth
            grader_id: User assigning the grade (must grade the course)
            is_correct: Defaults to full marks meaning correct

        Returns:
            The updated Answer
        """
        now = now or utcnow()
        attempt = await self.store.get_attempt(attempt_id, for_update=True)
        if not attempt:
            raise NotFound(Messages.get("ATTEMPT_NOT_FOUND"))

        quiz = await self.quizzes.get_quiz(attempt.quiz_id)
        await self._require_grader(grader_id, quiz.course_id)
        if attempt.status != AttemptStatus.COMPLETED:
            raise InvalidState(Messages.get("ATTEMPT_NOT_COMPLETED"))

        answer = await self.store.get_answer_by_id(attempt.id, answer_id, for_update=True)
        if not answer:
            raise NotFound(Messages.get("ANSWER_NOT_FOUND"))
        question = await self.quizzes.get_question(quiz.id, answer.question_id)
        if question.type not in MANUAL_TYPES:
            raise InvalidAnswer(Messages.get("NOT_MANUALLY_GRADABLE"))
        if points_earned < 0 or points_earned > question.points:
            raise InvalidAnswer(Messages.get("POINTS_OUT_OF_RANGE").format(max_points=question.points))

        answer.points_earned = points_earned
        answer.is_correct = is_correct if is_correct is not None else points_earned == question.points
        answer.graded_at = now
        answer.graded_by = grader_id
        await self.db.flush()

        questions = await self.quizzes.get_questions(quiz.id)
        scored = score(questions, await self.store.get_answer_map(attempt.id))
        passed = passed_for(scored.score_percent, quiz.passing_score_percent)
        await self.store.update_score(attempt, scored.score_percent, passed, scored.total_points, scored.max_points)
        await self.db.commit()

        logger.info(
            "Answer graded",
            attempt_id=attempt.id,
            answer_id=answer.id,
            grader_id=grader_id,
            points_earned=points_earned,
            grading_pending=scored.has_manual_grading_pending,
        )
        return answer

    async def list_pending(self, quiz_id: int, grader_id: int) -> List[Dict[str, Any]]:
        """Ungraded manual answers of completed attempts, oldest completion first."""
        quiz = await self.quizzes.get_quiz(quiz_id)
        if not quiz:
            raise NotFound(Messages.get("QUIZ_NOT_FOUND"))
        await self._require_grader(grader_id, quiz.course_id)

        result = await self.db.execute(
            select(Answer, Attempt, Question)
            .join(Attempt, Answer.attempt_id == Attempt.id)
            .join(Question, Answer.question_id == Question.id)
            .filter(
                Attempt.quiz_id == quiz_id,
                Attempt.status == AttemptStatus.COMPLETED,
                Question.type.in_(list(MANUAL_TYPES)),
                Answer.points_earned.is_(None),
            )
            .order_by(Attempt.completed_at, Answer.id)
        )
        return [
            {
                "attempt_id": attempt.id,
                "answer_id": answer.id,
                "learner_id": attempt.learner_id,
                "question_id": question.id,
                "question_type": question.type.value,
                "question_text": question.text,
                "max_points": question.points,
                "value": list(answer.value or []),
                "completed_at": attempt.completed_at,
            }
            for answer, attempt, question in result.all()
        ]
