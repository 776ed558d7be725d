from typing import Optional, List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from models.quiz import Quiz, Question
from models.attempt import Attempt, AttemptStatus
from services.attempt_store import AttemptStore
from services.scorer import passed_for

class QuizService:
    """Read-only access to published quizzes and per-learner overviews."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_quiz(self, quiz_id: int) -> Optional[Quiz]:
        result = await self.db.execute(select(Quiz).filter(Quiz.id == quiz_id))
        return result.scalar_one_or_none()

    async def get_active_quiz(self, quiz_id: int) -> Optional[Quiz]:
        result = await self.db.execute(
            select(Quiz).filter(Quiz.id == quiz_id, Quiz.is_active == True)
        )
        return result.scalar_one_or_none()

    async def get_questions(self, quiz_id: int) -> List[Question]:
        result = await self.db.execute(
            select(Question).filter(Question.quiz_id == quiz_id).order_by(Question.order, Question.id)
        )
        return list(result.scalars().all())

    async def get_question(self, quiz_id: int, question_id: int) -> Optional[Question]:
        result = await self.db.execute(
            select(Question).filter(Question.id == question_id, Question.quiz_id == quiz_id)
        )
        return result.scalar_one_or_none()

    async def learner_summary(self, learner_id: int, quiz: Quiz) -> Dict[str, Any]:
        """Attempts used, retake eligibility and best result of one learner on one quiz."""
        attempts = await AttemptStore(self.db).list_attempts(learner_id, quiz.id)
        completed = [a for a in attempts if a.status == AttemptStatus.COMPLETED]
        in_progress = next((a for a in attempts if a.status == AttemptStatus.IN_PROGRESS), None)

        best = None
        scored = [a for a in completed if a.score_percent is not None]
        if scored:
            best = max(scored, key=lambda a: (a.score_percent, -a.id))

        last = attempts[0] if attempts else None
        attempts_used = len(completed)
        return {
            "quiz_id": quiz.id,
            "max_attempts": quiz.max_attempts,
            "attempts_used": attempts_used,
            "attempts_remaining": max(0, quiz.max_attempts - attempts_used),
            "can_retake": attempts_used < quiz.max_attempts,
            "has_in_progress": in_progress is not None,
            "last_attempt_id": last.id if last else None,
            "last_attempt_status": last.status if last else None,
            "in_progress_attempt_id": in_progress.id if in_progress else None,
            "best_attempt_id": best.id if best else None,
            "best_score_percent": best.score_percent if best else None,
            "passed": passed_for(best.score_percent, quiz.passing_score_percent) if best else None,
        }

    async def quiz_stats(self, quiz_id: int) -> Dict[str, Any]:
        total = await self.db.execute(select(func.count(Attempt.id)).filter(Attempt.quiz_id == quiz_id))
        completed = await self.db.execute(
            select(func.count(Attempt.id), func.avg(Attempt.score_percent)).filter(
                Attempt.quiz_id == quiz_id,
                Attempt.status == AttemptStatus.COMPLETED,
            )
        )
        completed_count, avg_score = completed.one()
        return {
            "quiz_id": quiz_id,
            "total_attempts": total.scalar() or 0,
            "completed_attempts": completed_count or 0,
            "average_score_percent": round(float(avg_score), 1) if avg_score is not None else None,
        }
