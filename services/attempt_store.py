from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from models.attempt import Attempt, Answer, AttemptStatus, CompletionTrigger

class AttemptStore:
    """
    Persistence access for attempts and answers.

    Methods only flush; committing (and rolling back on conflicts) is left to
    the calling service so a whole operation stays in one transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_attempt(self, attempt_id: int, for_update: bool = False, shared: bool = False) -> Optional[Attempt]:
        stmt = select(Attempt).filter(Attempt.id == attempt_id).execution_options(populate_existing=True)
        if for_update:
            # FOR SHARE lets answer saves run side by side while still waiting on a completion
            stmt = stmt.with_for_update(read=shared)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_in_progress(self, learner_id: int, quiz_id: int, for_update: bool = False) -> Optional[Attempt]:
        stmt = select(Attempt).filter(
            Attempt.learner_id == learner_id,
            Attempt.quiz_id == quiz_id,
            Attempt.status == AttemptStatus.IN_PROGRESS,
        ).execution_options(populate_existing=True)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def count_completed(self, learner_id: int, quiz_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Attempt.id)).filter(
                Attempt.learner_id == learner_id,
                Attempt.quiz_id == quiz_id,
                Attempt.status == AttemptStatus.COMPLETED,
            )
        )
        return result.scalar() or 0

    async def list_attempts(self, learner_id: int, quiz_id: int) -> List[Attempt]:
        result = await self.db.execute(
            select(Attempt)
            .filter(Attempt.learner_id == learner_id, Attempt.quiz_id == quiz_id)
            .order_by(Attempt.started_at.desc(), Attempt.id.desc())
        )
        return list(result.scalars().all())

    async def create_attempt(
        self,
        learner_id: int,
        quiz_id: int,
        started_at: datetime,
        time_limit_snapshot_minutes: Optional[int],
    ) -> Attempt:
        # Raises IntegrityError when another IN_PROGRESS row exists for the pair
        attempt = Attempt(
            learner_id=learner_id,
            quiz_id=quiz_id,
            status=AttemptStatus.IN_PROGRESS,
            started_at=started_at,
            time_limit_snapshot_minutes=time_limit_snapshot_minutes,
        )
        self.db.add(attempt)
        await self.db.flush()
        return attempt

    async def mark_completed(
        self,
        attempt_id: int,
        completed_at: datetime,
        trigger: CompletionTrigger,
        score_percent: Optional[int],
        passed: Optional[bool],
        total_points: int,
        max_points: int,
        time_spent_seconds: int,
    ) -> bool:
        """Conditional IN_PROGRESS -> COMPLETED; False if another caller got there first."""
        result = await self.db.execute(
            update(Attempt)
            .where(Attempt.id == attempt_id, Attempt.status == AttemptStatus.IN_PROGRESS)
            .values(
                status=AttemptStatus.COMPLETED,
                completed_at=completed_at,
                completion_trigger=trigger,
                score_percent=score_percent,
                passed=passed,
                total_points=total_points,
                max_points=max_points,
                time_spent_seconds=time_spent_seconds,
                updated_at=completed_at,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def update_score(
        self,
        attempt: Attempt,
        score_percent: Optional[int],
        passed: Optional[bool],
        total_points: int,
        max_points: int,
    ):
        attempt.score_percent = score_percent
        attempt.passed = passed
        attempt.total_points = total_points
        attempt.max_points = max_points
        await self.db.flush()

    async def get_answers(self, attempt_id: int) -> List[Answer]:
        result = await self.db.execute(
            select(Answer)
            .filter(Answer.attempt_id == attempt_id)
            .order_by(Answer.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_answer_map(self, attempt_id: int) -> Dict[int, Answer]:
        return {a.question_id: a for a in await self.get_answers(attempt_id)}

    async def get_answer(self, attempt_id: int, question_id: int, for_update: bool = False) -> Optional[Answer]:
        stmt = select(Answer).filter(Answer.attempt_id == attempt_id, Answer.question_id == question_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_answer_by_id(self, attempt_id: int, answer_id: int, for_update: bool = False) -> Optional[Answer]:
        stmt = select(Answer).filter(Answer.id == answer_id, Answer.attempt_id == attempt_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert_answer(self, attempt_id: int, question_id: int, value: List[str]) -> Answer:
        answer = await self.get_answer(attempt_id, question_id, for_update=True)
        if answer is None:
            # Raises IntegrityError if a concurrent save inserted the row first
            answer = Answer(attempt_id=attempt_id, question_id=question_id, value=value)
            self.db.add(answer)
        else:
            answer.value = value
            # Scoring happens at completion; stale auto-grades must not survive an edit
            answer.is_correct = None
            answer.points_earned = None
        await self.db.flush()
        return answer

    async def list_timed_in_progress(self, after_id: int = 0, limit: int = 100) -> List[Attempt]:
        """One keyset page of open attempts that carry a deadline."""
        result = await self.db.execute(
            select(Attempt)
            .filter(
                Attempt.status == AttemptStatus.IN_PROGRESS,
                Attempt.time_limit_snapshot_minutes.is_not(None),
                Attempt.id > after_id,
            )
            .order_by(Attempt.id)
            .limit(limit)
        )
        return list(result.scalars().all())
