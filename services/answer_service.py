from datetime import datetime
from typing import List, Optional, Union
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from models.base import utcnow
from models.attempt import Answer, AttemptStatus
from models.quiz import Question, QuestionType, CHOICE_TYPES
from services.attempt_store import AttemptStore
from services.quiz_service import QuizService
from services.deadline import is_expired
from core.exceptions import NotFound, Forbidden, InvalidState, InvalidAnswer, AttemptExpired, AttemptConflict
from constants.messages import Messages
from core.logger import logger

SINGLE_CHOICE_TYPES = frozenset({QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE})

def normalize_value(value: Union[str, List, None]) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]

def validate_value(question: Question, value: List[str]):
    """Reject choice answers that name options the question does not have."""
    if question.type not in CHOICE_TYPES:
        return
    known = {str(opt.get("id")) for opt in (question.options or [])}
    unknown = [v for v in value if v not in known]
    if unknown:
        raise InvalidAnswer(Messages.get("UNKNOWN_OPTIONS").format(options=", ".join(unknown)))
    if question.type in SINGLE_CHOICE_TYPES and len(set(value)) > 1:
        raise InvalidAnswer(Messages.get("SINGLE_OPTION_ONLY"))

class AnswerService:
    """Incremental, idempotent answer capture for in-progress attempts."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = AttemptStore(db)
        self.quizzes = QuizService(db)

    async def save_answer(
        self,
        attempt_id: int,
        question_id: int,
        value,
        learner_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Answer:
        now = now or utcnow()
        value = normalize_value(value)
        try:
            return await self._save_once(attempt_id, question_id, value, learner_id, now)
        except IntegrityError:
            # A concurrent save inserted the row first; the retry takes the update path
            await self.db.rollback()
            logger.debug("Concurrent answer insert, retrying as update", attempt_id=attempt_id, question_id=question_id)

        try:
            return await self._save_once(attempt_id, question_id, value, learner_id, now)
        except IntegrityError as e:
            await self.db.rollback()
            raise AttemptConflict(Messages.get("ANSWER_CONFLICT")) from e

    async def _save_once(self, attempt_id: int, question_id: int, value: List[str], learner_id, now: datetime) -> Answer:
        attempt = await self.store.get_attempt(attempt_id, for_update=True, shared=True)
        if not attempt:
            raise NotFound(Messages.get("ATTEMPT_NOT_FOUND"))
        if learner_id is not None and attempt.learner_id != learner_id:
            raise Forbidden(Messages.get("NOT_ATTEMPT_OWNER"))
        if attempt.status != AttemptStatus.IN_PROGRESS:
            raise InvalidState(Messages.get("ATTEMPT_COMPLETED"))
        if is_expired(attempt.time_limit_snapshot_minutes, attempt.started_at, now):
            logger.info("Answer rejected, attempt expired", attempt_id=attempt.id, question_id=question_id)
            raise AttemptExpired()

        question = await self.quizzes.get_question(attempt.quiz_id, question_id)
        if not question:
            raise NotFound(Messages.get("QUESTION_NOT_FOUND").format(question_id=question_id))
        validate_value(question, value)

        answer = await self.store.upsert_answer(attempt.id, question.id, value)
        await self.db.commit()
        logger.debug("Answer saved", attempt_id=attempt.id, question_id=question.id)
        return answer
