from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from models.base import utcnow
from models.attempt import Attempt, Answer, AttemptStatus, CompletionTrigger
from models.quiz import MANUAL_TYPES
from services.attempt_store import AttemptStore
from services.quiz_service import QuizService
from services.enrollment_service import EnrollmentService
from services.question_bank import build_question_bank
from services.deadline import remaining_seconds, is_expired
from services.scorer import score, passed_for
from services.results import AttemptResult, StartResult, build_result
from core.exceptions import NotFound, Forbidden, InvalidState, AttemptLimitExceeded, AttemptConflict
from constants.messages import Messages
from core.logger import logger

class AttemptService:
    """
    Attempt lifecycle: start/resume, completion and result retrieval.

    The only transition is IN_PROGRESS -> COMPLETED. Completion is idempotent:
    whoever persists first wins and every later call (a racing timeout, a
    double submit) gets the stored result back.
    """

    def __init__(self, db: AsyncSession, enrollment=None):
        self.db = db
        self.store = AttemptStore(db)
        self.quizzes = QuizService(db)
        self.enrollment = enrollment or EnrollmentService(db)

    async def start(self, learner_id: int, quiz_id: int, now: Optional[datetime] = None) -> StartResult:
        now = now or utcnow()
        try:
            return await self._start_once(learner_id, quiz_id, now)
        except IntegrityError:
            # Lost a race against a concurrent start; the retry resumes the winner
            await self.db.rollback()
            logger.warning("Concurrent attempt start, retrying", learner_id=learner_id, quiz_id=quiz_id)

        try:
            return await self._start_once(learner_id, quiz_id, now)
        except IntegrityError as e:
            await self.db.rollback()
            logger.error("Attempt start conflict persisted after retry", learner_id=learner_id, quiz_id=quiz_id)
            raise AttemptConflict() from e

    async def _start_once(self, learner_id: int, quiz_id: int, now: datetime) -> StartResult:
        quiz = await self.quizzes.get_active_quiz(quiz_id)
        if not quiz:
            raise NotFound(Messages.get("QUIZ_NOT_FOUND"))
        if not await self.enrollment.is_enrolled(learner_id, quiz.course_id):
            raise Forbidden(Messages.get("NOT_ENROLLED"))

        questions = await self.quizzes.get_questions(quiz.id)
        if not questions:
            raise InvalidState(Messages.get("QUIZ_EMPTY"))

        attempt = await self.store.get_in_progress(learner_id, quiz.id, for_update=True)
        if attempt:
            if not is_expired(attempt.time_limit_snapshot_minutes, attempt.started_at, now):
                answers = await self.store.get_answers(attempt.id)
                await self.db.commit()
                logger.info("Attempt resumed", attempt_id=attempt.id, learner_id=learner_id, quiz_id=quiz.id)
                return StartResult(
                    attempt=attempt,
                    questions=build_question_bank(questions, quiz.shuffle_questions, seed=attempt.id),
                    answers=answers,
                    remaining_seconds=remaining_seconds(attempt.time_limit_snapshot_minutes, attempt.started_at, now),
                    resumed=True,
                )
            # Deadline passed while nobody was looking: close it before counting
            logger.info("Forcing completion of expired attempt on start", attempt_id=attempt.id)
            await self._finalize(attempt, quiz, now, CompletionTrigger.TIMEOUT)

        completed = await self.store.count_completed(learner_id, quiz.id)
        if completed >= quiz.max_attempts:
            logger.info("Attempt limit reached", learner_id=learner_id, quiz_id=quiz.id, completed=completed)
            raise AttemptLimitExceeded(max_attempts=quiz.max_attempts)

        attempt = await self.store.create_attempt(
            learner_id=learner_id,
            quiz_id=quiz.id,
            started_at=now,
            time_limit_snapshot_minutes=quiz.time_limit_minutes,
        )
        await self.db.commit()
        logger.info("Attempt started", attempt_id=attempt.id, learner_id=learner_id, quiz_id=quiz.id,
                    time_limit_minutes=quiz.time_limit_minutes)

        return StartResult(
            attempt=attempt,
            questions=build_question_bank(questions, quiz.shuffle_questions, seed=attempt.id),
            answers=[],
            remaining_seconds=remaining_seconds(attempt.time_limit_snapshot_minutes, attempt.started_at, now),
            resumed=False,
        )

    async def complete(
        self,
        attempt_id: int,
        now: Optional[datetime] = None,
        trigger: CompletionTrigger = CompletionTrigger.MANUAL,
        learner_id: Optional[int] = None,
    ) -> AttemptResult:
        now = now or utcnow()
        attempt = await self.store.get_attempt(attempt_id, for_update=True)
        if not attempt:
            raise NotFound(Messages.get("ATTEMPT_NOT_FOUND"))
        if learner_id is not None and attempt.learner_id != learner_id:
            raise Forbidden(Messages.get("NOT_ATTEMPT_OWNER"))

        quiz = await self.quizzes.get_quiz(attempt.quiz_id)
        if attempt.status == AttemptStatus.COMPLETED:
            logger.info("Attempt already completed, returning stored result", attempt_id=attempt.id,
                        requested_trigger=trigger.value)
            return await self._stored_result(attempt, quiz, reveal=quiz.show_results_to_learner)

        return await self._finalize(attempt, quiz, now, trigger)

    async def _finalize(self, attempt: Attempt, quiz, now: datetime, requested: CompletionTrigger) -> AttemptResult:
        # The server clock decides whether this was a timeout, not the caller.
        # A manual submit after the deadline is accepted as a timeout completion.
        limit = attempt.time_limit_snapshot_minutes
        effective = CompletionTrigger.TIMEOUT if is_expired(limit, attempt.started_at, now) else CompletionTrigger.MANUAL
        if effective != requested:
            logger.info("Completion trigger resolved by server clock", attempt_id=attempt.id,
                        requested=requested.value, effective=effective.value)

        questions = await self.quizzes.get_questions(quiz.id)
        answers = await self.store.get_answer_map(attempt.id)
        scored = score(questions, answers)
        passed = passed_for(scored.score_percent, quiz.passing_score_percent)

        time_spent = max(0, int((now - attempt.started_at).total_seconds()))
        if limit is not None:
            time_spent = min(time_spent, limit * 60)

        won = await self.store.mark_completed(
            attempt.id,
            completed_at=now,
            trigger=effective,
            score_percent=scored.score_percent,
            passed=passed,
            total_points=scored.total_points,
            max_points=scored.max_points,
            time_spent_seconds=time_spent,
        )
        if not won:
            await self.db.commit()
            await self.db.refresh(attempt)
            logger.info("Attempt completed concurrently, returning stored result", attempt_id=attempt.id)
            return await self._stored_result(attempt, quiz, reveal=quiz.show_results_to_learner)

        # Persist auto-grades; human grades on manual answers stay untouched
        for question_id, outcome in scored.per_question.items():
            answer = answers.get(question_id)
            if answer is not None and outcome.auto_graded:
                answer.is_correct = outcome.is_correct
                answer.points_earned = outcome.points_earned

        # Unanswered manual questions get an empty row so a grader can still score them
        for question in questions:
            if question.type in MANUAL_TYPES and question.id not in answers:
                answers[question.id] = Answer(attempt_id=attempt.id, question_id=question.id, value=[])
                self.db.add(answers[question.id])

        await self.db.commit()
        await self.db.refresh(attempt)
        logger.info(
            "Attempt completed",
            attempt_id=attempt.id,
            learner_id=attempt.learner_id,
            quiz_id=quiz.id,
            trigger=effective.value,
            score_percent=scored.score_percent,
            manual_grading_pending=scored.has_manual_grading_pending,
        )
        return build_result(attempt, quiz, questions, answers, scored, reveal=quiz.show_results_to_learner)

    async def get_results(self, attempt_id: int, requester_id: int) -> AttemptResult:
        attempt = await self.store.get_attempt(attempt_id)
        if not attempt:
            raise NotFound(Messages.get("ATTEMPT_NOT_FOUND"))

        quiz = await self.quizzes.get_quiz(attempt.quiz_id)
        is_owner = attempt.learner_id == requester_id
        is_grader = await self.enrollment.is_grader(requester_id, quiz.course_id)
        if not is_owner and not is_grader:
            raise Forbidden(Messages.get("NOT_ATTEMPT_OWNER"))
        if attempt.status != AttemptStatus.COMPLETED:
            raise InvalidState(Messages.get("ATTEMPT_NOT_COMPLETED"))

        return await self._stored_result(attempt, quiz, reveal=quiz.show_results_to_learner or is_grader)

    async def _stored_result(self, attempt: Attempt, quiz, reveal: bool) -> AttemptResult:
        """
        Rebuild a completed attempt's result from storage.

        Manual grades applied after completion are picked up here; if they
        change the aggregate, the attempt row is brought up to date.
        """
        questions = await self.quizzes.get_questions(quiz.id)
        answers = await self.store.get_answer_map(attempt.id)
        scored = score(questions, answers)
        passed = passed_for(scored.score_percent, quiz.passing_score_percent)

        if (attempt.score_percent, attempt.passed, attempt.total_points, attempt.max_points) != (
            scored.score_percent, passed, scored.total_points, scored.max_points
        ):
            await self.store.update_score(attempt, scored.score_percent, passed, scored.total_points, scored.max_points)
            await self.db.commit()
            logger.info("Attempt score refreshed from stored grades", attempt_id=attempt.id,
                        score_percent=scored.score_percent)
        else:
            await self.db.commit()

        return build_result(attempt, quiz, questions, answers, scored, reveal=reveal)
