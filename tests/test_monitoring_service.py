import unittest
from datetime import timedelta
from unittest.mock import AsyncMock, patch

from db_case import DatabaseTestCase, LEARNER_ID, OTHER_LEARNER_ID, T0
from models.attempt import Attempt, AttemptStatus, CompletionTrigger
from services.attempt_service import AttemptService
from services.monitoring_service import expire_overdue_attempts, SWEEP_LOCK_KEY
from core.config import settings


class TestExpirySweep(DatabaseTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.redis = AsyncMock()
        self.redis.set.return_value = True
        self.redis.eval.return_value = 1

    async def _status(self, attempt_id):
        async with self.session_factory() as db:
            attempt = await db.get(Attempt, attempt_id)
            return attempt.status, attempt.completion_trigger

    async def test_completes_only_overdue_attempts(self):
        timed, _ = await self.create_quiz(time_limit_minutes=1, learners=(LEARNER_ID, OTHER_LEARNER_ID))
        untimed, _ = await self.create_quiz()
        service = AttemptService(self.db)
        overdue = await service.start(LEARNER_ID, timed.id, now=T0)
        fresh = await service.start(OTHER_LEARNER_ID, timed.id, now=T0 + timedelta(seconds=50))
        open_ended = await service.start(LEARNER_ID, untimed.id, now=T0)
        await self.db.close()

        count = await expire_overdue_attempts(
            self.redis, now=T0 + timedelta(seconds=90), session_factory=self.session_factory
        )

        self.assertEqual(count, 1)
        self.assertEqual(await self._status(overdue.attempt.id), (AttemptStatus.COMPLETED, CompletionTrigger.TIMEOUT))
        self.assertEqual(await self._status(fresh.attempt.id), (AttemptStatus.IN_PROGRESS, None))
        self.assertEqual(await self._status(open_ended.attempt.id), (AttemptStatus.IN_PROGRESS, None))

        self.redis.set.assert_awaited_once()
        self.assertEqual(self.redis.set.call_args.args[0], SWEEP_LOCK_KEY)
        self.assertTrue(self.redis.set.call_args.kwargs["nx"])
        self.assert_lock_released_with_own_token()

    def assert_lock_released_with_own_token(self):
        token = self.redis.set.call_args.args[1]
        self.redis.eval.assert_awaited_once()
        _, numkeys, key, released_token = self.redis.eval.call_args.args
        self.assertEqual((numkeys, key, released_token), (1, SWEEP_LOCK_KEY, token))
        self.redis.delete.assert_not_awaited()

    async def test_pages_through_all_attempts(self):
        learners = tuple(range(5000, 5007))
        quiz, _ = await self.create_quiz(time_limit_minutes=1, learners=learners)
        service = AttemptService(self.db)
        for learner_id in learners:
            await service.start(learner_id, quiz.id, now=T0)
        await self.db.close()

        with patch.object(settings, "EXPIRY_SWEEP_BATCH_SIZE", 3):
            count = await expire_overdue_attempts(
                self.redis, now=T0 + timedelta(minutes=2), session_factory=self.session_factory
            )
        self.assertEqual(count, len(learners))

    async def test_skips_when_another_worker_holds_the_lock(self):
        quiz, _ = await self.create_quiz(time_limit_minutes=1)
        started = await AttemptService(self.db).start(LEARNER_ID, quiz.id, now=T0)
        await self.db.close()
        self.redis.set.return_value = None

        count = await expire_overdue_attempts(
            self.redis, now=T0 + timedelta(minutes=2), session_factory=self.session_factory
        )

        self.assertEqual(count, 0)
        self.assertEqual(await self._status(started.attempt.id), (AttemptStatus.IN_PROGRESS, None))
        self.redis.eval.assert_not_awaited()

    async def test_failure_on_one_attempt_does_not_stop_the_sweep(self):
        quiz, _ = await self.create_quiz(time_limit_minutes=1, learners=(LEARNER_ID, OTHER_LEARNER_ID))
        service = AttemptService(self.db)
        first = await service.start(LEARNER_ID, quiz.id, now=T0)
        second = await service.start(OTHER_LEARNER_ID, quiz.id, now=T0)
        await self.db.close()

        real_complete = AttemptService.complete

        async def flaky_complete(self_, attempt_id, **kwargs):
            if attempt_id == first.attempt.id:
                raise RuntimeError("database went away")
            return await real_complete(self_, attempt_id, **kwargs)

        with patch.object(AttemptService, "complete", flaky_complete):
            count = await expire_overdue_attempts(
                self.redis, now=T0 + timedelta(minutes=2), session_factory=self.session_factory
            )

        self.assertEqual(count, 1)
        self.assertEqual((await self._status(second.attempt.id))[0], AttemptStatus.COMPLETED)
        self.assert_lock_released_with_own_token()

    async def test_lock_taken_over_mid_run_is_left_alone(self):
        quiz, _ = await self.create_quiz(time_limit_minutes=1)
        started = await AttemptService(self.db).start(LEARNER_ID, quiz.id, now=T0)
        await self.db.close()
        # Our TTL ran out and another worker now owns the key
        self.redis.eval.return_value = 0

        count = await expire_overdue_attempts(
            self.redis, now=T0 + timedelta(minutes=2), session_factory=self.session_factory
        )

        self.assertEqual(count, 1)
        self.assertEqual((await self._status(started.attempt.id))[0], AttemptStatus.COMPLETED)
        self.assert_lock_released_with_own_token()


if __name__ == '__main__':
    unittest.main()
