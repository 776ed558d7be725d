import unittest
from datetime import timedelta

from db_case import DatabaseTestCase, LEARNER_ID, GRADER_ID, T0, CHOICES
from models.attempt import Attempt, AttemptStatus
from models.quiz import QuestionType
from services.attempt_service import AttemptService
from services.answer_service import AnswerService
from services.grading_service import GradingService
from services.quiz_service import QuizService
from core.exceptions import Forbidden, InvalidState, InvalidAnswer, NotFound


class TestGrading(DatabaseTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.quiz, self.questions = await self.create_quiz(
            questions=[
                {"type": QuestionType.MULTIPLE_CHOICE, "options": CHOICES, "correct_answer": ["a"]},
                {"type": QuestionType.OPEN_ENDED, "points": 3},
            ],
            passing_score_percent=60,
            max_attempts=2,
        )
        started = await AttemptService(self.db).start(LEARNER_ID, self.quiz.id, now=T0)
        self.attempt_id = started.attempt.id
        answers = AnswerService(self.db)
        await answers.save_answer(self.attempt_id, self.questions[0].id, ["a"], now=T0)
        self.open_answer = await answers.save_answer(self.attempt_id, self.questions[1].id, "essay", now=T0)
        self.choice_answer_id = None

    async def _complete(self):
        result = await AttemptService(self.db).complete(self.attempt_id, now=T0 + timedelta(minutes=2))
        self.choice_answer_id = result.questions[0].answer_id
        return result

    async def test_grading_completes_the_score(self):
        await self._complete()
        graded = await GradingService(self.db).grade_answer(
            self.attempt_id, self.open_answer.id, 2, grader_id=GRADER_ID, now=T0 + timedelta(hours=1)
        )
        self.assertEqual(graded.points_earned, 2)
        self.assertFalse(graded.is_correct)
        self.assertEqual(graded.graded_by, GRADER_ID)

        attempt = await self.db.get(Attempt, self.attempt_id)
        self.assertEqual(attempt.total_points, 3)
        self.assertEqual(attempt.score_percent, 75)
        self.assertTrue(attempt.passed)

        result = await AttemptService(self.db).get_results(self.attempt_id, requester_id=LEARNER_ID)
        self.assertEqual(result.score_percent, 75)
        self.assertFalse(result.has_manual_grading_pending)

    async def test_full_marks_default_to_correct(self):
        await self._complete()
        graded = await GradingService(self.db).grade_answer(self.attempt_id, self.open_answer.id, 3, grader_id=GRADER_ID)
        self.assertTrue(graded.is_correct)

    async def test_points_out_of_range(self):
        await self._complete()
        with self.assertRaises(InvalidAnswer):
            await GradingService(self.db).grade_answer(self.attempt_id, self.open_answer.id, 4, grader_id=GRADER_ID)

    async def test_choice_answers_are_not_manually_gradable(self):
        await self._complete()
        with self.assertRaises(InvalidAnswer):
            await GradingService(self.db).grade_answer(
                self.attempt_id, self.choice_answer_id, 1, grader_id=GRADER_ID
            )

    async def test_only_graders_grade(self):
        await self._complete()
        with self.assertRaises(Forbidden):
            await GradingService(self.db).grade_answer(self.attempt_id, self.open_answer.id, 1, grader_id=LEARNER_ID)

    async def test_in_progress_attempt_cannot_be_graded(self):
        with self.assertRaises(InvalidState):
            await GradingService(self.db).grade_answer(self.attempt_id, self.open_answer.id, 1, grader_id=GRADER_ID)

    async def test_unknown_answer(self):
        await self._complete()
        with self.assertRaises(NotFound):
            await GradingService(self.db).grade_answer(self.attempt_id, 9999, 1, grader_id=GRADER_ID)

    async def test_pending_list(self):
        grading = GradingService(self.db)
        self.assertEqual(await grading.list_pending(self.quiz.id, grader_id=GRADER_ID), [])

        await self._complete()
        pending = await grading.list_pending(self.quiz.id, grader_id=GRADER_ID)
        self.assertEqual(len(pending), 1)
        self.assertEqual(pending[0]["answer_id"], self.open_answer.id)
        self.assertEqual(pending[0]["value"], ["essay"])
        self.assertEqual(pending[0]["max_points"], 3)

        await grading.grade_answer(self.attempt_id, self.open_answer.id, 1, grader_id=GRADER_ID)
        self.assertEqual(await grading.list_pending(self.quiz.id, grader_id=GRADER_ID), [])

    async def test_pending_list_requires_grader(self):
        with self.assertRaises(Forbidden):
            await GradingService(self.db).list_pending(self.quiz.id, grader_id=LEARNER_ID)


class TestQuizOverview(DatabaseTestCase):
    async def test_learner_summary_and_stats(self):
        quiz, questions = await self.create_quiz(
            questions=[{"type": QuestionType.MULTIPLE_CHOICE, "options": CHOICES, "correct_answer": ["a"]}],
            max_attempts=3,
            passing_score_percent=50,
        )
        attempts = AttemptService(self.db)
        answers = AnswerService(self.db)
        quizzes = QuizService(self.db)

        summary = await quizzes.learner_summary(LEARNER_ID, quiz)
        self.assertEqual(summary["attempts_used"], 0)
        self.assertTrue(summary["can_retake"])
        self.assertIsNone(summary["best_attempt_id"])
        self.assertIsNone(summary["last_attempt_id"])

        first = await attempts.start(LEARNER_ID, quiz.id, now=T0)
        await attempts.complete(first.attempt.id, now=T0 + timedelta(minutes=1))
        second = await attempts.start(LEARNER_ID, quiz.id, now=T0 + timedelta(minutes=2))
        await answers.save_answer(second.attempt.id, questions[0].id, ["a"], now=T0 + timedelta(minutes=2))
        await attempts.complete(second.attempt.id, now=T0 + timedelta(minutes=3))
        third = await attempts.start(LEARNER_ID, quiz.id, now=T0 + timedelta(minutes=4))

        summary = await quizzes.learner_summary(LEARNER_ID, quiz)
        self.assertEqual(summary["attempts_used"], 2)
        self.assertEqual(summary["attempts_remaining"], 1)
        self.assertTrue(summary["has_in_progress"])
        self.assertEqual(summary["in_progress_attempt_id"], third.attempt.id)
        self.assertEqual(summary["last_attempt_id"], third.attempt.id)
        self.assertEqual(summary["last_attempt_status"], AttemptStatus.IN_PROGRESS)
        self.assertEqual(summary["best_attempt_id"], second.attempt.id)
        self.assertEqual(summary["best_score_percent"], 100)
        self.assertTrue(summary["passed"])

        stats = await quizzes.quiz_stats(quiz.id)
        self.assertEqual(stats["total_attempts"], 3)
        self.assertEqual(stats["completed_attempts"], 2)
        self.assertEqual(stats["average_score_percent"], 50.0)


if __name__ == '__main__':
    unittest.main()
