"""
Shared base class for tests that need a real database.

Each test gets its own in-memory SQLite database built from the ORM
metadata, so the partial unique index and the answer uniqueness
constraint are enforced exactly as declared on the models.
"""
import unittest
from datetime import datetime
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from models.base import Base
from models.quiz import Quiz, Question, QuestionType
from models.enrollment import CourseMember, MemberRole
import models.attempt  # noqa: F401

LEARNER_ID = 1001
OTHER_LEARNER_ID = 1002
GRADER_ID = 2001
COURSE_ID = 7
T0 = datetime(2026, 3, 1, 9, 0, 0)

CHOICES = [{"id": "a", "text": "Alpha"}, {"id": "b", "text": "Beta"}, {"id": "c", "text": "Gamma"}]


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.engine = create_async_engine(
            "sqlite+aiosqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.session_factory = async_sessionmaker(
            bind=self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )
        self.db = self.session_factory()
        self._members = set()

    async def asyncTearDown(self):
        await self.db.close()
        await self.engine.dispose()

    async def create_quiz(self, questions=None, learners=(LEARNER_ID,), graders=(GRADER_ID,), **fields):
        """
        Persist a quiz with its questions and course members.

        `questions` is a list of dicts of Question fields; by default the quiz
        has one MULTIPLE_CHOICE and one OPEN_ENDED question worth 1 point each.
        """
        if questions is None:
            questions = [
                {"type": QuestionType.MULTIPLE_CHOICE, "options": CHOICES, "correct_answer": ["a"],
                 "explanation": "Alpha comes first"},
                {"type": QuestionType.OPEN_ENDED},
            ]

        quiz = Quiz(course_id=fields.pop("course_id", COURSE_ID), title=fields.pop("title", "Quiz"), **fields)
        self.db.add(quiz)
        await self.db.flush()

        rows = []
        for order, data in enumerate(questions, start=1):
            data = dict(data)
            data.setdefault("text", f"Question {order}")
            data.setdefault("order", order)
            data.setdefault("points", 1)
            row = Question(quiz_id=quiz.id, **data)
            self.db.add(row)
            rows.append(row)

        for role, user_ids in ((MemberRole.LEARNER, learners), (MemberRole.GRADER, graders)):
            for user_id in user_ids:
                # Several quizzes may share a course
                if (user_id, quiz.course_id, role) in self._members:
                    continue
                self._members.add((user_id, quiz.course_id, role))
                self.db.add(CourseMember(user_id=user_id, course_id=quiz.course_id, role=role))

        await self.db.commit()
        return quiz, rows
