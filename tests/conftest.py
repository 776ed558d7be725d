"""
Pytest configuration and fixtures for the quiz attempt engine tests.
"""
import sys
import os
from datetime import datetime
from types import SimpleNamespace
import pytest

# Settings are read at import time; point them at a throwaway database first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ADMIN_ID", "0")

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)

from models.quiz import QuestionType


@pytest.fixture
def started_at():
    return datetime(2026, 3, 1, 9, 0, 0)


@pytest.fixture
def make_question():
    """Plain stand-in for a Question row; the scorer only reads attributes."""
    def _make(id, type, points=1, correct_answer=None, order=0, options=None, text="Q", explanation=None):
        return SimpleNamespace(
            id=id,
            type=type,
            points=points,
            correct_answer=correct_answer,
            order=order,
            options=options,
            text=text,
            explanation=explanation,
        )
    return _make


@pytest.fixture
def make_answer():
    def _make(question_id, value, points_earned=None, is_correct=None):
        return SimpleNamespace(
            question_id=question_id,
            value=value,
            points_earned=points_earned,
            is_correct=is_correct,
        )
    return _make


@pytest.fixture
def mixed_questions(make_question):
    """One auto-graded and one manually graded question, 1 point each"""
    return [
        make_question(1, QuestionType.MULTIPLE_CHOICE, correct_answer=["a"], order=1,
                      options=[{"id": "a", "text": "4"}, {"id": "b", "text": "5"}]),
        make_question(2, QuestionType.OPEN_ENDED, order=2),
    ]
