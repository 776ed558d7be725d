import enum
from sqlalchemy import Column, Integer, String, Text, JSON, Boolean, Enum, ForeignKey
from sqlalchemy.orm import relationship
from models.base import Base, TimestampMixin

class QuestionType(str, enum.Enum):
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    MULTIPLE_SELECT = "MULTIPLE_SELECT"
    TRUE_FALSE = "TRUE_FALSE"
    OPEN_ENDED = "OPEN_ENDED"
    CODE = "CODE"

CHOICE_TYPES = frozenset({QuestionType.MULTIPLE_CHOICE, QuestionType.MULTIPLE_SELECT, QuestionType.TRUE_FALSE})
MANUAL_TYPES = frozenset({QuestionType.OPEN_ENDED, QuestionType.CODE})

class Quiz(Base, TimestampMixin):
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, index=True, nullable=False)
    title = Column(String(255), nullable=False)

    time_limit_minutes = Column(Integer, nullable=True)  # None = untimed
    max_attempts = Column(Integer, default=1, nullable=False)
    passing_score_percent = Column(Integer, nullable=True)
    show_results_to_learner = Column(Boolean, default=True, nullable=False)
    shuffle_questions = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    questions = relationship("Question", back_populates="quiz", order_by="Question.order")

class Question(Base, TimestampMixin):
    __tablename__ = "quiz_questions"

    id = Column(Integer, primary_key=True, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), index=True, nullable=False)
    type = Column(Enum(QuestionType, native_enum=False, length=20), nullable=False)
    text = Column(Text, nullable=False)

    # [{"id": "a", "text": "..."}], choice types only
    options = Column(JSON, nullable=True)
    # Option ids; None for OPEN_ENDED / CODE
    correct_answer = Column(JSON, nullable=True)
    explanation = Column(Text, nullable=True)
    points = Column(Integer, default=1, nullable=False)
    order = Column(Integer, default=0, nullable=False)

    quiz = relationship("Quiz", back_populates="questions")
