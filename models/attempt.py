import enum
from sqlalchemy import (
    Column, Integer, BigInteger, Boolean, DateTime, JSON, Enum, ForeignKey, Index, UniqueConstraint, text
)
from models.base import Base, TimestampMixin

class AttemptStatus(str, enum.Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"

class CompletionTrigger(str, enum.Enum):
    MANUAL = "MANUAL"
    TIMEOUT = "TIMEOUT"

class Attempt(Base, TimestampMixin):
    __tablename__ = "quiz_attempts"

    id = Column(Integer, primary_key=True, index=True)
    learner_id = Column(BigInteger, index=True, nullable=False)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), index=True, nullable=False)
    status = Column(
        Enum(AttemptStatus, native_enum=False, length=20),
        default=AttemptStatus.IN_PROGRESS,
        nullable=False,
    )

    started_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    # Copied from the quiz at start; later quiz edits must not move the deadline
    time_limit_snapshot_minutes = Column(Integer, nullable=True)

    score_percent = Column(Integer, nullable=True)
    passed = Column(Boolean, nullable=True)
    total_points = Column(Integer, nullable=True)
    max_points = Column(Integer, nullable=True)
    time_spent_seconds = Column(Integer, nullable=True)
    completion_trigger = Column(Enum(CompletionTrigger, native_enum=False, length=20), nullable=True)

    __table_args__ = (
        # At most one open attempt per (learner, quiz)
        Index(
            "uq_quiz_attempts_in_progress",
            "learner_id",
            "quiz_id",
            unique=True,
            postgresql_where=text("status = 'IN_PROGRESS'"),
            sqlite_where=text("status = 'IN_PROGRESS'"),
        ),
    )

class Answer(Base, TimestampMixin):
    __tablename__ = "quiz_answers"

    id = Column(Integer, primary_key=True, index=True)
    attempt_id = Column(Integer, ForeignKey("quiz_attempts.id"), index=True, nullable=False)
    question_id = Column(Integer, ForeignKey("quiz_questions.id"), nullable=False)

    # Option ids for choice types, free text for OPEN_ENDED / CODE
    value = Column(JSON, nullable=False)
    is_correct = Column(Boolean, nullable=True)
    points_earned = Column(Integer, nullable=True)
    graded_at = Column(DateTime, nullable=True)
    graded_by = Column(BigInteger, nullable=True)

    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_quiz_answers_attempt_question"),
    )
