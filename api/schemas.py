from datetime import datetime
from typing import List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field
from models.attempt import AttemptStatus, CompletionTrigger


class Option(BaseModel):
    """One selectable option of a choice question."""
    id: str = Field(..., description="Option identifier submitted as the answer")
    text: str = Field(..., description="Option text")


class QuestionView(BaseModel):
    """A question as shown to a learner. Never carries the correct answer."""
    id: int
    type: str = Field(..., description="MULTIPLE_CHOICE, MULTIPLE_SELECT, TRUE_FALSE, OPEN_ENDED or CODE")
    text: str
    options: Optional[List[Option]] = Field(None, description="Present for choice questions only")
    points: int
    order: int


class SavedAnswer(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    question_id: int
    value: List[str]
    updated_at: datetime


class StartResponse(BaseModel):
    """Fresh or resumed attempt with everything needed to render it."""
    attempt_id: int
    quiz_id: int
    status: AttemptStatus
    started_at: datetime
    time_limit_minutes: Optional[int] = Field(None, description="Snapshot taken when the attempt started")
    remaining_seconds: Optional[int] = Field(None, description="Server-computed; null for untimed quizzes")
    resumed: bool
    questions: List[QuestionView]
    answers: List[SavedAnswer]


class SaveAnswerRequest(BaseModel):
    value: Union[List[str], str] = Field(
        ...,
        description="Option ids for choice questions, free text for open-ended and code questions",
        examples=[["a"], "my answer"],
    )


class SaveAnswerResponse(BaseModel):
    status: str = Field(default="saved")
    answer_id: int
    question_id: int


class CompleteRequest(BaseModel):
    trigger: CompletionTrigger = Field(
        CompletionTrigger.MANUAL,
        description="MANUAL for a learner submit, TIMEOUT when the client timer fired. "
                    "The stored trigger is always decided by the server clock.",
    )


class QuestionOutcomeView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    question_id: int
    type: str
    points: int
    answer_id: Optional[int] = None
    value: Optional[List[str]] = None
    is_correct: Optional[bool] = None
    points_earned: Optional[int] = None
    graded_at: Optional[datetime] = None
    correct_answer: Optional[List[str]] = None
    explanation: Optional[str] = None


class AttemptResultView(BaseModel):
    """Outcome of a completed attempt, as returned by complete and fetch-results."""
    model_config = ConfigDict(from_attributes=True)

    attempt_id: int
    quiz_id: int
    learner_id: int
    status: AttemptStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    completion_trigger: Optional[CompletionTrigger] = None
    timed_out: bool
    score_percent: Optional[int] = Field(None, description="Null while manual grading is pending")
    passed: Optional[bool] = Field(None, description="Null when undecided or the quiz has no passing score")
    total_points: int
    max_points: int
    has_manual_grading_pending: bool
    time_spent_seconds: Optional[int] = None
    questions: List[QuestionOutcomeView]


class LearnerSummary(BaseModel):
    quiz_id: int
    max_attempts: int
    attempts_used: int
    attempts_remaining: int
    can_retake: bool
    has_in_progress: bool
    last_attempt_id: Optional[int] = None
    last_attempt_status: Optional[AttemptStatus] = None
    in_progress_attempt_id: Optional[int] = None
    best_attempt_id: Optional[int] = None
    best_score_percent: Optional[int] = None
    passed: Optional[bool] = None


class QuizStats(BaseModel):
    quiz_id: int
    total_attempts: int
    completed_attempts: int
    average_score_percent: Optional[float] = None


class PendingAnswer(BaseModel):
    attempt_id: int
    answer_id: int
    learner_id: int
    question_id: int
    question_type: str
    question_text: str
    max_points: int
    value: List[str]
    completed_at: Optional[datetime] = None


class GradeRequest(BaseModel):
    points_earned: int = Field(..., ge=0, description="Between 0 and the question's points")
    is_correct: Optional[bool] = Field(None, description="Defaults to true only for full marks")


class GradeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    question_id: int
    points_earned: int
    is_correct: Optional[bool] = None
    graded_at: datetime


class ErrorResponse(BaseModel):
    code: str = Field(..., description="Stable machine-readable error code")
    detail: str = Field(..., description="Human-readable explanation")
