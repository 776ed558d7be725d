from fastapi import FastAPI, Depends, Request, Response, Body
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from typing import List, Optional
import structlog

from db.session import get_db
from api.auth import get_current_user
from api.schemas import (
    StartResponse, QuestionView, SavedAnswer, SaveAnswerRequest, SaveAnswerResponse, CompleteRequest,
    AttemptResultView, LearnerSummary, QuizStats, PendingAnswer, GradeRequest, GradeResponse, ErrorResponse,
)
from services.attempt_service import AttemptService
from services.answer_service import AnswerService
from services.grading_service import GradingService
from services.quiz_service import QuizService
from services.enrollment_service import EnrollmentService
from core.exceptions import QuizEngineError, NotFound, Forbidden
from constants.messages import Messages

logger = structlog.get_logger("quizengine.api")

# API Documentation
API_DESCRIPTION = """
## Quiz Attempt Engine API

Start or resume quiz attempts, save answers, submit and read results.

### Authentication

Every endpoint except `/health` requires a signed token:

- Header: `X-Auth-Token: <user_id>:<timestamp>:<signature>`

### Errors

Failures carry a stable `code` next to the human-readable `detail`:
`not_found`, `forbidden`, `attempt_limit_exceeded`, `attempt_expired`,
`invalid_state`, `invalid_answer`, `attempt_conflict`.

Deadlines are always computed on the server; the client timer is only a display.
"""

TAGS_METADATA = [
    {
        "name": "attempts",
        "description": "Attempt lifecycle - start/resume, answer, complete, results.",
    },
    {
        "name": "grading",
        "description": "Manual grading of open-ended and code answers, quiz statistics.",
    },
    {
        "name": "info",
        "description": "Service health.",
    },
]

ERROR_RESPONSES = {
    401: {"description": "Authentication required"},
    403: {"model": ErrorResponse, "description": "Not allowed for this user"},
    404: {"model": ErrorResponse, "description": "Quiz, attempt or question not found"},
    409: {"model": ErrorResponse, "description": "Attempt limit reached, attempt expired or already completed"},
}

app = FastAPI(
    title="Quiz Attempt Engine API",
    description=API_DESCRIPTION,
    version="1.0.0",
    openapi_tags=TAGS_METADATA,
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.exception_handler(QuizEngineError)
async def quiz_engine_error_handler(request: Request, exc: QuizEngineError):
    logger.info("Request rejected", path=request.url.path, code=exc.code, detail=exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"code": exc.code, "detail": exc.detail})


@app.post(
    "/api/quizzes/{quiz_id}/attempts",
    response_model=StartResponse,
    status_code=201,
    tags=["attempts"],
    summary="Start or resume an attempt",
    description="Creates a new attempt, or returns the learner's open attempt unchanged together with saved answers.",
    responses=ERROR_RESPONSES,
)
async def start_attempt(
    quiz_id: int,
    response: Response,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    started = await AttemptService(db).start(user_id, quiz_id)
    if started.resumed:
        response.status_code = 200

    attempt = started.attempt
    return StartResponse(
        attempt_id=attempt.id,
        quiz_id=attempt.quiz_id,
        status=attempt.status,
        started_at=attempt.started_at,
        time_limit_minutes=attempt.time_limit_snapshot_minutes,
        remaining_seconds=started.remaining_seconds,
        resumed=started.resumed,
        questions=[QuestionView(**q) for q in started.questions],
        answers=[SavedAnswer.model_validate(a) for a in started.answers],
    )


@app.put(
    "/api/attempts/{attempt_id}/answers/{question_id}",
    response_model=SaveAnswerResponse,
    tags=["attempts"],
    summary="Save an answer",
    description="Upserts the learner's answer for one question. Repeated saves overwrite; nothing is scored yet.",
    responses={**ERROR_RESPONSES, 422: {"model": ErrorResponse, "description": "Unknown option ids"}},
)
async def save_answer(
    attempt_id: int,
    question_id: int,
    payload: SaveAnswerRequest,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    answer = await AnswerService(db).save_answer(attempt_id, question_id, payload.value, learner_id=user_id)
    return SaveAnswerResponse(answer_id=answer.id, question_id=answer.question_id)


@app.post(
    "/api/attempts/{attempt_id}/complete",
    response_model=AttemptResultView,
    tags=["attempts"],
    summary="Complete an attempt",
    description="Scores and closes the attempt. Calling it again returns the stored result.",
    responses=ERROR_RESPONSES,
)
async def complete_attempt(
    attempt_id: int,
    payload: Optional[CompleteRequest] = Body(None),
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    payload = payload or CompleteRequest()
    result = await AttemptService(db).complete(attempt_id, trigger=payload.trigger, learner_id=user_id)
    return AttemptResultView.model_validate(result)


@app.get(
    "/api/attempts/{attempt_id}/results",
    response_model=AttemptResultView,
    tags=["attempts"],
    summary="Fetch results",
    description="Result of a completed attempt, rebuilt from storage so later manual grades are included.",
    responses=ERROR_RESPONSES,
)
async def get_results(
    attempt_id: int,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await AttemptService(db).get_results(attempt_id, requester_id=user_id)
    return AttemptResultView.model_validate(result)


@app.get(
    "/api/quizzes/{quiz_id}/summary",
    response_model=LearnerSummary,
    tags=["attempts"],
    summary="Learner overview of a quiz",
    description="Attempts used, whether a retake is possible and the best result so far.",
    responses=ERROR_RESPONSES,
)
async def get_summary(
    quiz_id: int,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    quiz = await QuizService(db).get_active_quiz(quiz_id)
    if not quiz:
        raise NotFound(Messages.get("QUIZ_NOT_FOUND"))
    if not await EnrollmentService(db).is_enrolled(user_id, quiz.course_id):
        raise Forbidden(Messages.get("NOT_ENROLLED"))
    return await QuizService(db).learner_summary(user_id, quiz)


@app.get(
    "/api/quizzes/{quiz_id}/stats",
    response_model=QuizStats,
    tags=["grading"],
    summary="Quiz statistics",
    responses=ERROR_RESPONSES,
)
async def get_stats(
    quiz_id: int,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = QuizService(db)
    quiz = await service.get_quiz(quiz_id)
    if not quiz:
        raise NotFound(Messages.get("QUIZ_NOT_FOUND"))
    if not await EnrollmentService(db).is_grader(user_id, quiz.course_id):
        raise Forbidden(Messages.get("NOT_GRADER"))
    return await service.quiz_stats(quiz_id)


@app.get(
    "/api/quizzes/{quiz_id}/pending-grading",
    response_model=List[PendingAnswer],
    tags=["grading"],
    summary="Answers awaiting manual grading",
    responses=ERROR_RESPONSES,
)
async def list_pending_grading(
    quiz_id: int,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await GradingService(db).list_pending(quiz_id, grader_id=user_id)


@app.put(
    "/api/attempts/{attempt_id}/answers/{answer_id}/grade",
    response_model=GradeResponse,
    tags=["grading"],
    summary="Grade an open-ended or code answer",
    responses={**ERROR_RESPONSES, 422: {"model": ErrorResponse, "description": "Answer cannot be graded"}},
)
async def grade_answer(
    attempt_id: int,
    answer_id: int,
    payload: GradeRequest,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    answer = await GradingService(db).grade_answer(
        attempt_id, answer_id, payload.points_earned, grader_id=user_id, is_correct=payload.is_correct
    )
    return GradeResponse.model_validate(answer)


@app.get("/health", tags=["info"])
async def health_check(db: AsyncSession = Depends(get_db)):
    try:
        await db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.warning("Health check: database unreachable", error=str(e))
        db_status = "disconnected"
    return {"status": "healthy", "service": "quiz-attempt-engine", "database": db_status}


@app.get("/favicon.ico", include_in_schema=False)
async def favicon():
    return Response(status_code=204)
