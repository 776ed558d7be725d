from constants.messages import Messages


class QuizEngineError(Exception):
    """Base class for errors the attempt engine reports to its callers."""
    code = "quiz_engine_error"
    status_code = 400
    message_key = None

    def __init__(self, detail: str = None, **params):
        if detail is None and self.message_key:
            detail = Messages.get(self.message_key).format(**params)
        self.detail = detail or self.code
        super().__init__(self.detail)


class NotFound(QuizEngineError):
    code = "not_found"
    status_code = 404


class Forbidden(QuizEngineError):
    code = "forbidden"
    status_code = 403


class AttemptLimitExceeded(QuizEngineError):
    code = "attempt_limit_exceeded"
    status_code = 409
    message_key = "ATTEMPT_LIMIT"


class AttemptExpired(QuizEngineError):
    code = "attempt_expired"
    status_code = 409
    message_key = "ATTEMPT_EXPIRED"


class InvalidState(QuizEngineError):
    code = "invalid_state"
    status_code = 409


class InvalidAnswer(QuizEngineError):
    code = "invalid_answer"
    status_code = 422


class AttemptConflict(QuizEngineError):
    """Raised when a uniqueness conflict survives the single retry."""
    code = "attempt_conflict"
    status_code = 503
    message_key = "ATTEMPT_CONFLICT"
