class Messages:
    """User-facing error texts, keyed by a stable message code."""

    _TEXTS = {
        "EN": {
            "QUIZ_NOT_FOUND": "Quiz not found or not available",
            "QUIZ_EMPTY": "Quiz has no questions",
            "ATTEMPT_NOT_FOUND": "Attempt not found",
            "QUESTION_NOT_FOUND": "Question {question_id} is not part of this quiz",
            "ANSWER_NOT_FOUND": "Answer not found",
            "NOT_ENROLLED": "You are not enrolled in this course",
            "NOT_ATTEMPT_OWNER": "This attempt belongs to another learner",
            "NOT_GRADER": "Only course graders can do this",
            "ATTEMPT_LIMIT": "Maximum attempts ({max_attempts}) reached",
            "ATTEMPT_EXPIRED": "Time limit exceeded. Submit the attempt to see your result",
            "ATTEMPT_COMPLETED": "Attempt is already completed, answers can no longer change",
            "ATTEMPT_NOT_COMPLETED": "Attempt is still in progress",
            "ATTEMPT_CONFLICT": "Could not start the attempt, please try again",
            "ANSWER_CONFLICT": "Could not save the answer, please try again",
            "UNKNOWN_OPTIONS": "Unknown option ids: {options}",
            "SINGLE_OPTION_ONLY": "Only one option can be selected for this question",
            "NOT_MANUALLY_GRADABLE": "Only open-ended and code answers can be graded manually",
            "POINTS_OUT_OF_RANGE": "Points must be between 0 and {max_points}",
        },
    }

    DEFAULT_LANG = "EN"

    @classmethod
    def get(cls, key: str, lang: str = DEFAULT_LANG) -> str:
        texts = cls._TEXTS.get(lang) or cls._TEXTS[cls.DEFAULT_LANG]
        return texts.get(key) or cls._TEXTS[cls.DEFAULT_LANG].get(key, key)
