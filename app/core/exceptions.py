"""Domain errors raised by the service layer.

Each error carries the HTTP status the API answers with; the handler in
``app.main`` turns them into JSON responses. None of them is fatal to the
application process.
"""
from typing import List, Optional

from fastapi import status


class ExamPrepError(Exception):
    """Base class for all domain errors."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self):
        return self.message


class InvalidSelectionError(ExamPrepError):
    """Exam type or subject missing from a session request."""


class NotFoundError(ExamPrepError):
    """No questions exist for the requested exam and subject."""

    status_code = status.HTTP_404_NOT_FOUND


class InsufficientQuestionsError(ExamPrepError):
    """Too few questions qualify, even after relaxing filters."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class TokensExhaustedError(ExamPrepError):
    """Free account has no tokens left; the user should upgrade."""

    status_code = status.HTTP_402_PAYMENT_REQUIRED

    def to_detail(self):
        return {"message": self.message, "upgrade_required": True}


class TokenUpdateError(ExamPrepError):
    """Deducting a token from the profile failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class AuthenticationRequiredError(ExamPrepError):
    """Action needs a signed-in user."""

    status_code = status.HTTP_401_UNAUTHORIZED


class QuestionNotInSessionError(ExamPrepError):
    """Question id is not part of the session's question set."""

    status_code = status.HTTP_404_NOT_FOUND


class SessionStateError(ExamPrepError):
    """Operation is not allowed in the session's current state."""

    status_code = status.HTTP_409_CONFLICT


class SaveQuestionError(ExamPrepError):
    """Writing a saved question failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class MalformedInputError(ExamPrepError):
    """Upload or admin payload does not have the expected shape."""


class DuplicateQuestionsError(ExamPrepError):
    """Some uploaded question texts already exist in the bank."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, duplicates: List[str], message: Optional[str] = None):
        super().__init__(message or f"{len(duplicates)} duplicate question(s) found")
        self.duplicates = duplicates

    def to_detail(self):
        return {"message": self.message, "duplicates": self.duplicates}


class InsertionError(ExamPrepError):
    """A batch insert failed; ``committed`` rows were already persisted."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, committed: int = 0):
        super().__init__(message)
        self.committed = committed

    def to_detail(self):
        return {"message": self.message, "committed": self.committed}


class QuestionGenerationError(ExamPrepError):
    """The language model returned no usable questions."""

    status_code = status.HTTP_502_BAD_GATEWAY
