"""
Failure classification.

Expected business outcomes (card limit reached, unusable unlock key) are
return values, not exceptions. `KnownError` is reserved for requests the
system refuses before mutating anything: invalid input, missing identity,
missing privileges, illegal state transitions. The API layer renders it
as a `FailureDetail` with the error's status code.
"""

from enum import Enum

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    INVALID_INPUT = "invalid_input"
    MISSING_REQUIRED = "missing_required"

    # Access failures
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"

    # Constraint violations
    CARD_LIMIT_REACHED = "card_limit_reached"
    INVALID_TRANSITION = "invalid_transition"


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )


class FailureResponse(BaseModel):
    """Body returned for every KnownError."""

    failure: FailureDetail


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> FailureResponse:
        return FailureResponse(
            failure=FailureDetail(
                kind=self.kind,
                message=self.message,
                detail=self.detail,
                suggestion=self.suggestion,
            )
        )


class InvalidInputError(KnownError):
    """Raised when a request fails validation before any mutation."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(
            kind=FailureKind.INVALID_INPUT,
            message=message,
            detail=detail,
            status_code=400,
        )


class NotAuthenticatedError(KnownError):
    def __init__(self, detail: str | None = None):
        super().__init__(
            kind=FailureKind.UNAUTHENTICATED,
            message="Unauthorized",
            detail=detail,
            suggestion="Sign in again and retry.",
            status_code=401,
        )


class NotAdminError(KnownError):
    def __init__(self) -> None:
        super().__init__(
            kind=FailureKind.FORBIDDEN,
            message="Admin access required",
            status_code=403,
        )
