"""Exception hierarchy for hackrank.

Every error raised by the ranking, consensus and team workflows derives
from HackrankError. The API maps each family to an HTTP status code and
the CLI prints the message and exits non-zero.
"""

from __future__ import annotations


class HackrankError(Exception):
    """Base exception for all application-specific errors."""

    status_code = 500

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class ValidationError(HackrankError):
    """Raised when a request is malformed or violates an input rule."""

    status_code = 400


class RankingValidationError(ValidationError):
    """Raised when a ranking list is rejected.

    ``details`` enumerates the offending items (team names, ranks).
    """


class StateError(HackrankError):
    """Raised when an operation is not allowed in the record's current state."""

    status_code = 409


class EvaluationFinalizedError(StateError):
    """Raised when mutating an evaluation that has already been finalized."""

    def __init__(self, message: str = "evaluation already finalized") -> None:
        super().__init__(message)


class NotFoundError(HackrankError):
    """Raised when a referenced evaluator, problem statement or team is unknown."""

    status_code = 404


class AccessDeniedError(HackrankError):
    """Raised when the caller's role or assignments do not permit the operation."""

    status_code = 403
