"""
Domain Exceptions

Typed errors raised by the service layer. Each carries the HTTP status code
it is rendered with, so endpoints never build HTTPExceptions themselves.
"""

from typing import Any, Dict, List, Optional


class TeamServiceError(Exception):
    """Base exception for team and membership operations."""

    status_code: int = 500

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ForbiddenError(TeamServiceError):
    status_code = 403


class NotFoundError(TeamServiceError):
    status_code = 404


class ConflictError(TeamServiceError):
    status_code = 409


class InvalidInputError(TeamServiceError):
    status_code = 400


class InternalError(TeamServiceError):
    status_code = 500


class CascadeError(InternalError):
    """A multi-store cascade finished with one or more failed steps.

    Steps that succeeded are not rolled back. The reconciliation job
    restores userProfiles.teams from team membership.
    """

    def __init__(
        self,
        cascade: str,
        failed_steps: List[str],
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            f"Cascade '{cascade}' failed at: {', '.join(failed_steps)}", context
        )
        self.cascade = cascade
        self.failed_steps = failed_steps
