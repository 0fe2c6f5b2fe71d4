"""
Domain errors.

Raised by services for recoverable validation failures. Rendered by the
application exception handler as {"detail": {"code": ..., "message": ...}}.
Absence is never an error here: services return None instead.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class DomainError(Exception):
    """Base class for named, recoverable failures."""

    code: str = "DOMAIN_ERROR"
    default_message: str = "The request could not be applied"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_detail(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class SprintHasZeroEffortError(DomainError):
    code = "ZERO_EFFORT"
    default_message = "The sprint cannot have 0 total effort."


class InvalidSprintStatusError(DomainError):
    code = "INVALID_STATUS"
    default_message = "The sprint is not in a state that allows this transition"


class ActiveSprintExistsError(DomainError):
    code = "ACTIVE_SPRINT_EXISTS"
    default_message = "A sprint is already active for this project"
    status_code = status.HTTP_409_CONFLICT


class SprintFinishedError(DomainError):
    code = "SPRINT_FINISHED"
    default_message = "Finished sprints cannot be changed"


class InvalidParentError(DomainError):
    code = "INVALID_PARENT"
    default_message = "The parent item is not valid for this item"


class CrossProjectError(DomainError):
    code = "CROSS_PROJECT"
    default_message = "Items can only be scheduled in sprints of their own project"


class InvalidAssigneeError(DomainError):
    code = "USER_NOT_FOUND"
    default_message = "Assignee does not exist or is inactive"


def not_found(code: str, message: str) -> HTTPException:
    """404 in the same envelope as domain errors."""
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"code": code, "message": message},
    )
