# src/taskwise/core/errors.py

"""User-facing error types raised by the task/assistant APIs."""

from __future__ import annotations


class TaskwiseError(Exception):
    """Base class for errors that should be shown to the user as-is."""


class ValidationError(TaskwiseError, ValueError):
    pass


class NotFoundError(TaskwiseError, LookupError):
    pass


class PermissionDenied(TaskwiseError):
    pass


class RateLimitExceeded(TaskwiseError):
    def __init__(self, name: str, retry_after: float) -> None:
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded. Retry after {int(retry_after * 1000)}ms")
