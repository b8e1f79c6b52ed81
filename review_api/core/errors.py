"""Application-level exception types.

This module defines errors raised across the pipeline, adapters and route
groups, enabling consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep shapes consistent across the codebase
    without forcing every error to fill them.
    """

    hint: str
    path: str
    method: str
    content_type: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request input or configuration validation fails."""


class AuthenticationAppError(AppError):
    """Raised when a request needs a logged-in session and has none."""


class NotFoundAppError(AppError):
    """Raised when no route matches the request path and method."""


class RateLimitAppError(AppError):
    """Raised when a client exceeds its request budget."""


class DatabaseConnectionError(AppError):
    """Raised when the document store cannot be reached at startup."""
