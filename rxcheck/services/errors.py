from __future__ import annotations

from typing import Any

from fastapi import status


class AppError(Exception):
    """Base application error for unified handling."""

    code: str = "INTERNAL_ERROR"
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str | None = None,
        *,
        reason: str | None = None,
        http_status: int | None = None,
        debug: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message or reason or "")
        self.reason = reason or message or self.code
        if http_status is not None:
            self.http_status = http_status
        self.debug = debug or {}


class BadRequestError(AppError):
    """Raised when the request is invalid or cannot be processed."""

    code = "BAD_REQUEST"
    http_status = status.HTTP_400_BAD_REQUEST


class NotFoundError(AppError):
    """Raised when a referenced patient or medication does not exist."""

    code = "NOT_FOUND"
    http_status = status.HTTP_404_NOT_FOUND


class InvalidUsageError(AppError):
    """Raised when a component is used outside of its lifecycle."""

    code = "INVALID_USAGE"
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE


class InternalError(AppError):
    """Raised for uncategorized internal failures."""


class EngineShutdownError(InvalidUsageError):
    """Raised when a check is dispatched to an engine that was shut down."""

    def __init__(self, message: str = "interaction engine has been shut down") -> None:
        super().__init__(message, reason="engine_shutdown")


class StrategyExecutionError(InternalError):
    """Raised when a strategy fails unexpectedly during a check."""

    code = "STRATEGY_FAILED"

    def __init__(self, strategy_name: str, cause: BaseException) -> None:
        super().__init__(
            f"{strategy_name} failed: {cause.__class__.__name__}: {cause}",
            reason="strategy_failed",
            debug={"strategy": strategy_name},
        )
        self.strategy_name = strategy_name


class DataLoadError(InternalError):
    """Raised when a data file cannot be read or decoded."""

    code = "DATA_UNAVAILABLE"
