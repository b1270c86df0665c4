"""taskfleet error hierarchy."""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCategory(StrEnum):
    """Category of error for classification and handling."""

    STORE = "store"
    PLANNING = "planning"
    EXECUTOR = "executor"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"


class FleetError(Exception):
    """Base error for all taskfleet exceptions."""

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        retryable: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.category = category
        self.retryable = retryable
        self.details: dict[str, Any] = details or {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r}, category={self.category!r})"


class StoreError(FleetError):
    """I/O or parse failure on persisted state."""

    def __init__(self, message: str, *, path: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, category=ErrorCategory.STORE, **kwargs)
        self.path = path


class PlanningError(FleetError):
    """The decomposition call failed; the current request is aborted."""

    def __init__(self, message: str, *, exit_code: int | None = None, **kwargs: Any) -> None:
        super().__init__(message, category=ErrorCategory.PLANNING, **kwargs)
        self.exit_code = exit_code


class ExecutorError(FleetError):
    """Failure to invoke the agent executor or to parse its output."""

    def __init__(self, message: str, *, exit_code: int | None = None, **kwargs: Any) -> None:
        super().__init__(message, category=ErrorCategory.EXECUTOR, **kwargs)
        self.exit_code = exit_code


class ExecutorNotFoundError(ExecutorError):
    """The executor binary is not installed or not on PATH."""

    def __init__(self, binary: str) -> None:
        super().__init__(f"'{binary}' CLI not found. Install it or add it to PATH.")
        self.binary = binary


class ConfigurationError(FleetError):
    """Invalid or missing configuration."""

    def __init__(self, message: str) -> None:
        super().__init__(message, category=ErrorCategory.CONFIGURATION)
