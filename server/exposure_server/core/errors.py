"""Exception hierarchy shared by the core, storage, and API layers."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from exposure_server.core.validation import ValidationResult


class ExposureServerError(Exception):
    """Base server exception."""


class RequestValidationError(ExposureServerError, ValueError):
    """Raised when a caller supplied bad input. Never retried."""


class MissingArgumentError(RequestValidationError):
    """Raised when a required argument is absent or empty."""

    def __init__(self, argument: str) -> None:
        super().__init__(f"{argument} is required")
        self.argument = argument


class ArgumentRangeError(RequestValidationError):
    """Raised when an argument is outside its allowed range."""

    def __init__(self, argument: str, value: object) -> None:
        super().__init__(f"{argument} out of range: {value!r}")
        self.argument = argument
        self.value = value


class RequestValidationFailedError(RequestValidationError):
    """Raised when a submitted entity fails its own validation."""

    def __init__(self, result: ValidationResult) -> None:
        super().__init__("request validation failed")
        self.result = result


class StorageError(ExposureServerError):
    """Raised by store adapters when the backing store fails."""
