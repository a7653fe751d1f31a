"""Request validation results.

Entities validate themselves and return a ``ValidationResult`` which
accumulates every failure instead of stopping at the first one, so a client
gets the full list of problems in a single 400 response.
"""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from exposure_server.core.models import Coordinates

# 2020-01-01T00:00:00Z, earliest timestamp a report may carry.
MIN_TIMESTAMP_MS = 1_577_836_800_000

# Clock skew tolerated for timestamps in the future.
MAX_FUTURE_SKEW_MS = 24 * 60 * 60 * 1000


class ValidationIssue(str, enum.Enum):
    INPUT_EMPTY = "InputEmpty"
    INPUT_INVALID = "InputInvalid"
    INPUT_NULL = "InputNull"


@dataclass(frozen=True)
class ValidationFailure:
    issue: ValidationIssue
    field: str
    message: str

    def to_dict(self) -> dict:
        return {"issue": self.issue.value, "field": self.field, "message": self.message}


@dataclass
class ValidationResult:
    failures: list[ValidationFailure] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.failures

    def fail(self, issue: ValidationIssue, field_name: str, message: str) -> None:
        self.failures.append(ValidationFailure(issue, field_name, message))

    def combine(self, other: ValidationResult) -> None:
        self.failures.extend(other.failures)

    def to_dict(self) -> dict:
        return {"passed": self.passed, "failures": [f.to_dict() for f in self.failures]}


def validate_timestamp(timestamp_ms: int, field_name: str = "timestamp") -> ValidationResult:
    """Check that a timestamp falls inside the accepted absolute range."""
    result = ValidationResult()
    max_ms = int(time.time() * 1000) + MAX_FUTURE_SKEW_MS
    if timestamp_ms < MIN_TIMESTAMP_MS or timestamp_ms > max_ms:
        result.fail(
            ValidationIssue.INPUT_INVALID,
            field_name,
            f"timestamp must be between {MIN_TIMESTAMP_MS} and {max_ms}",
        )
    return result


def validate_time_range(begin_ms: int, end_ms: int) -> ValidationResult:
    result = ValidationResult()
    if begin_ms > end_ms:
        result.fail(
            ValidationIssue.INPUT_INVALID,
            "beginTimestamp",
            "beginTimestamp must not be after endTimestamp",
        )
    return result


def validate_coordinates(location: Coordinates, field_name: str = "location") -> ValidationResult:
    """Check WGS84 latitude/longitude ranges."""
    result = ValidationResult()
    if not -90.0 <= location.latitude <= 90.0:
        result.fail(ValidationIssue.INPUT_INVALID, f"{field_name}.latitude",
                    "latitude must be between -90 and 90")
    if not -180.0 <= location.longitude <= 180.0:
        result.fail(ValidationIssue.INPUT_INVALID, f"{field_name}.longitude",
                    "longitude must be between -180 and 180")
    return result
