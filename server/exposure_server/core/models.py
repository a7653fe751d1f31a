"""Exposure server: core internal data models.

These are plain dataclasses with no framework dependencies.
Numeric fields are normalised at construction (floats stay floats, ints
stay ints, sequences become tuples), so an entity serializes to the same
bytes whether it was built in code or reloaded from a stored document.
JSON request bodies and stored documents are converted to/from these at
the boundary via ``to_dict`` / ``from_dict`` (camelCase wire names).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from exposure_server.core.validation import (
    ValidationIssue,
    ValidationResult,
    validate_coordinates,
    validate_time_range,
    validate_timestamp,
)


def _coerce(obj, **converters) -> None:
    for name, convert in converters.items():
        object.__setattr__(obj, name, convert(getattr(obj, name)))


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        _coerce(self, latitude=float, longitude=float)

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}

    @classmethod
    def from_dict(cls, data: dict) -> Coordinates:
        return cls(latitude=float(data["latitude"]), longitude=float(data["longitude"]))


@dataclass(frozen=True)
class Region:
    """A precision-aligned grid cell, used as a storage/query key."""
    latitude_prefix: float
    longitude_prefix: float
    precision: int

    def __post_init__(self) -> None:
        _coerce(self, latitude_prefix=float, longitude_prefix=float, precision=int)

    def to_dict(self) -> dict:
        return {
            "latitudePrefix": self.latitude_prefix,
            "longitudePrefix": self.longitude_prefix,
            "precision": self.precision,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Region:
        return cls(
            latitude_prefix=float(data["latitudePrefix"]),
            longitude_prefix=float(data["longitudePrefix"]),
            precision=int(data["precision"]),
        )


@dataclass(frozen=True)
class RegionBoundary:
    min: Coordinates
    max: Coordinates

    def to_dict(self) -> dict:
        return {"min": self.min.to_dict(), "max": self.max.to_dict()}


@dataclass(frozen=True)
class InfectionArea:
    """Circular risk zone."""
    location: Coordinates
    radius_meters: float

    def __post_init__(self) -> None:
        _coerce(self, radius_meters=float)

    def validate(self) -> ValidationResult:
        result = validate_coordinates(self.location)
        if not self.radius_meters > 0:
            result.fail(ValidationIssue.INPUT_INVALID, "radiusMeters",
                        "radiusMeters must be positive")
        return result

    def to_dict(self) -> dict:
        return {"location": self.location.to_dict(), "radiusMeters": self.radius_meters}

    @classmethod
    def from_dict(cls, data: dict) -> InfectionArea:
        return cls(
            location=Coordinates.from_dict(data["location"]),
            radius_meters=float(data.get("radiusMeters", 0)),
        )


@dataclass(frozen=True)
class AreaReport:
    """Area-based infection report. Timestamps of 0 mean "not set"."""
    areas: tuple[InfectionArea, ...]
    user_message: str
    begin_timestamp: int = 0
    end_timestamp: int = 0

    def __post_init__(self) -> None:
        _coerce(self, areas=tuple, begin_timestamp=int, end_timestamp=int)

    def validate(self) -> ValidationResult:
        result = ValidationResult()

        if self.areas:
            for area in self.areas:
                result.combine(area.validate())
        else:
            result.fail(ValidationIssue.INPUT_EMPTY, "areas", "at least one area is required")

        if not self.user_message:
            result.fail(ValidationIssue.INPUT_EMPTY, "userMessage", "userMessage is required")

        if self.begin_timestamp > 0 and self.end_timestamp > 0:
            result.combine(validate_timestamp(self.begin_timestamp, "beginTimestamp"))
            result.combine(validate_timestamp(self.end_timestamp, "endTimestamp"))
            result.combine(validate_time_range(self.begin_timestamp, self.end_timestamp))

        return result

    def to_dict(self) -> dict:
        data = {
            "areas": [a.to_dict() for a in self.areas],
            "userMessage": self.user_message,
        }
        if self.begin_timestamp:
            data["beginTimestamp"] = self.begin_timestamp
        if self.end_timestamp:
            data["endTimestamp"] = self.end_timestamp
        return data

    @classmethod
    def from_dict(cls, data: dict) -> AreaReport:
        return cls(
            areas=tuple(InfectionArea.from_dict(a) for a in data.get("areas", [])),
            user_message=data.get("userMessage", "") or "",
            begin_timestamp=int(data.get("beginTimestamp", 0) or 0),
            end_timestamp=int(data.get("endTimestamp", 0) or 0),
        )


@dataclass(frozen=True)
class BluetoothSeed:
    seed: str
    sequence_start_time: int
    sequence_end_time: int

    def __post_init__(self) -> None:
        _coerce(self, sequence_start_time=int, sequence_end_time=int)

    def validate(self) -> ValidationResult:
        result = ValidationResult()
        if not self.seed:
            result.fail(ValidationIssue.INPUT_EMPTY, "seed", "seed is required")
        result.combine(validate_timestamp(self.sequence_start_time, "sequenceStartTime"))
        result.combine(validate_timestamp(self.sequence_end_time, "sequenceEndTime"))
        result.combine(validate_time_range(self.sequence_start_time, self.sequence_end_time))
        return result

    def to_dict(self) -> dict:
        return {
            "seed": self.seed,
            "sequenceStartTime": self.sequence_start_time,
            "sequenceEndTime": self.sequence_end_time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> BluetoothSeed:
        return cls(
            seed=data.get("seed", "") or "",
            sequence_start_time=int(data.get("sequenceStartTime", 0)),
            sequence_end_time=int(data.get("sequenceEndTime", 0)),
        )


@dataclass(frozen=True)
class BluetoothMatch:
    seeds: tuple[BluetoothSeed, ...]
    user_message: str = ""

    def __post_init__(self) -> None:
        _coerce(self, seeds=tuple)

    def to_dict(self) -> dict:
        return {"userMessage": self.user_message, "seeds": [s.to_dict() for s in self.seeds]}

    @classmethod
    def from_dict(cls, data: dict) -> BluetoothMatch:
        return cls(
            seeds=tuple(BluetoothSeed.from_dict(s) for s in data.get("seeds", [])),
            user_message=data.get("userMessage", "") or "",
        )


@dataclass(frozen=True)
class MatchMessage:
    """Envelope distributed to clients of a region."""
    area_matches: tuple[AreaReport, ...] = ()
    bluetooth_matches: tuple[BluetoothMatch, ...] = ()
    bool_expression: str = ""

    def __post_init__(self) -> None:
        _coerce(self, area_matches=tuple, bluetooth_matches=tuple)

    def variant_count(self) -> int:
        """Number of populated variant sets."""
        return sum(1 for v in (self.area_matches, self.bluetooth_matches, self.bool_expression) if v)

    def to_dict(self) -> dict:
        return {
            "areaMatches": [a.to_dict() for a in self.area_matches],
            "bluetoothMatches": [b.to_dict() for b in self.bluetooth_matches],
            "boolExpression": self.bool_expression,
        }

    @classmethod
    def from_dict(cls, data: dict) -> MatchMessage:
        return cls(
            area_matches=tuple(AreaReport.from_dict(a) for a in data.get("areaMatches", [])),
            bluetooth_matches=tuple(BluetoothMatch.from_dict(b) for b in data.get("bluetoothMatches", [])),
            bool_expression=data.get("boolExpression", "") or "",
        )


@dataclass(frozen=True)
class InfectionReport:
    """Global (non-regional) report, stored in day partitions."""
    area_reports: tuple[AreaReport, ...] = ()
    bluetooth_seeds: tuple[BluetoothSeed, ...] = ()
    boolean_expression: str = ""

    def __post_init__(self) -> None:
        _coerce(self, area_reports=tuple, bluetooth_seeds=tuple)

    def validate(self) -> ValidationResult:
        result = ValidationResult()
        if not self.area_reports and not self.bluetooth_seeds:
            result.fail(ValidationIssue.INPUT_EMPTY, "areaReports",
                        "a report needs area reports or bluetooth seeds")
        for report in self.area_reports:
            result.combine(report.validate())
        for seed in self.bluetooth_seeds:
            result.combine(seed.validate())
        return result

    def to_dict(self) -> dict:
        return {
            "areaReports": [a.to_dict() for a in self.area_reports],
            "bluetoothSeeds": [s.to_dict() for s in self.bluetooth_seeds],
            "booleanExpression": self.boolean_expression,
        }

    @classmethod
    def from_dict(cls, data: dict) -> InfectionReport:
        return cls(
            area_reports=tuple(AreaReport.from_dict(a) for a in data.get("areaReports", [])),
            bluetooth_seeds=tuple(BluetoothSeed.from_dict(s) for s in data.get("bluetoothSeeds", [])),
            boolean_expression=data.get("booleanExpression", "") or "",
        )


@dataclass(frozen=True)
class MessageInfo:
    """Metadata projection of a stored record: enough to fetch it later."""
    id: str
    timestamp: int

    def __post_init__(self) -> None:
        _coerce(self, timestamp=int)

    def to_dict(self) -> dict:
        return {"messageId": self.id, "messageTimestamp": self.timestamp}


@dataclass(frozen=True)
class MessageListResponse:
    message_infoes: list[MessageInfo] = field(default_factory=list)
    max_response_timestamp: int = 0

    @classmethod
    def from_infos(cls, infos: list[MessageInfo]) -> MessageListResponse:
        infos = list(infos)
        watermark = max((i.timestamp for i in infos), default=0)
        return cls(message_infoes=infos, max_response_timestamp=watermark)

    def to_dict(self) -> dict:
        return {
            "messageInfoes": [i.to_dict() for i in self.message_infoes],
            "maxResponseTimestamp": self.max_response_timestamp,
        }
