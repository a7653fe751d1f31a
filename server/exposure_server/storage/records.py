"""Persisted record shapes.

A record wraps one domain entity with the fields the store needs to
partition, filter, and size it without reading the payload:

- ``timestamp``: creation time, ms since epoch
- ``size``: exact byte length of the canonical JSON serialization
- ``version``: schema tag, advanced on breaking format changes
- ``partition_key``: derived at construction, never set directly

Records are write-once. Corrections are new records.
"""

from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import ClassVar

import structlog

from exposure_server.core.models import (
    Coordinates,
    InfectionReport,
    MatchMessage,
    MessageInfo,
    Region,
    RegionBoundary,
)
from exposure_server.core.regions import adjust_to_precision, get_region_boundary, get_region_identifier

log = structlog.get_logger()

_DAY_MS = 24 * 60 * 60 * 1000


def serialized_size(value) -> int:
    """Exact size, in bytes, of an entity's canonical serialization."""
    return len(_canonical_json(value.to_dict()))


def _canonical_json(data: dict) -> bytes:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def day_partition_key(timestamp_ms: int) -> str:
    """UTC midnight of ``timestamp_ms``, as an epoch-ms string."""
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    midnight = dt.replace(hour=0, minute=0, second=0, microsecond=0)
    return str(int(midnight.timestamp()) * 1000)


def day_partition_keys(start_ms: int, end_ms: int) -> list[str]:
    """Day partitions overlapping ``[start_ms, end_ms]``, oldest first."""
    first = int(day_partition_key(start_ms))
    last = int(day_partition_key(end_ms))
    return [str(day) for day in range(first, last + 1, _DAY_MS)]


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class StorageRecord:
    """Base record. Subclasses set ``KIND`` and derive ``partition_key``."""
    KIND: ClassVar[str] = ""

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: int = field(default_factory=_now_ms)
    size: int = field(init=False, default=0)
    version: str = field(init=False, default="")
    partition_key: str = field(init=False, default="")

    def _stamp(self, size: int, version: str, partition_key: str) -> None:
        object.__setattr__(self, "size", size)
        object.__setattr__(self, "version", version)
        object.__setattr__(self, "partition_key", partition_key)

    def info(self) -> MessageInfo:
        return MessageInfo(id=self.id, timestamp=self.timestamp)

    def to_document(self) -> dict:
        return {
            "id": self.id,
            "kind": self.KIND,
            "partitionKey": self.partition_key,
            "timestamp": self.timestamp,
            "size": self.size,
            "version": self.version,
        }

    def to_json_line(self) -> str:
        return _canonical_json(self.to_document()).decode("utf-8")


@dataclass(frozen=True)
class InfectionReportRecord(StorageRecord):
    """``InfectionReport`` record, partitioned by UTC day of creation.

    ``region_boundary`` is the box spanning every area location in the
    report, or None for reports carrying only bluetooth seeds.
    """
    KIND: ClassVar[str] = "reports"
    CURRENT_RECORD_VERSION: ClassVar[str] = "2.1.0"

    value: InfectionReport = field(default_factory=InfectionReport)
    region_boundary: RegionBoundary | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        object.__setattr__(self, "region_boundary", _areas_boundary(self.value))
        self._stamp(
            size=serialized_size(self.value),
            version=self.CURRENT_RECORD_VERSION,
            partition_key=day_partition_key(self.timestamp),
        )

    def to_document(self) -> dict:
        doc = super().to_document()
        if self.region_boundary is not None:
            doc["regionBoundary"] = self.region_boundary.to_dict()
        doc["value"] = self.value.to_dict()
        return doc


def _areas_boundary(report: InfectionReport) -> RegionBoundary | None:
    locations = [area.location for r in report.area_reports for area in r.areas]
    if not locations:
        return None
    return RegionBoundary(
        min=Coordinates(min(c.latitude for c in locations), min(c.longitude for c in locations)),
        max=Coordinates(max(c.latitude for c in locations), max(c.longitude for c in locations)),
    )


@dataclass(frozen=True)
class MatchMessageRecord(StorageRecord):
    """``MatchMessage`` record, partitioned by owning region identifier."""
    KIND: ClassVar[str] = "messages"
    CURRENT_RECORD_VERSION: ClassVar[str] = "3.0.0"

    value: MatchMessage = field(default_factory=MatchMessage)
    region: Region = field(default_factory=lambda: Region(0.0, 0.0, 0))
    region_boundary: RegionBoundary | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        aligned = adjust_to_precision(self.region)
        object.__setattr__(self, "region", aligned)
        object.__setattr__(self, "region_boundary", get_region_boundary(aligned))
        self._stamp(
            size=serialized_size(self.value),
            version=self.CURRENT_RECORD_VERSION,
            partition_key=get_region_identifier(aligned),
        )

    def to_document(self) -> dict:
        doc = super().to_document()
        doc["region"] = self.region.to_dict()
        doc["regionBoundary"] = self.region_boundary.to_dict()
        doc["value"] = self.value.to_dict()
        return doc


RECORD_TYPES: dict[str, type[StorageRecord]] = {
    InfectionReportRecord.KIND: InfectionReportRecord,
    MatchMessageRecord.KIND: MatchMessageRecord,
}

# Schema versions each record kind can decode.
READABLE_VERSIONS: dict[str, frozenset[str]] = {
    InfectionReportRecord.KIND: frozenset({"2.1.0"}),
    MatchMessageRecord.KIND: frozenset({"3.0.0"}),
}


def record_from_document(doc: dict) -> StorageRecord | None:
    """Rebuild a record from a stored document.

    Returns None for documents written with a schema version this build
    cannot read, so newer writers never break older readers.
    """
    kind = doc.get("kind", "")
    version = doc.get("version", "")
    if version not in READABLE_VERSIONS.get(kind, frozenset()):
        log.warning("record_version_unreadable", kind=kind, version=version,
                    record_id=doc.get("id"))
        return None

    if kind == MatchMessageRecord.KIND:
        return MatchMessageRecord(
            id=doc["id"],
            timestamp=doc["timestamp"],
            value=MatchMessage.from_dict(doc["value"]),
            region=Region.from_dict(doc["region"]),
        )
    return InfectionReportRecord(
        id=doc["id"],
        timestamp=doc["timestamp"],
        value=InfectionReport.from_dict(doc["value"]),
    )
