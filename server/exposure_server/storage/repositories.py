"""Repositories: map domain queries onto record-store partitions.

``MatchMessageRepository`` partitions by region identifier.
``InfectionReportRepository`` partitions by UTC day and bounds its query
fan-out to the days between the client's watermark and today, capped by the
retention window.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable
from typing import TYPE_CHECKING

from exposure_server.core.regions import adjust_to_precision, get_region_identifier
from exposure_server.storage.records import (
    InfectionReportRecord,
    MatchMessageRecord,
    day_partition_keys,
)

if TYPE_CHECKING:
    from exposure_server.core.models import InfectionReport, MatchMessage, MessageInfo, Region
    from exposure_server.storage.base import RecordStore

_DAY_MS = 24 * 60 * 60 * 1000


class MatchMessageRepository:
    """MatchMessage records keyed by region."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def insert(self, region: Region, message: MatchMessage) -> str:
        record = MatchMessageRecord(value=message, region=region)
        return await self._store.insert(record)

    async def get_latest(self, regions: Iterable[Region], last_timestamp: int) -> list[MessageInfo]:
        """Metadata newer than ``last_timestamp`` across ``regions``.

        Regions are queried concurrently and merged; no ordering is implied.
        """
        results = await asyncio.gather(*(
            self._store.query_latest(MatchMessageRecord.KIND, [key], last_timestamp)
            for key in _partition_keys(regions)
        ))
        return [info for batch in results for info in batch]

    async def get_latest_region_size(self, regions: Iterable[Region], last_timestamp: int) -> int:
        sizes = await asyncio.gather(*(
            self._store.query_size(MatchMessageRecord.KIND, [key], last_timestamp)
            for key in _partition_keys(regions)
        ))
        return sum(sizes)

    async def get_range(self, ids: Iterable[str]) -> list[MatchMessage]:
        records = await self._store.get_range(MatchMessageRecord.KIND, ids)
        return [r.value for r in records]


def _partition_keys(regions: Iterable[Region]) -> list[str]:
    """Distinct partition keys of ``regions``, in first-seen order."""
    return list(dict.fromkeys(get_region_identifier(adjust_to_precision(r)) for r in regions))


class InfectionReportRepository:
    """InfectionReport records keyed by day of creation."""

    def __init__(self, store: RecordStore, retention_days: int = 14) -> None:
        self._store = store
        self._retention_days = retention_days

    def _day_keys(self, last_timestamp: int) -> list[str]:
        now_ms = int(time.time() * 1000)
        oldest = now_ms - self._retention_days * _DAY_MS
        return day_partition_keys(max(last_timestamp, oldest), now_ms)

    async def insert(self, report: InfectionReport) -> str:
        record = InfectionReportRecord(value=report)
        return await self._store.insert(record)

    async def get_latest(self, last_timestamp: int) -> list[MessageInfo]:
        return await self._store.query_latest(
            InfectionReportRecord.KIND, self._day_keys(last_timestamp), last_timestamp,
        )

    async def get_latest_size(self, last_timestamp: int) -> int:
        return await self._store.query_size(
            InfectionReportRecord.KIND, self._day_keys(last_timestamp), last_timestamp,
        )

    async def get_range(self, ids: Iterable[str]) -> list[InfectionReport]:
        records = await self._store.get_range(InfectionReportRecord.KIND, ids)
        return [r.value for r in records]
