"""Sync services: publish and incremental list operations.

This is the core business logic between the HTTP adapter and the record
store. It depends on the repository classes, not on a concrete store.

The server keeps no per-client state: a client round-trips its watermark
(``last_timestamp``) and receives metadata of every newer record plus the
new watermark. Validation errors are raised before any storage call;
storage failures and cancellation propagate unchanged.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

import structlog

from exposure_server.core.errors import (
    ArgumentRangeError,
    MissingArgumentError,
    RequestValidationFailedError,
)
from exposure_server.core.models import BluetoothMatch, InfectionReport, MatchMessage
from exposure_server.core.precision import MAX_PRECISION, MIN_PRECISION
from exposure_server.core.regions import get_connected_regions

if TYPE_CHECKING:
    from exposure_server.core.models import (
        AreaReport,
        BluetoothSeed,
        MessageInfo,
        Region,
    )
    from exposure_server.core.validation import ValidationResult
    from exposure_server.storage.repositories import (
        InfectionReportRepository,
        MatchMessageRepository,
    )

log = structlog.get_logger()


def _check_watermark(last_timestamp: int) -> None:
    if last_timestamp is None:
        raise MissingArgumentError("last_timestamp")
    if last_timestamp < 0:
        raise ArgumentRangeError("last_timestamp", last_timestamp)


def _check_ids(ids: Iterable[str] | None) -> list[str]:
    if ids is None:
        raise MissingArgumentError("ids")
    if isinstance(ids, (str, bytes, Mapping)) or not isinstance(ids, Iterable):
        raise ArgumentRangeError("ids", type(ids).__name__)
    ids = list(ids)
    if not ids:
        raise MissingArgumentError("ids")
    if not all(isinstance(i, str) for i in ids):
        raise ArgumentRangeError("ids", "non-string id")
    return ids


def _check_region(region: Region | None) -> Region:
    """Reject regions the grid cannot place. NaN fails every comparison."""
    if region is None:
        raise MissingArgumentError("region")
    if not MIN_PRECISION <= region.precision <= MAX_PRECISION:
        raise ArgumentRangeError("precision", region.precision)
    if not -90.0 <= region.latitude_prefix <= 90.0:
        raise ArgumentRangeError("latitude_prefix", region.latitude_prefix)
    if not -180.0 <= region.longitude_prefix <= 180.0:
        raise ArgumentRangeError("longitude_prefix", region.longitude_prefix)
    return region


def _raise_if_failed(result: ValidationResult) -> None:
    if not result.passed:
        raise RequestValidationFailedError(result)


class MessageService:
    """Region-keyed MatchMessage sync service.

    Queries fan out over the regions connected to the requested one:
    ``extension`` grid steps around it, across ``precision_count`` levels
    starting at the region's own precision. The defaults (0, 1) query the
    single aligned region.
    """

    def __init__(
        self,
        repo: MatchMessageRepository,
        extension: int = 0,
        precision_count: int = 1,
    ) -> None:
        self._repo = repo
        self._extension = extension
        self._precision_count = precision_count

    def query_regions(self, region: Region) -> list[Region]:
        """Regions a query for ``region`` reads from."""
        return list(get_connected_regions(
            region, self._extension, region.precision, self._precision_count,
        ))

    async def get_by_ids(self, ids: Iterable[str] | None) -> list[MatchMessage]:
        ids = _check_ids(ids)
        # Pass-through, one result per found id
        return await self._repo.get_range(ids)

    async def get_latest_info(self, region: Region | None, last_timestamp: int) -> list[MessageInfo]:
        _check_region(region)
        _check_watermark(last_timestamp)

        infos = await self._repo.get_latest(self.query_regions(region), last_timestamp)
        log.debug("latest_info_served", precision=region.precision,
                  last_timestamp=last_timestamp, count=len(infos))
        return infos

    async def get_latest_data_size(self, region: Region | None, last_timestamp: int) -> int:
        _check_region(region)
        _check_watermark(last_timestamp)

        return await self._repo.get_latest_region_size(self.query_regions(region), last_timestamp)

    async def publish_message(self, region: Region | None, message: MatchMessage | None) -> str:
        _check_region(region)
        if message is None or message.variant_count() == 0:
            raise MissingArgumentError("message")

        message_id = await self._repo.insert(region, message)
        log.info("message_published", message_id=message_id, precision=region.precision)
        return message_id

    async def publish_area_match(self, region: Region | None, area_match: AreaReport | None) -> str:
        _check_region(region)
        if area_match is None:
            raise MissingArgumentError("area_match")
        _raise_if_failed(area_match.validate())

        return await self.publish_message(region, MatchMessage(area_matches=(area_match,)))

    async def publish_seeds(self, region: Region | None, seeds: Iterable[BluetoothSeed] | None) -> str:
        _check_region(region)
        seeds = tuple(seeds) if seeds is not None else ()
        if not seeds:
            raise MissingArgumentError("seeds")
        for seed in seeds:
            _raise_if_failed(seed.validate())

        message = MatchMessage(bluetooth_matches=(BluetoothMatch(seeds=seeds),))
        return await self.publish_message(region, message)


class InfectionReportService:
    """Global InfectionReport sync service, day-partitioned."""

    def __init__(self, repo: InfectionReportRepository) -> None:
        self._repo = repo

    async def get_by_ids(self, ids: Iterable[str] | None) -> list[InfectionReport]:
        ids = _check_ids(ids)
        return await self._repo.get_range(ids)

    async def get_latest_info(self, last_timestamp: int) -> list[MessageInfo]:
        _check_watermark(last_timestamp)
        return await self._repo.get_latest(last_timestamp)

    async def get_latest_data_size(self, last_timestamp: int) -> int:
        _check_watermark(last_timestamp)
        return await self._repo.get_latest_size(last_timestamp)

    async def publish(self, report: InfectionReport | None) -> str:
        if report is None:
            raise MissingArgumentError("report")
        _raise_if_failed(report.validate())

        report_id = await self._repo.insert(report)
        log.info("report_published", report_id=report_id,
                 area_reports=len(report.area_reports),
                 seeds=len(report.bluetooth_seeds))
        return report_id

    async def publish_area_report(self, area_report: AreaReport | None) -> str:
        if area_report is None:
            raise MissingArgumentError("area_report")

        return await self.publish(InfectionReport(area_reports=(area_report,)))
