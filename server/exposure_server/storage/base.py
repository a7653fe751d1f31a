"""Storage interface (port) for the keyed record store."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from exposure_server.core.models import MessageInfo
    from exposure_server.storage.records import StorageRecord


class RecordStore(Protocol):
    """Port: opaque keyed document store for write-once records.

    Records are grouped by ``kind`` (one collection per record type) and
    partitioned by ``partition_key``. Implementations guarantee that a
    record is either fully visible or not visible at all.
    """

    async def insert(self, record: StorageRecord) -> str: ...

    async def query_latest(
        self, kind: str, partition_keys: Iterable[str], last_timestamp: int,
    ) -> list[MessageInfo]: ...

    async def query_size(
        self, kind: str, partition_keys: Iterable[str], last_timestamp: int,
    ) -> int: ...

    async def get_range(self, kind: str, ids: Iterable[str]) -> list[StorageRecord]: ...
