"""In-process dict implementation of RecordStore. Zero dependencies."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from exposure_server.core.models import MessageInfo
    from exposure_server.storage.records import StorageRecord


class InMemoryRecordStore:
    """RecordStore backed by dicts. Not durable; for tests and local dev."""

    def __init__(self) -> None:
        # kind -> partition_key -> records
        self._partitions: dict[str, dict[str, list[StorageRecord]]] = defaultdict(lambda: defaultdict(list))
        # kind -> id -> record
        self._by_id: dict[str, dict[str, StorageRecord]] = defaultdict(dict)

    def _matching(self, kind: str, partition_keys: Iterable[str], last_timestamp: int):
        partitions = self._partitions.get(kind, {})
        for key in partition_keys:
            for record in partitions.get(key, ()):
                if record.timestamp > last_timestamp:
                    yield record

    async def insert(self, record: StorageRecord) -> str:
        self._partitions[record.KIND][record.partition_key].append(record)
        self._by_id[record.KIND][record.id] = record
        return record.id

    async def query_latest(
        self, kind: str, partition_keys: Iterable[str], last_timestamp: int,
    ) -> list[MessageInfo]:
        return [r.info() for r in self._matching(kind, partition_keys, last_timestamp)]

    async def query_size(
        self, kind: str, partition_keys: Iterable[str], last_timestamp: int,
    ) -> int:
        return sum(r.size for r in self._matching(kind, partition_keys, last_timestamp))

    async def get_range(self, kind: str, ids: Iterable[str]) -> list[StorageRecord]:
        records = self._by_id.get(kind, {})
        return [records[i] for i in dict.fromkeys(ids) if i in records]

    def count(self, kind: str) -> int:
        return len(self._by_id.get(kind, {}))
