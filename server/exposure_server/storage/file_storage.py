"""File-based record store.

Stores records as JSON Lines, one directory per partition:

    base_dir/<kind>/<partition_key>/records.jsonl   full documents
    base_dir/<kind>/<partition_key>/index.jsonl     id, timestamp, size
    base_dir/<kind>/locations.jsonl                 id -> partition_key

List and size queries read only ``index.jsonl``, never payload bodies.
Each line is written with a single ``write``: payload first, then location,
then the index line. A record is listed only once its index line exists,
and by then it can already be fetched. A failed write leaves at most an
unlisted payload. Truncated trailing lines (e.g. after a crash) are skipped
on read.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from exposure_server.core.errors import StorageError
from exposure_server.core.models import MessageInfo
from exposure_server.storage.records import record_from_document

if TYPE_CHECKING:
    from exposure_server.storage.records import StorageRecord

log = structlog.get_logger()


class FileRecordStore:
    """RecordStore backed by partition directories on disk."""

    def __init__(self, base_dir: str | Path) -> None:
        self._base_dir = Path(base_dir)
        self._base_dir.mkdir(parents=True, exist_ok=True)

    def _partition_dir(self, kind: str, partition_key: str) -> Path:
        return self._base_dir / kind / partition_key

    def _read_lines(self, path: Path) -> Iterator[dict]:
        if not path.exists():
            return
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    yield json.loads(line)
                except json.JSONDecodeError:
                    log.warning("record_line_unreadable", path=str(path))

    def _append(self, path: Path, line: str) -> None:
        with open(path, "a", encoding="utf-8") as f:
            f.write(line + "\n")

    def _index_entries(self, kind: str, partition_keys: Iterable[str], last_timestamp: int) -> Iterator[dict]:
        for key in partition_keys:
            index_path = self._partition_dir(kind, key) / "index.jsonl"
            for entry in self._read_lines(index_path):
                if entry["timestamp"] > last_timestamp:
                    yield entry

    async def insert(self, record: StorageRecord) -> str:
        """Write a record and return its id."""
        kind = record.KIND
        part_dir = self._partition_dir(kind, record.partition_key)
        index_line = json.dumps(
            {"id": record.id, "timestamp": record.timestamp, "size": record.size},
            separators=(",", ":"),
        )
        location_line = json.dumps(
            {"id": record.id, "partitionKey": record.partition_key},
            separators=(",", ":"),
        )
        try:
            part_dir.mkdir(parents=True, exist_ok=True)
            self._append(part_dir / "records.jsonl", record.to_json_line())
            self._append(self._base_dir / kind / "locations.jsonl", location_line)
            # The index line commits the record
            self._append(part_dir / "index.jsonl", index_line)
        except OSError as exc:
            raise StorageError(f"failed to write record {record.id}") from exc

        log.debug("record_written", kind=kind, record_id=record.id,
                  partition=record.partition_key, size=record.size)
        return record.id

    async def query_latest(
        self, kind: str, partition_keys: Iterable[str], last_timestamp: int,
    ) -> list[MessageInfo]:
        try:
            return [
                MessageInfo(id=e["id"], timestamp=e["timestamp"])
                for e in self._index_entries(kind, partition_keys, last_timestamp)
            ]
        except OSError as exc:
            raise StorageError(f"failed to query {kind}") from exc

    async def query_size(
        self, kind: str, partition_keys: Iterable[str], last_timestamp: int,
    ) -> int:
        try:
            return sum(e["size"] for e in self._index_entries(kind, partition_keys, last_timestamp))
        except OSError as exc:
            raise StorageError(f"failed to query {kind} size") from exc

    async def get_range(self, kind: str, ids: Iterable[str]) -> list[StorageRecord]:
        """Fetch records by id. Unknown ids are ignored."""
        wanted = set(ids)
        try:
            partitions = {
                loc["partitionKey"]
                for loc in self._read_lines(self._base_dir / kind / "locations.jsonl")
                if loc["id"] in wanted
            }
            results: list[StorageRecord] = []
            for key in sorted(partitions):
                for doc in self._read_lines(self._partition_dir(kind, key) / "records.jsonl"):
                    if doc["id"] not in wanted:
                        continue
                    record = record_from_document(doc)
                    if record is not None:
                        results.append(record)
        except OSError as exc:
            raise StorageError(f"failed to read {kind}") from exc
        return results
