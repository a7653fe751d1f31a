"""Server statistics.

Tracks in-memory counters for publish and sync traffic.
No framework dependencies.
"""

from __future__ import annotations

import threading
import time


class ServerStats:
    """Thread-safe server statistics.

    ``bytes_probed`` sums the sizes returned by size probes, i.e. the
    download volume clients were told about before deciding to fetch.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._started_at = time.time()

        # Counters
        self.messages_published: int = 0
        self.reports_published: int = 0
        self.list_requests: int = 0
        self.infos_served: int = 0
        self.size_probes: int = 0
        self.bytes_probed: int = 0
        self.fetch_requests: int = 0
        self.records_fetched: int = 0
        self.requests_rejected: int = 0
        self.storage_errors: int = 0

    def record_published(self, *, report: bool = False) -> None:
        with self._lock:
            if report:
                self.reports_published += 1
            else:
                self.messages_published += 1

    def record_list(self, count: int) -> None:
        with self._lock:
            self.list_requests += 1
            self.infos_served += count

    def record_size_probe(self, size_bytes: int) -> None:
        with self._lock:
            self.size_probes += 1
            self.bytes_probed += size_bytes

    def record_fetch(self, count: int) -> None:
        with self._lock:
            self.fetch_requests += 1
            self.records_fetched += count

    def record_rejected(self, count: int = 1) -> None:
        with self._lock:
            self.requests_rejected += count

    def record_storage_error(self) -> None:
        with self._lock:
            self.storage_errors += 1

    def snapshot(self) -> dict:
        """Return a JSON-serializable snapshot of all stats."""
        with self._lock:
            return {
                "uptime_seconds": round(time.time() - self._started_at, 1),
                "messages_published": self.messages_published,
                "reports_published": self.reports_published,
                "list_requests": self.list_requests,
                "infos_served": self.infos_served,
                "size_probes": self.size_probes,
                "bytes_probed": self.bytes_probed,
                "fetch_requests": self.fetch_requests,
                "records_fetched": self.records_fetched,
                "requests_rejected": self.requests_rejected,
                "storage_errors": self.storage_errors,
            }
