"""Health check and monitoring endpoints."""

from __future__ import annotations

import shutil
from pathlib import Path

from fastapi import APIRouter

router = APIRouter(prefix="/api/v1")


@router.get("/health")
async def health() -> dict:
    """Basic health check."""
    from exposure_server.main import VERSION, get_config, get_stats

    config = get_config()

    if config.storage.backend == "file":
        storage_path = Path(config.storage.base_dir)
        try:
            disk = shutil.disk_usage(storage_path if storage_path.exists() else ".")
            disk_free_gb = round(disk.free / (1024 ** 3), 1)
            storage_writable = True
        except OSError:
            disk_free_gb = -1
            storage_writable = False
    else:
        disk_free_gb = -1
        storage_writable = True

    return {
        "status": "ok",
        "version": VERSION,
        "uptime_seconds": get_stats().snapshot()["uptime_seconds"],
        "storage_backend": config.storage.backend,
        "storage_writable": storage_writable,
        "disk_free_gb": disk_free_gb,
    }


@router.get("/stats")
async def stats() -> dict:
    """Publish and sync counters."""
    from exposure_server.main import get_stats

    return get_stats().snapshot()


@router.get("/config")
async def get_client_config() -> dict:
    """Sync parameters clients need to compute their own region keys."""
    from exposure_server.main import get_config

    config = get_config()
    return {
        "query_extension": config.sync.extension,
        "query_precision_count": config.sync.precision_count,
        "report_retention_days": config.sync.report_retention_days,
    }
