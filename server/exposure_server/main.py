"""Exposure server: main entry point.

This is the only file that knows about concrete implementations.
It wires together the core, storage, and API layers.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from exposure_server.api.messages import router as messages_router
from exposure_server.api.monitoring import router as monitoring_router
from exposure_server.api.reports import router as reports_router
from exposure_server.config import AppConfig, load_config
from exposure_server.core.errors import (
    RequestValidationError,
    RequestValidationFailedError,
    StorageError,
)
from exposure_server.core.services import InfectionReportService, MessageService
from exposure_server.core.stats import ServerStats
from exposure_server.storage.file_storage import FileRecordStore
from exposure_server.storage.memory_storage import InMemoryRecordStore
from exposure_server.storage.repositories import (
    InfectionReportRepository,
    MatchMessageRepository,
)

log = structlog.get_logger()

VERSION = "0.1.0"

# Module-level singletons (set during startup)
_message_service: MessageService | None = None
_report_service: InfectionReportService | None = None
_stats: ServerStats | None = None
_config: AppConfig | None = None


def get_message_service() -> MessageService:
    assert _message_service is not None, "Server not initialized"
    return _message_service


def get_report_service() -> InfectionReportService:
    assert _report_service is not None, "Server not initialized"
    return _report_service


def get_stats() -> ServerStats:
    assert _stats is not None, "Server not initialized"
    return _stats


def get_config() -> AppConfig:
    assert _config is not None, "Server not initialized"
    return _config


def _setup_logging(config: AppConfig) -> None:
    """Configure structlog based on the logging config."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.logging.format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.logging.level.upper()),
        ),
    )


def build_services(config: AppConfig) -> tuple[MessageService, InfectionReportService]:
    """Create the store, repositories, and services for a config."""
    if config.storage.backend == "memory":
        store = InMemoryRecordStore()
    elif config.storage.backend == "file":
        store = FileRecordStore(base_dir=config.storage.base_dir)
    else:
        raise ValueError(f"unknown storage backend: {config.storage.backend}")

    message_service = MessageService(
        MatchMessageRepository(store),
        extension=config.sync.extension,
        precision_count=config.sync.precision_count,
    )
    report_service = InfectionReportService(
        InfectionReportRepository(store, retention_days=config.sync.report_retention_days),
    )
    return message_service, report_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    global _message_service, _report_service, _stats, _config

    _config = load_config()
    _setup_logging(_config)

    log.info("server_starting",
             env=_config.server.env,
             storage_backend=_config.storage.backend,
             storage_dir=_config.storage.base_dir)

    _stats = ServerStats()
    _message_service, _report_service = build_services(_config)

    log.info("server_started",
             host=_config.server.host,
             port=_config.server.port,
             sync_extension=_config.sync.extension,
             sync_precision_count=_config.sync.precision_count)

    yield

    log.info("server_stopped")


app = FastAPI(
    title="Exposure Server",
    description="Exposure notification message sync server",
    version=VERSION,
    lifespan=lifespan,
)

app.include_router(messages_router)
app.include_router(reports_router)
app.include_router(monitoring_router)


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    get_stats().record_rejected()
    if isinstance(exc, RequestValidationFailedError):
        content = exc.result.to_dict()
    else:
        content = {"passed": False, "error": str(exc)}
    log.info("request_rejected", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=400, content=content)


@app.exception_handler(StorageError)
async def handle_storage_error(request: Request, exc: StorageError) -> JSONResponse:
    get_stats().record_storage_error()
    log.error("storage_request_failed", path=request.url.path, error=str(exc), exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "request failed"})
