"""Shared test fixtures."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

import exposure_server.main as main_module
from exposure_server.config import AppConfig
from exposure_server.core.models import AreaReport, Coordinates, InfectionArea, Region
from exposure_server.core.services import InfectionReportService, MessageService
from exposure_server.core.stats import ServerStats
from exposure_server.storage.memory_storage import InMemoryRecordStore
from exposure_server.storage.repositories import (
    InfectionReportRepository,
    MatchMessageRepository,
)


@pytest.fixture(autouse=True)
def _init_server(tmp_path):
    """Initialize server singletons for every test, using a temp directory."""
    config = AppConfig()
    config.storage.base_dir = str(tmp_path / "data")
    config.logging.level = "warning"

    message_service, report_service = main_module.build_services(config)

    # Patch module-level singletons
    main_module._config = config
    main_module._stats = ServerStats()
    main_module._message_service = message_service
    main_module._report_service = report_service

    yield

    # Cleanup
    main_module._config = None
    main_module._stats = None
    main_module._message_service = None
    main_module._report_service = None


@pytest.fixture
async def client():
    from exposure_server.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def message_service(store):
    return MessageService(MatchMessageRepository(store))


@pytest.fixture
def report_service(store):
    return InfectionReportService(InfectionReportRepository(store))


@pytest.fixture
def region():
    return Region(latitude_prefix=40.0, longitude_prefix=-75.0, precision=3)


@pytest.fixture
def area_report():
    return AreaReport(
        areas=(InfectionArea(location=Coordinates(40.0, -75.0), radius_meters=100),),
        user_message="Exposure detected",
    )
