"""Tests for storage records: size accounting, partition keys, versions."""

from __future__ import annotations

import dataclasses
import time

import pytest

from exposure_server.core.models import (
    AreaReport,
    BluetoothSeed,
    Coordinates,
    InfectionArea,
    InfectionReport,
    MatchMessage,
    Region,
)
from exposure_server.storage.records import (
    InfectionReportRecord,
    MatchMessageRecord,
    day_partition_key,
    day_partition_keys,
    record_from_document,
    serialized_size,
)


def _report(message: str = "Exposure detected") -> AreaReport:
    return AreaReport(
        areas=(InfectionArea(location=Coordinates(40.0, -75.0), radius_meters=100),),
        user_message=message,
    )


def test_day_partition_key_truncates_to_utc_midnight():
    # 2020-05-14T23:46:40Z
    assert day_partition_key(1_589_500_000_000) == "1589414400000"
    # Exactly midnight stays put
    assert day_partition_key(1_589_414_400_000) == "1589414400000"


def test_day_partition_keys_span():
    start = 1_589_414_400_000
    day = 24 * 60 * 60 * 1000
    keys = day_partition_keys(start + 5, start + 2 * day + 5)
    assert keys == [str(start), str(start + day), str(start + 2 * day)]
    assert day_partition_keys(start + day, start) == []


def test_report_record_partition_derived_from_timestamp():
    record = InfectionReportRecord(value=InfectionReport(area_reports=(_report(),)),
                                   timestamp=1_589_500_000_000)
    assert record.partition_key == "1589414400000"
    assert record.version == InfectionReportRecord.CURRENT_RECORD_VERSION == "2.1.0"
    assert record.size == serialized_size(record.value)
    assert record.size > 0


def test_message_record_partition_is_region_identifier():
    record = MatchMessageRecord(value=MatchMessage(area_matches=(_report(),)),
                                region=Region(40.3, -74.9, 3))
    assert record.region == Region(40.25, -75.0, 3)
    assert record.partition_key == "40.25,-75,3"
    assert record.region_boundary.max == Coordinates(40.375, -74.875)
    assert record.version == MatchMessageRecord.CURRENT_RECORD_VERSION


def test_record_defaults_timestamp_to_now():
    before = int(time.time() * 1000)
    record = MatchMessageRecord(value=MatchMessage(bool_expression="a"), region=Region(0.0, 0.0, 0))
    after = int(time.time() * 1000)
    assert before <= record.timestamp <= after
    assert record.id


def test_records_are_write_once():
    record = MatchMessageRecord(value=MatchMessage(bool_expression="a"), region=Region(0.0, 0.0, 0))
    with pytest.raises(dataclasses.FrozenInstanceError):
        record.size = 1
    with pytest.raises(dataclasses.FrozenInstanceError):
        record.partition_key = "other"
    with pytest.raises(TypeError):
        MatchMessageRecord(value=MatchMessage(), region=Region(0.0, 0.0, 0), size=5)


def test_size_is_exact_bytes():
    plain = serialized_size(_report("Exposure detected e"))
    accented = serialized_size(_report("Exposure detected é"))
    assert accented == plain + 1


def test_size_is_deterministic():
    assert serialized_size(_report()) == serialized_size(_report())


def test_document_round_trip_keeps_identity():
    record = MatchMessageRecord(value=MatchMessage(area_matches=(_report(),)),
                                region=Region(40.0, -75.0, 3), timestamp=1_600_000_000_000)
    restored = record_from_document(record.to_document())
    assert restored == record


def test_unknown_version_is_skipped():
    doc = InfectionReportRecord(value=InfectionReport(area_reports=(_report(),))).to_document()
    doc["version"] = "9.0.0"
    assert record_from_document(doc) is None


def test_round_trip_keeps_size_for_integer_inputs():
    area = InfectionArea(location=Coordinates(40, -75), radius_meters=100)
    report = AreaReport(areas=(area,), user_message="Exposure detected")
    record = MatchMessageRecord(value=MatchMessage(area_matches=(report,)), region=Region(40, -75, 3))

    restored = record_from_document(record.to_document())
    assert restored.size == record.size
    assert restored == record


def test_report_record_boundary_spans_area_locations():
    far = AreaReport(
        areas=(InfectionArea(location=Coordinates(41.5, -76.0), radius_meters=50),),
        user_message="m",
    )
    record = InfectionReportRecord(value=InfectionReport(area_reports=(_report(), far)))
    assert record.region_boundary.min == Coordinates(40.0, -76.0)
    assert record.region_boundary.max == Coordinates(41.5, -75.0)
    assert record.to_document()["regionBoundary"]["max"] == {"latitude": 41.5, "longitude": -75.0}
    assert record_from_document(record.to_document()) == record


def test_seed_only_report_has_no_boundary():
    seeds = (BluetoothSeed("00000000-0000-0000-0000-000000000001",
                           1_600_000_000_000, 1_600_000_300_000),)
    record = InfectionReportRecord(value=InfectionReport(bluetooth_seeds=seeds))
    assert record.region_boundary is None
    assert "regionBoundary" not in record.to_document()
