"""Tests for region identifiers, boundaries, and connected regions."""

from __future__ import annotations

import types

import pytest

from exposure_server.core.errors import ArgumentRangeError, MissingArgumentError
from exposure_server.core.models import Coordinates, Region
from exposure_server.core.regions import (
    adjust_to_precision,
    get_connected_regions,
    get_region_boundary,
    get_region_identifier,
    region_for_location,
)


def test_identifier_format():
    assert get_region_identifier(Region(40.0, -75.0, 3)) == "40,-75,3"
    assert get_region_identifier(Region(40.125, -74.875, 3)) == "40.125,-74.875,3"
    assert get_region_identifier(Region(44.0, 0.0, -2)) == "44,0,-2"


def test_identifier_negative_zero():
    assert get_region_identifier(Region(-0.0, -0.0, 0)) == get_region_identifier(Region(0.0, 0.0, 0))


def test_identifier_distinct_triples():
    regions = [
        Region(40.0, -75.0, 3),
        Region(40.0, -75.0, 4),
        Region(-75.0, 40.0, 3),
        Region(40.125, -75.0, 3),
        Region(4.0, 0.0, 3),
        Region(40.0, -7.5, 3),
        Region(0.5, 12.25, 2),
        Region(0.5, 12.25, 12),
    ]
    ids = [get_region_identifier(r) for r in regions]
    assert len(set(ids)) == len(ids)


def test_identifier_stable():
    region = Region(12.3125, -0.0625, 4)
    assert get_region_identifier(region) == get_region_identifier(Region(12.3125, -0.0625, 4))
    assert get_region_identifier(region) == "12.3125,-0.0625,4"


def test_identifier_requires_region():
    with pytest.raises(MissingArgumentError):
        get_region_identifier(None)


def test_boundary():
    boundary = get_region_boundary(Region(40.0, -75.0, 3))
    assert boundary.min == Coordinates(40.0, -75.0)
    assert boundary.max == Coordinates(40.125, -74.875)


@pytest.mark.parametrize("region", [
    Region(40.0, -75.0, 3),
    Region(-33.86, 151.2, 10),
    Region(0.0, 0.0, -4),
    Region(89.99, 179.99, 0),
])
def test_boundary_non_degenerate(region):
    boundary = get_region_boundary(region)
    assert boundary.min.latitude < boundary.max.latitude
    assert boundary.min.longitude < boundary.max.longitude


def test_boundary_requires_region():
    with pytest.raises(MissingArgumentError):
        get_region_boundary(None)


def test_adjust_to_precision():
    adjusted = adjust_to_precision(Region(40.3, -74.9, 3))
    assert adjusted == Region(40.25, -75.0, 3)
    assert adjust_to_precision(adjusted) == adjusted


def test_region_for_location():
    region = region_for_location(Coordinates(40.06, -74.99), 3)
    assert region == Region(40.0, -75.0, 3)


def test_connected_includes_self():
    region = Region(40.3, -74.9, 3)
    connected = list(get_connected_regions(region, 0, region.precision, 1))
    assert adjust_to_precision(region) in connected
    assert connected == [adjust_to_precision(region)]


def test_connected_with_extension():
    region = Region(40.0, -75.0, 3)
    connected = list(get_connected_regions(region, 1, 3, 1))
    assert len(connected) == 9
    assert connected[0] == Region(39.875, -75.125, 3)
    assert connected[-1] == Region(40.125, -74.875, 3)
    assert region in connected


def test_connected_ordering():
    region = Region(40.0, -75.0, 3)
    connected = list(get_connected_regions(region, 1, 3, 2))
    keys = [(r.precision, r.latitude_prefix, r.longitude_prefix) for r in connected]
    assert keys == sorted(keys)
    # Precision 3 cells come before precision 4 cells
    assert [r.precision for r in connected[:9]] == [3] * 9
    assert all(r.precision == 4 for r in connected[9:])


def test_connected_finer_precision():
    region = Region(40.0, -75.0, 3)
    connected = list(get_connected_regions(region, 0, 4, 1))
    assert connected == [
        Region(40.0, -75.0, 4),
        Region(40.0, -74.9375, 4),
        Region(40.0625, -75.0, 4),
        Region(40.0625, -74.9375, 4),
    ]


def test_connected_coarser_precision():
    region = Region(40.125, -74.875, 3)
    connected = list(get_connected_regions(region, 0, 1, 1))
    assert connected == [Region(40.0, -75.0, 1)]


def test_connected_multiple_levels_count():
    region = Region(40.0, -75.0, 3)
    connected = list(get_connected_regions(region, 1, 2, 3))
    # p=2: 3x3, p=3: 3x3, p=4: 4x4
    assert len(connected) == 9 + 9 + 16


def test_connected_deterministic():
    region = Region(-33.8688, 151.2093, 6)
    first = list(get_connected_regions(region, 2, 5, 3))
    second = list(get_connected_regions(region, 2, 5, 3))
    assert first == second
    assert [get_region_identifier(r) for r in first] == [get_region_identifier(r) for r in second]


def test_connected_is_lazy_and_restartable():
    region = Region(40.0, -75.0, 3)
    regions = get_connected_regions(region, 1, 3, 1)
    assert isinstance(regions, types.GeneratorType)
    assert next(regions) == Region(39.875, -75.125, 3)
    assert len(list(get_connected_regions(region, 1, 3, 1))) == 9


def test_connected_large_enumeration_is_lazy():
    region = Region(0.0, 0.0, 0)
    regions = get_connected_regions(region, 1000, 10, 1)
    first = [next(regions) for _ in range(3)]
    assert [r.precision for r in first] == [10, 10, 10]


def test_connected_zero_count():
    assert list(get_connected_regions(Region(40.0, -75.0, 3), 1, 3, 0)) == []


def test_connected_rejects_negative_count():
    with pytest.raises(ArgumentRangeError):
        get_connected_regions(Region(40.0, -75.0, 3), 0, 3, -1)


def test_connected_rejects_negative_extension():
    with pytest.raises(ArgumentRangeError):
        get_connected_regions(Region(40.0, -75.0, 3), -1, 3, 1)


def test_connected_requires_region():
    with pytest.raises(MissingArgumentError):
        get_connected_regions(None, 0, 3, 1)
