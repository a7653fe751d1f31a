"""Tests for the precision grid."""

from __future__ import annotations

import pytest

from exposure_server.core.precision import cell_index, get_range, get_step, round_to_precision


@pytest.mark.parametrize("precision", range(-8, 20))
def test_step_strictly_decreasing(precision):
    assert get_step(precision + 1) < get_step(precision)


def test_step_values():
    assert get_step(0) == 1.0
    assert get_step(3) == 0.125
    assert get_step(-2) == 4.0


@pytest.mark.parametrize("value", [40.0, 40.06, -75.0, -74.99, 0.0, -0.0001, 179.9999, -89.5])
@pytest.mark.parametrize("precision", [-3, 0, 3, 7, 12])
def test_round_is_idempotent(value, precision):
    once = round_to_precision(value, precision)
    assert round_to_precision(once, precision) == once


def test_round_floors_never_nearest():
    assert round_to_precision(40.12, 3) == 40.0
    assert round_to_precision(40.124999, 3) == 40.0
    assert round_to_precision(40.125, 3) == 40.125
    # Negative values floor away from zero
    assert round_to_precision(-74.99, 3) == -75.0
    assert round_to_precision(-0.01, 0) == -1.0


def test_round_coarse_precision():
    assert round_to_precision(45.7, -2) == 44.0
    assert round_to_precision(-1.0, -2) == -4.0


def test_cell_index():
    assert cell_index(40.0, 3) == 320
    assert cell_index(-75.0, 3) == -600
    assert cell_index(-74.9, 3) == -600


def test_get_range():
    assert get_range(40.0, 3) == (40.0, 40.125)
    assert get_range(-75.0, 0) == (-75.0, -74.0)


def test_adjacent_ranges_tile():
    low, high = get_range(40.0, 4)
    next_low, _ = get_range(high, 4)
    assert next_low == high
    assert low < high
