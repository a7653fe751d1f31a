"""Precision grid: maps coordinates onto a fixed hierarchy of grid cells.

A precision level ``p`` defines a square grid of ``2 ** -p`` degrees.
Precision 0 is a one-degree grid, each increment halves the cell edge and
negative precisions give cells coarser than a degree. Steps are powers of
two so every grid multiple is exact in binary floating point, which keeps
region identifiers identical on every node.

No framework dependencies, no state.
"""

from __future__ import annotations

import math

# Precisions accepted from clients. The grid functions take any integer;
# this range keeps steps and cell indices well inside float precision.
MIN_PRECISION = -8
MAX_PRECISION = 32


def get_step(precision: int) -> float:
    """Cell edge length, in degrees, at the given precision."""
    return math.ldexp(1.0, -precision)


def cell_index(value: float, precision: int) -> int:
    """Integer index of the grid cell containing ``value``."""
    return math.floor(value / get_step(precision))


def round_to_precision(value: float, precision: int) -> float:
    """Floor ``value`` to the grid multiple at or below it.

    Always a floor, never nearest: adjacent cells tile without gaps.
    """
    return cell_index(value, precision) * get_step(precision)


def get_range(prefix: float, precision: int) -> tuple[float, float]:
    """Return the half-open ``[min, max)`` range covered by a grid prefix."""
    low = round_to_precision(prefix, precision)
    return low, low + get_step(precision)
