"""Region index: identifiers, boundaries, and connected-region fan-out.

Publishers and pollers meet on region identifiers: a message stored under
a region is found by any client whose query enumerates that region. The
connected-region walk is how one region is turned into the set of cells,
possibly across several precision levels, that a query or a publish should
touch.
"""

from __future__ import annotations

import math
from collections.abc import Iterator

from exposure_server.core.errors import ArgumentRangeError, MissingArgumentError
from exposure_server.core.models import Coordinates, Region, RegionBoundary
from exposure_server.core.precision import get_range, get_step, round_to_precision


def _format_prefix(value: float) -> str:
    """Locale-independent, shortest round-trip rendering of a prefix.

    Integral values drop the trailing ``.0`` and ``-0.0`` renders as ``0``.
    """
    value = float(value)
    if value == 0:
        return "0"
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


def get_region_identifier(region: Region | None) -> str:
    """Return the canonical ``"lat,lon,precision"`` key of a region."""
    if region is None:
        raise MissingArgumentError("region")
    return "{},{},{}".format(
        _format_prefix(region.latitude_prefix),
        _format_prefix(region.longitude_prefix),
        int(region.precision),
    )


def get_region_boundary(region: Region | None) -> RegionBoundary:
    """Axis-aligned box covered by a region at its own precision."""
    if region is None:
        raise MissingArgumentError("region")

    lat_min, lat_max = get_range(region.latitude_prefix, region.precision)
    lon_min, lon_max = get_range(region.longitude_prefix, region.precision)

    return RegionBoundary(
        min=Coordinates(latitude=lat_min, longitude=lon_min),
        max=Coordinates(latitude=lat_max, longitude=lon_max),
    )


def adjust_to_precision(region: Region | None) -> Region:
    """Re-align both prefixes to the region's precision. Idempotent."""
    if region is None:
        raise MissingArgumentError("region")
    return Region(
        latitude_prefix=round_to_precision(region.latitude_prefix, region.precision),
        longitude_prefix=round_to_precision(region.longitude_prefix, region.precision),
        precision=region.precision,
    )


def region_for_location(location: Coordinates, precision: int) -> Region:
    """The region containing ``location`` at ``precision``."""
    return Region(
        latitude_prefix=round_to_precision(location.latitude, precision),
        longitude_prefix=round_to_precision(location.longitude, precision),
        precision=precision,
    )


def _cell_span(low: float, high: float, step: float) -> range:
    """Indices of the cells of size ``step`` intersecting ``[low, high)``."""
    return range(math.floor(low / step), math.ceil(high / step))


def get_connected_regions(
    region: Region | None,
    extension: int,
    precision_start: int,
    precision_count: int = 1,
) -> Iterator[Region]:
    """Enumerate the regions connected to ``region``.

    For each precision in ``[precision_start, precision_start +
    precision_count)`` the region's boundary is extended by ``extension``
    steps of that precision on every side, and every cell of that precision
    intersecting the extended box is yielded. Order is ascending latitude,
    then longitude, then precision.

    Arguments are checked eagerly; the walk itself is lazy and a fresh
    generator is returned on every call.
    """
    if region is None:
        raise MissingArgumentError("region")
    if precision_count < 0:
        raise ArgumentRangeError("precision_count", precision_count)
    if extension < 0:
        raise ArgumentRangeError("extension", extension)

    return _walk_connected(get_region_boundary(region), extension, precision_start, precision_count)


def _walk_connected(
    boundary: RegionBoundary,
    extension: int,
    precision_start: int,
    precision_count: int,
) -> Iterator[Region]:
    for precision in range(precision_start, precision_start + precision_count):
        step = get_step(precision)
        margin = extension * step
        lat_span = _cell_span(boundary.min.latitude - margin, boundary.max.latitude + margin, step)
        lon_span = _cell_span(boundary.min.longitude - margin, boundary.max.longitude + margin, step)

        for lat_index in lat_span:
            for lon_index in lon_span:
                yield Region(
                    latitude_prefix=lat_index * step,
                    longitude_prefix=lon_index * step,
                    precision=precision,
                )
