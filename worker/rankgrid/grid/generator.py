"""Coordinate grid generation around a center point."""

from __future__ import annotations

from typing import List

from rankgrid.core.models import Coordinate, GridSpec, SampleCoordinate

# Degrees of latitude per mile near the equator. Applied to longitude as well,
# without a cos(latitude) correction, so grids are square in degrees.
MILES_TO_DEGREES = 0.0145


def grid_offset(spec: GridSpec) -> float:
    """Degrees between neighbouring cells on either axis."""
    return (spec.radius_miles * MILES_TO_DEGREES) / spec.half_width


def generate_spec_grid(spec: GridSpec) -> List[SampleCoordinate]:
    """Return the cells of ``spec`` row by row, south to north, west to east.

    Scan results are correlated with this list by index, so the order is
    part of the contract. It is not the display order; see
    :func:`rankgrid.grid.heatmap.render_order`.
    """
    offset = grid_offset(spec)
    half = spec.half_width
    center = spec.center

    coordinates: List[SampleCoordinate] = []
    for i in range(-half, half + 1):
        for j in range(-half, half + 1):
            coordinates.append(
                SampleCoordinate(
                    lat=center.lat + i * offset,
                    lng=center.lng + j * offset,
                    row=i,
                    col=j,
                )
            )
    return coordinates


def generate_grid(center: Coordinate, dimension: int, radius_miles: float) -> List[SampleCoordinate]:
    """Build the sample coordinates for a ``dimension`` x ``dimension`` grid.

    ``dimension`` is clamped to 3..7 and ``radius_miles`` is the distance from
    the center to the outermost ring of cells.
    """
    spec = GridSpec.create(center, dimension, radius_miles)
    return generate_spec_grid(spec)
