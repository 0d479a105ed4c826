"""
Terrain overlays: contour lines, terraces and spot-elevation markers.

Contours are traced with marching squares (``skimage.measure.find_contours``)
on the sampled elevation lattice, then mapped from fractional grid indices
back to coordinates by bilinear interpolation. Two level schemes are offered:

- fixed-interval contours (``build_contour_lines``), roughly ten bands at a
  round spacing of at least 10 m
- terraces (``build_terrace_lines``), ``terrace_count`` evenly spaced levels
  from the lowest to the highest sample, coloured green (low) to red (high)
  and smoothed with a 3-point moving average
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy import ndimage
from skimage import measure

from src import config
from src.flowmap.elevation import ElevationClient, ElevationSample, sample_with_fallback
from src.flowmap.flow_grid import FlowGrid
from src.flowmap.geo import Bounds, LatLng

logger = logging.getLogger(__name__)

CONTOUR_COLOR = "#8B4513"
MARKER_COLOR = "#4CAF50"
MIN_CONTOUR_INTERVAL = 10


@dataclass(frozen=True)
class ContourLine:
    """Line of equal elevation with a label at its midpoint."""

    level: float
    path: Tuple[LatLng, ...]
    index: int = 0
    color: str = CONTOUR_COLOR
    weight: float = 2.0
    opacity: float = 0.8
    band: Optional[int] = None
    """Terrace index, or None for a fixed-interval contour."""

    @property
    def key(self):
        if self.band is not None:
            return ("terrace", self.band, self.index)
        return ("contour", self.level, self.index)

    @property
    def label(self) -> str:
        return f"{self.level:.0f}m"

    @property
    def label_position(self) -> LatLng:
        return self.path[len(self.path) // 2]


@dataclass(frozen=True)
class ElevationMarker:
    """Spot elevation shown as a dot with a label."""

    position: LatLng
    elevation: float
    color: str = MARKER_COLOR

    @property
    def key(self):
        return ("elevation", self.position.lat, self.position.lng)

    @property
    def text(self) -> str:
        return f"{round(self.elevation)}m"


@dataclass
class TerrainOverlay:
    contour_lines: List[ContourLine] = field(default_factory=list)
    elevation_markers: List[ElevationMarker] = field(default_factory=list)
    used_synthetic_elevation: bool = False

    def primitives(self) -> list:
        return [*self.contour_lines, *self.elevation_markers]


def contour_interval(elevations) -> int:
    """Interval giving roughly ten contour bands, never under 10 m."""
    values = np.asarray(elevations, dtype=np.float64)
    spread = float(values.max() - values.min())
    return max(MIN_CONTOUR_INTERVAL, int(round(spread / 10)))


def contour_levels(elevations, interval: Optional[float] = None) -> List[float]:
    """Multiples of ``interval`` covering the elevation range."""
    values = np.asarray(elevations, dtype=np.float64)
    if interval is None:
        interval = contour_interval(values)
    low, high = float(values.min()), float(values.max())

    levels = []
    level = math.ceil(low / interval) * interval
    while level <= high:
        levels.append(float(level))
        level += interval
    return levels


def _indices_to_coordinates(grid: FlowGrid, points: np.ndarray) -> Tuple[LatLng, ...]:
    coords = points.T
    lats = ndimage.map_coordinates(grid.lat, coords, order=1, mode="nearest")
    lngs = ndimage.map_coordinates(grid.lng, coords, order=1, mode="nearest")
    return tuple(LatLng(float(a), float(b)) for a, b in zip(lats, lngs))


def build_contour_lines(grid: FlowGrid, interval: Optional[float] = None) -> List[ContourLine]:
    """
    Trace contour lines over the grid's elevation.

    Args:
        grid: Grid providing elevation and coordinates
        interval: Contour spacing in meters (default: ``contour_interval``)

    Returns:
        ContourLine per traced segment; a level may produce several
    """
    elevation = np.asarray(grid.elevation)
    if elevation.min() == elevation.max():
        return []

    lines = []
    for level in contour_levels(elevation, interval):
        for index, points in enumerate(measure.find_contours(elevation, level)):
            if len(points) < 2:
                continue
            lines.append(
                ContourLine(level=level, path=_indices_to_coordinates(grid, points), index=index)
            )

    logger.debug(f"Traced {len(lines)} contour segments")
    return lines


def terrace_levels(elevations, terrace_count: int = config.DEFAULT_TERRACE_COUNT) -> List[float]:
    """``terrace_count`` levels evenly spaced from the minimum to the maximum elevation."""
    if terrace_count < 2:
        raise ValueError(f"terrace_count must be at least 2, got {terrace_count}")
    values = np.asarray(elevations, dtype=np.float64)
    return [float(level) for level in np.linspace(values.min(), values.max(), terrace_count)]


def terrace_color(band: int, terrace_count: int) -> str:
    # Hue 120 (green) for the lowest band down towards 0 (red)
    hue = max(0.0, 120.0 - band / terrace_count * 120.0)
    return f"hsl({hue:g}, 70%, 50%)"


def smooth_path(points) -> np.ndarray:
    """
    3-point moving average over an (N, 2) path.

    Closed paths (first point repeated at the end) wrap around; open paths
    keep their end points so they still meet the grid edge.
    """
    points = np.asarray(points, dtype=np.float64)
    if len(points) < 3:
        return points.copy()

    if np.array_equal(points[0], points[-1]):
        ring = ndimage.uniform_filter1d(points[:-1], size=3, axis=0, mode="wrap")
        return np.vstack([ring, ring[:1]])

    smoothed = ndimage.uniform_filter1d(points, size=3, axis=0, mode="nearest")
    smoothed[0] = points[0]
    smoothed[-1] = points[-1]
    return smoothed


def build_terrace_lines(
    grid: FlowGrid,
    terrace_count: int = config.DEFAULT_TERRACE_COUNT,
    smooth: bool = True,
) -> List[ContourLine]:
    """
    Trace terrace outlines over the grid's elevation.

    Args:
        grid: Grid providing elevation and coordinates
        terrace_count: Number of evenly spaced terrace levels
        smooth: Apply a 3-point moving average to each outline

    Returns:
        ContourLine per traced segment, tagged with its terrace band
    """
    elevation = np.asarray(grid.elevation)
    if elevation.min() == elevation.max():
        return []

    lines = []
    for band, level in enumerate(terrace_levels(elevation, terrace_count)):
        color = terrace_color(band, terrace_count)
        for index, points in enumerate(measure.find_contours(elevation, level)):
            if len(points) < 2:
                continue
            if smooth:
                points = smooth_path(points)
            lines.append(
                ContourLine(
                    level=level,
                    path=_indices_to_coordinates(grid, points),
                    index=index,
                    color=color,
                    opacity=0.7,
                    band=band,
                )
            )

    logger.debug(f"Traced {len(lines)} terrace segments over {terrace_count} levels")
    return lines


def build_elevation_markers(
    samples: Sequence[ElevationSample], every: int = 5
) -> List[ElevationMarker]:
    """Marker on every ``every``-th sample to avoid clutter."""
    if every < 1:
        raise ValueError(f"every must be at least 1, got {every}")
    return [
        ElevationMarker(position=s.location, elevation=s.elevation)
        for index, s in enumerate(samples)
        if index % every == 0
    ]


def generate_terrain_overlay(
    bounds: Optional[Bounds],
    client: Optional[ElevationClient] = None,
    grid_size: int = 10,
    interval: Optional[float] = None,
) -> TerrainOverlay:
    """
    Sample the visible area and build contour lines plus elevation markers.

    Returns an empty overlay when ``bounds`` is None.
    """
    if bounds is None:
        return TerrainOverlay()

    samples, used_synthetic = sample_with_fallback(bounds, grid_size, client)
    grid = FlowGrid.from_samples(samples, grid_size, rainfall_inches=0.0)
    overlay = TerrainOverlay(
        contour_lines=build_contour_lines(grid, interval),
        elevation_markers=build_elevation_markers(samples),
        used_synthetic_elevation=used_synthetic,
    )
    logger.info(
        f"Terrain overlay: {len(overlay.contour_lines)} contour segments, "
        f"{len(overlay.elevation_markers)} elevation markers"
    )
    return overlay


def generate_terrace_overlay(
    bounds: Optional[Bounds],
    client: Optional[ElevationClient] = None,
    grid_size: int = 21,
    terrace_count: int = config.DEFAULT_TERRACE_COUNT,
) -> TerrainOverlay:
    """
    Sample the visible area and build coloured terrace outlines plus markers.

    Re-run whenever the terrace count changes. Returns an empty overlay when
    ``bounds`` is None.

    Raises:
        ValueError: If ``terrace_count`` is outside the terrace slider range
    """
    if not config.TERRACE_COUNT_MIN <= terrace_count <= config.TERRACE_COUNT_MAX:
        raise ValueError(
            f"terrace_count must be between {config.TERRACE_COUNT_MIN} and "
            f"{config.TERRACE_COUNT_MAX}, got {terrace_count}"
        )
    if bounds is None:
        return TerrainOverlay()

    samples, used_synthetic = sample_with_fallback(bounds, grid_size, client)
    grid = FlowGrid.from_samples(samples, grid_size, rainfall_inches=0.0)
    overlay = TerrainOverlay(
        contour_lines=build_terrace_lines(grid, terrace_count),
        elevation_markers=build_elevation_markers(samples),
        used_synthetic_elevation=used_synthetic,
    )
    logger.info(
        f"Terrace overlay: {terrace_count} levels, {len(overlay.contour_lines)} segments"
    )
    return overlay
