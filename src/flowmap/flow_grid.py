"""
Flow grid: the 2-D cell lattice the water-flow simulation runs on.

Each cell holds an elevation (meters, read-only once sampled), a water depth
(meters, mutated by every relaxation pass) and its coordinates. Grids are
built fresh for every simulation run and never persisted.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from scipy import ndimage

from src import config
from src.flowmap.elevation import ElevationSample

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridCell:
    """Snapshot of one grid cell."""

    elevation: float
    water_depth: float
    lat: float
    lng: float

    @property
    def effective_height(self) -> float:
        return self.elevation + self.water_depth


class FlowGrid:
    """
    Elevation and water depth over a rectangular lattice.

    Attributes:
        elevation: (rows, cols) read-only elevation array in meters
        water_depth: (rows, cols) water depth array in meters
        lat: (rows, cols) read-only latitudes
        lng: (rows, cols) read-only longitudes
    """

    def __init__(
        self,
        elevation: np.ndarray,
        water_depth: np.ndarray,
        lat: np.ndarray,
        lng: np.ndarray,
    ):
        elevation = np.array(elevation, dtype=np.float64)
        if elevation.ndim != 2:
            raise ValueError(f"Elevation must be 2D, got shape {elevation.shape}")

        water_depth = np.array(water_depth, dtype=np.float64)
        lat = np.array(lat, dtype=np.float64)
        lng = np.array(lng, dtype=np.float64)
        for name, arr in (("water_depth", water_depth), ("lat", lat), ("lng", lng)):
            if arr.shape != elevation.shape:
                raise ValueError(
                    f"{name} shape {arr.shape} does not match elevation shape {elevation.shape}"
                )
        if np.any(water_depth < 0):
            raise ValueError("water_depth must be non-negative")

        for arr in (elevation, lat, lng):
            arr.flags.writeable = False

        self.elevation = elevation
        self.water_depth = water_depth
        self.lat = lat
        self.lng = lng

    @classmethod
    def from_samples(
        cls,
        samples: Sequence[ElevationSample],
        grid_size: int,
        rainfall_inches: float,
    ) -> "FlowGrid":
        """
        Build a grid from row-major elevation samples and uniform rainfall.

        Args:
            samples: (grid_size + 1)^2 samples in row-major order
            grid_size: Grid intervals per axis
            rainfall_inches: Rainfall applied to every cell, in inches

        Returns:
            FlowGrid whose every cell holds rainfall_inches * 0.0254 meters of water

        Raises:
            ValueError: If the sample count does not fit the grid or rainfall is negative
        """
        side = grid_size + 1
        if len(samples) != side * side:
            raise ValueError(
                f"Expected {side * side} samples for a {side}x{side} grid, got {len(samples)}"
            )
        if rainfall_inches < 0:
            raise ValueError(f"Rainfall must be non-negative, got {rainfall_inches}")

        elevation = np.array([s.elevation for s in samples], dtype=np.float64).reshape(side, side)
        lat = np.array([s.lat for s in samples], dtype=np.float64).reshape(side, side)
        lng = np.array([s.lng for s in samples], dtype=np.float64).reshape(side, side)
        depth = np.full((side, side), rainfall_inches * config.INCHES_TO_METERS)

        logger.debug(
            f"Initialized {side}x{side} flow grid with {rainfall_inches} in of rain "
            f"(elevation {elevation.min():.1f}-{elevation.max():.1f} m)"
        )
        return cls(elevation, depth, lat, lng)

    @classmethod
    def from_elevations(
        cls,
        elevations,
        initial_depth: float = 0.0,
        lat: Optional[np.ndarray] = None,
        lng: Optional[np.ndarray] = None,
    ) -> "FlowGrid":
        """
        Build a grid directly from a 2-D elevation array.

        Coordinates default to the row and column indices, which is enough
        for simulations that never leave grid space.
        """
        elevation = np.asarray(elevations, dtype=np.float64)
        if elevation.ndim != 2:
            raise ValueError(f"Elevation must be 2D, got shape {elevation.shape}")
        if initial_depth < 0:
            raise ValueError(f"initial_depth must be non-negative, got {initial_depth}")

        rows, cols = np.indices(elevation.shape, dtype=np.float64)
        return cls(
            elevation,
            np.full(elevation.shape, float(initial_depth)),
            rows if lat is None else lat,
            cols if lng is None else lng,
        )

    @property
    def shape(self):
        return self.elevation.shape

    @property
    def cell_count(self) -> int:
        return int(self.elevation.size)

    def total_water(self) -> float:
        return float(self.water_depth.sum())

    def effective_height(self) -> np.ndarray:
        """Elevation plus current water depth; decides flow direction."""
        return self.elevation + self.water_depth

    def cell(self, i: int, j: int) -> GridCell:
        return GridCell(
            elevation=float(self.elevation[i, j]),
            water_depth=float(self.water_depth[i, j]),
            lat=float(self.lat[i, j]),
            lng=float(self.lng[i, j]),
        )

    def local_sinks(self) -> np.ndarray:
        """
        Boolean mask of cells strictly lower than all of their neighbors.

        Uses effective height over the 8-neighborhood; cells outside the grid
        count as infinitely high, so edge cells are judged only on the
        neighbors they have.
        """
        footprint = np.ones((3, 3), dtype=bool)
        footprint[1, 1] = False
        height = self.effective_height()
        lowest_neighbor = ndimage.minimum_filter(
            height, footprint=footprint, mode="constant", cval=np.inf
        )
        return height < lowest_neighbor

    def copy(self) -> "FlowGrid":
        return FlowGrid(self.elevation, self.water_depth.copy(), self.lat, self.lng)
