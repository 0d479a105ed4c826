"""
Water-flow simulation pipeline for the land-survey map.

Wires the stages together::

    viewport bounds -> elevation sampling (with synthetic fallback)
                    -> FlowGrid with uniform rainfall
                    -> N relaxation passes
                    -> flow lines (sampled passes) + depth labels

Every call builds its own grid and returns a self-contained result; nothing
is cached between runs, so moving the map or changing rainfall just means
calling ``simulate_water_flow`` again.

Example:
    from src.flowmap.pipeline import simulate_water_flow
    from src.flowmap.geo import Bounds

    result = simulate_water_flow(
        Bounds.from_bbox(47.60, -122.02, 47.62, -121.99),
        rainfall_inches=2.0,
    )
    print(len(result.flow_lines), "flow lines")
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from src import config as settings
from src.config import FlowConfig
from src.flowmap.elevation import ElevationClient, sample_with_fallback
from src.flowmap.flow_grid import FlowGrid
from src.flowmap.geo import Bounds
from src.flowmap.relaxation import iter_relaxation
from src.flowmap.visualizer import (
    DepthLabel,
    FlowLine,
    build_depth_labels,
    build_flow_lines,
)

logger = logging.getLogger(__name__)


@dataclass
class FlowSimulationResult:
    """Outcome of one simulation run."""

    grid: Optional[FlowGrid] = None
    flow_lines: List[FlowLine] = field(default_factory=list)
    depth_labels: List[DepthLabel] = field(default_factory=list)
    used_synthetic_elevation: bool = False
    transfer_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.grid is None

    def primitives(self) -> list:
        """All drawables, flow lines first."""
        return [*self.flow_lines, *self.depth_labels]


def snap_rainfall(value: float) -> float:
    """
    Validate a rainfall slider value and snap it to the slider step.

    Raises:
        ValueError: If the value lies outside the slider range
    """
    if not settings.RAINFALL_MIN <= value <= settings.RAINFALL_MAX:
        raise ValueError(
            f"Rainfall must be between {settings.RAINFALL_MIN} and "
            f"{settings.RAINFALL_MAX} inches, got {value}"
        )
    steps = round(value / settings.RAINFALL_STEP)
    return steps * settings.RAINFALL_STEP


def run_flow_on_grid(grid: FlowGrid, config: Optional[FlowConfig] = None) -> FlowSimulationResult:
    """
    Relax water on a prepared grid and build the drawables.

    Lines are built after each pass from that pass's transfers; the grid is
    mutated in place and returned on the result.
    """
    config = config or FlowConfig()
    flow_lines = []
    transfer_count = 0

    for _, transfers in iter_relaxation(grid, config):
        transfer_count += len(transfers)
        flow_lines.extend(build_flow_lines(grid, transfers, config))

    depth_labels = build_depth_labels(grid, config.depth_label_threshold)
    logger.info(
        f"Water flow: {transfer_count} transfers, {len(flow_lines)} flow lines, "
        f"{len(depth_labels)} depth labels"
    )
    return FlowSimulationResult(
        grid=grid,
        flow_lines=flow_lines,
        depth_labels=depth_labels,
        transfer_count=transfer_count,
    )


def simulate_water_flow(
    bounds: Optional[Bounds],
    rainfall_inches: float,
    client: Optional[ElevationClient] = None,
    config: Optional[FlowConfig] = None,
) -> FlowSimulationResult:
    """
    Simulate rainfall runoff over the visible map area.

    Parameters
    ----------
    bounds : Bounds or None
        Visible map rectangle. None (map not ready) yields an empty result.
    rainfall_inches : float
        Uniform rainfall applied to every cell, in inches
    client : ElevationClient, optional
        Elevation service client. Without one, or when the service fails,
        a synthetic hill is used and ``used_synthetic_elevation`` is set.
    config : FlowConfig, optional
        Simulation parameters (defaults to FlowConfig())

    Returns
    -------
    FlowSimulationResult
    """
    if bounds is None:
        logger.info("No map bounds available, skipping water flow simulation")
        return FlowSimulationResult()

    config = config or FlowConfig()
    samples, used_synthetic = sample_with_fallback(bounds, config.grid_size, client)
    grid = FlowGrid.from_samples(samples, config.grid_size, rainfall_inches)

    result = run_flow_on_grid(grid, config)
    result.used_synthetic_elevation = used_synthetic
    return result
