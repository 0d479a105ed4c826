"""
Land-survey water-flow package.

Core functionality:
- Elevation sampling with synthetic fallback
- FlowGrid and the in-place relaxation engine
- Declarative flow lines, depth labels and terrain overlays
- Saved map position
"""

from .geo import Bounds, LatLng, grid_locations
from .elevation import (
    ElevationClient,
    ElevationSample,
    ElevationServiceError,
    sample_elevation_grid,
    sample_with_fallback,
    synthetic_elevation_grid,
)
from .flow_grid import FlowGrid, GridCell
from .relaxation import FlowTransfer, find_lowest_neighbor, relaxation_pass, run_relaxation
from .visualizer import DepthLabel, FlowLine, build_depth_labels, build_flow_lines
from .pipeline import FlowSimulationResult, run_flow_on_grid, simulate_water_flow, snap_rainfall
from .contours import generate_terrace_overlay, generate_terrain_overlay
from .viewport import ViewportState, ViewportStore

__all__ = [
    "Bounds",
    "LatLng",
    "grid_locations",
    "ElevationClient",
    "ElevationSample",
    "ElevationServiceError",
    "sample_elevation_grid",
    "sample_with_fallback",
    "synthetic_elevation_grid",
    "FlowGrid",
    "GridCell",
    "FlowTransfer",
    "find_lowest_neighbor",
    "relaxation_pass",
    "run_relaxation",
    "DepthLabel",
    "FlowLine",
    "build_depth_labels",
    "build_flow_lines",
    "FlowSimulationResult",
    "run_flow_on_grid",
    "simulate_water_flow",
    "snap_rainfall",
    "generate_terrain_overlay",
    "generate_terrace_overlay",
    "ViewportState",
    "ViewportStore",
]
