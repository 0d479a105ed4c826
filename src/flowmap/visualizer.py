"""
Flow visualizer: declarative drawable primitives for the water-flow view.

Nothing here touches a rendering surface. Builders return plain frozen
dataclasses; ``src.flowmap.visualization.overlay.OverlayReconciler`` applies
them to whatever surface is showing the map.

Flow lines
----------
A transfer becomes a line only when its amount exceeds
``FlowConfig.min_visible_flow`` and its pass index is a multiple of
``FlowConfig.sample_stride``. Line weight, opacity and arrow size grow with
the transferred amount but are clamped to a fixed range. Lines stop
``FlowConfig.line_length_fraction`` of the way to the target cell so arrows
converging on one cell do not overlap.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from src.config import FlowConfig
from src.flowmap.flow_grid import FlowGrid
from src.flowmap.geo import LatLng
from src.flowmap.relaxation import FlowTransfer

FLOW_COLOR = "#00BFFF"
DEPTH_LABEL_COLOR = "#0000CD"
METERS_TO_INCHES = 39.37

# (min, max) visible ranges
OPACITY_RANGE = (0.1, 0.6)
WEIGHT_RANGE = (1.0, 8.0)
ARROW_SCALE_RANGE = (2.0, 4.0)


def _clamp(value: float, bounds: Tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, value))


@dataclass(frozen=True)
class FlowLine:
    """Directional line for one significant transfer."""

    start: LatLng
    end: LatLng
    amount: float
    iteration: int
    source: Tuple[int, int]
    target: Tuple[int, int]
    color: str = FLOW_COLOR
    opacity: float = OPACITY_RANGE[1]
    weight: float = WEIGHT_RANGE[0]
    arrow_scale: float = ARROW_SCALE_RANGE[0]

    @property
    def key(self):
        return ("flow", self.iteration, self.source, self.target)


@dataclass(frozen=True)
class DepthLabel:
    """Text label showing the water pooled at a cell."""

    position: LatLng
    cell: Tuple[int, int]
    depth_m: float
    text: str
    title: str
    color: str = DEPTH_LABEL_COLOR

    @property
    def key(self):
        return ("depth", self.cell)


def flow_line_style(amount: float) -> dict:
    """Opacity, weight and arrow scale for a transfer of ``amount`` meters."""
    return {
        "opacity": _clamp(amount * 100, OPACITY_RANGE),
        "weight": _clamp(amount * 100, WEIGHT_RANGE),
        "arrow_scale": _clamp(amount * 80, ARROW_SCALE_RANGE),
    }


def is_visible_transfer(transfer: FlowTransfer, config: Optional[FlowConfig] = None) -> bool:
    """True when a transfer is large enough and falls on a sampled pass."""
    config = config or FlowConfig()
    return (
        transfer.amount > config.min_visible_flow
        and transfer.iteration % config.sample_stride == 0
    )


def flow_line_for_transfer(
    grid: FlowGrid, transfer: FlowTransfer, config: Optional[FlowConfig] = None
) -> FlowLine:
    """Build the line for a transfer without applying the visibility gate."""
    config = config or FlowConfig()
    si, sj = transfer.source
    ti, tj = transfer.target
    start = LatLng(float(grid.lat[si, sj]), float(grid.lng[si, sj]))
    target = LatLng(float(grid.lat[ti, tj]), float(grid.lng[ti, tj]))

    return FlowLine(
        start=start,
        end=start.interpolate(target, config.line_length_fraction),
        amount=transfer.amount,
        iteration=transfer.iteration,
        source=transfer.source,
        target=transfer.target,
        **flow_line_style(transfer.amount),
    )


def build_flow_lines(
    grid: FlowGrid,
    transfers: Iterable[FlowTransfer],
    config: Optional[FlowConfig] = None,
) -> List[FlowLine]:
    """
    Turn transfers into flow lines, keeping only the visible ones.

    Args:
        grid: Grid the transfers happened on (coordinates are read from it)
        transfers: Transfers from one or more passes
        config: Visibility threshold, sampling stride and line length

    Returns:
        One FlowLine per visible transfer, in input order
    """
    config = config or FlowConfig()
    return [
        flow_line_for_transfer(grid, t, config)
        for t in transfers
        if is_visible_transfer(t, config)
    ]


def build_depth_labels(grid: FlowGrid, threshold: Optional[float] = None) -> List[DepthLabel]:
    """
    Label every cell holding more than ``threshold`` meters of water.

    Depths are shown in inches (one decimal in the label, two in the title).
    """
    if threshold is None:
        threshold = FlowConfig().depth_label_threshold

    labels = []
    rows, cols = grid.shape
    for i in range(rows):
        for j in range(cols):
            depth = float(grid.water_depth[i, j])
            if depth <= threshold:
                continue
            inches = depth * METERS_TO_INCHES
            labels.append(
                DepthLabel(
                    position=LatLng(float(grid.lat[i, j]), float(grid.lng[i, j])),
                    cell=(i, j),
                    depth_m=depth,
                    text=f'{inches:.1f}"',
                    title=f"Water depth: {inches:.2f} inches",
                )
            )
    return labels
