"""
Static diagnostic plots of a water-flow run.

Draws the grid elevation with pooled water blended on top and the sampled
flow lines as arrows, in grid-index space (row 0 at the bottom, matching the
south-to-north row order of sampled grids).

Example:
    from src.flowmap.visualization.flow_plots import save_water_flow_plot

    save_water_flow_plot(result.grid, result.flow_lines, Path("output/flow.png"))
"""

from pathlib import Path
from typing import Optional, Sequence

import matplotlib
matplotlib.use('Agg')  # Non-interactive backend
import matplotlib.pyplot as plt
import numpy as np
from matplotlib.collections import LineCollection
from matplotlib.colors import to_rgba

from src.config import FlowConfig
from src.flowmap.flow_grid import FlowGrid
from src.flowmap.visualizer import FlowLine

FLOW_PLOT_COLORMAPS = {
    "elevation": "terrain",
    "water": "Blues",
}


def flow_segments(
    flow_lines: Sequence[FlowLine], length_fraction: Optional[float] = None
) -> np.ndarray:
    """
    Segments for ``flow_lines`` in (x=col, y=row) grid coordinates.

    Segments stop ``length_fraction`` of the way to the target cell
    (default: ``FlowConfig.line_length_fraction``), matching the map lines.

    Returns
    -------
    np.ndarray
        (N, 2, 2) array of [[x0, y0], [x1, y1]] segments
    """
    if length_fraction is None:
        length_fraction = FlowConfig.line_length_fraction
    segments = np.zeros((len(flow_lines), 2, 2), dtype=np.float64)
    for k, line in enumerate(flow_lines):
        (si, sj), (ti, tj) = line.source, line.target
        segments[k, 0] = (sj, si)
        segments[k, 1] = (sj + length_fraction * (tj - sj), si + length_fraction * (ti - si))
    return segments


def save_water_flow_plot(
    grid: FlowGrid,
    flow_lines: Sequence[FlowLine],
    output_path: Path,
    title: Optional[str] = None,
    water_alpha: float = 0.6,
    figsize: tuple = (10, 10),
    dpi: int = 150,
    config: Optional[FlowConfig] = None,
) -> Path:
    """
    Save elevation, pooled water and flow arrows to an image file.

    Parameters
    ----------
    grid : FlowGrid
        Grid after relaxation
    flow_lines : sequence of FlowLine
        Lines to draw (already filtered by the visualizer)
    output_path : Path
        Output image path (format from suffix)
    title : str, optional
        Plot title
    water_alpha : float, optional
        Opacity of the water-depth layer at its deepest cell
    figsize : tuple, optional
        Figure size in inches
    dpi : int, optional
        Output resolution
    config : FlowConfig, optional
        Run configuration; arrows use its ``line_length_fraction``

    Returns
    -------
    Path
        Path to saved file
    """
    config = config or FlowConfig()
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    rows, cols = grid.shape

    if title is None:
        title = f"Water flow ({rows}x{cols}, {len(flow_lines)} flow lines)"

    fig, ax = plt.subplots(figsize=figsize)
    im = ax.imshow(
        grid.elevation,
        cmap=FLOW_PLOT_COLORMAPS["elevation"],
        origin="lower",
        interpolation="nearest",
    )
    plt.colorbar(im, ax=ax, label="Elevation (m)", shrink=0.8)

    depth = grid.water_depth
    max_depth = float(depth.max())
    if max_depth > 0:
        water_rgba = plt.get_cmap(FLOW_PLOT_COLORMAPS["water"])(depth / max_depth)
        water_rgba[..., 3] = water_alpha * depth / max_depth
        ax.imshow(water_rgba, origin="lower", interpolation="nearest")

    if flow_lines:
        segments = flow_segments(flow_lines, config.line_length_fraction)
        colors = [to_rgba(line.color, line.opacity) for line in flow_lines]
        widths = [line.weight for line in flow_lines]
        ax.add_collection(LineCollection(segments, colors=colors, linewidths=widths))

        # Arrowheads at the line ends
        ax.quiver(
            segments[:, 0, 0], segments[:, 0, 1],
            segments[:, 1, 0] - segments[:, 0, 0], segments[:, 1, 1] - segments[:, 0, 1],
            angles="xy", scale_units="xy", scale=1, color=colors, width=0.003,
        )

    ax.set_xlim(-0.5, cols - 0.5)
    ax.set_ylim(-0.5, rows - 0.5)
    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.set_xlabel("Column (west to east)")
    ax.set_ylabel("Row (south to north)")

    plt.tight_layout()
    plt.savefig(output_path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    print(f"  Saved: {output_path.name}")

    return output_path
