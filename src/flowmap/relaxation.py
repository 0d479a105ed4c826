"""
Water-flow relaxation over a FlowGrid.

Each pass visits every cell in row-major order. A cell holding more than
``epsilon`` meters of water sends ``transfer_fraction`` of it to the neighbor
with the lowest effective height (elevation + water depth), provided that
neighbor is strictly lower than the cell itself. Cells with no strictly
lower neighbor keep their water for the pass, which is how pools form.

Update order
------------
Transfers are applied in place: water moved by an earlier cell in a pass is
already visible to cells visited later in the same pass. This is not a
double-buffered update, and results depend on the row-major visiting order.
Switching to read-old/write-new semantics would change the simulated depths.

Neighborhood
------------
Eight neighbors, scanned in this order (ties on the lowest height go to the
first one found)::

    N, S, W, E, NW, NE, SW, SE

Row index grows northward on sampled grids, but the scan only depends on the
offsets, not on compass names.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from src.config import FlowConfig
from src.flowmap.flow_grid import FlowGrid

logger = logging.getLogger(__name__)

# (row_offset, col_offset): orthogonal neighbors first, then diagonals
NEIGHBOR_OFFSETS = (
    (-1, 0),
    (1, 0),
    (0, -1),
    (0, 1),
    (-1, -1),
    (-1, 1),
    (1, -1),
    (1, 1),
)


@dataclass(frozen=True)
class FlowTransfer:
    """Water moved from one cell to another during a single pass."""

    iteration: int
    source: Tuple[int, int]
    target: Tuple[int, int]
    amount: float


def find_lowest_neighbor(grid: FlowGrid, i: int, j: int) -> Optional[Tuple[int, int]]:
    """
    Find the neighbor that water at (i, j) flows to.

    Parameters
    ----------
    grid : FlowGrid
        Grid to inspect (current water depths are used)
    i, j : int
        Cell index

    Returns
    -------
    tuple or None
        (row, col) of the neighbor with the strictly lowest effective height
        below the cell's own, or None if the cell is a sink for this pass.
    """
    rows, cols = grid.shape
    elevation = grid.elevation
    depth = grid.water_depth

    current_height = elevation[i, j] + depth[i, j]
    best = None
    best_height = current_height

    for di, dj in NEIGHBOR_OFFSETS:
        ni = i + di
        nj = j + dj
        if 0 <= ni < rows and 0 <= nj < cols:
            neighbor_height = elevation[ni, nj] + depth[ni, nj]
            if neighbor_height < best_height:
                best = (ni, nj)
                best_height = neighbor_height

    return best


def relaxation_pass(
    grid: FlowGrid, iteration: int, config: Optional[FlowConfig] = None
) -> List[FlowTransfer]:
    """
    Run one in-place relaxation pass over the whole grid.

    Parameters
    ----------
    grid : FlowGrid
        Grid to mutate
    iteration : int
        Index of this pass, recorded on every transfer
    config : FlowConfig, optional
        Simulation parameters (defaults to FlowConfig())

    Returns
    -------
    list of FlowTransfer
        Transfers in the order they were applied
    """
    config = config or FlowConfig()
    rows, cols = grid.shape
    depth = grid.water_depth
    transfers = []

    for i in range(rows):
        for j in range(cols):
            if depth[i, j] <= config.epsilon:
                continue

            target = find_lowest_neighbor(grid, i, j)
            if target is None:
                continue

            amount = float(depth[i, j] * config.transfer_fraction)
            depth[i, j] -= amount
            depth[target] += amount
            transfers.append(FlowTransfer(iteration, (i, j), target, amount))

    return transfers


def iter_relaxation(
    grid: FlowGrid, config: Optional[FlowConfig] = None
) -> Iterator[Tuple[int, List[FlowTransfer]]]:
    """
    Run ``config.iterations`` passes, yielding each completed pass.

    Yields
    ------
    tuple
        (iteration, transfers) after the pass has been applied to ``grid``
    """
    config = config or FlowConfig()
    for iteration in range(config.iterations):
        transfers = relaxation_pass(grid, iteration, config)
        yield iteration, transfers


def run_relaxation(
    grid: FlowGrid, config: Optional[FlowConfig] = None
) -> List[List[FlowTransfer]]:
    """Run every pass and return the transfers of each, indexed by iteration."""
    config = config or FlowConfig()
    passes = [transfers for _, transfers in iter_relaxation(grid, config)]
    logger.debug(
        f"Relaxation finished: {config.iterations} passes, "
        f"{sum(len(p) for p in passes)} transfers"
    )
    return passes
