"""
Farm water-flow demo.

Samples elevation over a bounding box (or a saved map position), simulates
rainfall runoff, and writes a Leaflet HTML map plus a diagnostic PNG.

Without ELEVATION_API_KEY set (or with --offline) the demo runs on the
synthetic hill terrain.

Usage:
    python examples/farm_water_flow_demo.py --bbox 47.600 -122.020 47.620 -121.990 --rainfall 2
    python examples/farm_water_flow_demo.py --use-saved-position --rainfall 4.5 --terrain
    python examples/farm_water_flow_demo.py --bbox 47.600 -122.020 47.620 -121.990 --terraces 8
    python examples/farm_water_flow_demo.py --bbox 47.600 -122.020 47.620 -121.990 --save-position 15
"""

import logging
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src import config
from src.config import FlowConfig
from src.flowmap.contours import generate_terrace_overlay, generate_terrain_overlay
from src.flowmap.elevation import ElevationClient
from src.flowmap.geo import Bounds
from src.flowmap.pipeline import simulate_water_flow, snap_rainfall
from src.flowmap.viewport import ViewportStore
from src.flowmap.visualization import (
    LeafletMapDocument,
    OverlayReconciler,
    save_water_flow_plot,
)

logger = logging.getLogger(__name__)

# Half-extent (degrees) of the area simulated around a saved map centre
SAVED_POSITION_HALF_EXTENT = 0.01


def parse_args(argv=None):
    import argparse

    parser = argparse.ArgumentParser(description="Farm water-flow simulation demo")
    parser.add_argument(
        "--bbox",
        type=float,
        nargs=4,
        metavar=("SOUTH", "WEST", "NORTH", "EAST"),
        help="Area to simulate in decimal degrees",
    )
    parser.add_argument(
        "--use-saved-position",
        action="store_true",
        help="Simulate around the saved map position (or the default centre)",
    )
    parser.add_argument(
        "--rainfall",
        type=float,
        default=config.DEFAULT_RAINFALL,
        help=f"Rainfall in inches ({config.RAINFALL_MIN}-{config.RAINFALL_MAX}, step {config.RAINFALL_STEP})",
    )
    parser.add_argument("--grid-size", type=int, default=FlowConfig.grid_size, help="Grid intervals per axis")
    parser.add_argument("--iterations", type=int, default=FlowConfig.iterations, help="Relaxation passes")
    parser.add_argument("--terrain", action="store_true", help="Add contour lines and elevation markers")
    parser.add_argument(
        "--terraces",
        type=int,
        metavar="COUNT",
        help=f"Add coloured terrace outlines ({config.TERRACE_COUNT_MIN}-{config.TERRACE_COUNT_MAX} levels)",
    )
    parser.add_argument("--offline", action="store_true", help="Skip the elevation service")
    parser.add_argument(
        "--save-position",
        type=int,
        metavar="ZOOM",
        help="Store the bbox centre at this zoom as the saved map position",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=config.OUTPUT_DIR,
        help="Directory for the HTML map and PNG plot",
    )
    parser.add_argument("--log-level", default=config.DEFAULT_LOG_LEVEL, help="Logging level")
    return parser.parse_args(argv)


def resolve_bounds(args, store: ViewportStore) -> Bounds:
    if args.bbox is not None:
        return Bounds.from_bbox(*args.bbox)

    viewport = store.initial_viewport()
    c = viewport.center
    d = SAVED_POSITION_HALF_EXTENT
    logger.info(f"Using map position ({c.lat:.5f}, {c.lng:.5f}) zoom {viewport.zoom}")
    return Bounds.from_bbox(c.lat - d, c.lng - d, c.lat + d, c.lng + d)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.bbox is None and not args.use_saved_position:
        print("Provide --bbox or --use-saved-position", file=sys.stderr)
        return 2

    store = ViewportStore()
    bounds = resolve_bounds(args, store)

    if args.save_position is not None:
        store.save(bounds.center, args.save_position)

    try:
        rainfall = snap_rainfall(args.rainfall)
    except ValueError as e:
        print(f"Invalid rainfall: {e}", file=sys.stderr)
        return 2

    client = None
    if not args.offline and os.environ.get(config.ELEVATION_API_KEY_ENV):
        client = ElevationClient.from_env()

    flow_config = FlowConfig(grid_size=args.grid_size, iterations=args.iterations)
    result = simulate_water_flow(bounds, rainfall, client=client, config=flow_config)

    print(f"Rainfall: {rainfall} in over {result.grid.shape[0]}x{result.grid.shape[1]} grid")
    if result.used_synthetic_elevation:
        print("  (synthetic elevation - elevation service unavailable)")
    print(f"Transfers: {result.transfer_count:,}")
    print(f"Flow lines: {len(result.flow_lines):,}")
    print(f"Depth labels: {len(result.depth_labels):,}")

    primitives = result.primitives()
    if args.terrain:
        primitives += generate_terrain_overlay(bounds, client=client).primitives()
    if args.terraces is not None:
        try:
            terraces = generate_terrace_overlay(bounds, client=client, terrace_count=args.terraces)
        except ValueError as e:
            print(f"Invalid terrace count: {e}", file=sys.stderr)
            return 2
        primitives += terraces.primitives()

    doc = LeafletMapDocument(center=bounds.center, bounds=bounds, title=f'Water Flow ({rainfall}" rain)')
    OverlayReconciler(doc).reconcile(primitives)

    args.output_dir.mkdir(parents=True, exist_ok=True)
    html_path = doc.write(args.output_dir / "water_flow.html")
    png_path = save_water_flow_plot(
        result.grid, result.flow_lines, args.output_dir / "water_flow.png", config=flow_config
    )
    print(f"Map: {html_path}")
    print(f"Plot: {png_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
