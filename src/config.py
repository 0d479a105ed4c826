"""Configuration module for the land-survey water-flow toolkit.

Centralizes data paths, external service settings and simulation defaults.
"""
from dataclasses import dataclass
from pathlib import Path

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

# Data directories
DATA_DIR = PROJECT_ROOT / "data"
OUTPUT_DIR = DATA_DIR / "output"

# Ensure data directories exist
for data_dir in [DATA_DIR, OUTPUT_DIR]:
    data_dir.mkdir(parents=True, exist_ok=True)

# Saved map position ("save position" action on the survey map)
VIEWPORT_STATE_FILE = DATA_DIR / "map_state.json"
VIEWPORT_STATE_KEY = "mapState"
DEFAULT_CENTER = (47.6128, -122.006)  # Seattle
DEFAULT_ZOOM = 10

# Elevation web service (Google Elevation API JSON shape)
ELEVATION_API_URL = "https://maps.googleapis.com/maps/api/elevation/json"
ELEVATION_API_KEY_ENV = "ELEVATION_API_KEY"
ELEVATION_MAX_LOCATIONS = 500  # per-request cap
ELEVATION_TIMEOUT = 10.0  # seconds

# Units
INCHES_TO_METERS = 0.0254

# Rainfall slider (inches)
RAINFALL_MIN = 0.5
RAINFALL_MAX = 10.0
RAINFALL_STEP = 0.5
DEFAULT_RAINFALL = 2.0

# Terrace view (terrace count slider)
TERRACE_COUNT_MIN = 4
TERRACE_COUNT_MAX = 12
DEFAULT_TERRACE_COUNT = 8

# Default settings
DEFAULT_LOG_LEVEL = "INFO"


@dataclass
class FlowConfig:
    """Parameters for one water-flow simulation run."""

    grid_size: int = 20
    """Grid intervals per axis; the grid holds grid_size + 1 points per axis."""

    iterations: int = 50
    """Number of full relaxation passes (no convergence test)."""

    transfer_fraction: float = 0.3
    """Fraction of a cell's water moved to its lowest neighbor per pass."""

    epsilon: float = 0.001
    """Cells holding this much water (meters) or less are skipped."""

    min_visible_flow: float = 0.005
    """Transfers must exceed this amount (meters) to be drawn."""

    sample_stride: int = 5
    """Only passes whose index is a multiple of this are drawn."""

    line_length_fraction: float = 0.9
    """Flow lines stop this fraction of the way to the target cell."""

    depth_label_threshold: float = 0.02
    """Cells deeper than this (meters) get a depth label."""

    def __post_init__(self):
        if self.grid_size < 1:
            raise ValueError(f"grid_size must be at least 1, got {self.grid_size}")
        if not 0.0 < self.transfer_fraction <= 1.0:
            raise ValueError(
                f"transfer_fraction must be in (0, 1], got {self.transfer_fraction}"
            )
        if self.sample_stride < 1:
            raise ValueError(f"sample_stride must be at least 1, got {self.sample_stride}")
        if self.iterations < 0:
            raise ValueError(f"iterations must be non-negative, got {self.iterations}")
