"""Pytest configuration and fixtures for water-flow tests."""
import sys
from pathlib import Path

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import pytest
import numpy as np

from src.flowmap.geo import Bounds


@pytest.fixture
def survey_bounds():
    """A small field-sized viewport near the default map centre."""
    return Bounds.from_bbox(47.600, -122.020, 47.620, -121.990)


@pytest.fixture
def terraced_elevation():
    """3x3 grid stepping down one row at a time."""
    return np.array([[3, 3, 3], [2, 2, 2], [1, 1, 1]], dtype=np.float64)


@pytest.fixture
def sloped_elevation():
    """21x21 grid whose elevation falls strictly with the row index."""
    rows = np.arange(21, dtype=np.float64)
    return np.tile((100.0 - 2.0 * rows)[:, None], (1, 21))


@pytest.fixture
def project_root():
    """Get the project root directory."""
    return Path(__file__).parent.parent
