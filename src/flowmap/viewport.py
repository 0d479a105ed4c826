"""
Saved map position for the land-survey map.

The "save position" action stores the current centre, zoom and a timestamp
as JSON under a fixed key; the next session reads it back to set the initial
viewport. Other keys already present in the file are left untouched.
"""

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from src import config
from src.flowmap.geo import LatLng

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewportState:
    """Map centre, zoom level and save time (ms since the epoch)."""

    center: LatLng
    zoom: int
    timestamp: int

    def to_dict(self) -> dict:
        return {"center": self.center.to_dict(), "zoom": self.zoom, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict) -> "ViewportState":
        center = data["center"]
        return cls(
            center=LatLng(float(center["lat"]), float(center["lng"])),
            zoom=int(data["zoom"]),
            timestamp=int(data.get("timestamp", 0)),
        )


def default_viewport() -> ViewportState:
    lat, lng = config.DEFAULT_CENTER
    return ViewportState(center=LatLng(lat, lng), zoom=config.DEFAULT_ZOOM, timestamp=0)


class ViewportStore:
    """
    JSON-file store for the saved viewport.

    Attributes:
        path: JSON file holding the stored keys
        key: Key the viewport is stored under
    """

    def __init__(self, path: Optional[Path] = None, key: str = config.VIEWPORT_STATE_KEY):
        self.path = Path(path) if path is not None else config.VIEWPORT_STATE_FILE
        self.key = key

    def _read_all(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.error(f"Error reading saved map state from {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.error(f"Saved map state in {self.path} is not a JSON object")
            return {}
        return data

    def save(self, center: LatLng, zoom: int, timestamp: Optional[int] = None) -> ViewportState:
        """
        Store the current map position.

        Args:
            center: Map centre
            zoom: Zoom level
            timestamp: Save time in ms since the epoch (defaults to now)

        Returns:
            The stored ViewportState
        """
        if timestamp is None:
            timestamp = int(time.time() * 1000)
        state = ViewportState(center=center, zoom=int(zoom), timestamp=int(timestamp))

        data = self._read_all()
        data[self.key] = state.to_dict()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2))
        logger.info(
            f"Saved map position ({center.lat:.5f}, {center.lng:.5f}) zoom {zoom} to {self.path}"
        )
        return state

    def load(self) -> Optional[ViewportState]:
        """Return the saved viewport, or None if nothing usable is stored."""
        raw = self._read_all().get(self.key)
        if raw is None:
            return None
        try:
            return ViewportState.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Error parsing saved map state: {e}")
            return None

    def initial_viewport(self) -> ViewportState:
        """Saved viewport if there is one, otherwise the default."""
        state = self.load()
        return state if state is not None else default_viewport()

    def clear(self) -> None:
        data = self._read_all()
        if data.pop(self.key, None) is not None:
            self.path.write_text(json.dumps(data, indent=2))
