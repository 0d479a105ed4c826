"""
Elevation sampling for the land-survey map.

Requests elevations for a rectangular lattice of coordinates from an external
elevation web service (Google Elevation API JSON shape). When the service is
unavailable the caller gets a deterministic synthetic hill instead, so the
water-flow view always has something to show.

Usage::

    from src.flowmap.elevation import ElevationClient, sample_with_fallback
    from src.flowmap.geo import Bounds

    bounds = Bounds.from_bbox(47.60, -122.02, 47.62, -121.99)
    client = ElevationClient.from_env()
    samples, used_synthetic = sample_with_fallback(bounds, 20, client)
"""

import logging
import math
import os
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import requests

from src import config
from src.flowmap.geo import Bounds, LatLng, grid_locations

logger = logging.getLogger(__name__)


class ElevationServiceError(Exception):
    """Raised when the elevation service cannot deliver a full result."""

    pass


@dataclass(frozen=True)
class ElevationSample:
    """One elevation value (meters) at a coordinate."""

    elevation: float
    lat: float
    lng: float

    @property
    def location(self) -> LatLng:
        return LatLng(self.lat, self.lng)


class ElevationClient:
    """
    Thin client for an elevation lookup service.

    Each request carries a ``|``-separated list of ``lat,lng`` pairs; the
    service answers with one result per location, in the same order, plus an
    overall status. Lists longer than ``max_locations`` are split into
    consecutive requests.

    Attributes:
        api_key: Service API key (may be None for keyless test servers)
        base_url: Endpoint URL
        max_locations: Per-request location cap
        timeout: Request timeout in seconds
        session: requests.Session used for all calls
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = config.ELEVATION_API_URL,
        max_locations: int = config.ELEVATION_MAX_LOCATIONS,
        timeout: float = config.ELEVATION_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        if max_locations < 1:
            raise ValueError(f"max_locations must be at least 1, got {max_locations}")

        self.api_key = api_key
        self.base_url = base_url
        self.max_locations = max_locations
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()

    @classmethod
    def from_env(cls, env_var: str = config.ELEVATION_API_KEY_ENV, **kwargs) -> "ElevationClient":
        """Create a client using the API key stored in ``env_var``."""
        api_key = os.environ.get(env_var)
        if not api_key:
            logger.warning(f"{env_var} is not set; elevation requests will likely be rejected")
        return cls(api_key=api_key, **kwargs)

    def get_elevations(self, locations: Sequence[LatLng]) -> List[ElevationSample]:
        """
        Look up elevations for ``locations``, preserving their order.

        Args:
            locations: Coordinates to sample

        Returns:
            One ElevationSample per location

        Raises:
            ElevationServiceError: On network errors, HTTP errors, a non-OK
                service status, or a result count that does not match
        """
        samples: List[ElevationSample] = []
        for start in range(0, len(locations), self.max_locations):
            batch = locations[start:start + self.max_locations]
            logger.debug(
                f"Requesting {len(batch)} elevations (batch starting at {start})"
            )
            samples.extend(self._request_batch(batch))
        return samples

    def _request_batch(self, batch: Sequence[LatLng]) -> List[ElevationSample]:
        params = {
            "locations": "|".join(f"{p.lat:.6f},{p.lng:.6f}" for p in batch),
        }
        if self.api_key:
            params["key"] = self.api_key

        try:
            response = self.session.get(self.base_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise ElevationServiceError(f"Elevation request failed: {e}") from e
        except ValueError as e:
            raise ElevationServiceError(f"Elevation response is not valid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise ElevationServiceError(
                f"Elevation response is not a JSON object: {type(payload).__name__}"
            )

        status = payload.get("status")
        if status != "OK":
            message = payload.get("error_message", "")
            raise ElevationServiceError(f"Elevation service returned status {status!r} {message}".rstrip())

        results = payload.get("results") or []
        if not isinstance(results, list):
            raise ElevationServiceError(f"Elevation results are not a list: {type(results).__name__}")
        if len(results) != len(batch):
            raise ElevationServiceError(
                f"Expected {len(batch)} elevation results, got {len(results)}"
            )

        samples = []
        for index, (requested, result) in enumerate(zip(batch, results)):
            try:
                location = result.get("location") or {}
                samples.append(
                    ElevationSample(
                        elevation=float(result["elevation"]),
                        lat=float(location.get("lat", requested.lat)),
                        lng=float(location.get("lng", requested.lng)),
                    )
                )
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                raise ElevationServiceError(
                    f"Malformed elevation result at index {index}: {result!r}"
                ) from e
        return samples


def sample_elevation_grid(
    bounds: Bounds, grid_size: int, client: ElevationClient
) -> List[ElevationSample]:
    """
    Sample elevations for the grid laid over ``bounds``.

    Returns samples row-major (see ``grid_locations``). The sample
    coordinates are the requested lattice points, not whatever the service
    snapped them to, so callers can re-index them into a 2-D array.

    Raises:
        ElevationServiceError: If the service fails
    """
    locations = grid_locations(bounds, grid_size)
    logger.info(
        f"Sampling {len(locations)} elevations ({grid_size + 1}x{grid_size + 1} grid)"
    )
    results = client.get_elevations(locations)
    return [
        ElevationSample(elevation=r.elevation, lat=p.lat, lng=p.lng)
        for p, r in zip(locations, results)
    ]


def synthetic_elevation_grid(
    bounds: Bounds,
    grid_size: int,
    base_elevation: float = 100.0,
    hill_height: float = 50.0,
    floor: float = 50.0,
) -> List[ElevationSample]:
    """
    Generate a radial hill centred on the viewport.

    Elevation falls linearly from ``base_elevation + hill_height`` at the
    grid centre to ``base_elevation`` at the corners, never dropping below
    ``floor``. The field is deterministic so a degraded view is reproducible.

    Args:
        bounds: Visible map rectangle
        grid_size: Grid intervals per axis
        base_elevation: Elevation at the grid corners (meters)
        hill_height: Extra height at the centre (meters)
        floor: Minimum elevation (meters)

    Returns:
        Row-major list of ElevationSample, aligned with ``grid_locations``
    """
    locations = grid_locations(bounds, grid_size)
    center = grid_size / 2
    max_distance = math.hypot(center, center)

    samples = []
    for index, location in enumerate(locations):
        i, j = divmod(index, grid_size + 1)
        distance = math.hypot(i - center, j - center)
        elevation = base_elevation + hill_height * (1 - distance / max_distance)
        samples.append(ElevationSample(max(floor, elevation), location.lat, location.lng))
    return samples


def sample_with_fallback(
    bounds: Bounds, grid_size: int, client: Optional[ElevationClient] = None
) -> Tuple[List[ElevationSample], bool]:
    """
    Sample the grid, falling back to synthetic terrain on any service failure.

    Args:
        bounds: Visible map rectangle
        grid_size: Grid intervals per axis
        client: Elevation client; None goes straight to synthetic terrain

    Returns:
        Tuple of (samples, used_synthetic)
    """
    if client is None:
        logger.info("No elevation client configured, using synthetic elevation")
        return synthetic_elevation_grid(bounds, grid_size), True

    try:
        return sample_elevation_grid(bounds, grid_size, client), False
    except ElevationServiceError as e:
        logger.warning(f"Elevation service failed ({e}); falling back to synthetic elevation")
        return synthetic_elevation_grid(bounds, grid_size), True
