"""Geographic value types shared by the sampler, grid and overlays."""

from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class LatLng:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}

    def interpolate(self, other: "LatLng", fraction: float) -> "LatLng":
        """Point ``fraction`` of the way from this point toward ``other``."""
        return LatLng(
            self.lat + fraction * (other.lat - self.lat),
            self.lng + fraction * (other.lng - self.lng),
        )


@dataclass(frozen=True)
class Bounds:
    """Visible map rectangle given by its north-east and south-west corners."""

    north_east: LatLng
    south_west: LatLng

    def __post_init__(self):
        if self.north_east.lat < self.south_west.lat:
            raise ValueError(
                f"North-east latitude {self.north_east.lat} is south of "
                f"south-west latitude {self.south_west.lat}"
            )

    @classmethod
    def from_bbox(cls, south: float, west: float, north: float, east: float) -> "Bounds":
        """Build bounds from a (south, west, north, east) bounding box."""
        return cls(north_east=LatLng(north, east), south_west=LatLng(south, west))

    @property
    def center(self) -> LatLng:
        return self.south_west.interpolate(self.north_east, 0.5)

    def grid_steps(self, grid_size: int):
        """Latitude and longitude step between adjacent grid points."""
        lat_step = (self.north_east.lat - self.south_west.lat) / grid_size
        lng_step = (self.north_east.lng - self.south_west.lng) / grid_size
        return lat_step, lng_step


def grid_locations(bounds: Bounds, grid_size: int) -> List[LatLng]:
    """
    Lay out a (grid_size + 1) x (grid_size + 1) lattice over the bounds.

    Points are returned row-major: row ``i`` steps north from the south-west
    corner, column ``j`` steps east, so index ``i * (grid_size + 1) + j``
    recovers cell ``(i, j)``.
    """
    if grid_size < 1:
        raise ValueError(f"grid_size must be at least 1, got {grid_size}")

    lat_step, lng_step = bounds.grid_steps(grid_size)
    sw = bounds.south_west

    locations = []
    for i in range(grid_size + 1):
        for j in range(grid_size + 1):
            locations.append(LatLng(sw.lat + i * lat_step, sw.lng + j * lng_step))
    return locations
