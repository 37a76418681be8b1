from __future__ import annotations

from dataclasses import dataclass

from ..common.validators import require_latitude, require_longitude


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    @classmethod
    def parse(cls, latitude, longitude) -> "Coordinate":
        """Build from raw (possibly string) input; raises ValidationError."""
        return cls(latitude=require_latitude(latitude), longitude=require_longitude(longitude))


@dataclass(frozen=True)
class Location:
    """Thực thể miền (domain): Điểm điểm danh (tâm + bán kính)."""

    location_id: int
    name: str
    latitude: float
    longitude: float
    radius_m: float
    is_active: bool = True

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)
