"""Harvest zone validation.

A collection location is checked against the GeoJSON polygons of the active
approved zones using ray casting. Zones without a boundary on file cannot
confirm a location. The result is advisory: collections outside every zone are
still recorded, with a warning.
"""
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from models import ApprovedZone


@dataclass(frozen=True)
class ZoneValidation:
    is_valid: bool
    message: str
    zone_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {"is_valid": self.is_valid, "message": self.message, "zone_name": self.zone_name}


def point_in_ring(lon: float, lat: float, ring: Sequence[Sequence[float]]) -> bool:
    inside = False
    n = len(ring)
    j = n - 1
    for i in range(n):
        xi, yi = ring[i][0], ring[i][1]
        xj, yj = ring[j][0], ring[j][1]
        if (yi > lat) != (yj > lat):
            x_cross = (xj - xi) * (lat - yi) / (yj - yi) + xi
            if lon < x_cross:
                inside = not inside
        j = i
    return inside


def point_in_polygon(lon: float, lat: float, geometry: dict) -> bool:
    """GeoJSON Polygon / MultiPolygon containment; holes are honoured."""
    kind = geometry.get("type")
    if kind == "Polygon":
        polygons = [geometry["coordinates"]]
    elif kind == "MultiPolygon":
        polygons = geometry["coordinates"]
    else:
        raise ValueError(f"unsupported geometry type: {kind}")

    for rings in polygons:
        if not rings:
            continue
        outer, holes = rings[0], rings[1:]
        if point_in_ring(lon, lat, outer) and not any(point_in_ring(lon, lat, h) for h in holes):
            return True
    return False


def validate_location(db: Session, latitude: float, longitude: float, zone_name: Optional[str] = None) -> ZoneValidation:
    stmt = select(ApprovedZone).where(ApprovedZone.is_active.is_(True), ApprovedZone.coordinates.is_not(None))
    if zone_name:
        declared = db.scalar(select(ApprovedZone).where(ApprovedZone.zone_name == zone_name))
        if declared is not None and declared.coordinates:
            if point_in_polygon(longitude, latitude, declared.coordinates):
                return ZoneValidation(True, "Location approved for this herb", declared.zone_name)
            return ZoneValidation(
                False,
                f"Warning: location lies outside the declared zone {declared.zone_name}",
                declared.zone_name,
            )

    for zone in db.scalars(stmt.order_by(ApprovedZone.id)):
        if zone.coordinates and point_in_polygon(longitude, latitude, zone.coordinates):
            return ZoneValidation(True, "Location approved for this herb", zone.zone_name)
    return ZoneValidation(False, "Warning: This location may not be optimal for this herb species")
