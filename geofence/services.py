from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from django.conf import settings
from django.db import transaction

from core.exceptions import NotFoundError, ValidationError

from .distance import haversine_m
from .models import GeofenceZone

logger = logging.getLogger(__name__)

ZONE_FIELDS = ("name", "center_lat", "center_lng", "radius", "is_active")


@dataclass(frozen=True)
class ZoneDistance:
    zone: GeofenceZone
    distance: float


def parse_coordinates(lat: Any, lng: Any) -> Tuple[float, float]:
    """Coerce raw request values into a valid (lat, lng) pair."""
    if lat is None or lng is None or lat == "" or lng == "":
        raise ValidationError("lat and lng are required")
    try:
        lat_f, lng_f = float(lat), float(lng)
    except (TypeError, ValueError):
        raise ValidationError("lat and lng must be numbers")
    if not -90 <= lat_f <= 90:
        raise ValidationError("lat must be between -90 and 90")
    if not -180 <= lng_f <= 180:
        raise ValidationError("lng must be between -180 and 180")
    return lat_f, lng_f


def active_zones() -> List[GeofenceZone]:
    return list(GeofenceZone.objects.filter(is_active=True))


def is_within_any_active_zone(lat: float, lng: float) -> bool:
    for zone in active_zones():
        if haversine_m(lat, lng, zone.center_lat, zone.center_lng) <= zone.radius:
            return True
    return False


def nearest_zone(lat: float, lng: float) -> Optional[ZoneDistance]:
    nearest: Optional[ZoneDistance] = None
    for zone in active_zones():
        distance = haversine_m(lat, lng, zone.center_lat, zone.center_lng)
        if nearest is None or distance < nearest.distance:
            nearest = ZoneDistance(zone=zone, distance=distance)
    return nearest


def _clean_zone_data(data: Dict[str, Any], *, partial: bool) -> Dict[str, Any]:
    cleaned = {key: data[key] for key in ZONE_FIELDS if key in data}

    if not partial:
        missing = [key for key in ("name", "center_lat", "center_lng", "radius") if cleaned.get(key) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    if "name" in cleaned:
        cleaned["name"] = str(cleaned["name"]).strip()
        if not cleaned["name"]:
            raise ValidationError("name must not be blank")

    if "center_lat" in cleaned or "center_lng" in cleaned:
        lat, lng = parse_coordinates(
            cleaned.get("center_lat", 0),
            cleaned.get("center_lng", 0),
        )
        try:
            if "center_lat" in cleaned:
                cleaned["center_lat"] = Decimal(str(lat)).quantize(Decimal("0.00000001"))
            if "center_lng" in cleaned:
                cleaned["center_lng"] = Decimal(str(lng)).quantize(Decimal("0.00000001"))
        except InvalidOperation:
            raise ValidationError("Invalid coordinates")

    if "radius" in cleaned:
        try:
            radius = int(cleaned["radius"])
        except (TypeError, ValueError):
            raise ValidationError("radius must be an integer number of meters")
        low, high = settings.GEOFENCE_MIN_RADIUS_M, settings.GEOFENCE_MAX_RADIUS_M
        if not low <= radius <= high:
            raise ValidationError(f"radius must be between {low} and {high} meters")
        cleaned["radius"] = radius

    if "is_active" in cleaned:
        cleaned["is_active"] = _parse_flag(cleaned["is_active"])

    return cleaned


def _parse_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "1"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "0"):
        return False
    raise ValidationError("is_active must be true or false")


@transaction.atomic
def create_zone(*, created_by, **data) -> GeofenceZone:
    cleaned = _clean_zone_data(data, partial=False)
    zone = GeofenceZone.objects.create(created_by=created_by, **cleaned)
    logger.info("Geofence zone %s created by %s (radius=%sm)", zone.id, created_by.id, zone.radius)
    return zone


@transaction.atomic
def update_zone(zone_id: int, *, partial: bool = True, **data) -> GeofenceZone:
    zone = GeofenceZone.objects.select_for_update().filter(pk=zone_id).first()
    if not zone:
        raise NotFoundError("Geofence zone not found")
    cleaned = _clean_zone_data(data, partial=partial)
    for key, value in cleaned.items():
        setattr(zone, key, value)
    zone.save()
    logger.info("Geofence zone %s updated: %s", zone.id, sorted(cleaned))
    return zone


def delete_zone(zone_id: int) -> None:
    deleted, _ = GeofenceZone.objects.filter(pk=zone_id).delete()
    if not deleted:
        raise NotFoundError("Geofence zone not found")
    logger.info("Geofence zone %s deleted", zone_id)
