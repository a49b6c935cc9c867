from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from django.db import transaction

from core.exceptions import IllegalTransitionError, InvalidScanError, NotFoundError, ValidationError
from geofence.services import parse_coordinates

from ..models import BarcodeScanLog, Package
from . import registry

logger = logging.getLogger(__name__)

ScanType = BarcodeScanLog.ScanType

# scan type -> (required status, resulting status)
SCAN_RULES = {
    ScanType.PICKUP: (Package.Status.ASSIGNED, Package.Status.PICKED_UP),
    ScanType.DELIVERY: (Package.Status.IN_TRANSIT, Package.Status.DELIVERED),
}


def _clean_location(location: Any) -> Optional[Dict[str, float]]:
    # Location is best-effort: a missing or unusable fix never blocks a scan.
    if not location or not isinstance(location, dict):
        return None
    try:
        lat, lng = parse_coordinates(location.get("lat"), location.get("lng"))
    except ValidationError as exc:
        logger.warning("Ignoring scan location %r: %s", location, exc)
        return None
    return {"lat": lat, "lng": lng}


@transaction.atomic
def _process(package: Package, actor, scan_type: str, note: str, location: Any, *, manual: bool) -> Package:
    required_status, target_status = SCAN_RULES[scan_type]
    if package.status != required_status:
        logger.warning(
            "Invalid %s scan for package %s in status %s",
            scan_type,
            package.package_id,
            package.status,
        )
        raise InvalidScanError(
            f"Package is not ready for {scan_type}: expected status "
            f"'{required_status}', found '{package.status}'"
        )
    registry.ensure_handler(package, actor)

    cleaned_location = _clean_location(location)
    updated = registry.transition(
        package.pk,
        target_status,
        actor,
        note,
        location=cleaned_location,
    )
    BarcodeScanLog.objects.create(
        package=updated,
        scanned_by=actor,
        scan_type=scan_type,
        location=cleaned_location,
        is_manual=manual,
        timestamp=updated.updated_at,
    )
    logger.info(
        "%s %s recorded for package %s by %s",
        "Manual" if manual else "Barcode",
        scan_type,
        updated.package_id,
        actor.id,
    )
    return updated


def scan(barcode: str, scanned_by, scan_type: str, location: Any = None) -> Package:
    if scan_type not in ScanType.values:
        raise ValidationError(f"scanType must be one of: {', '.join(ScanType.values)}")
    barcode = (barcode or "").strip()
    if not barcode:
        raise ValidationError("barcode is required")

    package = registry.get_by_barcode(barcode)
    if not package:
        raise NotFoundError("Package not found for this barcode")
    return _process(package, scanned_by, scan_type, "", location, manual=False)


def manual_pickup(package_pk, courier, note: str = "", location: Any = None) -> Package:
    package = registry.get_package(package_pk)
    return _process(package, courier, ScanType.PICKUP, (note or "").strip(), location, manual=True)


def manual_delivery(package_pk, courier, note: str, location: Any = None) -> Package:
    note = (note or "").strip()
    if not note:
        raise ValidationError("Delivery notes are required")
    package = registry.get_package(package_pk)
    return _process(package, courier, ScanType.DELIVERY, note, location, manual=True)


def depart(package_pk, courier, location: Any = None) -> Package:
    """Explicit picked_up -> in_transit step taken before a delivery scan."""
    package = registry.get_package(package_pk)
    if package.status != Package.Status.PICKED_UP:
        raise IllegalTransitionError(
            f"Package must be picked up before departing, found '{package.status}'"
        )
    registry.ensure_handler(package, courier)
    return registry.transition(
        package.pk,
        Package.Status.IN_TRANSIT,
        courier,
        "departed for delivery",
        location=_clean_location(location),
    )


def recent_scans(limit: int = 10, scanned_by=None) -> List[BarcodeScanLog]:
    scans = BarcodeScanLog.objects.select_related("package", "scanned_by")
    if scanned_by is not None:
        scans = scans.filter(scanned_by=scanned_by)
    return list(scans.order_by("-timestamp", "-id")[:limit])
