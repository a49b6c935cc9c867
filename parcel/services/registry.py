from __future__ import annotations

import logging
import time
import uuid
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from core.exceptions import (
    ConflictError,
    ForbiddenError,
    IllegalTransitionError,
    NotFoundError,
    ValidationError,
)

from ..lifecycle import TERMINAL_STATUSES, Event, event_for
from ..models import Package, PackageStatusHistory

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("recipient_name", "recipient_phone", "recipient_address")
DESCRIPTIVE_FIELDS = REQUIRED_FIELDS + (
    "sender_name",
    "sender_phone",
    "pickup_address",
    "weight",
    "dimensions",
    "declared_value",
    "priority",
    "notes",
)
# Package.weight is DecimalField(max_digits=10, decimal_places=2)
MAX_WEIGHT = Decimal("100000000")


def _generate_identifiers() -> Tuple[str, str]:
    while True:
        millis = int(time.time() * 1000)
        package_id = f"{settings.PACKAGE_ID_PREFIX}-{millis}-{uuid.uuid4().hex[:6].upper()}"
        barcode = f"{package_id}-{str(millis)[-6:]}"
        if not Package.objects.filter(Q(package_id=package_id) | Q(barcode=barcode)).exists():
            return package_id, barcode


def _clean_descriptive_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {key: fields[key] for key in DESCRIPTIVE_FIELDS if fields.get(key) is not None}

    for key, value in cleaned.items():
        if isinstance(value, str):
            cleaned[key] = value.strip()

    missing = [key for key in REQUIRED_FIELDS if not cleaned.get(key)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    priority = cleaned.get("priority") or Package.Priority.NORMAL
    if priority not in Package.Priority.values:
        raise ValidationError(f"priority must be one of: {', '.join(Package.Priority.values)}")
    cleaned["priority"] = priority

    if cleaned.get("weight") not in (None, ""):
        try:
            weight = Decimal(str(cleaned["weight"]))
        except InvalidOperation:
            raise ValidationError("weight must be a number")
        if not weight.is_finite():
            raise ValidationError("weight must be a number")
        if weight < 0:
            raise ValidationError("weight must not be negative")
        try:
            weight = weight.quantize(Decimal("0.01"))
        except InvalidOperation:
            weight = MAX_WEIGHT
        if weight >= MAX_WEIGHT:
            raise ValidationError(f"weight must be less than {MAX_WEIGHT}")
        cleaned["weight"] = weight
    else:
        cleaned.pop("weight", None)

    if cleaned.get("declared_value") not in (None, ""):
        try:
            declared_value = int(cleaned["declared_value"])
        except (TypeError, ValueError):
            raise ValidationError("declared_value must be an integer")
        if declared_value < 0:
            raise ValidationError("declared_value must not be negative")
        cleaned["declared_value"] = declared_value
    else:
        cleaned.pop("declared_value", None)

    return cleaned


@transaction.atomic
def create_package(*, created_by, **fields) -> Package:
    cleaned = _clean_descriptive_fields(fields)
    package_id, barcode = _generate_identifiers()
    package = Package.objects.create(
        package_id=package_id,
        barcode=barcode,
        status=Package.Status.CREATED,
        created_by=created_by,
        **cleaned,
    )
    logger.info("Package %s created by %s", package.package_id, getattr(created_by, "id", None))
    return package


def get_package(package_pk) -> Package:
    package = Package.objects.select_related("assigned_kurir").filter(pk=package_pk).first()
    if not package:
        raise NotFoundError("Package not found")
    return package


def get_by_barcode(barcode: str) -> Optional[Package]:
    return Package.objects.select_related("assigned_kurir").filter(barcode=barcode).first()


def ensure_handler(package: Package, actor) -> None:
    """Staff may handle any package; a courier only the ones assigned to them."""
    if actor.is_staff_role:
        return
    if actor.is_courier and package.assigned_kurir_id == actor.id:
        return
    raise ForbiddenError("Only the assigned courier or staff may handle this package")


@transaction.atomic
def transition(
    package_pk,
    to_status: str,
    actor,
    note: str = "",
    *,
    assign_to=None,
    location: Optional[Dict[str, float]] = None,
) -> Package:
    """
    The only mutator of ``Package.status``.

    The update is a conditional write on the status that was read, so a
    concurrent writer makes this call fail with ConflictError instead of
    being overwritten. The history row is appended in the same transaction.
    """
    if to_status not in Package.Status.values:
        raise ValidationError(f"Unknown package status: {to_status}")

    package = Package.objects.filter(pk=package_pk).first()
    if not package:
        raise NotFoundError("Package not found")

    from_status = package.status
    if from_status in TERMINAL_STATUSES:
        logger.warning("Rejected transition of %s package %s to %s", from_status, package.package_id, to_status)
        raise IllegalTransitionError(f"Package is already {from_status}")
    event = event_for(from_status, to_status)
    if event is None:
        logger.warning("Rejected transition %s -> %s for package %s", from_status, to_status, package.package_id)
        raise IllegalTransitionError(f"Cannot move package from {from_status} to {to_status}")

    now = timezone.now()
    updates: Dict[str, Any] = {"status": to_status, "updated_at": now}
    preconditions: Dict[str, Any] = {"pk": package.pk, "status": from_status}
    if event == Event.ASSIGN:
        if assign_to is None:
            raise ValidationError("A courier is required to assign a package")
        updates["assigned_kurir"] = assign_to
        preconditions["assigned_kurir__isnull"] = True
    if to_status == Package.Status.DELIVERED:
        updates["delivered_at"] = now

    matched = Package.objects.filter(**preconditions).update(**updates)
    if not matched:
        logger.warning("Lost update on package %s (%s -> %s)", package.package_id, from_status, to_status)
        raise ConflictError("Package was modified by another request")

    PackageStatusHistory.objects.create(
        package=package,
        from_status=from_status,
        to_status=to_status,
        changed_by=actor,
        location=location,
        notes=note or "",
        timestamp=now,
    )
    package.refresh_from_db()
    logger.info(
        "Package %s %s -> %s by %s",
        package.package_id,
        from_status,
        to_status,
        getattr(actor, "id", None),
    )
    return package


def fail_package(package_pk, actor, note: str = "") -> Package:
    package = get_package(package_pk)
    ensure_handler(package, actor)
    return transition(package.pk, Package.Status.FAILED, actor, note)
