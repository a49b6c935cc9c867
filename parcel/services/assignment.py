from __future__ import annotations

import logging
from typing import List

from django.db.models import Case, IntegerField, Value, When

from core.exceptions import ConflictError, ForbiddenError, IllegalTransitionError, ValidationError

from ..models import Package
from . import registry

logger = logging.getLogger(__name__)

PRIORITY_RANK = Case(
    When(priority=Package.Priority.URGENT, then=Value(0)),
    When(priority=Package.Priority.HIGH, then=Value(1)),
    default=Value(2),
    output_field=IntegerField(),
)


def _ensure_active_courier(kurir) -> None:
    if kurir is None or not kurir.is_courier or not kurir.is_active:
        raise ValidationError("Packages can only be assigned to an active courier")


def _assign(package_pk, kurir, actor, note: str) -> Package:
    try:
        package = registry.transition(
            package_pk,
            Package.Status.ASSIGNED,
            actor,
            note,
            assign_to=kurir,
        )
    except (IllegalTransitionError, ConflictError) as exc:
        logger.warning("Assignment of package %s to %s refused: %s", package_pk, kurir.id, exc)
        raise ConflictError("Package already taken") from exc
    return package


def assign_explicit(package_pk, kurir, actor) -> Package:
    """Staff-driven first assignment of a ``created`` package."""
    if not actor.is_staff_role:
        raise ForbiddenError("Only staff can assign packages")
    _ensure_active_courier(kurir)
    return _assign(package_pk, kurir, actor, "assigned by staff")


def claim(package_pk, kurir) -> Package:
    """Courier self-pickup; at most one concurrent claimant wins."""
    if not kurir.is_courier:
        raise ForbiddenError("Only couriers can take packages")
    _ensure_active_courier(kurir)
    return _assign(package_pk, kurir, kurir, "claimed by courier")


def list_available() -> List[Package]:
    return list(
        Package.objects.filter(status=Package.Status.CREATED, assigned_kurir__isnull=True)
        .annotate(priority_rank=PRIORITY_RANK)
        .order_by("priority_rank", "created_at")
    )
