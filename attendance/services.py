from __future__ import annotations

import logging
from datetime import date as date_type
from decimal import Decimal
from typing import List, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.utils import timezone

from core.exceptions import (
    DuplicateCheckInError,
    DuplicateCheckOutError,
    ForbiddenError,
    NoCheckInError,
    NotFoundError,
    NotPendingError,
    OutsideGeofenceError,
    ValidationError,
)
from geofence.services import is_within_any_active_zone, parse_coordinates

from .models import AttendanceRecord

logger = logging.getLogger(__name__)

User = get_user_model()

REVIEW_DECISIONS = (AttendanceRecord.Status.APPROVED, AttendanceRecord.Status.REJECTED)


def _coordinate(value: float) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.00000001"))


def _initial_status() -> str:
    configured = getattr(settings, "ATTENDANCE_INITIAL_STATUS", AttendanceRecord.Status.PENDING)
    if configured in AttendanceRecord.REVIEWABLE_STATUSES:
        return configured
    return AttendanceRecord.Status.PENDING


def _ensure_courier(kurir) -> None:
    if not kurir.is_courier:
        raise ForbiddenError("Only couriers can record attendance")


def check_in(kurir, lat, lng) -> AttendanceRecord:
    _ensure_courier(kurir)
    lat, lng = parse_coordinates(lat, lng)
    today = timezone.localdate()

    if AttendanceRecord.objects.filter(kurir=kurir, date=today).exists():
        raise DuplicateCheckInError("Already checked in today")
    if not is_within_any_active_zone(lat, lng):
        logger.warning("Check-in by %s rejected outside geofence at (%s, %s)", kurir.id, lat, lng)
        raise OutsideGeofenceError("Check-in location is outside allowed area")

    try:
        with transaction.atomic():
            record = AttendanceRecord.objects.create(
                kurir=kurir,
                date=today,
                check_in_time=timezone.now(),
                check_in_lat=_coordinate(lat),
                check_in_lng=_coordinate(lng),
                status=_initial_status(),
            )
    except IntegrityError as exc:
        # Lost a double-submit race on the (kurir, date) unique constraint.
        raise DuplicateCheckInError("Already checked in today") from exc

    logger.info("Courier %s checked in for %s", kurir.id, today)
    return record


@transaction.atomic
def check_out(kurir, lat, lng) -> AttendanceRecord:
    _ensure_courier(kurir)
    lat, lng = parse_coordinates(lat, lng)
    today = timezone.localdate()

    record = AttendanceRecord.objects.select_for_update().filter(kurir=kurir, date=today).first()
    if not record or record.check_in_time is None:
        raise NoCheckInError("No check-in record found for today")
    if record.check_out_time is not None:
        raise DuplicateCheckOutError("Already checked out today")
    if not is_within_any_active_zone(lat, lng):
        logger.warning("Check-out by %s rejected outside geofence at (%s, %s)", kurir.id, lat, lng)
        raise OutsideGeofenceError("Check-out location is outside allowed area")

    now = timezone.now()
    matched = AttendanceRecord.objects.filter(pk=record.pk, check_out_time__isnull=True).update(
        check_out_time=now,
        check_out_lat=_coordinate(lat),
        check_out_lng=_coordinate(lng),
        updated_at=now,
    )
    if not matched:
        raise DuplicateCheckOutError("Already checked out today")

    record.refresh_from_db()
    logger.info("Courier %s checked out for %s", kurir.id, today)
    return record


@transaction.atomic
def review(record_id, reviewer, decision: str, note: Optional[str] = None) -> AttendanceRecord:
    if decision not in REVIEW_DECISIONS:
        raise ValidationError(f"status must be one of: {', '.join(REVIEW_DECISIONS)}")

    record = AttendanceRecord.objects.filter(pk=record_id).first()
    if not record:
        raise NotFoundError("Attendance record not found")
    if not reviewer.is_reviewer:
        raise ForbiddenError("Only reviewers can review attendance")
    if record.kurir_id == reviewer.id:
        raise ForbiddenError("Attendance cannot be reviewed by its owner")
    if not record.is_reviewable:
        raise NotPendingError(f"Attendance record is already {record.status}")

    now = timezone.now()
    updates = {
        "status": decision,
        "approved_by": reviewer,
        "reviewed_at": now,
        "updated_at": now,
    }
    if note:
        updates["notes"] = note.strip()

    matched = AttendanceRecord.objects.filter(
        pk=record.pk,
        status__in=AttendanceRecord.REVIEWABLE_STATUSES,
    ).update(**updates)
    if not matched:
        raise NotPendingError("Attendance record was already reviewed")

    record.refresh_from_db()
    logger.info("Attendance %s %s by %s", record.id, decision, reviewer.id)
    return record


def mark_absent(on_date: Optional[date_type] = None) -> int:
    """Create ``absent`` records for active couriers with no record on the date."""
    target = on_date or timezone.localdate()
    couriers = User.objects.filter(role=User.Role.KURIR, is_active=True).exclude(
        attendance_records__date=target
    )
    created = 0
    for kurir in couriers:
        _, was_created = AttendanceRecord.objects.get_or_create(
            kurir=kurir,
            date=target,
            defaults={"status": AttendanceRecord.Status.ABSENT},
        )
        created += int(was_created)
    logger.info("Marked %s courier(s) absent for %s", created, target)
    return created


def today_record(kurir) -> Optional[AttendanceRecord]:
    return AttendanceRecord.objects.filter(kurir=kurir, date=timezone.localdate()).first()


def records_between(start: date_type, end: date_type) -> List[AttendanceRecord]:
    if end < start:
        raise ValidationError("end must not be before start")
    return list(
        AttendanceRecord.objects.select_related("kurir", "approved_by")
        .filter(date__gte=start, date__lte=end)
        .order_by("-date", "kurir__username")
    )
