import math
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import close_old_connections
from django.test import TestCase, TransactionTestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from account.models import User
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
from geofence.distance import EARTH_RADIUS_M
from geofence.models import GeofenceZone

from .models import AttendanceRecord
from .services import check_in, check_out, mark_absent, records_between, review, today_record

DEPOT_LAT = -6.2
DEPOT_LNG = 106.816666


def meters_north(meters):
    return DEPOT_LAT + math.degrees(meters / EARTH_RADIUS_M), DEPOT_LNG


class AttendanceTestMixin:
    def make_users(self):
        self.admin = User.objects.create_user(username="admin_att", password="Pass123!", role="admin")
        self.pic = User.objects.create_user(username="pic_att", password="Pass123!", role="pic")
        self.kurir = User.objects.create_user(username="kurir_att", password="Pass123!", role="kurir")
        self.other_kurir = User.objects.create_user(username="kurir_att_2", password="Pass123!", role="kurir")

    def make_depot(self, radius=50, **kwargs):
        return GeofenceZone.objects.create(
            name=kwargs.pop("name", "Depot"),
            center_lat=Decimal("-6.20000000"),
            center_lng=Decimal("106.81666600"),
            radius=radius,
            **kwargs,
        )


class CheckInTests(AttendanceTestMixin, TestCase):
    def setUp(self):
        self.make_users()
        self.make_depot()

    def test_check_in_inside_zone_creates_pending_record(self):
        lat, lng = meters_north(40)
        record = check_in(self.kurir, lat, lng)

        self.assertEqual(record.status, AttendanceRecord.Status.PENDING)
        self.assertEqual(record.date, timezone.localdate())
        self.assertIsNotNone(record.check_in_time)
        self.assertIsNone(record.check_out_time)
        self.assertAlmostEqual(float(record.check_in_lat), lat, places=6)

    @override_settings(ATTENDANCE_INITIAL_STATUS="present")
    def test_initial_status_is_configurable(self):
        record = check_in(self.kurir, DEPOT_LAT, DEPOT_LNG)
        self.assertEqual(record.status, AttendanceRecord.Status.PRESENT)

    def test_check_in_outside_zone_is_rejected(self):
        lat, lng = meters_north(60)
        with self.assertRaisesMessage(OutsideGeofenceError, "Check-in location is outside allowed area"):
            check_in(self.kurir, lat, lng)
        self.assertFalse(AttendanceRecord.objects.exists())

    def test_inactive_zone_does_not_count(self):
        GeofenceZone.objects.update(is_active=False)
        with self.assertRaises(OutsideGeofenceError):
            check_in(self.kurir, DEPOT_LAT, DEPOT_LNG)

    def test_second_check_in_is_duplicate(self):
        check_in(self.kurir, DEPOT_LAT, DEPOT_LNG)
        with self.assertRaisesMessage(DuplicateCheckInError, "Already checked in today"):
            check_in(self.kurir, DEPOT_LAT, DEPOT_LNG)
        self.assertEqual(AttendanceRecord.objects.filter(kurir=self.kurir).count(), 1)

    def test_duplicate_reported_even_without_zones(self):
        check_in(self.kurir, DEPOT_LAT, DEPOT_LNG)
        GeofenceZone.objects.all().delete()

        with self.assertRaises(DuplicateCheckInError):
            check_in(self.kurir, 10, 10)

    def test_check_in_requires_valid_coordinates(self):
        with self.assertRaises(ValidationError):
            check_in(self.kurir, None, DEPOT_LNG)
        with self.assertRaises(ValidationError):
            check_in(self.kurir, "north", DEPOT_LNG)
        with self.assertRaises(ValidationError):
            check_in(self.kurir, 91, DEPOT_LNG)

    def test_only_couriers_check_in(self):
        with self.assertRaises(ForbiddenError):
            check_in(self.pic, DEPOT_LAT, DEPOT_LNG)


class CheckOutTests(AttendanceTestMixin, TestCase):
    def setUp(self):
        self.make_users()
        self.make_depot()

    def test_check_out_without_check_in(self):
        with self.assertRaisesMessage(NoCheckInError, "No check-in record found for today"):
            check_out(self.kurir, DEPOT_LAT, DEPOT_LNG)

    def test_check_out_records_time_and_keeps_status(self):
        check_in(self.kurir, DEPOT_LAT, DEPOT_LNG)
        record = check_out(self.kurir, DEPOT_LAT, DEPOT_LNG)

        self.assertIsNotNone(record.check_out_time)
        self.assertGreaterEqual(record.check_out_time, record.check_in_time)
        self.assertEqual(record.status, AttendanceRecord.Status.PENDING)

    def test_second_check_out_is_duplicate(self):
        check_in(self.kurir, DEPOT_LAT, DEPOT_LNG)
        check_out(self.kurir, DEPOT_LAT, DEPOT_LNG)
        with self.assertRaisesMessage(DuplicateCheckOutError, "Already checked out today"):
            check_out(self.kurir, DEPOT_LAT, DEPOT_LNG)

    def test_check_out_outside_zone(self):
        check_in(self.kurir, DEPOT_LAT, DEPOT_LNG)
        lat, lng = meters_north(500)
        with self.assertRaises(OutsideGeofenceError):
            check_out(self.kurir, lat, lng)

        self.assertIsNone(today_record(self.kurir).check_out_time)

    def test_absent_record_cannot_be_checked_out(self):
        AttendanceRecord.objects.create(
            kurir=self.kurir,
            date=timezone.localdate(),
            status=AttendanceRecord.Status.ABSENT,
        )
        with self.assertRaises(NoCheckInError):
            check_out(self.kurir, DEPOT_LAT, DEPOT_LNG)


class ReviewTests(AttendanceTestMixin, TestCase):
    def setUp(self):
        self.make_users()
        self.make_depot()
        self.record = check_in(self.kurir, DEPOT_LAT, DEPOT_LNG)

    def test_reviewer_approves_pending_record(self):
        reviewed = review(self.record.pk, self.pic, "approved", note="On time")

        self.assertEqual(reviewed.status, AttendanceRecord.Status.APPROVED)
        self.assertEqual(reviewed.approved_by_id, self.pic.id)
        self.assertIsNotNone(reviewed.reviewed_at)
        self.assertEqual(reviewed.notes, "On time")

    def test_review_is_one_shot(self):
        review(self.record.pk, self.pic, "approved")
        with self.assertRaises(NotPendingError):
            review(self.record.pk, self.pic, "rejected")

        self.record.refresh_from_db()
        self.assertEqual(self.record.status, AttendanceRecord.Status.APPROVED)

    def test_reject_present_record(self):
        AttendanceRecord.objects.filter(pk=self.record.pk).update(status=AttendanceRecord.Status.PRESENT)
        reviewed = review(self.record.pk, self.pic, "rejected")
        self.assertEqual(reviewed.status, AttendanceRecord.Status.REJECTED)

    def test_absent_record_is_not_reviewable(self):
        absent = AttendanceRecord.objects.create(
            kurir=self.other_kurir,
            date=timezone.localdate(),
            status=AttendanceRecord.Status.ABSENT,
        )
        with self.assertRaises(NotPendingError):
            review(absent.pk, self.pic, "approved")

    def test_only_reviewers_may_review(self):
        with self.assertRaises(ForbiddenError):
            review(self.record.pk, self.admin, "approved")
        with self.assertRaises(ForbiddenError):
            review(self.record.pk, self.other_kurir, "approved")

    def test_reviewer_cannot_review_own_record(self):
        own = AttendanceRecord.objects.create(
            kurir=self.pic,
            date=timezone.localdate(),
            check_in_time=timezone.now(),
        )
        with self.assertRaises(ForbiddenError):
            review(own.pk, self.pic, "approved")

        own.refresh_from_db()
        self.assertEqual(own.status, AttendanceRecord.Status.PENDING)

    def test_invalid_decision_and_unknown_record(self):
        with self.assertRaises(ValidationError):
            review(self.record.pk, self.pic, "pending")
        with self.assertRaises(NotFoundError):
            review("00000000-0000-0000-0000-000000000000", self.pic, "approved")


class MarkAbsentTests(AttendanceTestMixin, TestCase):
    def setUp(self):
        self.make_users()
        self.make_depot()

    def test_marks_couriers_without_record(self):
        check_in(self.kurir, DEPOT_LAT, DEPOT_LNG)

        created = mark_absent()

        self.assertEqual(created, 1)
        absent = AttendanceRecord.objects.get(kurir=self.other_kurir)
        self.assertEqual(absent.status, AttendanceRecord.Status.ABSENT)
        self.assertIsNone(absent.check_in_time)
        self.assertEqual(
            AttendanceRecord.objects.get(kurir=self.kurir).status,
            AttendanceRecord.Status.PENDING,
        )
        self.assertFalse(AttendanceRecord.objects.filter(kurir=self.pic).exists())

    def test_sweep_is_idempotent(self):
        mark_absent()
        self.assertEqual(mark_absent(), 0)

    def test_management_command_accepts_date(self):
        yesterday = timezone.localdate() - timedelta(days=1)
        out = StringIO()

        call_command("mark_absent", "--date", yesterday.isoformat(), stdout=out)

        self.assertIn("Marked 2 courier(s) absent", out.getvalue())
        self.assertEqual(AttendanceRecord.objects.filter(date=yesterday).count(), 2)

    def test_management_command_rejects_bad_date(self):
        with self.assertRaises(CommandError):
            call_command("mark_absent", "--date", "yesterday")

    def test_records_between_rejects_inverted_range(self):
        today = timezone.localdate()
        with self.assertRaises(ValidationError):
            records_between(today, today - timedelta(days=1))


class AttendanceEndpointTests(AttendanceTestMixin, TestCase):
    def setUp(self):
        self.client = APIClient()
        self.make_users()
        self.make_depot()

    def test_check_in_and_out_flow(self):
        self.client.force_authenticate(user=self.kurir)

        response = self.client.post("/attendance/checkin/", {"lat": DEPOT_LAT, "lng": DEPOT_LNG}, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["status"], "pending")

        again = self.client.post("/attendance/checkin/", {"lat": DEPOT_LAT, "lng": DEPOT_LNG}, format="json")
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)

        today = self.client.get("/attendance/today/")
        self.assertEqual(today.data["record"]["id"], response.data["id"])

        out = self.client.post("/attendance/checkout/", {"lat": DEPOT_LAT, "lng": DEPOT_LNG}, format="json")
        self.assertEqual(out.status_code, status.HTTP_200_OK, out.data)
        self.assertIsNotNone(out.data["check_out_time"])

    def test_check_in_outside_zone_returns_400(self):
        self.client.force_authenticate(user=self.kurir)
        lat, lng = meters_north(1000)
        response = self.client.post("/attendance/checkin/", {"lat": lat, "lng": lng}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["detail"], "Check-in location is outside allowed area")

    def test_today_without_record(self):
        self.client.force_authenticate(user=self.kurir)
        response = self.client.get("/attendance/today/")
        self.assertIsNone(response.data["record"])

    def test_review_endpoint(self):
        record = check_in(self.kurir, DEPOT_LAT, DEPOT_LNG)

        self.client.force_authenticate(user=self.kurir)
        denied = self.client.put(f"/attendance/{record.pk}/approve/", {"status": "approved"}, format="json")
        self.assertEqual(denied.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.pic)
        response = self.client.put(
            f"/attendance/{record.pk}/approve/",
            {"status": "approved", "notes": "ok"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], "approved")

        again = self.client.put(f"/attendance/{record.pk}/approve/", {"status": "rejected"}, format="json")
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)

    def test_list_by_date_range(self):
        check_in(self.kurir, DEPOT_LAT, DEPOT_LNG)
        mark_absent(timezone.localdate() - timedelta(days=3))

        self.client.force_authenticate(user=self.admin)
        today = timezone.localdate().isoformat()
        response = self.client.get("/attendance/", {"start": today, "end": today})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

        start = (timezone.localdate() - timedelta(days=7)).isoformat()
        response = self.client.get("/attendance/", {"start": start, "end": today})
        self.assertEqual(len(response.data), 3)

        response = self.client.get("/attendance/", {"start": "not-a-date"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        self.client.force_authenticate(user=self.kurir)
        response = self.client.get("/attendance/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class CheckInConcurrencyTests(AttendanceTestMixin, TransactionTestCase):
    reset_sequences = True

    def setUp(self):
        self.make_users()
        self.make_depot()

    def _attempt_check_in(self, barrier):
        close_old_connections()
        try:
            barrier.wait(timeout=5)
            record = check_in(self.kurir, DEPOT_LAT, DEPOT_LNG)
            return ("ok", str(record.id))
        except Exception as exc:
            return ("err", f"{type(exc).__name__}: {exc}")
        finally:
            close_old_connections()

    def test_double_submit_creates_one_record(self):
        barrier = threading.Barrier(2)

        with ThreadPoolExecutor(max_workers=2) as executor:
            futures = [executor.submit(self._attempt_check_in, barrier) for _ in range(2)]
            results = [f.result(timeout=30) for f in futures]

        outcomes = sorted(r[0] if r[0] == "ok" else r[1] for r in results)
        self.assertEqual(outcomes, ["DuplicateCheckInError: Already checked in today", "ok"], results)
        self.assertEqual(AttendanceRecord.objects.filter(kurir=self.kurir).count(), 1)
