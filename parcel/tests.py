import re
import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from unittest.mock import patch

from django.db import DatabaseError, close_old_connections
from django.test import TestCase, TransactionTestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from account.models import User
from attendance.models import AttendanceRecord
from core.exceptions import (
    ConflictError,
    ForbiddenError,
    IllegalTransitionError,
    InvalidScanError,
    NotFoundError,
    ValidationError,
)
from parcel.lifecycle import TERMINAL_STATUSES, TRANSITIONS, Event, event_for, next_status
from parcel.models import BarcodeScanLog, Package, PackageStatusHistory
from parcel.selectors import dashboard_metrics
from parcel.services import (
    assign_explicit,
    claim,
    create_package,
    depart,
    fail_package,
    list_available,
    manual_delivery,
    manual_pickup,
    recent_scans,
    scan,
    transition,
)

STATUS_ORDER = ["created", "assigned", "picked_up", "in_transit", "delivered"]

RECIPIENT = {
    "recipient_name": "Budi Santoso",
    "recipient_phone": "081234567890",
    "recipient_address": "Jl. Sudirman No. 1, Jakarta",
}


class ParcelTestMixin:
    def make_users(self):
        self.admin = User.objects.create_user(username="admin_parcel", password="Pass123!", role="admin")
        self.pic = User.objects.create_user(username="pic_parcel", password="Pass123!", role="pic")
        self.kurir1 = User.objects.create_user(username="kurir_one", password="Pass123!", role="kurir")
        self.kurir2 = User.objects.create_user(username="kurir_two", password="Pass123!", role="kurir")

    def make_package(self, **overrides):
        fields = dict(RECIPIENT)
        fields.update(overrides)
        return create_package(created_by=self.admin, **fields)

    def assertAssigneeInvariant(self, package):
        package.refresh_from_db()
        if package.status == Package.Status.CREATED:
            self.assertIsNone(package.assigned_kurir_id)
        else:
            self.assertIsNotNone(package.assigned_kurir_id)


class LifecycleTableTests(TestCase):
    def test_status_never_regresses(self):
        for (from_status, _), to_status in TRANSITIONS.items():
            if to_status == Package.Status.FAILED:
                continue
            self.assertGreater(STATUS_ORDER.index(to_status), STATUS_ORDER.index(from_status))

    def test_failed_reachable_from_every_post_assignment_state(self):
        for current in ("assigned", "picked_up", "in_transit"):
            self.assertEqual(next_status(current, Event.FAIL), "failed")
        self.assertIsNone(next_status("created", Event.FAIL))

    def test_terminal_states_have_no_exits(self):
        for terminal in TERMINAL_STATUSES:
            for event in Event.values:
                self.assertIsNone(next_status(terminal, event))

    def test_next_status_follows_events(self):
        self.assertEqual(next_status("picked_up", "depart"), "in_transit")
        self.assertIsNone(next_status("picked_up", "deliver"))
        self.assertIsNone(next_status("delivered", "assign"))

    def test_event_for_resolves_target_status(self):
        self.assertEqual(event_for("created", "assigned"), Event.ASSIGN)
        self.assertEqual(event_for("in_transit", "failed"), Event.FAIL)
        self.assertIsNone(event_for("picked_up", "delivered"))
        self.assertIsNone(event_for("created", "failed"))


class PackageRegistryTests(ParcelTestMixin, TestCase):
    def setUp(self):
        self.make_users()

    def test_create_generates_identifiers_and_starts_unassigned(self):
        package = self.make_package(weight="2.5", declared_value=150000, priority="urgent")

        self.assertRegex(package.package_id, r"^PKG-\d{13}-[0-9A-F]{6}$")
        self.assertTrue(package.barcode.startswith(package.package_id + "-"))
        self.assertTrue(re.fullmatch(r"\d{6}", package.barcode.rsplit("-", 1)[1]))
        self.assertEqual(package.status, Package.Status.CREATED)
        self.assertIsNone(package.assigned_kurir_id)
        self.assertEqual(package.weight, Decimal("2.50"))
        self.assertEqual(package.created_by_id, self.admin.id)

    def test_identifiers_are_unique(self):
        first = self.make_package()
        second = self.make_package()
        self.assertNotEqual(first.package_id, second.package_id)
        self.assertNotEqual(first.barcode, second.barcode)

    def test_create_requires_recipient_fields(self):
        with self.assertRaisesMessage(ValidationError, "recipient_address"):
            create_package(
                created_by=self.admin,
                recipient_name="Budi",
                recipient_phone="0812",
                recipient_address="   ",
            )
        self.assertEqual(Package.objects.count(), 0)

    def test_create_rejects_unusable_weight(self):
        for weight in ("NaN", "sNaN", "Infinity", "-Infinity", "heavy", "-1", "1e12", "1e40", "99999999.999"):
            with self.assertRaises(ValidationError, msg=weight):
                self.make_package(weight=weight)
        self.assertEqual(Package.objects.count(), 0)

    def test_create_endpoint_rejects_nan_weight(self):
        client = APIClient()
        client.force_authenticate(user=self.admin)
        response = client.post("/packages/", dict(RECIPIENT, weight="NaN"), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["detail"], "weight must be a number")

    def test_create_rejects_unknown_priority(self):
        with self.assertRaises(ValidationError):
            self.make_package(priority="whenever")

    def test_transition_appends_one_history_row(self):
        package = self.make_package()
        transition(package.pk, "assigned", self.admin, "manual", assign_to=self.kurir1)

        history = list(PackageStatusHistory.objects.filter(package=package))
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0].from_status, "created")
        self.assertEqual(history[0].to_status, "assigned")
        self.assertEqual(history[0].changed_by_id, self.admin.id)
        self.assertEqual(history[0].notes, "manual")

    def test_transition_to_assigned_requires_courier(self):
        package = self.make_package()
        with self.assertRaises(ValidationError):
            transition(package.pk, "assigned", self.admin)
        self.assertAssigneeInvariant(package)

    def test_illegal_transition_is_rejected(self):
        package = self.make_package()
        with self.assertRaises(IllegalTransitionError):
            transition(package.pk, "delivered", self.admin)
        with self.assertRaises(IllegalTransitionError):
            transition(package.pk, "failed", self.admin)

        package.refresh_from_db()
        self.assertEqual(package.status, Package.Status.CREATED)
        self.assertFalse(PackageStatusHistory.objects.exists())

    def test_delivered_cannot_go_back_to_assigned(self):
        package = self.make_package()
        transition(package.pk, "assigned", self.admin, assign_to=self.kurir1)
        transition(package.pk, "picked_up", self.kurir1)
        transition(package.pk, "in_transit", self.kurir1)
        delivered = transition(package.pk, "delivered", self.kurir1)
        self.assertIsNotNone(delivered.delivered_at)

        with self.assertRaisesMessage(IllegalTransitionError, "Package is already delivered"):
            transition(package.pk, "assigned", self.admin, assign_to=self.kurir2)
        with self.assertRaises(IllegalTransitionError):
            transition(package.pk, "failed", self.admin)

    def test_unknown_package_and_status(self):
        package = self.make_package()
        with self.assertRaises(NotFoundError):
            transition("00000000-0000-0000-0000-000000000000", "assigned", self.admin)
        with self.assertRaises(ValidationError):
            transition(package.pk, "lost", self.admin)

    def test_status_update_rolls_back_when_history_append_fails(self):
        package = self.make_package()
        with patch.object(PackageStatusHistory.objects, "create", side_effect=DatabaseError("disk full")):
            with self.assertRaises(DatabaseError):
                transition(package.pk, "assigned", self.admin, assign_to=self.kurir1)

        package.refresh_from_db()
        self.assertEqual(package.status, Package.Status.CREATED)
        self.assertIsNone(package.assigned_kurir_id)

    def test_history_rows_are_append_only(self):
        package = self.make_package()
        transition(package.pk, "assigned", self.admin, assign_to=self.kurir1)
        entry = PackageStatusHistory.objects.get(package=package)

        entry.notes = "rewritten"
        with self.assertRaises(ValueError):
            entry.save()
        with self.assertRaises(ValueError):
            entry.delete()

    def test_fail_by_assigned_courier_or_staff(self):
        package = self.make_package()
        claim(package.pk, self.kurir1)

        with self.assertRaises(ForbiddenError):
            fail_package(package.pk, self.kurir2, "not mine")

        failed = fail_package(package.pk, self.kurir1, "recipient unreachable")
        self.assertEqual(failed.status, Package.Status.FAILED)
        self.assertEqual(failed.assigned_kurir_id, self.kurir1.id)

        with self.assertRaises(IllegalTransitionError):
            fail_package(package.pk, self.admin)


class AssignmentArbiterTests(ParcelTestMixin, TestCase):
    def setUp(self):
        self.make_users()

    def test_claim_assigns_package_to_courier(self):
        package = self.make_package()
        claimed = claim(package.pk, self.kurir1)

        self.assertEqual(claimed.status, Package.Status.ASSIGNED)
        self.assertEqual(claimed.assigned_kurir_id, self.kurir1.id)
        entry = PackageStatusHistory.objects.get(package=package)
        self.assertEqual(entry.notes, "claimed by courier")
        self.assertEqual(entry.changed_by_id, self.kurir1.id)

    def test_second_claim_is_a_conflict(self):
        package = self.make_package()
        claim(package.pk, self.kurir1)

        with self.assertRaisesMessage(ConflictError, "Package already taken"):
            claim(package.pk, self.kurir2)

        package.refresh_from_db()
        self.assertEqual(package.assigned_kurir_id, self.kurir1.id)
        self.assertEqual(PackageStatusHistory.objects.filter(package=package).count(), 1)

    def test_stale_read_loses_the_conditional_write(self):
        package = self.make_package()
        stale = Package.objects.get(pk=package.pk)
        claim(package.pk, self.kurir1)

        real_filter = Package.objects.filter

        def filter_with_stale_read(*args, **kwargs):
            # The second claimant read the package before the first write landed.
            if kwargs == {"pk": package.pk}:
                return _Stale(stale)
            return real_filter(*args, **kwargs)

        with patch.object(Package.objects, "filter", side_effect=filter_with_stale_read):
            with self.assertRaises(ConflictError):
                transition(package.pk, "assigned", self.kurir2, assign_to=self.kurir2)

        package.refresh_from_db()
        self.assertEqual(package.assigned_kurir_id, self.kurir1.id)

    def test_assign_explicit_by_staff(self):
        package = self.make_package()
        assigned = assign_explicit(package.pk, self.kurir2, self.admin)

        self.assertEqual(assigned.assigned_kurir_id, self.kurir2.id)
        entry = PackageStatusHistory.objects.get(package=package)
        self.assertEqual(entry.notes, "assigned by staff")
        self.assertEqual(entry.changed_by_id, self.admin.id)

    def test_assign_explicit_never_overwrites(self):
        package = self.make_package()
        claim(package.pk, self.kurir1)

        with self.assertRaises(ConflictError):
            assign_explicit(package.pk, self.kurir2, self.admin)

        package.refresh_from_db()
        self.assertEqual(package.assigned_kurir_id, self.kurir1.id)

    def test_assign_explicit_requires_staff_and_courier(self):
        package = self.make_package()
        with self.assertRaises(ForbiddenError):
            assign_explicit(package.pk, self.kurir2, self.kurir1)
        with self.assertRaises(ValidationError):
            assign_explicit(package.pk, self.pic, self.admin)

        self.kurir2.is_active = False
        self.kurir2.save()
        with self.assertRaises(ValidationError):
            assign_explicit(package.pk, self.kurir2, self.admin)
        self.assertAssigneeInvariant(package)

    def test_non_courier_cannot_claim(self):
        package = self.make_package()
        with self.assertRaises(ForbiddenError):
            claim(package.pk, self.admin)

    def test_claim_unknown_package(self):
        with self.assertRaises(NotFoundError):
            claim("00000000-0000-0000-0000-000000000000", self.kurir1)

    def test_list_available_orders_by_priority(self):
        normal = self.make_package()
        urgent = self.make_package(priority="urgent")
        high = self.make_package(priority="high")
        taken = self.make_package(priority="urgent")
        claim(taken.pk, self.kurir1)

        available = [p.pk for p in list_available()]

        self.assertEqual(available, [urgent.pk, high.pk, normal.pk])


class _Stale:
    """Queryset stand-in returning a package snapshot read before a competing write."""

    def __init__(self, package):
        self.package = package

    def first(self):
        return self.package


class ScanProcessorTests(ParcelTestMixin, TestCase):
    def setUp(self):
        self.make_users()
        self.package = self.make_package()

    def test_pickup_scan_requires_assigned_status(self):
        with self.assertRaises(InvalidScanError):
            scan(self.package.barcode, self.kurir1, "pickup")

        claim(self.package.pk, self.kurir1)
        picked = scan(self.package.barcode, self.kurir1, "pickup")
        self.assertEqual(picked.status, Package.Status.PICKED_UP)

        with self.assertRaisesMessage(InvalidScanError, "expected status 'assigned', found 'picked_up'"):
            scan(self.package.barcode, self.kurir1, "pickup")

    def test_scan_by_other_courier_is_forbidden(self):
        claim(self.package.pk, self.kurir1)
        with self.assertRaises(ForbiddenError):
            scan(self.package.barcode, self.kurir2, "pickup")
        self.assertFalse(BarcodeScanLog.objects.exists())

    def test_unknown_barcode_and_scan_type(self):
        with self.assertRaises(NotFoundError):
            scan("PKG-0000", self.kurir1, "pickup")
        with self.assertRaises(ValidationError):
            scan(self.package.barcode, self.kurir1, "teleport")
        with self.assertRaises(ValidationError):
            scan("", self.kurir1, "pickup")

    def test_scan_records_location_when_available(self):
        claim(self.package.pk, self.kurir1)
        scan(self.package.barcode, self.kurir1, "pickup", location={"lat": -6.2, "lng": 106.8})

        log = BarcodeScanLog.objects.get(package=self.package)
        self.assertEqual(log.location, {"lat": -6.2, "lng": 106.8})
        self.assertFalse(log.is_manual)
        history = PackageStatusHistory.objects.filter(package=self.package).last()
        self.assertEqual(history.location, {"lat": -6.2, "lng": 106.8})

    def test_scan_without_usable_location_still_succeeds(self):
        claim(self.package.pk, self.kurir1)
        scan(self.package.barcode, self.kurir1, "pickup", location={"lat": "denied"})

        log = BarcodeScanLog.objects.get(package=self.package)
        self.assertIsNone(log.location)

    def test_depart_requires_pickup(self):
        claim(self.package.pk, self.kurir1)
        with self.assertRaises(IllegalTransitionError):
            depart(self.package.pk, self.kurir1)

        scan(self.package.barcode, self.kurir1, "pickup")
        with self.assertRaises(ForbiddenError):
            depart(self.package.pk, self.kurir2)

        in_transit = depart(self.package.pk, self.kurir1)
        self.assertEqual(in_transit.status, Package.Status.IN_TRANSIT)

    def test_manual_delivery_requires_notes(self):
        claim(self.package.pk, self.kurir1)
        manual_pickup(self.package.pk, self.kurir1)
        depart(self.package.pk, self.kurir1)

        with self.assertRaisesMessage(ValidationError, "Delivery notes are required"):
            manual_delivery(self.package.pk, self.kurir1, "  ")

        delivered = manual_delivery(self.package.pk, self.kurir1, "Left with security guard")
        self.assertEqual(delivered.status, Package.Status.DELIVERED)
        self.assertIsNotNone(delivered.delivered_at)
        logs = BarcodeScanLog.objects.filter(package=self.package)
        self.assertEqual(logs.count(), 2)
        self.assertTrue(all(log.is_manual for log in logs))
        last = PackageStatusHistory.objects.filter(package=self.package).last()
        self.assertEqual(last.notes, "Left with security guard")

    def test_recent_scans_newest_first(self):
        claim(self.package.pk, self.kurir1)
        scan(self.package.barcode, self.kurir1, "pickup")
        depart(self.package.pk, self.kurir1)
        scan(self.package.barcode, self.kurir1, "delivery")

        scans = recent_scans(limit=5)
        self.assertEqual([s.scan_type for s in scans], ["delivery", "pickup"])
        self.assertEqual(recent_scans(scanned_by=self.kurir2), [])

    def test_end_to_end_delivery(self):
        self.assertEqual(self.package.status, Package.Status.CREATED)

        claimed = claim(self.package.pk, self.kurir1)
        self.assertEqual(claimed.assigned_kurir_id, self.kurir1.id)
        with self.assertRaises(ConflictError):
            claim(self.package.pk, self.kurir2)

        picked = scan(self.package.barcode, self.kurir1, "pickup")
        self.assertEqual(picked.status, Package.Status.PICKED_UP)
        self.assertEqual(BarcodeScanLog.objects.filter(package=self.package).count(), 1)
        self.assertEqual(
            PackageStatusHistory.objects.filter(package=self.package, to_status="picked_up").count(),
            1,
        )

        with self.assertRaises(InvalidScanError):
            scan(self.package.barcode, self.kurir1, "delivery")

        depart(self.package.pk, self.kurir1)
        delivered = scan(self.package.barcode, self.kurir1, "delivery")

        self.assertEqual(delivered.status, Package.Status.DELIVERED)
        self.assertIsNotNone(delivered.delivered_at)
        self.assertAssigneeInvariant(delivered)
        self.assertEqual(
            list(
                PackageStatusHistory.objects.filter(package=self.package)
                .order_by("timestamp", "id")
                .values_list("to_status", flat=True)
            ),
            ["assigned", "picked_up", "in_transit", "delivered"],
        )


class DashboardMetricsTests(ParcelTestMixin, TestCase):
    def setUp(self):
        self.make_users()

    def test_metrics_count_active_completed_and_online(self):
        active = self.make_package()
        claim(active.pk, self.kurir1)
        done = self.make_package()
        claim(done.pk, self.kurir2)
        scan(done.barcode, self.kurir2, "pickup")
        depart(done.pk, self.kurir2)
        scan(done.barcode, self.kurir2, "delivery")
        self.make_package()
        AttendanceRecord.objects.create(
            kurir=self.kurir1,
            date=timezone.localdate(),
            check_in_time=timezone.now(),
        )

        metrics = dashboard_metrics()

        self.assertEqual(metrics["active_deliveries"], 1)
        self.assertEqual(metrics["completed_today"], 1)
        self.assertEqual(metrics["kurir_online"], 1)
        self.assertEqual(metrics["total_revenue"], 0)


class PackageEndpointTests(ParcelTestMixin, TestCase):
    def setUp(self):
        self.client = APIClient()
        self.make_users()

    def test_staff_creates_package(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post("/packages/", dict(RECIPIENT, priority="high"), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["status"], "created")
        self.assertIsNone(response.data["assigned_kurir"])
        self.assertTrue(response.data["barcode"])

    def test_create_with_missing_fields_returns_400(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post("/packages/", {"recipient_name": "Budi"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_courier_cannot_create_package(self):
        self.client.force_authenticate(user=self.kurir1)
        response = self.client.post("/packages/", RECIPIENT, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_take_endpoint_conflict(self):
        package = self.make_package()

        self.client.force_authenticate(user=self.kurir1)
        first = self.client.post(f"/packages/{package.pk}/take/")
        self.client.force_authenticate(user=self.kurir2)
        second = self.client.post(f"/packages/{package.pk}/take/")

        self.assertEqual(first.status_code, status.HTTP_200_OK, first.data)
        self.assertEqual(second.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(second.data["detail"], "Package already taken")

    def test_assign_endpoint(self):
        package = self.make_package()
        self.client.force_authenticate(user=self.admin)

        response = self.client.put(
            f"/packages/{package.pk}/assign/",
            {"kurirId": str(self.kurir1.id)},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["assigned_kurir"]["id"], str(self.kurir1.id))

        again = self.client.put(
            f"/packages/{package.pk}/assign/",
            {"kurirId": str(self.kurir2.id)},
            format="json",
        )
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)

        missing = self.client.put(f"/packages/{package.pk}/assign/", {}, format="json")
        self.assertEqual(missing.status_code, status.HTTP_400_BAD_REQUEST)

    def test_scan_and_manual_delivery_endpoints(self):
        package = self.make_package()
        claim(package.pk, self.kurir1)
        self.client.force_authenticate(user=self.kurir1)

        response = self.client.post(
            "/barcode/scan/",
            {"barcode": package.barcode, "scanType": "pickup", "location": {"lat": -6.2, "lng": 106.8}},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["package"]["status"], "picked_up")

        response = self.client.post(f"/packages/{package.pk}/delivery/", {"notes": "too early"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(f"/packages/{package.pk}/depart/", {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)

        response = self.client.post(f"/packages/{package.pk}/delivery/", {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["detail"], "Delivery notes are required")

        response = self.client.post(f"/packages/{package.pk}/delivery/", {"notes": "Received by owner"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], "delivered")

        history = self.client.get(f"/packages/{package.pk}/history/")
        self.assertEqual([h["to_status"] for h in history.data], ["assigned", "picked_up", "in_transit", "delivered"])

    def test_courier_lists_only_own_packages(self):
        mine = self.make_package()
        theirs = self.make_package()
        self.make_package()
        claim(mine.pk, self.kurir1)
        claim(theirs.pk, self.kurir2)

        self.client.force_authenticate(user=self.kurir1)
        response = self.client.get("/packages/")
        self.assertEqual([p["id"] for p in response.data], [str(mine.pk)])

        response = self.client.get("/packages/available/")
        self.assertEqual(len(response.data), 1)

        response = self.client.get(f"/packages/{theirs.pk}/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_dashboard_metrics_endpoint(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get("/dashboard/metrics/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["active_deliveries"], 0)


class ClaimConcurrencyTests(TransactionTestCase):
    reset_sequences = True

    def setUp(self):
        self.admin = User.objects.create_user(username="admin_race", password="Pass123!", role="admin")
        self.couriers = [
            User.objects.create_user(username=f"kurir_race_{i}", password="Pass123!", role="kurir")
            for i in range(3)
        ]
        self.package = create_package(created_by=self.admin, **RECIPIENT)

    def _attempt_claim(self, package, kurir, barrier):
        close_old_connections()
        try:
            barrier.wait(timeout=5)
            claimed = claim(package.pk, kurir)
            return ("ok", str(claimed.assigned_kurir_id))
        except Exception as exc:
            return ("err", f"{type(exc).__name__}: {exc}")
        finally:
            close_old_connections()

    def _race(self, package):
        barrier = threading.Barrier(len(self.couriers))
        with ThreadPoolExecutor(max_workers=len(self.couriers)) as executor:
            futures = [executor.submit(self._attempt_claim, package, kurir, barrier) for kurir in self.couriers]
            return [f.result(timeout=30) for f in futures]

    def test_parallel_claims_have_exactly_one_winner(self):
        results = self._race(self.package)

        winners = [r for r in results if r[0] == "ok"]
        losers = [r for r in results if r[0] == "err"]
        self.assertEqual(len(winners), 1, results)
        self.assertEqual(len(losers), len(self.couriers) - 1, results)
        for _, message in losers:
            self.assertEqual(message, "ConflictError: Package already taken", results)

        self.package.refresh_from_db()
        self.assertEqual(self.package.status, Package.Status.ASSIGNED)
        self.assertEqual(str(self.package.assigned_kurir_id), winners[0][1])
        self.assertEqual(PackageStatusHistory.objects.filter(package=self.package).count(), 1)

    def test_repeated_races_never_surface_database_errors(self):
        for _ in range(5):
            package = create_package(created_by=self.admin, **RECIPIENT)
            results = self._race(package)

            outcomes = sorted(r[0] if r[0] == "ok" else r[1] for r in results)
            self.assertEqual(
                outcomes,
                ["ConflictError: Package already taken"] * (len(self.couriers) - 1) + ["ok"],
                results,
            )
