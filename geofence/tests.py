import math
from decimal import Decimal
from unittest.mock import patch

from django.core.exceptions import ValidationError as DjangoValidationError
from django.forms import modelform_factory
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from account.models import User
from core.exceptions import NotFoundError, ValidationError
from geofence.distance import EARTH_RADIUS_M, haversine_m
from geofence.models import GeofenceZone
from geofence.services import (
    create_zone,
    delete_zone,
    is_within_any_active_zone,
    nearest_zone,
    update_zone,
)

CENTER_LAT = -6.2
CENTER_LNG = 106.816666


def point_north_of(lat, lng, meters):
    return lat + math.degrees(meters / EARTH_RADIUS_M), lng


class DistanceTests(TestCase):
    def test_one_degree_of_longitude_on_the_equator(self):
        self.assertAlmostEqual(haversine_m(0, 0, 0, 1), 111194.93, delta=0.5)

    def test_same_point_is_zero(self):
        self.assertEqual(haversine_m(CENTER_LAT, CENTER_LNG, CENTER_LAT, CENTER_LNG), 0)

    def test_accepts_decimal_coordinates(self):
        distance = haversine_m(Decimal("-6.2"), Decimal("106.8"), -6.2, 106.8)
        self.assertEqual(distance, 0)


class ContainmentTests(TestCase):
    def setUp(self):
        self.zone = GeofenceZone.objects.create(
            name="Depot Jakarta",
            center_lat=Decimal("-6.20000000"),
            center_lng=Decimal("106.81666600"),
            radius=50,
        )

    def test_point_inside_radius(self):
        lat, lng = point_north_of(CENTER_LAT, CENTER_LNG, 49)
        self.assertTrue(is_within_any_active_zone(lat, lng))

    def test_point_outside_radius(self):
        lat, lng = point_north_of(CENTER_LAT, CENTER_LNG, 51)
        self.assertFalse(is_within_any_active_zone(lat, lng))

    def test_boundary_is_inclusive(self):
        with patch("geofence.services.haversine_m", return_value=50.0):
            self.assertTrue(is_within_any_active_zone(0, 0))
        with patch("geofence.services.haversine_m", return_value=50.000001):
            self.assertFalse(is_within_any_active_zone(0, 0))

    def test_inactive_zone_is_ignored(self):
        self.zone.is_active = False
        self.zone.save()
        self.assertFalse(is_within_any_active_zone(CENTER_LAT, CENTER_LNG))
        self.assertIsNone(nearest_zone(CENTER_LAT, CENTER_LNG))

    def test_any_overlapping_zone_is_enough(self):
        lat, lng = point_north_of(CENTER_LAT, CENTER_LNG, 400)
        GeofenceZone.objects.create(
            name="Hub Utara",
            center_lat=Decimal(str(round(lat, 8))),
            center_lng=Decimal("106.81666600"),
            radius=20,
        )
        self.assertTrue(is_within_any_active_zone(lat, lng))

    def test_nearest_zone_returns_closest_active_zone(self):
        far_lat, _ = point_north_of(CENTER_LAT, CENTER_LNG, 3000)
        GeofenceZone.objects.create(
            name="Far Hub",
            center_lat=Decimal(str(round(far_lat, 8))),
            center_lng=Decimal("106.81666600"),
            radius=100,
        )
        lat, lng = point_north_of(CENTER_LAT, CENTER_LNG, 200)

        result = nearest_zone(lat, lng)

        self.assertEqual(result.zone.id, self.zone.id)
        self.assertAlmostEqual(result.distance, 200, delta=0.1)

    def test_nearest_zone_without_zones(self):
        GeofenceZone.objects.all().delete()
        self.assertIsNone(nearest_zone(CENTER_LAT, CENTER_LNG))


class ZoneManagementTests(TestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin_zone", password="Pass123!", role="admin")

    def test_radius_bounds_are_inclusive(self):
        low = create_zone(created_by=self.admin, name="Low", center_lat=1, center_lng=1, radius=10)
        high = create_zone(created_by=self.admin, name="High", center_lat=1, center_lng=1, radius=5000)
        self.assertEqual(low.radius, 10)
        self.assertEqual(high.radius, 5000)

    def test_radius_outside_bounds_is_rejected(self):
        for radius in (9, 5001, "wide"):
            with self.assertRaises(ValidationError):
                create_zone(created_by=self.admin, name="Bad", center_lat=1, center_lng=1, radius=radius)
        self.assertEqual(GeofenceZone.objects.count(), 0)

    def test_missing_fields_are_rejected(self):
        with self.assertRaisesMessage(ValidationError, "Missing required fields: radius"):
            create_zone(created_by=self.admin, name="No radius", center_lat=1, center_lng=1)

    def test_invalid_latitude_is_rejected(self):
        with self.assertRaises(ValidationError):
            create_zone(created_by=self.admin, name="Pole", center_lat=91, center_lng=1, radius=100)

    def test_update_validates_radius(self):
        zone = create_zone(created_by=self.admin, name="Depot", center_lat=1, center_lng=1, radius=100)
        with self.assertRaises(ValidationError):
            update_zone(zone.id, radius=1)
        updated = update_zone(zone.id, radius=250, is_active=False)
        self.assertEqual(updated.radius, 250)
        self.assertFalse(updated.is_active)

    def test_model_validation_enforces_radius_bounds(self):
        for radius in (1, 9, 5001, 100000):
            zone = GeofenceZone(name="Admin form", center_lat=1, center_lng=1, radius=radius)
            with self.assertRaises(DjangoValidationError, msg=radius):
                zone.full_clean()

        GeofenceZone(name="Edge", center_lat=1, center_lng=1, radius=10).full_clean()
        GeofenceZone(name="Edge", center_lat=1, center_lng=1, radius=5000).full_clean()

    def test_admin_form_rejects_radius_out_of_bounds(self):
        ZoneForm = modelform_factory(GeofenceZone, fields=["name", "center_lat", "center_lng", "radius", "is_active"])
        form = ZoneForm(data={"name": "Huge", "center_lat": "1", "center_lng": "1", "radius": "100000", "is_active": "on"})

        self.assertFalse(form.is_valid())
        self.assertIn("radius", form.errors)

    def test_is_active_flag_is_validated(self):
        zone = create_zone(created_by=self.admin, name="Depot", center_lat=1, center_lng=1, radius=100)
        with self.assertRaisesMessage(ValidationError, "is_active must be true or false"):
            update_zone(zone.id, is_active=None)
        with self.assertRaises(ValidationError):
            create_zone(created_by=self.admin, name="Null", center_lat=1, center_lng=1, radius=100, is_active=None)

        updated = update_zone(zone.id, is_active="false")
        self.assertFalse(updated.is_active)
        zone.refresh_from_db()
        self.assertFalse(zone.is_active)

    def test_null_is_active_over_http_is_400(self):
        zone = create_zone(created_by=self.admin, name="Depot", center_lat=1, center_lng=1, radius=100)
        client = APIClient()
        client.force_authenticate(user=self.admin)

        response = client.patch(f"/geofence/{zone.id}/", {"is_active": None}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_is_hard_delete(self):
        zone = create_zone(created_by=self.admin, name="Depot", center_lat=1, center_lng=1, radius=100)
        delete_zone(zone.id)
        self.assertFalse(GeofenceZone.objects.filter(pk=zone.id).exists())
        with self.assertRaises(NotFoundError):
            delete_zone(zone.id)


class GeofenceEndpointTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(username="admin_geo", password="Pass123!", role="admin")
        self.kurir = User.objects.create_user(username="kurir_geo", password="Pass123!", role="kurir")

    def test_staff_can_create_update_and_delete_zone(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            "/geofence/",
            {"name": "Depot", "center_lat": "-6.2", "center_lng": "106.816666", "radius": 50},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        zone_id = response.data["id"]

        response = self.client.patch(f"/geofence/{zone_id}/", {"radius": 75}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["radius"], 75)

        response = self.client.delete(f"/geofence/{zone_id}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_invalid_radius_returns_400(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            "/geofence/",
            {"name": "Depot", "center_lat": "-6.2", "center_lng": "106.8", "radius": 6000},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_courier_cannot_create_zone_but_sees_active_zones(self):
        GeofenceZone.objects.create(name="Active", center_lat=1, center_lng=1, radius=100)
        GeofenceZone.objects.create(name="Retired", center_lat=1, center_lng=1, radius=100, is_active=False)
        self.client.force_authenticate(user=self.kurir)

        response = self.client.post(
            "/geofence/",
            {"name": "Depot", "center_lat": "1", "center_lng": "1", "radius": 50},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.get("/geofence/")
        self.assertEqual([zone["name"] for zone in response.data], ["Active"])

    def test_validate_reports_containment_and_nearest_zone(self):
        GeofenceZone.objects.create(
            name="Depot",
            center_lat=Decimal("-6.20000000"),
            center_lng=Decimal("106.81666600"),
            radius=50,
        )
        lat, lng = point_north_of(CENTER_LAT, CENTER_LNG, 40)
        self.client.force_authenticate(user=self.kurir)

        response = self.client.post("/geofence/validate/", {"lat": lat, "lng": lng}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["within"])
        self.assertEqual(response.data["nearest_zone"]["name"], "Depot")
        self.assertAlmostEqual(response.data["distance"], 40, delta=0.1)
