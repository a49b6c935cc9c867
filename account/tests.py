from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from account.models import User


class UserModelTests(TestCase):
    def test_create_user_hashes_password(self):
        user = User.objects.create_user(
            username="kurir_hash",
            password="Pass123!",
            full_name="Kurir Hash",
        )

        self.assertNotEqual(user.password, "Pass123!")
        self.assertTrue(user.check_password("Pass123!"))
        self.assertEqual(user.role, User.Role.KURIR)

    def test_create_user_requires_username(self):
        with self.assertRaisesMessage(ValueError, "Users must have a username"):
            User.objects.create_user(username="", password="Pass123!")

    def test_create_superuser_defaults_to_superadmin_role(self):
        user = User.objects.create_superuser(username="root", password="Pass123!")
        self.assertEqual(user.role, User.Role.SUPERADMIN)
        self.assertTrue(user.is_staff_role)

    def test_role_helpers(self):
        admin = User.objects.create_user(username="admin_roles", password="Pass123!", role="admin")
        pic = User.objects.create_user(username="pic_roles", password="Pass123!", role="pic")
        kurir = User.objects.create_user(username="kurir_roles", password="Pass123!", role="kurir")

        self.assertTrue(admin.is_staff_role)
        self.assertFalse(admin.is_reviewer)
        self.assertTrue(pic.is_reviewer)
        self.assertFalse(pic.is_courier)
        self.assertTrue(kurir.is_courier)
        self.assertFalse(kurir.is_staff_role)


class UserEndpointTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(username="admin_users", password="Pass123!", role="admin")
        self.kurir = User.objects.create_user(username="kurir_users", password="Pass123!", role="kurir")
        self.pic = User.objects.create_user(username="pic_users", password="Pass123!", role="pic")

    def test_me_returns_current_user(self):
        self.client.force_authenticate(user=self.kurir)
        response = self.client.get("/auth/me/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["user"]["username"], "kurir_users")
        self.assertNotIn("password", response.data["user"])

    def test_staff_lists_couriers_by_default(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get("/auth/users/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([u["username"] for u in response.data], ["kurir_users"])

        response = self.client.get("/auth/users/?role=pic")
        self.assertEqual([u["username"] for u in response.data], ["pic_users"])

    def test_staff_creates_courier_with_hashed_password(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            "/auth/users/",
            {"username": "kurir_new", "password": "Pass123!", "full_name": "New Kurir", "role": "kurir"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        created = User.objects.get(username="kurir_new")
        self.assertTrue(created.check_password("Pass123!"))

    def test_courier_cannot_manage_users(self):
        self.client.force_authenticate(user=self.kurir)
        response = self.client.get("/auth/users/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_login_returns_token_pair(self):
        response = self.client.post(
            "/auth/login/",
            {"username": "kurir_users", "password": "Pass123!"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertIn("access", response.data)
        self.assertIn("refresh", response.data)
