from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from storefront.models import Store

User = get_user_model()

PASSWORD = "Tienda-Segura-2024"


class RegisterTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def _register(self, **overrides):
        payload = {
            "email": "Ana@Example.com",
            "password": PASSWORD,
            "store_name": "Dulces Ana",
            "slug": "",
            "whatsapp": "+57 300 111 2233",
        }
        payload.update(overrides)
        return self.client.post("/api/accounts/register/", payload, format="json")

    def test_creates_user_and_store(self):
        response = self._register()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["store"]["slug"], "dulces-ana")

        user = User.objects.get(username="ana@example.com")
        store = Store.objects.get(owner=user)
        self.assertEqual(store.whatsapp, "573001112233")
        self.assertEqual(store.name, "Dulces Ana")

        # Logged in right away
        self.assertEqual(self.client.get("/api/store/").data["slug"], "dulces-ana")

    def test_explicit_slug_is_slugified(self):
        response = self._register(slug="Mi Tienda Bonita")
        self.assertEqual(response.data["store"]["slug"], "mi-tienda-bonita")

    def test_duplicate_slug(self):
        self._register()
        response = APIClient().post("/api/accounts/register/", {
            "email": "otra@example.com",
            "password": PASSWORD,
            "store_name": "Dulces Ana",
            "whatsapp": "3001112233",
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("slug", response.data["errors"])
        self.assertFalse(User.objects.filter(username="otra@example.com").exists())

    def test_duplicate_email(self):
        self._register()
        response = APIClient().post("/api/accounts/register/", {
            "email": "ANA@example.com",
            "password": PASSWORD,
            "store_name": "Otra tienda",
            "whatsapp": "3001112233",
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("email", response.data["errors"])

    def test_weak_password(self):
        response = self._register(password="123")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("password", response.data["errors"])

    def test_invalid_whatsapp(self):
        response = self._register(whatsapp="123")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Store.objects.exists())


class LoginTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        user = User.objects.create_user(username="ana@example.com", email="ana@example.com", password=PASSWORD)
        Store.objects.create(owner=user, name="Dulces Ana", slug="dulces-ana", whatsapp="573001112233")

    def setUp(self):
        self.client = APIClient()

    def test_login_and_logout(self):
        response = self.client.post("/api/accounts/login/", {"email": "ANA@example.com", "password": PASSWORD},
                                    format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get("/api/store/").status_code, status.HTTP_200_OK)

        self.client.post("/api/accounts/logout/")
        self.assertEqual(self.client.get("/api/store/").status_code, status.HTTP_403_FORBIDDEN)

    def test_wrong_password(self):
        response = self.client.post("/api/accounts/login/", {"email": "ana@example.com", "password": "nope"},
                                    format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data["success"])
