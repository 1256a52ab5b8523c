from django.contrib.auth.models import User
from django.test import TestCase
from rest_framework import status
from rest_framework_simplejwt.tokens import AccessToken

from .models import Account

"""
    Tests für Account-Erstellung und Token-Ausstellung.
    Das Access Token muss die Rolle als Claim tragen, da die Settlement-Endpunkte
    ausschließlich diesen Claim prüfen.
"""


class AccountSignalTests(TestCase):
    def test_account_is_created_with_user(self):
        user = User.objects.create_user(username="neu", password="Musterpassword")

        account = Account.objects.get(user=user)
        self.assertFalse(account.has_paid_access)
        self.assertEqual(account.test_attempts_remaining, 0)
        self.assertEqual(account.role, Account.Role.USER)
        self.assertFalse(account.is_admin)


class TokenTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username="operator", password="Musterpassword")
        Account.objects.filter(user=cls.user).update(role=Account.Role.ADMIN)

    def test_token_cookies_carry_role_claim(self):
        response = self.client.post(
            "/api/accounts/token/", {"username": "operator", "password": "Musterpassword"}
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertNotIn("access", body)
        self.assertNotIn("refresh", body)
        self.assertEqual(body["role"], "admin")

        access = AccessToken(response.cookies["access_token"].value)
        self.assertEqual(access["role"], "admin")
        self.assertIn("refresh_token", response.cookies)

    def test_wrong_password_is_rejected(self):
        response = self.client.post(
            "/api/accounts/token/", {"username": "operator", "password": "falsch"}
        )

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_token_success(self):
        login = self.client.post(
            "/api/accounts/token/", {"username": "operator", "password": "Musterpassword"}
        )
        self.client.cookies["refresh_token"] = login.cookies["refresh_token"].value

        response = self.client.post("/api/accounts/token/refresh/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("access_token", response.cookies)

    def test_refresh_token_failure(self):
        self.client.cookies["refresh_token"] = "bad token"

        response = self.client.post("/api/accounts/token/refresh/")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_refresh_token_missing(self):
        response = self.client.post("/api/accounts/token/refresh/")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
