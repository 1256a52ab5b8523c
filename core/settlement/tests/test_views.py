"""
Settlement View Tests

Operator activation endpoint: role-claim authorization, error format and the
end-to-end settlement through the API.
"""

from django.contrib.auth.models import User
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from core.accounts.models import Account
from core.accounts.serializers import RoleTokenObtainPairSerializer
from core.settlement.models import ActivationRequest, Partner, Sale

PROCESS_URL = "/api/settlement/activation-requests/process/"
LIST_URL = "/api/settlement/activation-requests/"


def access_token_for(user) -> str:
    return str(RoleTokenObtainPairSerializer.get_token(user).access_token)


class ProcessActivationRequestViewTests(APITestCase):
    @classmethod
    def setUpTestData(cls):
        cls.admin = User.objects.create_user(username="operator", password="Musterpassword")
        Account.objects.filter(user=cls.admin).update(role=Account.Role.ADMIN)

        cls.member = User.objects.create_user(username="member", password="Musterpassword")
        cls.buyer = User.objects.create_user(username="buyer", password="Musterpassword")

        cls.affiliate = Partner.objects.create(
            name="Affiliate P1",
            partner_type=Partner.PartnerType.AFFILIATE,
            referral_code="ABC",
        )

    def setUp(self):
        self.client = APIClient()
        self.activation_request = ActivationRequest.objects.create(
            user=self.buyer, affiliate_code="ABC"
        )

    def _login(self, user):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {access_token_for(user)}")

    def _process(self, **body):
        body.setdefault("requestId", self.activation_request.pk)
        return self.client.post(PROCESS_URL, body, format="json")

    def _assert_untouched(self):
        self.activation_request.refresh_from_db()
        self.assertEqual(self.activation_request.status, ActivationRequest.Status.PENDING)
        self.assertFalse(Account.objects.get(user=self.buyer).has_paid_access)
        self.assertFalse(Sale.objects.exists())

    def test_admin_processes_request(self):
        self._login(self.admin)

        response = self._process(userId=str(self.buyer.pk))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.json()["success"])
        self.assertEqual(response.json()["partnerCredited"], str(self.affiliate.pk))

        self.activation_request.refresh_from_db()
        self.assertEqual(self.activation_request.status, ActivationRequest.Status.COMPLETED)
        self.assertEqual(self.activation_request.processed_by, str(self.admin.pk))
        self.assertTrue(Account.objects.get(user=self.buyer).has_paid_access)

    def test_admin_token_in_cookie_is_accepted(self):
        self.client.cookies["access_token"] = access_token_for(self.admin)

        response = self._process()

        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_unauthenticated_caller_is_rejected(self):
        response = self._process()

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()["error"]["kind"], "unauthenticated")
        self._assert_untouched()

    def test_invalid_token_is_rejected(self):
        self.client.credentials(HTTP_AUTHORIZATION="Bearer not-a-token")

        response = self._process()

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()["error"]["kind"], "unauthenticated")
        self._assert_untouched()

    def test_non_admin_caller_is_denied(self):
        self._login(self.member)

        response = self._process()

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.json()["error"]["kind"], "permission-denied")
        self.assertFalse(response.json()["success"])
        self._assert_untouched()

    def test_role_is_read_from_token_not_database(self):
        token = access_token_for(self.member)
        Account.objects.filter(user=self.member).update(role=Account.Role.ADMIN)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

        response = self._process()

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self._assert_untouched()

    def test_missing_request_id_is_invalid(self):
        self._login(self.admin)

        response = self.client.post(PROCESS_URL, {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["error"]["kind"], "invalid-argument")
        self.assertEqual(response.json()["error"]["field"], "requestId")

    def test_unknown_request_is_not_found(self):
        self._login(self.admin)

        response = self._process(requestId="unknown")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()["error"]["kind"], "not-found")

    def test_second_call_is_rejected_and_credits_once(self):
        self._login(self.admin)

        first = self._process()
        second = self._process()

        self.assertEqual(first.status_code, status.HTTP_200_OK)
        self.assertEqual(second.status_code, status.HTTP_404_NOT_FOUND)
        self.affiliate.refresh_from_db()
        self.assertEqual(self.affiliate.monthly_sales, 1)
        self.assertEqual(self.affiliate.monthly_commission, 60000)
        self.assertEqual(Account.objects.get(user=self.buyer).test_attempts_remaining, 1)

    def test_discount_code_is_an_alias_for_affiliate_code(self):
        self.activation_request.affiliate_code = None
        self.activation_request.save()
        self._login(self.admin)

        response = self._process(discountCode="abc")

        self.assertEqual(response.json()["partnerCredited"], str(self.affiliate.pk))

    def test_user_mismatch_is_invalid(self):
        self._login(self.admin)

        response = self._process(userId=str(self.member.pk))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self._assert_untouched()


class PendingActivationRequestListViewTests(APITestCase):
    @classmethod
    def setUpTestData(cls):
        cls.admin = User.objects.create_user(username="operator", password="Musterpassword")
        Account.objects.filter(user=cls.admin).update(role=Account.Role.ADMIN)
        cls.member = User.objects.create_user(username="member", password="Musterpassword")

        cls.pending = ActivationRequest.objects.create(user=cls.member)
        cls.completed = ActivationRequest.objects.create(
            user=cls.member, status=ActivationRequest.Status.COMPLETED
        )

    def test_lists_pending_requests_by_default(self):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {access_token_for(self.admin)}")

        response = self.client.get(LIST_URL)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row["id"] for row in response.json()], [self.pending.pk])

    def test_filters_by_status(self):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {access_token_for(self.admin)}")

        response = self.client.get(LIST_URL, {"status": "completed"})

        self.assertEqual([row["id"] for row in response.json()], [self.completed.pk])

    def test_rejects_unknown_status(self):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {access_token_for(self.admin)}")

        response = self.client.get(LIST_URL, {"status": "refunded"})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_requires_admin_claim(self):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {access_token_for(self.member)}")

        response = self.client.get(LIST_URL)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
