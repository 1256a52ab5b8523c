"""
Xendit Integration Tests

Invoice creation (outbound call mocked at the `requests` boundary) and the
invoice callback receiver.
"""

from decimal import Decimal
from unittest import mock

import requests
from django.contrib.auth.models import User
from django.test import override_settings
from rest_framework import status
from rest_framework.test import APITestCase

from core.accounts.models import Account
from core.accounts.serializers import RoleTokenObtainPairSerializer
from core.settlement.exceptions import InternalFailure
from core.settlement.models import ActivationRequest, Partner, Sale
from core.xendit_integration.views import build_external_id

INVOICE_URL = "/api/payments/xendit/invoices/"
CALLBACK_URL = "/api/payments/xendit/callback/"

XENDIT_SETTINGS = {
    "XENDIT_SECRET_KEY": "xnd_development_secret",
    "XENDIT_WEBHOOK_TOKEN": "callback-token",
    "XENDIT_API_BASE_URL": "https://api.xendit.test",
    "XENDIT_EXTERNAL_ID_PREFIX": "JALANKERJA",
}


def _gateway_response(ok=True, status_code=200, body=None):
    response = mock.Mock()
    response.ok = ok
    response.status_code = status_code
    response.json.return_value = body or {}
    response.text = str(body)
    return response


@override_settings(**XENDIT_SETTINGS)
class CreateInvoiceViewTests(APITestCase):
    @classmethod
    def setUpTestData(cls):
        cls.buyer = User.objects.create_user(username="buyer", password="Musterpassword")

    def setUp(self):
        token = RoleTokenObtainPairSerializer.get_token(self.buyer).access_token
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        self.body = {
            "amount": 150000,
            "payerEmail": "buyer@example.com",
            "description": "Paket tes",
            "promoCode": "abc",
        }

    @mock.patch("core.xendit_integration.client.requests.post")
    def test_creates_invoice_and_pending_request(self, post):
        post.return_value = _gateway_response(
            body={"id": "inv_1", "invoice_url": "https://checkout.xendit.co/web/inv_1"}
        )

        response = self.client.post(INVOICE_URL, self.body, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["invoice_url"], "https://checkout.xendit.co/web/inv_1")

        activation_request = ActivationRequest.objects.get(pk=response.json()["requestId"])
        self.assertEqual(activation_request.status, ActivationRequest.Status.PENDING)
        self.assertEqual(activation_request.source, ActivationRequest.Source.INVOICE)
        self.assertEqual(activation_request.affiliate_code, "ABC")
        self.assertEqual(activation_request.invoice_id, "inv_1")
        self.assertTrue(activation_request.external_id.startswith(f"JALANKERJA-{self.buyer.pk}-"))

        args, kwargs = post.call_args
        self.assertEqual(args[0], "https://api.xendit.test/v2/invoices")
        self.assertEqual(kwargs["auth"], ("xnd_development_secret", ""))
        self.assertEqual(
            kwargs["json"],
            {
                "external_id": activation_request.external_id,
                "amount": 150000,
                "payer_email": "buyer@example.com",
                "description": "Paket tes",
                "metadata": {"userId": str(self.buyer.pk), "promoCode": "ABC"},
            },
        )

    @mock.patch("core.xendit_integration.client.requests.post")
    def test_gateway_failure_returns_500_and_discards_request(self, post):
        post.side_effect = requests.exceptions.ConnectionError("connection refused")

        response = self.client.post(INVOICE_URL, self.body, format="json")

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertIn("error", response.json())
        self.assertFalse(ActivationRequest.objects.exists())

    @mock.patch("core.xendit_integration.client.requests.post")
    def test_gateway_rejection_returns_500(self, post):
        post.return_value = _gateway_response(
            ok=False, status_code=400, body={"error_code": "API_VALIDATION_ERROR"}
        )

        response = self.client.post(INVOICE_URL, self.body, format="json")

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertFalse(ActivationRequest.objects.exists())

    @mock.patch("core.xendit_integration.client.requests.post")
    def test_non_json_gateway_reply_returns_500_and_discards_request(self, post):
        response_mock = _gateway_response()
        response_mock.json.side_effect = requests.exceptions.JSONDecodeError("Expecting value", "", 0)
        post.return_value = response_mock

        response = self.client.post(INVOICE_URL, self.body, format="json")

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.json(), {"error": "Failed to create payment invoice."})
        self.assertFalse(ActivationRequest.objects.exists())

    @mock.patch("core.xendit_integration.client.requests.post")
    def test_reply_without_invoice_url_returns_500(self, post):
        post.return_value = _gateway_response(body={"id": "inv_1"})

        response = self.client.post(INVOICE_URL, self.body, format="json")

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertFalse(ActivationRequest.objects.exists())

    @mock.patch(
        "core.xendit_integration.views.XenditClient.create_invoice",
        side_effect=RuntimeError("unexpected"),
    )
    def test_unexpected_error_returns_500_and_discards_request(self, create_invoice):
        response = self.client.post(INVOICE_URL, self.body, format="json")

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertIn("error", response.json())
        self.assertFalse(ActivationRequest.objects.exists())

    @mock.patch("core.xendit_integration.views.time.time", return_value=1718000000.0)
    def test_external_ids_differ_within_same_millisecond(self, _time):
        first = build_external_id(self.buyer.pk)
        second = build_external_id(self.buyer.pk)

        self.assertNotEqual(first, second)
        self.assertTrue(first.startswith(f"JALANKERJA-{self.buyer.pk}-1718000000000-"))

    @override_settings(XENDIT_SECRET_KEY="")
    @mock.patch("core.xendit_integration.client.requests.post")
    def test_missing_secret_key_returns_500(self, post):
        response = self.client.post(INVOICE_URL, self.body, format="json")

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        post.assert_not_called()

    def test_invalid_body_is_rejected(self):
        response = self.client.post(INVOICE_URL, {"amount": 0}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("payerEmail", response.json())
        self.assertFalse(ActivationRequest.objects.exists())

    def test_requires_authentication(self):
        self.client.credentials()

        response = self.client.post(INVOICE_URL, self.body, format="json")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


@override_settings(**XENDIT_SETTINGS)
class XenditCallbackViewTests(APITestCase):
    @classmethod
    def setUpTestData(cls):
        cls.buyer = User.objects.create_user(username="buyer", password="Musterpassword")
        cls.affiliate = Partner.objects.create(
            name="Affiliate P1",
            partner_type=Partner.PartnerType.AFFILIATE,
            referral_code="ABC",
        )

    def setUp(self):
        self.activation_request = ActivationRequest.objects.create(
            user=self.buyer,
            source=ActivationRequest.Source.INVOICE,
            external_id=f"JALANKERJA-{self.buyer.pk}-1718000000000",
            affiliate_code="ABC",
            amount=Decimal("150000"),
        )

    def _payload(self, **overrides):
        payload = {
            "id": "inv_1",
            "external_id": self.activation_request.external_id,
            "status": "PAID",
            "paid_amount": 150000,
            "metadata": {"userId": str(self.buyer.pk), "promoCode": "ABC"},
        }
        payload.update(overrides)
        return payload

    def _callback(self, payload, token="callback-token"):
        headers = {"HTTP_X_CALLBACK_TOKEN": token} if token is not None else {}
        return self.client.post(CALLBACK_URL, payload, format="json", **headers)

    def _assert_not_settled(self):
        self.activation_request.refresh_from_db()
        self.assertEqual(self.activation_request.status, ActivationRequest.Status.PENDING)
        self.assertFalse(Account.objects.get(user=self.buyer).has_paid_access)
        self.assertFalse(Sale.objects.exists())

    def test_paid_callback_settles_request(self):
        response = self._callback(self._payload())

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.content, b"OK")

        self.activation_request.refresh_from_db()
        self.assertEqual(self.activation_request.status, ActivationRequest.Status.COMPLETED)
        self.assertEqual(self.activation_request.processed_by, "xendit-callback")

        account = Account.objects.get(user=self.buyer)
        self.assertTrue(account.has_paid_access)
        self.assertEqual(account.test_attempts_remaining, 1)

        sale = Sale.objects.get(request=self.activation_request)
        self.assertEqual(sale.invoice_id, "inv_1")
        self.assertEqual(sale.amount, Decimal("150000"))
        self.assertEqual(sale.partner, self.affiliate)
        self.assertEqual(sale.code_used, "ABC")

    def test_duplicate_callback_credits_once(self):
        first = self._callback(self._payload())
        second = self._callback(self._payload())

        self.assertEqual(first.status_code, status.HTTP_200_OK)
        self.assertEqual(second.status_code, status.HTTP_200_OK)
        self.affiliate.refresh_from_db()
        self.assertEqual(self.affiliate.monthly_sales, 1)
        self.assertEqual(self.affiliate.monthly_commission, 60000)
        self.assertEqual(Sale.objects.count(), 1)

    def test_invalid_token_is_forbidden(self):
        response = self._callback(self._payload(), token="wrong")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self._assert_not_settled()

    def test_missing_token_is_forbidden(self):
        response = self._callback(self._payload(), token=None)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self._assert_not_settled()

    @override_settings(XENDIT_WEBHOOK_TOKEN="")
    def test_unconfigured_token_rejects_everything(self):
        response = self._callback(self._payload(), token="")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self._assert_not_settled()

    def test_non_paid_status_is_acknowledged_without_action(self):
        response = self._callback(self._payload(status="EXPIRED"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self._assert_not_settled()

    def test_unknown_invoice_is_acknowledged_without_action(self):
        response = self._callback(self._payload(external_id="JALANKERJA-0-0"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self._assert_not_settled()

    def test_user_mismatch_is_acknowledged_without_action(self):
        other = User.objects.create_user(username="other", password="Musterpassword")

        response = self._callback(
            self._payload(metadata={"userId": str(other.pk), "promoCode": "ABC"})
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self._assert_not_settled()

    def test_missing_user_id_is_a_server_error(self):
        response = self._callback(self._payload(metadata={"promoCode": "ABC"}))

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self._assert_not_settled()

    def test_malformed_amount_is_a_server_error(self):
        response = self._callback(self._payload(paid_amount="lots"))

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self._assert_not_settled()

    @mock.patch("core.xendit_integration.views.settle", side_effect=InternalFailure())
    def test_settlement_failure_is_a_server_error(self, settle):
        response = self._callback(self._payload())

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        settle.assert_called_once()

    def test_promo_code_without_partner_still_grants_access(self):
        self.activation_request.affiliate_code = None
        self.activation_request.save()

        response = self._callback(
            self._payload(metadata={"userId": str(self.buyer.pk), "promoCode": "unknown"})
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(Account.objects.get(user=self.buyer).has_paid_access)
        sale = Sale.objects.get(request=self.activation_request)
        self.assertIsNone(sale.partner)
        self.assertEqual(sale.commission, 0)
        self.assertEqual(sale.code_used, "UNKNOWN")
