"""
Xendit Integration Views
========================

Endpoints
---------

1. CreateInvoiceView
   - URL: /api/payments/xendit/invoices/
   - Method: POST
   - Auth: Required
   - Body: {"amount": 150000, "payerEmail": "...", "description": "...", "promoCode": "ABC"}
   - Purpose:
       Records a pending activation request and creates a hosted Xendit
       invoice for it. Returns the invoice URL the frontend redirects to.

2. XenditCallbackView
   - URL: /api/payments/xendit/callback/
   - Method: POST
   - Auth: None (shared `x-callback-token` header)
   - Purpose:
       Receives invoice callbacks. A "PAID" callback settles the matching
       activation request: grants paid access and credits the referral partner.

Callback responses
------------------
- 403 → token missing or wrong
- 200 → processed, ignored status, unknown or already processed invoice
- 500 → malformed payload or database failure (nothing committed; Xendit
        retries the callback)

Xendit retries callbacks that do not get a 2xx answer, so rejections that a
retry cannot fix (duplicates, unknown invoices) are logged and answered 200.
"""

import hmac
import logging
import secrets
import time
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.http import HttpResponse
from rest_framework import serializers, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.settlement.exceptions import (
    InternalFailure,
    InvalidArgument,
    NotFoundOrAlreadyProcessed,
)
from core.settlement.models import ActivationRequest, normalize_code
from core.settlement.services import settle
from core.settlement.store import SettlementStore

from .client import XenditClient, XenditError

logger = logging.getLogger(__name__)

PAID_STATUS = "PAID"
CALLBACK_PROCESSOR = "xendit-callback"


class CreateInvoiceSerializer(serializers.Serializer):
    amount = serializers.IntegerField(min_value=1)
    payerEmail = serializers.EmailField()
    description = serializers.CharField(max_length=255)
    promoCode = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    schoolCode = serializers.CharField(required=False, allow_blank=True, allow_null=True)


def build_external_id(user_id) -> str:
    """Unique reference per invoice: <PREFIX>-<userId>-<epoch ms>-<random hex>."""
    return (
        f"{settings.XENDIT_EXTERNAL_ID_PREFIX}-{user_id}-"
        f"{int(time.time() * 1000)}-{secrets.token_hex(3)}"
    )


class CreateInvoiceView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = CreateInvoiceSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data

        promo_code = normalize_code(data.get("promoCode"))
        activation_request = ActivationRequest.objects.create(
            user=request.user,
            source=ActivationRequest.Source.INVOICE,
            external_id=build_external_id(request.user.id),
            affiliate_code=promo_code,
            school_code=normalize_code(data.get("schoolCode")),
            amount=data["amount"],
        )

        try:
            invoice = XenditClient.from_settings().create_invoice(
                external_id=activation_request.external_id,
                amount=data["amount"],
                payer_email=data["payerEmail"],
                description=data["description"],
                # Returned with the callback; identifies the buyer and referral code
                metadata={"userId": str(request.user.id), "promoCode": promo_code},
            )
        except XenditError as e:
            logger.error(
                "Error creating Xendit invoice for request %s: %s (status=%s, body=%s)",
                activation_request.pk,
                e.message,
                e.status_code,
                e.response_body,
            )
            # No invoice exists for it, so the request can never be paid
            activation_request.delete()
            return Response(
                {"error": "Failed to create payment invoice."},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        except Exception:
            logger.exception(
                "Unexpected error creating Xendit invoice for request %s.", activation_request.pk
            )
            activation_request.delete()
            return Response(
                {"error": "Failed to create payment invoice."},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        activation_request.invoice_id = invoice.get("id")
        activation_request.invoice_url = invoice.get("invoice_url")
        activation_request.save(update_fields=["invoice_id", "invoice_url"])

        return Response(
            {"invoice_url": activation_request.invoice_url, "requestId": activation_request.pk},
            status=status.HTTP_200_OK,
        )


def _plain(text: str, status_code: int) -> HttpResponse:
    return HttpResponse(text, status=status_code, content_type="text/plain")


def _token_is_valid(incoming: str) -> bool:
    expected = settings.XENDIT_WEBHOOK_TOKEN
    if not expected or not incoming:
        return False
    return hmac.compare_digest(incoming.encode(), expected.encode())


def _parse_amount(value):
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise InternalFailure(
            "Malformed callback payload.", details={"paid_amount": value}
        ) from e


class XenditCallbackView(APIView):
    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        if not _token_is_valid(request.headers.get("x-callback-token", "")):
            logger.warning("Invalid Xendit callback token received.")
            return _plain("Forbidden: Invalid token", status.HTTP_403_FORBIDDEN)

        data = request.data
        if not isinstance(data, dict):
            logger.error("Xendit callback body is not an object: %r", data)
            return _plain("Internal Server Error", status.HTTP_500_INTERNAL_SERVER_ERROR)

        invoice_id = data.get("id")
        if data.get("status") != PAID_STATUS:
            logger.info("Ignoring Xendit callback %s with status %s.", invoice_id, data.get("status"))
            return _plain("OK", status.HTTP_200_OK)

        try:
            self._settle_paid_invoice(data)
        except (NotFoundOrAlreadyProcessed, InvalidArgument) as e:
            logger.warning(
                "Xendit callback %s not applied (%s): %s %s",
                invoice_id,
                e.kind,
                e.message,
                e.details,
            )
        except InternalFailure as e:
            logger.error("Error processing Xendit callback %s: %s %s", invoice_id, e.message, e.details)
            return _plain("Internal Server Error", status.HTTP_500_INTERNAL_SERVER_ERROR)
        except Exception:
            logger.exception("Unexpected error processing Xendit callback %s.", invoice_id)
            return _plain("Internal Server Error", status.HTTP_500_INTERNAL_SERVER_ERROR)

        return _plain("OK", status.HTTP_200_OK)

    def _settle_paid_invoice(self, data) -> None:
        metadata = data.get("metadata") or {}
        user_id = metadata.get("userId")
        promo_code = metadata.get("promoCode")
        external_id = data.get("external_id")

        if not user_id or not external_id:
            raise InternalFailure(
                "Malformed callback payload.",
                details={"invoice": data.get("id"), "external_id": external_id, "userId": user_id},
            )

        store = SettlementStore.from_settings()
        request_id = (
            store.requests()
            .filter(external_id=external_id)
            .values_list("pk", flat=True)
            .first()
        )
        if request_id is None:
            raise NotFoundOrAlreadyProcessed("Unknown invoice.", resource=external_id)

        result = settle(
            store,
            request_id=request_id,
            user_id=user_id,
            affiliate_code=promo_code or None,
            processed_by=CALLBACK_PROCESSOR,
            amount=_parse_amount(data.get("paid_amount")),
            invoice_id=data.get("id"),
        )
        logger.info(
            "Activation & commission recorded for user %s (invoice %s, partner %s).",
            user_id,
            data.get("id"),
            result.partner_credited,
        )
