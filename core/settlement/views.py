"""
Settlement Views

Endpoints
---------

1. ProcessActivationRequestView
   - URL: /api/settlement/activation-requests/process/
   - Method: POST
   - Auth: JWT with role claim "admin"
   - Body: {"requestId": "...", "userId": "42", "affiliateCode": "ABC", "schoolCode": "SMA1"}
   - Purpose:
       Called by operators after a manual payment was verified. Grants paid
       access to the request's user and credits the referral partner.

2. PendingActivationRequestListView
   - URL: /api/settlement/activation-requests/
   - Method: GET
   - Auth: JWT with role claim "admin"
   - Query: ?status=pending|completed (default: pending)
   - Purpose:
       Lists activation requests for the operator's review queue.

Error body
----------
    {"success": false, "error": {"kind": "not-found", "message": "..."}}

kind is one of unauthenticated, permission-denied, invalid-argument,
not-found, internal.
"""

import logging

from rest_framework import exceptions as drf_exceptions
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import InternalFailure, InvalidArgument, SettlementError, Unauthenticated
from .models import ActivationRequest
from .permissions import require_admin
from .serializers import ActivationRequestSerializer, ProcessActivationSerializer
from .services import settle
from .store import SettlementStore

logger = logging.getLogger(__name__)


def _error_response(exc: SettlementError) -> Response:
    return Response({"success": False, "error": exc.to_dict()}, status=exc.status_code)


class SettlementAPIView(APIView):
    """
    Base view: authorization happens inside the handlers (role claim), and every
    failure is rendered in the settlement error format.
    """

    permission_classes = [AllowAny]

    def handle_exception(self, exc):
        # Invalid or expired tokens are rejected by the authentication class
        if isinstance(exc, (drf_exceptions.NotAuthenticated, drf_exceptions.AuthenticationFailed)):
            return _error_response(Unauthenticated())
        return super().handle_exception(exc)


class ProcessActivationRequestView(SettlementAPIView):

    def post(self, request):
        try:
            operator_id = require_admin(request)

            serializer = ProcessActivationSerializer(data=request.data)
            if not serializer.is_valid():
                raise InvalidArgument("Malformed request body.")
            data = serializer.validated_data

            result = settle(
                SettlementStore.from_settings(),
                request_id=data["request_id"],
                user_id=data["user_id"],
                affiliate_code=data["affiliate_code"],
                school_code=data["school_code"],
                processed_by=operator_id,
            )
        except SettlementError as exc:
            if exc.status_code >= 500:
                logger.error("Activation processing failed: %s %s", exc.message, exc.details)
            else:
                logger.info("Activation request rejected (%s): %s", exc.kind, exc.message)
            return _error_response(exc)
        except Exception:
            logger.exception("Unexpected error while processing activation request.")
            return _error_response(InternalFailure())

        return Response(
            {
                "success": True,
                "message": "Activation processed.",
                "partnerCredited": result.partner_credited,
            },
            status=200,
        )


class PendingActivationRequestListView(SettlementAPIView):

    def get(self, request):
        try:
            require_admin(request)
        except SettlementError as exc:
            return _error_response(exc)

        status_filter = request.query_params.get("status", ActivationRequest.Status.PENDING)
        if status_filter not in ActivationRequest.Status.values:
            return Response(
                {"detail": f"status must be one of {', '.join(ActivationRequest.Status.values)}."},
                status=400,
            )

        queryset = (
            SettlementStore.from_settings()
            .requests()
            .filter(status=status_filter)
            .order_by("created_at")
        )
        serializer = ActivationRequestSerializer(queryset, many=True)
        return Response(serializer.data, status=200)
