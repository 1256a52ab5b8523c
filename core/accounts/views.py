"""
Account Authentication Views

Views:
- CookieTokenObtainPairView: Issues JWTs (with role claim) as HTTP-only cookies
- CookieTokenRefreshView: Refreshes JWTs from the refresh cookie
"""

from django.conf import settings
from rest_framework import status
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .serializers import RoleTokenObtainPairSerializer


def _set_token_cookies(response: Response, refresh, access) -> None:
    """
    Store tokens in secure HTTP-only cookies instead of the response body.
     * httponly=True → prevents JavaScript access (mitigates XSS attacks)
     * secure=True → transmits cookies only over HTTPS
    """
    if refresh:
        response.set_cookie(
            "refresh_token",
            refresh,
            httponly=True,
            secure=True,
            samesite="Lax",
            path="/",
            max_age=settings.SIMPLE_JWT["REFRESH_TOKEN_LIFETIME"],
        )
    if access:
        response.set_cookie(
            "access_token",
            access,
            httponly=True,
            secure=True,
            samesite="Lax",
            path="/",
            max_age=settings.SIMPLE_JWT["ACCESS_TOKEN_LIFETIME"],
        )


class CookieTokenObtainPairView(TokenObtainPairView):
    """
    Extends SimpleJWT's TokenObtainPairView: tokens go into cookies, the JSON
    body only carries user metadata (id, username, role).
    """

    serializer_class = RoleTokenObtainPairSerializer

    def post(self, request, *args, **kwargs):
        response = super().post(request, *args, **kwargs)
        if response.status_code == 200:
            data = response.data
            refresh = data.pop("refresh", None)
            access = data.pop("access", None)
            _set_token_cookies(response, refresh, access)
        return response


class CookieTokenRefreshView(TokenRefreshView):
    """
    Refreshes the token pair using the `refresh_token` cookie.
    """

    def post(self, request, *args, **kwargs):
        refresh_token = request.COOKIES.get("refresh_token")
        if not refresh_token:
            return Response(
                {"detail": "Refresh token not provided"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        serializer = TokenRefreshSerializer(data={"refresh": refresh_token})
        try:
            serializer.is_valid(raise_exception=True)
        except TokenError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        response = Response(status=status.HTTP_200_OK)
        _set_token_cookies(response, data.get("refresh"), data.get("access"))
        return response
