from django.urls import path

from .views import CookieTokenObtainPairView, CookieTokenRefreshView

app_name = "accounts"

urlpatterns = [
    path("token/", CookieTokenObtainPairView.as_view(), name="token-obtain"),
    path("token/refresh/", CookieTokenRefreshView.as_view(), name="token-refresh"),
]
