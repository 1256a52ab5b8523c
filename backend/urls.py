"""
Root URL Configuration - Commission Settlement Backend

URL Structure:
- /admin/: Django admin (Jazzmin theme) for partners, requests and sales
- /api/accounts/: JWT token login and refresh (HTTP-only cookies)
- /api/settlement/: Operator-triggered activation processing
- /api/payments/: Xendit invoice creation and callback receiver
"""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/accounts/", include("core.accounts.urls")),
    path("api/settlement/", include("core.settlement.urls")),
    path("api/payments/", include("core.xendit_integration.urls")),
]
