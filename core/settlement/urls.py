from django.urls import path

from .views import PendingActivationRequestListView, ProcessActivationRequestView

app_name = "settlement"

urlpatterns = [
    path(
        "activation-requests/",
        PendingActivationRequestListView.as_view(),
        name="activation-request-list",
    ),
    path(
        "activation-requests/process/",
        ProcessActivationRequestView.as_view(),
        name="activation-request-process",
    ),
]
