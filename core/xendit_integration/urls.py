from django.urls import path

from .views import CreateInvoiceView, XenditCallbackView

app_name = "xendit_integration"

urlpatterns = [
    path("xendit/invoices/", CreateInvoiceView.as_view(), name="xendit-create-invoice"),
    path("xendit/callback/", XenditCallbackView.as_view(), name="xendit-callback"),
]
