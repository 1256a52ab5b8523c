"""
Xendit Integration AppConfig
============================

Registers the local `core.xendit_integration` app. It has no models: invoices
are tracked as `settlement.ActivationRequest` rows and callbacks are handled
synchronously in the callback view.
"""

from django.apps import AppConfig


class XenditIntegrationConfig(AppConfig):
    """
    App configuration for the `core.xendit_integration` package.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "core.xendit_integration"
    verbose_name = "Xendit Integration"
