"""
Settlement App Configuration

The settlement app owns partners, activation requests and the sale ledger,
and exposes the operator-triggered activation endpoint.
"""

from django.apps import AppConfig


class SettlementConfig(AppConfig):
    """
    Django AppConfig for the settlement module.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "core.settlement"
    label = "settlement"
    verbose_name = "Commission Settlement"
