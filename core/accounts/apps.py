"""
Accounts App Configuration

Registers the account profile model. The signal handlers that create an
``Account`` for every new user live in ``models.py`` and are connected when
the app registry loads the models.
"""

from django.apps import AppConfig


class AccountsConfig(AppConfig):
    """
    Django AppConfig for the accounts module.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "core.accounts"
    label = "accounts"
    verbose_name = "Accounts"
