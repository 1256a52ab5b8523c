"""
Account Models

This module extends Django's built-in User model with the account profile used
by the settlement backend, and keeps that profile in sync through signals.

Models:
- Account: paid-access flag, remaining test attempts and operator role

Features:
- Automatic account creation for new users
- Role stored locally only to be embedded into issued JWTs; request-time
  authorization reads the token claim, never this table
"""

from django.conf import settings
from django.db import models
from django.db.models.signals import post_save
from django.dispatch import receiver
from django.utils.translation import gettext_lazy as _


class Account(models.Model):
    """
    Account profile attached one-to-one to a Django user.

    Attributes:
        user: One-to-one relationship with the Django User model
        has_paid_access: Set by settlement once a payment was verified; never revoked
        test_attempts_remaining: Cumulative counter, incremented by settlement
        role: Role claim issued with the user's JWTs
    """

    class Role(models.TextChoices):
        USER = "user", _("User")
        ADMIN = "admin", _("Admin")

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="account",
        verbose_name=_("User"),
    )
    has_paid_access = models.BooleanField(
        default=False,
        verbose_name=_("Paid access"),
    )
    test_attempts_remaining = models.PositiveIntegerField(
        default=0,
        verbose_name=_("Remaining test attempts"),
    )
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.USER,
        verbose_name=_("Role"),
        help_text=_("Embedded as role claim into access tokens at login"),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Account")
        verbose_name_plural = _("Accounts")

    def __str__(self) -> str:
        return f"{self.user.username} Account"

    def __repr__(self) -> str:
        return (
            f"<Account(user={self.user_id}, has_paid_access={self.has_paid_access}, "
            f"test_attempts_remaining={self.test_attempts_remaining})>"
        )

    @property
    def is_admin(self) -> bool:
        return self.role == self.Role.ADMIN


# --- Signal Handlers for Automatic Account Management ---


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_user_account(sender, instance, created: bool, **kwargs) -> None:
    """
    Create the account profile when a new user is created.

    Args:
        sender: The User model class
        instance: The User instance that was saved
        created: Whether this save inserted a new row
    """
    if created:
        Account.objects.get_or_create(user=instance)
