"""
Settlement Models

Models:
- Partner: affiliate or school earning a fixed commission per referred sale
- ActivationRequest: one purchase attempt, settled at most once
- Sale: immutable ledger line written by every settlement
"""

import uuid

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


def normalize_code(code):
    """Referral codes are matched case-insensitively; store and look up upper-case."""
    if code is None:
        return None
    code = str(code).strip().upper()
    return code or None


def _new_request_id() -> str:
    return uuid.uuid4().hex


class Partner(models.Model):
    """
    Commission-earning partner, looked up by referral code.

    Affiliates are usually backed by a user account (``user``); schools are
    created out-of-band by operators.
    """

    class PartnerType(models.TextChoices):
        AFFILIATE = "affiliate", _("Affiliate")
        SCHOOL = "school", _("School")

    name = models.CharField(max_length=150, verbose_name=_("Name"))
    partner_type = models.CharField(
        max_length=20,
        choices=PartnerType.choices,
        verbose_name=_("Partner type"),
    )
    referral_code = models.CharField(
        max_length=64,
        unique=True,
        verbose_name=_("Referral code"),
        help_text=_("Stored upper-case; matched case-insensitively"),
    )
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="partner",
        verbose_name=_("Owning user"),
    )
    monthly_sales = models.PositiveIntegerField(default=0)
    monthly_commission = models.PositiveBigIntegerField(default=0)
    bonus_pool_contribution = models.PositiveBigIntegerField(default=0)
    is_active = models.BooleanField(default=True, verbose_name=_("Active"))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Partner")
        verbose_name_plural = _("Partners")
        ordering = ["name"]
        indexes = [
            models.Index(
                fields=["partner_type", "referral_code"],
                name="settlement_partner_code_idx",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.referral_code})"

    def save(self, *args, **kwargs):
        self.referral_code = normalize_code(self.referral_code)
        super().save(*args, **kwargs)


class ActivationRequest(models.Model):
    """
    A purchase attempt. Raised either by an operator (manual payment) or by
    invoice creation, and moved from pending to completed exactly once.
    """

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        COMPLETED = "completed", _("Completed")

    class Source(models.TextChoices):
        ADMIN = "admin", _("Admin")
        INVOICE = "invoice", _("Invoice")

    id = models.CharField(
        primary_key=True, max_length=64, default=_new_request_id, editable=False
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="activation_requests",
    )
    affiliate_code = models.CharField(max_length=64, null=True, blank=True)
    school_code = models.CharField(max_length=64, null=True, blank=True)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING
    )
    source = models.CharField(
        max_length=20, choices=Source.choices, default=Source.ADMIN
    )
    external_id = models.CharField(
        max_length=128,
        unique=True,
        null=True,
        blank=True,
        help_text=_("Reference sent to the payment gateway"),
    )
    invoice_id = models.CharField(max_length=128, null=True, blank=True)
    invoice_url = models.URLField(max_length=500, null=True, blank=True)
    amount = models.DecimalField(
        max_digits=14, decimal_places=2, null=True, blank=True
    )
    processed_by = models.CharField(max_length=150, null=True, blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Activation request")
        verbose_name_plural = _("Activation requests")
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["status", "created_at"],
                name="settlement_request_status_idx",
            ),
        ]

    def __str__(self):
        return f"{self.id} ({self.status})"

    @property
    def is_completed(self) -> bool:
        return self.status == self.Status.COMPLETED


class Sale(models.Model):
    """
    Immutable audit-ledger entry; one per settled request.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="sales"
    )
    request = models.OneToOneField(
        ActivationRequest, on_delete=models.PROTECT, related_name="sale"
    )
    invoice_id = models.CharField(max_length=128, null=True, blank=True)
    amount = models.DecimalField(
        max_digits=14, decimal_places=2, null=True, blank=True
    )
    sale_date = models.DateTimeField(auto_now_add=True)
    partner = models.ForeignKey(
        Partner,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="sales",
    )
    commission = models.PositiveBigIntegerField(default=0)
    bonus_pool_contribution = models.PositiveBigIntegerField(default=0)
    code_used = models.CharField(max_length=64, null=True, blank=True)

    class Meta:
        verbose_name = _("Sale")
        verbose_name_plural = _("Sales")
        ordering = ["-sale_date"]

    def __str__(self):
        return f"Sale {self.pk} for request {self.request_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Sale records are immutable once written.")
        super().save(*args, **kwargs)
