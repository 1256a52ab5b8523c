import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import core.settlement.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Partner",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("name", models.CharField(max_length=150, verbose_name="Name")),
                (
                    "partner_type",
                    models.CharField(
                        choices=[("affiliate", "Affiliate"), ("school", "School")],
                        max_length=20,
                        verbose_name="Partner type",
                    ),
                ),
                (
                    "referral_code",
                    models.CharField(
                        help_text="Stored upper-case; matched case-insensitively",
                        max_length=64,
                        unique=True,
                        verbose_name="Referral code",
                    ),
                ),
                ("monthly_sales", models.PositiveIntegerField(default=0)),
                ("monthly_commission", models.PositiveBigIntegerField(default=0)),
                ("bonus_pool_contribution", models.PositiveBigIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True, verbose_name="Active")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="partner",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Owning user",
                    ),
                ),
            ],
            options={
                "verbose_name": "Partner",
                "verbose_name_plural": "Partners",
                "ordering": ["name"],
                "indexes": [
                    models.Index(
                        fields=["partner_type", "referral_code"],
                        name="settlement_partner_code_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="ActivationRequest",
            fields=[
                (
                    "id",
                    models.CharField(
                        default=core.settlement.models._new_request_id,
                        editable=False,
                        max_length=64,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("affiliate_code", models.CharField(blank=True, max_length=64, null=True)),
                ("school_code", models.CharField(blank=True, max_length=64, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("completed", "Completed")],
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "source",
                    models.CharField(
                        choices=[("admin", "Admin"), ("invoice", "Invoice")],
                        default="admin",
                        max_length=20,
                    ),
                ),
                (
                    "external_id",
                    models.CharField(
                        blank=True,
                        help_text="Reference sent to the payment gateway",
                        max_length=128,
                        null=True,
                        unique=True,
                    ),
                ),
                ("invoice_id", models.CharField(blank=True, max_length=128, null=True)),
                ("invoice_url", models.URLField(blank=True, max_length=500, null=True)),
                (
                    "amount",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=14, null=True
                    ),
                ),
                ("processed_by", models.CharField(blank=True, max_length=150, null=True)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="activation_requests",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Activation request",
                "verbose_name_plural": "Activation requests",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "created_at"],
                        name="settlement_request_status_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Sale",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("invoice_id", models.CharField(blank=True, max_length=128, null=True)),
                (
                    "amount",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=14, null=True
                    ),
                ),
                ("sale_date", models.DateTimeField(auto_now_add=True)),
                ("commission", models.PositiveBigIntegerField(default=0)),
                ("bonus_pool_contribution", models.PositiveBigIntegerField(default=0)),
                ("code_used", models.CharField(blank=True, max_length=64, null=True)),
                (
                    "partner",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sales",
                        to="settlement.partner",
                    ),
                ),
                (
                    "request",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sale",
                        to="settlement.activationrequest",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sales",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Sale",
                "verbose_name_plural": "Sales",
                "ordering": ["-sale_date"],
            },
        ),
    ]
