from django.contrib import admin

from .models import ActivationRequest, Partner, Sale


@admin.register(Partner)
class PartnerAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "partner_type",
        "referral_code",
        "monthly_sales",
        "monthly_commission",
        "bonus_pool_contribution",
        "is_active",
    ]
    list_filter = ["partner_type", "is_active"]
    search_fields = ["name", "referral_code", "user__email"]
    readonly_fields = [
        "monthly_sales",
        "monthly_commission",
        "bonus_pool_contribution",
        "created_at",
        "updated_at",
    ]


@admin.register(ActivationRequest)
class ActivationRequestAdmin(admin.ModelAdmin):
    list_display = ["id", "user", "status", "source", "affiliate_code", "school_code", "created_at"]
    list_filter = ["status", "source"]
    search_fields = ["id", "external_id", "invoice_id", "user__email"]
    # Status changes only through settlement
    readonly_fields = ["status", "processed_by", "processed_at", "created_at"]


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = ["id", "user", "request", "amount", "partner", "commission", "code_used", "sale_date"]
    list_filter = ["sale_date"]
    search_fields = ["user__email", "invoice_id", "code_used"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
