from django.contrib import admin

from .models import Account


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ["user", "role", "has_paid_access", "test_attempts_remaining", "updated_at"]
    list_filter = ["role", "has_paid_access"]
    search_fields = ["user__username", "user__email"]
    readonly_fields = ["created_at", "updated_at"]
