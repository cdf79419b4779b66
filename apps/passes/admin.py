"""Admin registration for package passes."""

from __future__ import annotations

from django.contrib import admin

from .models import PassConsumption, ServicePass


class PassConsumptionInline(admin.TabularInline):
    model = PassConsumption
    extra = 0
    readonly_fields = ("idempotency_key", "units", "created_at")
    can_delete = False


@admin.register(ServicePass)
class ServicePassAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "package_size", "remaining_count", "status", "expires_at")
    list_filter = ("status",)
    search_fields = ("user__username", "user__email")
    readonly_fields = ("created_at", "updated_at")
    inlines = [PassConsumptionInline]
