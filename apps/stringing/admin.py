"""Admin registration for stringing applications."""

from __future__ import annotations

from django.contrib import admin

from .models import Application, ApplicationHistory, ApplicationLine


class ApplicationLineInline(admin.TabularInline):
    model = ApplicationLine
    extra = 0


class ApplicationHistoryInline(admin.TabularInline):
    model = ApplicationHistory
    extra = 0
    readonly_fields = ("status", "description", "created_at")
    can_delete = False


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "user",
        "order",
        "rental",
        "status",
        "collection_method",
        "funding_mode",
        "required_units",
        "total_price",
        "submitted_at",
    )
    list_filter = ("status", "collection_method", "funding_mode")
    search_fields = ("id", "name", "email", "phone")
    readonly_fields = (
        "required_units",
        "base_fee",
        "logistics_fee",
        "total_price",
        "slot_commitment",
        "pass_consumption",
        "submitted_at",
        "created_at",
        "updated_at",
    )
    inlines = [ApplicationLineInline, ApplicationHistoryInline]
