"""Admin registration for scheduling."""

from __future__ import annotations

from django.contrib import admin

from .models import ScheduleException, ScheduleSettings, SlotCommitment, TimeSlot


@admin.register(ScheduleSettings)
class ScheduleSettingsAdmin(admin.ModelAdmin):
    list_display = ("start_time", "end_time", "interval_minutes", "capacity", "booking_window_days")


@admin.register(ScheduleException)
class ScheduleExceptionAdmin(admin.ModelAdmin):
    list_display = ("date", "closed", "start_time", "end_time", "capacity", "reason")
    list_filter = ("closed",)


@admin.register(TimeSlot)
class TimeSlotAdmin(admin.ModelAdmin):
    list_display = ("date", "time", "committed_units", "capacity")
    list_filter = ("date",)
    readonly_fields = ("committed_units",)


@admin.register(SlotCommitment)
class SlotCommitmentAdmin(admin.ModelAdmin):
    list_display = ("idempotency_key", "slot", "units", "created_at")
    search_fields = ("idempotency_key",)
    readonly_fields = ("slot", "idempotency_key", "units", "created_at")
