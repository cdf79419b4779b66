"""Scheduling models: configuration, bucket counters and commitments."""

from __future__ import annotations

from datetime import time

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


def default_business_days() -> list[int]:
    return [0, 1, 2, 3, 4]


class ScheduleSettings(models.Model):
    """매장 방문 예약 기본 설정. 단일 행으로 사용한다."""

    start_time = models.TimeField(default=time(10, 0))
    end_time = models.TimeField(default=time(19, 0))
    interval_minutes = models.PositiveSmallIntegerField(default=30)
    capacity = models.PositiveSmallIntegerField(
        default=1,
        help_text=_("한 시간대에 받을 수 있는 최대 작업 수."),
    )
    business_days = models.JSONField(
        default=default_business_days,
        help_text=_("영업 요일 (월=0 … 일=6)."),
    )
    holidays = models.JSONField(default=list, blank=True, help_text=_("휴무일 목록 (YYYY-MM-DD)."))
    booking_window_days = models.PositiveSmallIntegerField(default=30)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("예약 설정")
        verbose_name_plural = _("예약 설정")

    def __str__(self) -> str:
        return f"{self.start_time:%H:%M}-{self.end_time:%H:%M} / {self.interval_minutes}m x{self.capacity}"


class ScheduleException(models.Model):
    """특정 날짜의 휴무 또는 운영 시간 변경."""

    date = models.DateField(unique=True)
    closed = models.BooleanField(default=False)
    start_time = models.TimeField(null=True, blank=True)
    end_time = models.TimeField(null=True, blank=True)
    interval_minutes = models.PositiveSmallIntegerField(null=True, blank=True)
    capacity = models.PositiveSmallIntegerField(null=True, blank=True)
    reason = models.CharField(max_length=255, blank=True)

    class Meta:
        verbose_name = _("예외 일정")
        verbose_name_plural = _("예외 일정")
        ordering = ["date"]

    def __str__(self) -> str:
        return f"{self.date} ({'closed' if self.closed else 'custom'})"


class TimeSlot(models.Model):
    """하루 중 한 시간대. 확정된 작업 수를 원자적으로 누적한다."""

    date = models.DateField()
    time = models.TimeField()
    capacity = models.PositiveSmallIntegerField()
    committed_units = models.PositiveSmallIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("예약 시간대")
        verbose_name_plural = _("예약 시간대")
        ordering = ["date", "time"]
        constraints = [
            models.UniqueConstraint(fields=["date", "time"], name="time_slot_unique_bucket"),
            models.CheckConstraint(
                condition=models.Q(committed_units__lte=models.F("capacity")),
                name="time_slot_within_capacity",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.date} {self.time:%H:%M} ({self.committed_units}/{self.capacity})"


class SlotCommitment(models.Model):
    """신청서 제출 시 확정된 시간대 점유 기록."""

    slot = models.ForeignKey(TimeSlot, on_delete=models.PROTECT, related_name="commitments")
    idempotency_key = models.CharField(max_length=64, unique=True)
    units = models.PositiveSmallIntegerField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("시간대 확정")
        verbose_name_plural = _("시간대 확정")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.units} unit(s) at {self.slot} for {self.idempotency_key}"
