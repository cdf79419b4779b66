"""Package pass models."""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class ServicePass(models.Model):
    """선불 스트링 교체 패키지 이용권."""

    class Status(models.TextChoices):
        ACTIVE = "active", _("사용 가능")
        SUSPENDED = "suspended", _("일시 정지")
        EXPIRED = "expired", _("만료")
        CANCELLED = "cancelled", _("취소")

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="service_passes",
    )
    package_size = models.PositiveSmallIntegerField()
    remaining_count = models.PositiveSmallIntegerField()
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    issued_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField()
    source_order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="service_passes",
    )
    source_item_id = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("패키지 이용권")
        verbose_name_plural = _("패키지 이용권")
        ordering = ["expires_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(remaining_count__lte=models.F("package_size")),
                name="service_pass_remaining_within_size",
            ),
            models.UniqueConstraint(
                fields=["source_order", "source_item_id"],
                condition=models.Q(source_order__isnull=False),
                name="service_pass_unique_source",
            ),
        ]
        indexes = [
            models.Index(fields=["user", "status", "expires_at"], name="service_pass_user_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Pass #{self.pk} ({self.remaining_count}/{self.package_size})"

    def is_usable(self, now=None) -> bool:
        now = now or timezone.now()
        return self.status == self.Status.ACTIVE and self.remaining_count > 0 and self.expires_at >= now


class PassConsumption(models.Model):
    """이용권 차감 기록. 신청서당 한 번만 남는다."""

    service_pass = models.ForeignKey(ServicePass, on_delete=models.PROTECT, related_name="consumptions")
    idempotency_key = models.CharField(
        max_length=64,
        help_text=_("차감을 요청한 신청서 ID."),
    )
    units = models.PositiveSmallIntegerField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("이용권 차감 내역")
        verbose_name_plural = _("이용권 차감 내역")
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["service_pass", "idempotency_key"],
                name="pass_consumption_unique_key",
            ),
        ]

    def __str__(self) -> str:
        return f"-{self.units} from pass #{self.service_pass_id} ({self.idempotency_key})"
