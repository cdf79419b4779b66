"""Stringing application models."""

from __future__ import annotations

import uuid

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .domain.draft import ApplicationDraft, DraftLine, StringSelection


class Application(models.Model):
    """스트링 교체 서비스 신청서."""

    class Status(models.TextChoices):
        DRAFT = "draft", _("작성 중")
        SUBMITTED = "submitted", _("접수 완료")
        IN_PROGRESS = "in_progress", _("작업 중")
        COMPLETED = "completed", _("교체 완료")
        CANCELLED = "cancelled", _("취소")
        EXPIRED = "expired", _("만료")

    class CollectionMethod(models.TextChoices):
        SELF_SHIP = "self_ship", _("직접 발송")
        COURIER_PICKUP = "courier_pickup", _("기사 방문 수거")
        VISIT = "visit", _("매장 방문")

    class FundingMode(models.TextChoices):
        CASH = "cash", _("무통장 입금")
        PACKAGE_CREDIT = "package_credit", _("패키지 이용권")
        RENTAL_PREPAID = "rental_prepaid", _("대여 결제 포함")

    # draft and not-yet-processed submissions hold the per-order/per-rental slot
    ACTIVE_STATUSES = (Status.DRAFT, Status.SUBMITTED)
    # statuses whose units count against the order/rental entitlement
    CONSUMING_STATUSES = (Status.SUBMITTED, Status.IN_PROGRESS, Status.COMPLETED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stringing_applications",
    )
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="stringing_applications",
    )
    rental = models.ForeignKey(
        "orders.RentalOrder",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="stringing_applications",
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)

    name = models.CharField(max_length=100, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    postal_code = models.CharField(max_length=10, blank=True)
    address = models.CharField(max_length=255, blank=True)
    address_detail = models.CharField(max_length=255, blank=True)
    collection_method = models.CharField(max_length=20, choices=CollectionMethod.choices, blank=True)
    pickup_date = models.DateField(null=True, blank=True)
    pickup_time = models.CharField(max_length=20, blank=True, help_text=_("수거 희망 시간대."))

    string_selections = models.JSONField(
        default=list,
        blank=True,
        help_text=_("[{item_id, use_count, name}] 형식의 스트링 선택 목록."),
    )
    custom_string_name = models.CharField(max_length=200, blank=True)
    racket_type = models.CharField(max_length=200, blank=True)
    catalog_mounting_fee = models.PositiveIntegerField(null=True, blank=True)
    preferred_date = models.DateField(null=True, blank=True)
    preferred_time = models.TimeField(null=True, blank=True)

    funding_requested = models.CharField(max_length=20, choices=FundingMode.choices, default=FundingMode.CASH)
    funding_mode = models.CharField(max_length=20, choices=FundingMode.choices, default=FundingMode.CASH)
    bank = models.CharField(max_length=50, blank=True)
    depositor = models.CharField(max_length=100, blank=True)
    requirements = models.TextField(blank=True)

    required_units = models.PositiveSmallIntegerField(default=0)
    base_fee = models.PositiveIntegerField(default=0)
    logistics_fee = models.PositiveIntegerField(default=0)
    total_price = models.PositiveIntegerField(default=0)
    currency = models.CharField(max_length=3, default="KRW")

    slot_commitment = models.OneToOneField(
        "scheduling.SlotCommitment",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="application",
    )
    pass_consumption = models.OneToOneField(
        "passes.PassConsumption",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="application",
    )

    submitted_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text=_("작성 중 신청서가 자동 만료되는 시각."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("스트링 교체 신청")
        verbose_name_plural = _("스트링 교체 신청")
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["order"],
                condition=models.Q(order__isnull=False, status__in=["draft", "submitted"]),
                name="application_one_active_per_order",
            ),
            models.UniqueConstraint(
                fields=["rental"],
                condition=models.Q(rental__isnull=False, status__in=["draft", "submitted"]),
                name="application_one_active_per_rental",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "expires_at"], name="application_status_expiry_idx"),
            models.Index(fields=["user", "status"], name="application_user_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Application {self.pk} ({self.status})"

    @property
    def is_draft(self) -> bool:
        return self.status == self.Status.DRAFT

    def to_draft(self) -> ApplicationDraft:
        return ApplicationDraft(
            application_id=str(self.pk),
            order_ref=self.order_id,
            rental_ref=self.rental_id,
            name=self.name,
            email=self.email,
            phone=self.phone,
            postal_code=self.postal_code,
            address=self.address,
            address_detail=self.address_detail,
            collection_method=self.collection_method,
            pickup_date=self.pickup_date,
            pickup_time=self.pickup_time,
            selections=tuple(
                StringSelection(
                    item_id=str(item.get("item_id", "")),
                    use_count=item.get("use_count"),
                    name=item.get("name", ""),
                )
                for item in (self.string_selections or [])
            ),
            custom_string_name=self.custom_string_name,
            racket_type=self.racket_type,
            preferred_date=self.preferred_date,
            preferred_time=self.preferred_time,
            lines=tuple(
                DraftLine(
                    racket_label=line.racket_label,
                    string_item_id=line.string_item_id,
                    main_tension=line.main_tension,
                    cross_tension=line.cross_tension,
                    note=line.note,
                )
                for line in self.lines.order_by("position")
            ) if not self._state.adding else (),
            catalog_mounting_fee=self.catalog_mounting_fee,
            funding_requested=self.funding_requested,
            bank=self.bank,
            depositor=self.depositor,
            requirements=self.requirements,
        )

    def apply_draft(self, draft: ApplicationDraft) -> None:
        """Copy editable draft fields onto the model (lines are saved separately)."""

        self.name = draft.name
        self.email = draft.email
        self.phone = draft.phone
        self.postal_code = draft.postal_code
        self.address = draft.address
        self.address_detail = draft.address_detail
        self.collection_method = draft.collection_method
        self.pickup_date = draft.pickup_date
        self.pickup_time = draft.pickup_time
        self.string_selections = [
            {"item_id": s.item_id, "use_count": s.use_count, "name": s.name} for s in draft.selections
        ]
        self.custom_string_name = draft.custom_string_name
        self.racket_type = draft.racket_type
        self.catalog_mounting_fee = draft.catalog_mounting_fee
        self.preferred_date = draft.preferred_date
        self.preferred_time = draft.preferred_time
        self.funding_requested = draft.funding_requested
        self.bank = draft.bank
        self.depositor = draft.depositor
        self.requirements = draft.requirements

    def replace_lines(self, lines) -> None:
        self.lines.all().delete()
        ApplicationLine.objects.bulk_create(
            [
                ApplicationLine(
                    application=self,
                    position=index,
                    racket_label=line.racket_label,
                    string_item_id=line.string_item_id,
                    main_tension=str(line.main_tension),
                    cross_tension=str(line.cross_tension),
                    note=line.note,
                )
                for index, line in enumerate(lines)
            ]
        )

    def record(self, description: str, status: str | None = None) -> "ApplicationHistory":
        return ApplicationHistory.objects.create(
            application=self,
            status=status or self.status,
            description=description,
        )


class ApplicationLine(models.Model):
    """신청서의 라켓 한 자루."""

    application = models.ForeignKey(Application, on_delete=models.CASCADE, related_name="lines")
    position = models.PositiveSmallIntegerField(default=0)
    racket_label = models.CharField(max_length=200, blank=True)
    string_item_id = models.CharField(max_length=64, blank=True)
    main_tension = models.CharField(max_length=10, blank=True)
    cross_tension = models.CharField(max_length=10, blank=True)
    note = models.CharField(max_length=255, blank=True)

    class Meta:
        verbose_name = _("신청 라켓")
        verbose_name_plural = _("신청 라켓")
        ordering = ["application", "position"]

    def __str__(self) -> str:
        return f"{self.racket_label} {self.main_tension}/{self.cross_tension}"


class ApplicationHistory(models.Model):
    """신청서 상태 변경 이력."""

    application = models.ForeignKey(Application, on_delete=models.CASCADE, related_name="history")
    status = models.CharField(max_length=20, choices=Application.Status.choices)
    description = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("신청 이력")
        verbose_name_plural = _("신청 이력")
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return f"{self.application_id}: {self.status}"
