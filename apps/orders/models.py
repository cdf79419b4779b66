"""Order and rental read models used by the stringing workflow."""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class ServicePickupMethod(models.TextChoices):
    SELF_SEND = "self_send", _("고객 직접 발송")
    COURIER_VISIT = "courier_visit", _("기사 방문 수거")
    SHOP_VISIT = "shop_visit", _("매장 방문")


class Order(models.Model):
    """상품 주문."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    order_number = models.CharField(max_length=32, unique=True)
    with_string_service = models.BooleanField(
        default=False,
        help_text=_("주문 시 스트링 교체 서비스를 함께 신청했는지 여부."),
    )
    service_pickup_method = models.CharField(
        max_length=20,
        choices=ServicePickupMethod.choices,
        default=ServicePickupMethod.SELF_SEND,
    )
    customer_name = models.CharField(max_length=100, blank=True)
    customer_email = models.EmailField(blank=True)
    customer_phone = models.CharField(max_length=20, blank=True)
    postal_code = models.CharField(max_length=10, blank=True)
    address = models.CharField(max_length=255, blank=True)
    address_detail = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("주문")
        verbose_name_plural = _("주문")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Order #{self.order_number}"


class OrderItem(models.Model):
    """주문 상품 라인."""

    class Kind(models.TextChoices):
        PRODUCT = "product", _("스트링/상품")
        RACKET = "racket", _("라켓")
        USED_RACKET = "used_racket", _("중고 라켓")
        SERVICE = "service", _("서비스")

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product_id = models.CharField(max_length=64)
    name = models.CharField(max_length=200)
    kind = models.CharField(max_length=20, choices=Kind.choices)
    quantity = models.PositiveSmallIntegerField(default=1)
    mounting_fee = models.PositiveIntegerField(
        default=0,
        help_text=_("교체 공임(원). 0이면 장착 대상이 아닌 상품."),
    )

    class Meta:
        verbose_name = _("주문 상품")
        verbose_name_plural = _("주문 상품")
        constraints = [
            models.UniqueConstraint(fields=["order", "product_id"], name="order_item_unique_product"),
        ]

    def __str__(self) -> str:
        return f"{self.name} x{self.quantity}"

    @property
    def is_mountable(self) -> bool:
        return self.mounting_fee > 0


class RentalOrder(models.Model):
    """라켓 대여 주문. 결제 시점의 금액 스냅샷을 보관한다."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="rental_orders",
    )
    rental_number = models.CharField(max_length=32, unique=True)
    racket_name = models.CharField(max_length=200, blank=True)
    racket_quantity = models.PositiveSmallIntegerField(default=1)
    stringing_requested = models.BooleanField(default=False)
    service_pickup_method = models.CharField(
        max_length=20,
        choices=ServicePickupMethod.choices,
        default=ServicePickupMethod.SELF_SEND,
    )
    string_product_id = models.CharField(max_length=64, blank=True)
    string_name = models.CharField(max_length=200, blank=True)
    deposit = models.PositiveIntegerField(default=0)
    rental_fee = models.PositiveIntegerField(default=0)
    string_price = models.PositiveIntegerField(default=0)
    stringing_fee = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text=_("결제 시점의 교체 공임 스냅샷. 구버전 대여 건은 비어 있을 수 있음."),
    )
    string_mounting_fee = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text=_("선택한 스트링 상품의 공임(스냅샷이 없을 때 재계산에 사용)."),
    )
    customer_name = models.CharField(max_length=100, blank=True)
    customer_email = models.EmailField(blank=True)
    customer_phone = models.CharField(max_length=20, blank=True)
    postal_code = models.CharField(max_length=10, blank=True)
    address = models.CharField(max_length=255, blank=True)
    address_detail = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("라켓 대여")
        verbose_name_plural = _("라켓 대여")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Rental #{self.rental_number}"
