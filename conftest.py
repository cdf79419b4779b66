"""Shared pytest fixtures for the stringing service."""

from __future__ import annotations

from datetime import date, time, timedelta

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone

from apps.orders.models import Order, OrderItem, RentalOrder, ServicePickupMethod
from apps.scheduling.models import ScheduleSettings


def next_business_day(start: date | None = None) -> date:
    """First Monday-Friday strictly after ``start`` (default: today)."""

    day = (start or timezone.localdate()) + timedelta(days=1)
    while day.weekday() >= 5:
        day += timedelta(days=1)
    return day


@pytest.fixture
def customer(db):
    return get_user_model().objects.create_user(
        username="customer",
        email="customer@example.com",
        password="StrongPass123",
    )


@pytest.fixture
def other_customer(db):
    return get_user_model().objects.create_user(
        username="other",
        email="other@example.com",
        password="StrongPass123",
    )


@pytest.fixture
def staff_user(db):
    return get_user_model().objects.create_user(
        username="staff",
        email="staff@example.com",
        password="StrongPass123",
        is_staff=True,
    )


def make_order(user, *, number="ORD-1001", string_quantity=2, mounting_fee=12000,
               pickup=ServicePickupMethod.SHOP_VISIT, with_racket=True) -> Order:
    order = Order.objects.create(
        user=user,
        order_number=number,
        with_string_service=True,
        service_pickup_method=pickup,
        customer_name="홍길동",
        customer_email="customer@example.com",
        customer_phone="010-1234-5678",
        postal_code="06236",
        address="서울시 강남구 테헤란로 1",
        address_detail="101호",
    )
    OrderItem.objects.create(
        order=order,
        product_id="STR-1",
        name="Luxilon ALU Power",
        kind=OrderItem.Kind.PRODUCT,
        quantity=string_quantity,
        mounting_fee=mounting_fee,
    )
    if with_racket:
        OrderItem.objects.create(
            order=order,
            product_id="RKT-1",
            name="Babolat Pure Aero",
            kind=OrderItem.Kind.RACKET,
            quantity=1,
            mounting_fee=0,
        )
    return order


@pytest.fixture
def order(customer):
    return make_order(customer)


@pytest.fixture
def rental(customer):
    return RentalOrder.objects.create(
        user=customer,
        rental_number="RNT-2001",
        racket_name="Wilson Blade 98",
        racket_quantity=1,
        stringing_requested=True,
        service_pickup_method=ServicePickupMethod.SELF_SEND,
        string_product_id="STR-9",
        string_name="Solinco Hyper-G",
        deposit=100000,
        rental_fee=15000,
        string_price=20000,
        stringing_fee=10000,
        string_mounting_fee=12000,
        customer_name="홍길동",
        customer_email="customer@example.com",
        customer_phone="01012345678",
        postal_code="06236",
        address="서울시 강남구 테헤란로 1",
    )


@pytest.fixture
def schedule(db):
    """Weekday schedule with room for four units per bucket."""

    return ScheduleSettings.objects.create(
        start_time=time(10, 0),
        end_time=time(18, 0),
        interval_minutes=30,
        capacity=4,
        business_days=[0, 1, 2, 3, 4],
        holidays=[],
        booking_window_days=30,
    )


@pytest.fixture
def visit_day() -> date:
    return next_business_day()
