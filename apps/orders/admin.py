"""Admin registration for order read models."""

from __future__ import annotations

from django.contrib import admin

from .models import Order, OrderItem, RentalOrder


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "user", "with_string_service", "service_pickup_method", "created_at")
    list_filter = ("with_string_service", "service_pickup_method")
    search_fields = ("order_number", "customer_name", "customer_email")
    inlines = [OrderItemInline]


@admin.register(RentalOrder)
class RentalOrderAdmin(admin.ModelAdmin):
    list_display = ("rental_number", "user", "racket_quantity", "stringing_requested", "stringing_fee")
    list_filter = ("stringing_requested",)
    search_fields = ("rental_number", "customer_name")
