"""FilterSet definitions for stringing application listing."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Application


class ApplicationFilterSet(django_filters.FilterSet):
    status = django_filters.MultipleChoiceFilter(choices=Application.Status.choices)
    order = django_filters.NumberFilter(field_name="order_id")
    rental = django_filters.NumberFilter(field_name="rental_id")
    submitted_after = django_filters.IsoDateTimeFilter(field_name="submitted_at", lookup_expr="gte")

    class Meta:
        model = Application
        fields = ["status", "order", "rental", "collection_method"]
