"""URL routing for scheduling."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import AvailabilityView

urlpatterns = [
    path("availability/", AvailabilityView.as_view(), name="slot-availability"),
]
