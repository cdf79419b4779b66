"""URL routing for package passes."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import MyPassesView

urlpatterns = [
    path("me/", MyPassesView.as_view(), name="passes-me"),
]
