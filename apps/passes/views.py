"""API views for package passes."""

from __future__ import annotations

from rest_framework import permissions  # type: ignore
from rest_framework.generics import ListAPIView  # type: ignore

from .serializers import ServicePassSerializer
from .services import active_passes


class MyPassesView(ListAPIView):
    """Usable passes of the current user, soonest-expiring first."""

    serializer_class = ServicePassSerializer
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = None

    def get_queryset(self):  # type: ignore
        return active_passes(self.request.user)
