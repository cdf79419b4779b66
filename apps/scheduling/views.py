"""API views for visit slot availability."""

from __future__ import annotations

from rest_framework import permissions, status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.stringing.exceptions import CollaboratorUnavailable

from .serializers import AvailabilityQuerySerializer
from .services import BookingWindowError, availability


class AvailabilityView(APIView):
    """GET ?date=YYYY-MM-DD&required_units=N"""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):  # type: ignore
        query = AvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        try:
            data = availability(query.validated_data["date"], query.validated_data["required_units"])
        except BookingWindowError as exc:
            return Response({"code": "out_of_window", "detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except CollaboratorUnavailable as exc:
            return Response(
                {"code": exc.code, "detail": str(exc), "retryable": True},
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        return Response(data)
