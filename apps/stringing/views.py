"""API views for stringing applications."""

from __future__ import annotations

import logging

from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from .application.command_handlers import SubmitApplicationCommand, SubmitApplicationHandler
from .domain.results import FailureKind, SubmissionResult
from .domain.steps import StepValidationMachine
from .exceptions import (
    ApplicationNotEditable,
    CollaboratorUnavailable,
    DraftNotFound,
    EntitlementBlocked,
    ServiceNotEligible,
    StringingError,
)
from .filters import ApplicationFilterSet
from .models import Application
from .serializers import (
    ApplicationSerializer,
    DraftInputSerializer,
    EnsureDraftSerializer,
    StepValidateSerializer,
    SubmitSerializer,
)
from .services import DraftLifecycle, quote_for, step_context_for

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    EntitlementBlocked: status.HTTP_403_FORBIDDEN,
    ServiceNotEligible: status.HTTP_400_BAD_REQUEST,
    DraftNotFound: status.HTTP_404_NOT_FOUND,
    ApplicationNotEditable: status.HTTP_409_CONFLICT,
    CollaboratorUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}

FAILURE_STATUS = {
    FailureKind.BLOCKED: status.HTTP_403_FORBIDDEN,
    FailureKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    FailureKind.SLOT_CONFLICT: status.HTTP_409_CONFLICT,
    FailureKind.INSUFFICIENT_BALANCE: status.HTTP_409_CONFLICT,
    FailureKind.GRANT_EXPIRED: status.HTTP_409_CONFLICT,
    FailureKind.UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_response(exc: StringingError) -> Response:
    body = {"code": exc.code, "detail": exc.message or str(exc)}
    body.update({k: v for k, v in exc.extra.items() if v is not None})
    if isinstance(exc, CollaboratorUnavailable):
        body["retryable"] = True
    return Response(body, status=ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST))


def submission_response(result: SubmissionResult) -> Response:
    if result.ok:
        code = status.HTTP_200_OK if result.replayed else status.HTTP_201_CREATED
        return Response(result.to_payload(), status=code)
    return Response(result.to_payload(), status=FAILURE_STATUS[result.failure])


class IsApplicationOwner(permissions.BasePermission):
    """Customers see their own applications; staff see all."""

    def has_object_permission(self, request, view, obj: Application):  # type: ignore
        user = request.user
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return True
        return obj.user_id == user.id


class ApplicationViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """스트링 교체 신청서 작성과 제출."""

    queryset = Application.objects.select_related("order", "rental").prefetch_related("lines", "history")
    serializer_class = ApplicationSerializer
    permission_classes = [permissions.IsAuthenticated, IsApplicationOwner]
    filter_backends = [DjangoFilterBackend]
    filterset_class = ApplicationFilterSet
    http_method_names = ["get", "post", "patch", "head", "options"]
    lookup_value_regex = "[0-9a-f-]{36}"

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        user = self.request.user
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return qs
        return qs.filter(user=user)

    def get_lifecycle(self) -> DraftLifecycle:
        return DraftLifecycle()

    def get_submit_handler(self) -> SubmitApplicationHandler:
        return SubmitApplicationHandler()

    def _read(self, application: Application, code=status.HTTP_200_OK) -> Response:
        application = self.get_queryset().get(pk=application.pk)
        return Response(ApplicationSerializer(application).data, status=code)

    def partial_update(self, request, *args, **kwargs):  # type: ignore
        application: Application = self.get_object()  # type: ignore
        payload = DraftInputSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            application = self.get_lifecycle().update_draft(application, payload.merge_into(application.to_draft()))
        except StringingError as exc:
            return error_response(exc)
        return self._read(application)

    def update(self, request, *args, **kwargs):  # type: ignore
        return self.partial_update(request, *args, **kwargs)

    @action(detail=False, methods=["post"], url_path="drafts")
    def drafts(self, request):  # type: ignore
        """Create or reuse the draft for an order (or a standalone draft)."""
        payload = EnsureDraftSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            handle = self.get_lifecycle().ensure_draft(
                request.user,
                order_ref=payload.validated_data.get("order_ref"),
                rental_ref=payload.validated_data.get("rental_ref"),
                catalog_mounting_fee=payload.validated_data.get("catalog_mounting_fee"),
            )
        except StringingError as exc:
            return error_response(exc)
        return Response(
            {
                "application_id": handle.application_id,
                "reused": handle.reused,
                "status": handle.application.status,
            },
            status=status.HTTP_200_OK if handle.reused else status.HTTP_201_CREATED,
        )

    def _find(self, finder, ref) -> Response:
        try:
            application = finder(ref, self.request.user)
        except DraftNotFound:
            return Response({"found": False, "application_id": None})
        return Response({"found": True, "application_id": str(application.pk), "status": application.status})

    @action(detail=False, methods=["get"], url_path=r"by-order/(?P<order_ref>\d+)")
    def by_order(self, request, order_ref=None):  # type: ignore
        return self._find(self.get_lifecycle().find_by_order, int(order_ref))

    @action(detail=False, methods=["get"], url_path=r"by-rental/(?P<rental_ref>\d+)")
    def by_rental(self, request, rental_ref=None):  # type: ignore
        return self._find(self.get_lifecycle().find_by_rental, int(rental_ref))

    @action(detail=True, methods=["get"])
    def quote(self, request, pk=None):  # type: ignore
        application: Application = self.get_object()  # type: ignore
        try:
            return Response(quote_for(application, self.get_lifecycle()))
        except StringingError as exc:
            return error_response(exc)

    @action(detail=True, methods=["post"], url_path="validate-step")
    def validate_step(self, request, pk=None):  # type: ignore
        application: Application = self.get_object()  # type: ignore
        payload = StepValidateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        draft = payload.merge_into(application.to_draft())
        lifecycle = self.get_lifecycle()
        try:
            context = step_context_for(application, draft, lifecycle)
        except StringingError as exc:
            return error_response(exc)
        check = StepValidationMachine.from_settings().validate(
            payload.validated_data["step"],
            draft,
            silent=payload.validated_data["silent"],
            context=context,
        )
        return Response(check.to_dict())

    @action(detail=True, methods=["post"])
    def submit(self, request, pk=None):  # type: ignore
        application: Application = self.get_object()  # type: ignore
        payload = DraftInputSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        return self._submit(application, payload)

    @action(detail=False, methods=["post"], url_path="submit")
    def submit_new(self, request):  # type: ignore
        """Submit a full payload, resuming ``application_id`` or the order's draft."""
        payload = SubmitSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        application_id = payload.validated_data.get("application_id")
        try:
            if application_id:
                application = self.get_queryset().filter(pk=application_id).first()
                if application is None:
                    raise DraftNotFound("신청서를 찾을 수 없습니다.")
            else:
                handle = self.get_lifecycle().ensure_draft(
                    request.user,
                    order_ref=payload.validated_data.get("order_ref"),
                    catalog_mounting_fee=payload.validated_data.get("catalog_mounting_fee"),
                )
                application = handle.application
        except StringingError as exc:
            return error_response(exc)
        return self._submit(application, payload)

    def _submit(self, application: Application, payload) -> Response:
        try:
            if application.is_draft and payload.validated_data:
                application = self.get_lifecycle().update_draft(
                    application, payload.merge_into(application.to_draft())
                )
            result = self.get_submit_handler().handle(
                SubmitApplicationCommand(application_id=application.pk, user=self.request.user)
            )
        except StringingError as exc:
            return error_response(exc)
        return submission_response(result)

    @action(detail=True, methods=["post"])
    def abandon(self, request, pk=None):  # type: ignore
        application: Application = self.get_object()  # type: ignore
        try:
            application = self.get_lifecycle().abandon(application)
        except StringingError as exc:
            return error_response(exc)
        return Response({"status": application.status})
