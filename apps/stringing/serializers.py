"""Serializers for the stringing application API."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .domain.draft import ApplicationDraft, DraftLine, StringSelection
from .domain.steps import STEPS
from .models import Application, ApplicationHistory, ApplicationLine


class ApplicationLineSerializer(serializers.ModelSerializer):
    class Meta:
        model = ApplicationLine
        fields = ["position", "racket_label", "string_item_id", "main_tension", "cross_tension", "note"]


class ApplicationHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = ApplicationHistory
        fields = ["status", "description", "created_at"]


class ApplicationSerializer(serializers.ModelSerializer):
    """신청서 상세."""

    lines = ApplicationLineSerializer(many=True, read_only=True)
    history = ApplicationHistorySerializer(many=True, read_only=True)
    order_ref = serializers.ReadOnlyField(source="order_id")
    rental_ref = serializers.ReadOnlyField(source="rental_id")

    class Meta:
        model = Application
        fields = [
            "id",
            "order_ref",
            "rental_ref",
            "status",
            "name",
            "email",
            "phone",
            "postal_code",
            "address",
            "address_detail",
            "collection_method",
            "pickup_date",
            "pickup_time",
            "string_selections",
            "custom_string_name",
            "racket_type",
            "catalog_mounting_fee",
            "preferred_date",
            "preferred_time",
            "funding_requested",
            "funding_mode",
            "bank",
            "depositor",
            "requirements",
            "required_units",
            "base_fee",
            "logistics_fee",
            "total_price",
            "currency",
            "lines",
            "history",
            "submitted_at",
            "expires_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class SelectionSerializer(serializers.Serializer):
    item_id = serializers.CharField(max_length=64)
    use_count = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    name = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")


class LineInputSerializer(serializers.Serializer):
    racket_label = serializers.CharField(max_length=200, allow_blank=True, default="")
    string_item_id = serializers.CharField(max_length=64, allow_blank=True, default="")
    main_tension = serializers.CharField(max_length=10, allow_blank=True, default="")
    cross_tension = serializers.CharField(max_length=10, allow_blank=True, default="")
    note = serializers.CharField(max_length=255, allow_blank=True, default="")


class DraftInputSerializer(serializers.Serializer):
    """Editable draft fields. Omitted fields keep their stored value."""

    name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    email = serializers.CharField(max_length=254, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    postal_code = serializers.CharField(max_length=10, required=False, allow_blank=True)
    address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    address_detail = serializers.CharField(max_length=255, required=False, allow_blank=True)
    collection_method = serializers.ChoiceField(
        choices=Application.CollectionMethod.choices, required=False, allow_blank=True
    )
    pickup_date = serializers.DateField(required=False, allow_null=True)
    pickup_time = serializers.CharField(max_length=20, required=False, allow_blank=True)
    selections = SelectionSerializer(many=True, required=False)
    custom_string_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    racket_type = serializers.CharField(max_length=200, required=False, allow_blank=True)
    catalog_mounting_fee = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    preferred_date = serializers.DateField(required=False, allow_null=True)
    preferred_time = serializers.TimeField(required=False, allow_null=True)
    lines = LineInputSerializer(many=True, required=False)
    funding_requested = serializers.ChoiceField(
        choices=[Application.FundingMode.CASH, Application.FundingMode.PACKAGE_CREDIT], required=False
    )
    bank = serializers.CharField(max_length=50, required=False, allow_blank=True)
    depositor = serializers.CharField(max_length=100, required=False, allow_blank=True)
    requirements = serializers.CharField(required=False, allow_blank=True)

    def validate_selections(self, value):  # type: ignore
        item_ids = [item["item_id"] for item in value]
        if len(item_ids) != len(set(item_ids)):
            raise serializers.ValidationError("같은 스트링을 두 번 선택할 수 없습니다. 사용 개수를 조정해주세요.")
        return value

    def merge_into(self, draft: ApplicationDraft) -> ApplicationDraft:
        data = dict(self.validated_data)
        changes = {}
        if "selections" in data:
            changes["selections"] = tuple(StringSelection(**item) for item in data.pop("selections"))
        if "lines" in data:
            changes["lines"] = tuple(DraftLine(**item) for item in data.pop("lines"))
        for key in ("application_id", "order_ref", "step", "silent"):
            data.pop(key, None)
        changes.update(data)
        return draft.with_changes(**changes)


class EnsureDraftSerializer(serializers.Serializer):
    order_ref = serializers.IntegerField(required=False, allow_null=True)
    rental_ref = serializers.IntegerField(required=False, allow_null=True)
    catalog_mounting_fee = serializers.IntegerField(min_value=0, required=False, allow_null=True)

    def validate(self, attrs):  # type: ignore
        if attrs.get("order_ref") is not None and attrs.get("rental_ref") is not None:
            raise serializers.ValidationError("order_ref 와 rental_ref 는 함께 지정할 수 없습니다.")
        return attrs


class StepValidateSerializer(DraftInputSerializer):
    step = serializers.ChoiceField(choices=STEPS)
    silent = serializers.BooleanField(required=False, default=False)


class SubmitSerializer(DraftInputSerializer):
    """Full submission payload; ``application_id`` resumes an existing draft."""

    application_id = serializers.UUIDField(required=False, allow_null=True)
    order_ref = serializers.IntegerField(required=False, allow_null=True)
