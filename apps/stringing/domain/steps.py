"""
Step Validation Machine

Four ordered gates an application passes before submission:

1. contact and shipping
2. service detail
3. funding confirmation
4. final notes (always valid)

Each gate checks its fields in a fixed order so the first failing field
is deterministic. ``silent`` validation returns the same verdict without
a message and is used for navigation affordances.
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional

from django.utils.translation import gettext_lazy as _  # type: ignore

from .draft import ApplicationDraft, CollectionMethod, FundingMode

CONTACT, SERVICE, FUNDING, NOTES = 1, 2, 3, 4
STEPS = (CONTACT, SERVICE, FUNDING, NOTES)
LAST_STEP = NOTES

DEFAULT_PHONE_PATTERN = r"^010\d{8}$"


@dataclass(frozen=True)
class StepContext:
    """Facts about the draft that come from collaborators."""
    required_units: int = 0
    remaining_slots: Optional[int] = None
    funding_mode: str = FundingMode.CASH


@dataclass(frozen=True)
class StepCheck:
    valid: bool
    step: int
    field: Optional[str] = None
    message: str = ""

    def to_dict(self) -> dict:
        return {"valid": self.valid, "step": self.step, "field": self.field, "message": str(self.message)}


def normalize_phone(value: str) -> str:
    return re.sub(r"\D", "", value or "")


def _blank(value) -> bool:
    return value is None or not str(value).strip()


class StepValidationMachine:

    def __init__(self, phone_pattern: str = DEFAULT_PHONE_PATTERN):
        self.phone_re = re.compile(phone_pattern)
        self._gates: dict[int, Callable] = {
            CONTACT: self._contact_checks,
            SERVICE: self._service_checks,
            FUNDING: self._funding_checks,
            NOTES: self._notes_checks,
        }

    @classmethod
    def from_settings(cls) -> "StepValidationMachine":
        from django.conf import settings  # type: ignore

        return cls(settings.STRINGING.get("PHONE_PATTERN", DEFAULT_PHONE_PATTERN))

    # --- gates ----------------------------------------------------------

    def _contact_checks(self, draft: ApplicationDraft, ctx: StepContext):
        yield "name", _blank(draft.name), _("신청인 이름을 입력해주세요.")
        yield "email", _blank(draft.email), _("이메일을 입력해주세요.")
        yield "phone", _blank(draft.phone), _("연락처를 입력해주세요.")
        yield (
            "phone",
            not self.phone_re.match(normalize_phone(draft.phone)),
            _("연락처는 010으로 시작하는 11자리 숫자로 입력해주세요."),
        )
        yield "postal_code", _blank(draft.postal_code), _("우편번호를 입력해주세요.")
        yield "address", _blank(draft.address), _("주소를 입력해주세요.")
        yield (
            "collection_method",
            draft.collection_method not in CollectionMethod.ALL,
            _("라켓 전달 방식을 선택해주세요."),
        )
        courier = draft.collection_method == CollectionMethod.COURIER_PICKUP
        yield "pickup_date", courier and draft.pickup_date is None, _("수거 희망일을 선택해주세요.")
        yield "pickup_time", courier and _blank(draft.pickup_time), _("수거 희망 시간대를 선택해주세요.")

    def _service_checks(self, draft: ApplicationDraft, ctx: StepContext):
        yield "selections", not draft.selections, _("스트링을 하나 이상 선택해주세요.")
        yield (
            "custom_string_name",
            draft.has_custom and _blank(draft.custom_string_name),
            _("직접 가져오실 스트링 이름을 입력해주세요."),
        )
        visit = draft.collection_method == CollectionMethod.VISIT
        yield "preferred_date", visit and draft.preferred_date is None, _("방문 예약 날짜를 선택해주세요.")
        yield "preferred_time", visit and draft.preferred_time is None, _("방문 예약 시간을 선택해주세요.")
        over_cap = (
            draft.is_order_based
            and ctx.remaining_slots is not None
            and ctx.required_units > ctx.remaining_slots
        )
        yield "selections", over_cap, _("주문에서 신청 가능한 교체 수량을 초과했습니다.")
        yield "lines", not draft.lines, _("라켓 정보를 입력해주세요.")
        yield (
            "lines",
            any(not line.complete for line in draft.lines),
            _("모든 라켓의 이름과 메인/크로스 텐션을 입력해주세요."),
        )

    def _funding_checks(self, draft: ApplicationDraft, ctx: StepContext):
        skip = draft.is_rental_based or ctx.funding_mode == FundingMode.PACKAGE_CREDIT
        yield "bank", not skip and _blank(draft.bank), _("입금하실 은행을 선택해주세요.")
        yield "depositor", not skip and _blank(draft.depositor), _("입금자명을 입력해주세요.")

    def _notes_checks(self, draft: ApplicationDraft, ctx: StepContext):
        return iter(())

    # --- public ---------------------------------------------------------

    def validate(self, step: int, draft: ApplicationDraft, *, silent: bool = False,
                 context: Optional[StepContext] = None) -> StepCheck:
        if step not in self._gates:
            raise ValueError(f"Unknown step {step}")
        context = context or StepContext()
        for field_name, failed, message in self._gates[step](draft, context):
            if failed:
                return StepCheck(False, step, field_name, "" if silent else message)
        return StepCheck(True, step)

    def first_failing_field(self, step: int, draft: ApplicationDraft,
                            context: Optional[StepContext] = None) -> Optional[str]:
        return self.validate(step, draft, silent=True, context=context).field

    def validate_through(self, last_step: int, draft: ApplicationDraft, *, silent: bool = False,
                         context: Optional[StepContext] = None) -> StepCheck:
        """Validate gates ``1..last_step`` and stop at the first failure."""
        for step in STEPS:
            if step > last_step:
                break
            check = self.validate(step, draft, silent=silent, context=context)
            if not check.valid:
                return check
        return StepCheck(True, last_step)

    def can_advance(self, step: int, draft: ApplicationDraft, context: Optional[StepContext] = None) -> bool:
        return self.validate(step, draft, silent=True, context=context).valid
