"""
Application Draft

The explicit state of an application being assembled. Pricing and step
validation read from this value object; the service layer builds it from
the persisted draft plus the incoming payload and writes it back.
"""

from dataclasses import dataclass, field, replace
from datetime import date, time
from typing import Optional

from shared.domain.base import ValueObject

CUSTOM_ITEM = "custom"


class CollectionMethod:
    SELF_SHIP = "self_ship"
    COURIER_PICKUP = "courier_pickup"
    VISIT = "visit"

    ALL = (SELF_SHIP, COURIER_PICKUP, VISIT)


class FundingMode:
    CASH = "cash"
    PACKAGE_CREDIT = "package_credit"
    RENTAL_PREPAID = "rental_prepaid"


@dataclass(frozen=True)
class StringSelection(ValueObject):
    """One chosen string: a catalog/order item id, or ``custom``."""
    item_id: str
    use_count: Optional[int] = None
    name: str = ""

    @property
    def is_custom(self) -> bool:
        return self.item_id == CUSTOM_ITEM


@dataclass(frozen=True)
class DraftLine(ValueObject):
    """One racket to restring."""
    racket_label: str = ""
    string_item_id: str = ""
    main_tension: str = ""
    cross_tension: str = ""
    note: str = ""

    @property
    def complete(self) -> bool:
        return bool(
            self.racket_label.strip()
            and str(self.main_tension).strip()
            and str(self.cross_tension).strip()
        )


@dataclass(frozen=True)
class ApplicationDraft(ValueObject):
    application_id: Optional[str] = None
    order_ref: Optional[int] = None
    rental_ref: Optional[int] = None

    # contact / shipping
    name: str = ""
    email: str = ""
    phone: str = ""
    postal_code: str = ""
    address: str = ""
    address_detail: str = ""
    collection_method: str = ""
    pickup_date: Optional[date] = None
    pickup_time: str = ""

    # service detail
    selections: tuple = field(default_factory=tuple)
    custom_string_name: str = ""
    racket_type: str = ""
    preferred_date: Optional[date] = None
    preferred_time: Optional[time] = None
    lines: tuple = field(default_factory=tuple)
    catalog_mounting_fee: Optional[int] = None

    # funding
    funding_requested: str = FundingMode.CASH
    bank: str = ""
    depositor: str = ""

    requirements: str = ""

    @property
    def is_order_based(self) -> bool:
        return self.order_ref is not None

    @property
    def is_rental_based(self) -> bool:
        return self.rental_ref is not None

    @property
    def has_custom(self) -> bool:
        return any(s.is_custom for s in self.selections)

    def with_changes(self, **changes) -> "ApplicationDraft":
        return replace(self, **changes)


def expand_lines(draft: ApplicationDraft, unit_counts: dict, default_racket: str = "") -> tuple:
    """Skeleton lines, one per unit, for drafts without explicit lines.

    ``unit_counts`` maps selection item ids to their total required units.
    """
    if draft.lines:
        return draft.lines
    label = draft.racket_type or default_racket
    lines = []
    for item_id in dict.fromkeys(s.item_id for s in draft.selections):
        for _ in range(unit_counts.get(item_id, 1)):
            lines.append(DraftLine(racket_label=label, string_item_id=item_id))
    return tuple(lines)
