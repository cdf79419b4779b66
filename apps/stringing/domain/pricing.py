"""
Pricing Engine

Computes the amount due for a draft. The base fee comes from the first
matching source in priority order (custom string flat fee, order line
mounting fee, catalog mounting fee, standalone fallback); the courier
surcharge is added for courier pickup; package funding zeroes the total
but keeps the breakdown. Rental applications were paid at rental
checkout and show the stored snapshot instead.
"""

from dataclasses import dataclass
from typing import Optional

from shared.domain.base import ValueObject
from shared.domain.value_objects import Money

from .draft import ApplicationDraft, CollectionMethod, FundingMode


class BaseFeeSource:
    CUSTOM = "custom"
    ORDER = "order"
    CATALOG = "catalog"
    FALLBACK = "fallback"
    RENTAL_SNAPSHOT = "rental_snapshot"


@dataclass(frozen=True)
class PriceQuote(ValueObject):
    base_fee: Money
    logistics_fee: Money
    total: Money
    funding_mode: str
    required_units: int
    base_source: str
    rental_snapshot: Optional[dict] = None

    def to_dict(self) -> dict:
        return {
            "base_fee": self.base_fee.won,
            "logistics_fee": self.logistics_fee.won,
            "total": self.total.won,
            "currency": self.total.currency,
            "funding_mode": self.funding_mode,
            "required_units": self.required_units,
            "base_source": self.base_source,
            "rental_snapshot": self.rental_snapshot,
        }


class PricingEngine:
    """Fee rules. Constants come from the ``STRINGING`` settings."""

    def __init__(self, custom_flat_fee: int, fallback_fee: int, courier_fee: int, max_custom_units: int = 99):
        self.custom_flat_fee = Money(custom_flat_fee)
        self.fallback_fee = Money(fallback_fee)
        self.courier_fee = Money(courier_fee)
        self.max_custom_units = max_custom_units

    @classmethod
    def from_settings(cls) -> "PricingEngine":
        from django.conf import settings  # type: ignore

        conf = settings.STRINGING
        return cls(
            custom_flat_fee=conf["CUSTOM_STRING_FLAT_FEE"],
            fallback_fee=conf["STANDALONE_FALLBACK_FEE"],
            courier_fee=conf["COURIER_PICKUP_FEE"],
            max_custom_units=conf["MAX_CUSTOM_UNITS"],
        )

    # --- base fee -------------------------------------------------------

    def base_fee(self, draft: ApplicationDraft, order=None) -> tuple:
        """Return ``(Money, source)`` for the draft."""
        if draft.has_custom:
            return self.custom_flat_fee, BaseFeeSource.CUSTOM

        if draft.is_order_based and order is not None:
            for selection in draft.selections:
                line = order.line(selection.item_id)
                if line is not None and line.mounting_fee > 0:
                    return Money(line.mounting_fee), BaseFeeSource.ORDER

        if draft.catalog_mounting_fee:
            return Money(draft.catalog_mounting_fee), BaseFeeSource.CATALOG

        return self.fallback_fee, BaseFeeSource.FALLBACK

    def logistics_fee(self, collection_method: str) -> Money:
        if collection_method == CollectionMethod.COURIER_PICKUP:
            return self.courier_fee
        return Money.zero()

    # --- units ----------------------------------------------------------

    def _clamp(self, value, upper: int) -> int:
        try:
            value = int(value)
        except (TypeError, ValueError):
            value = 1
        return max(1, min(value, upper))

    def units_per_selection(self, draft: ApplicationDraft, order=None) -> dict:
        """Required units per item id, summed over repeated selections of one item."""
        counts = {}
        for selection in draft.selections:
            if selection.is_custom:
                units = self._clamp(selection.use_count or 1, self.max_custom_units)
            else:
                line = order.line(selection.item_id) if (draft.is_order_based and order is not None) else None
                if line is not None:
                    requested = selection.use_count if selection.use_count is not None else line.quantity
                    units = self._clamp(requested, max(line.quantity, 1))
                else:
                    units = 1
            counts[selection.item_id] = counts.get(selection.item_id, 0) + units
        return counts

    def required_units(self, draft: ApplicationDraft, order=None) -> int:
        """Appointment units; also the entitlement and ledger currency."""
        return sum(self.units_per_selection(draft, order).values())

    # --- funding --------------------------------------------------------

    def resolve_funding(self, draft: ApplicationDraft, package=None) -> str:
        if draft.is_rental_based:
            return FundingMode.RENTAL_PREPAID
        if (
            draft.funding_requested == FundingMode.PACKAGE_CREDIT
            and package is not None
            and package.sufficient
        ):
            return FundingMode.PACKAGE_CREDIT
        return FundingMode.CASH

    # --- quote ----------------------------------------------------------

    def rental_base_fee(self, rental) -> tuple:
        if rental.stringing_fee is not None:
            return Money(rental.stringing_fee), BaseFeeSource.RENTAL_SNAPSHOT
        if rental.string_mounting_fee:
            return Money(rental.string_mounting_fee), BaseFeeSource.CATALOG
        return self.fallback_fee, BaseFeeSource.FALLBACK

    def quote(self, draft: ApplicationDraft, *, order=None, rental=None, package=None) -> PriceQuote:
        units = self.required_units(draft, order)
        logistics = self.logistics_fee(draft.collection_method)

        if draft.is_rental_based and rental is not None:
            base, source = self.rental_base_fee(rental)
            return PriceQuote(
                base_fee=base,
                logistics_fee=logistics,
                total=Money.zero(),
                funding_mode=FundingMode.RENTAL_PREPAID,
                required_units=units,
                base_source=source,
                rental_snapshot={
                    "deposit": rental.deposit,
                    "rental_fee": rental.rental_fee,
                    "string_price": rental.string_price,
                    "stringing_fee": base.won,
                },
            )

        base, source = self.base_fee(draft, order)
        funding = self.resolve_funding(draft, package)
        total = Money.zero() if funding == FundingMode.PACKAGE_CREDIT else base + logistics
        return PriceQuote(
            base_fee=base,
            logistics_fee=logistics,
            total=total,
            funding_mode=funding,
            required_units=units,
            base_source=source,
        )
