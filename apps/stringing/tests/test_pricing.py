"""Tests for the application pricing rules."""

from __future__ import annotations

import pytest

from apps.orders.gateway import ContactSnapshot, OrderLineSnapshot, OrderSnapshot, RentalSnapshot
from apps.passes.services import PackageEligibility
from apps.stringing.domain.draft import (
    CUSTOM_ITEM,
    ApplicationDraft,
    CollectionMethod,
    FundingMode,
    StringSelection,
    expand_lines,
)
from apps.stringing.domain.pricing import BaseFeeSource, PricingEngine
from shared.domain.value_objects import Money


@pytest.fixture
def engine() -> PricingEngine:
    return PricingEngine(custom_flat_fee=15000, fallback_fee=35000, courier_fee=3000, max_custom_units=99)


@pytest.fixture
def order_snapshot() -> OrderSnapshot:
    return OrderSnapshot(
        id=1,
        user_id=1,
        pickup_method="self_send",
        contact=ContactSnapshot(),
        lines=(
            OrderLineSnapshot(item_id="STR-1", name="ALU Power", kind="product", quantity=3, mounting_fee=12000),
            OrderLineSnapshot(item_id="RKT-1", name="Pure Aero", kind="racket", quantity=1, mounting_fee=0),
        ),
    )


def _rental(stringing_fee=10000, string_mounting_fee=12000) -> RentalSnapshot:
    return RentalSnapshot(
        id=7,
        user_id=1,
        pickup_method="self_send",
        contact=ContactSnapshot(),
        racket_name="Blade 98",
        racket_quantity=1,
        stringing_requested=True,
        string_product_id="STR-9",
        string_name="Hyper-G",
        deposit=100000,
        rental_fee=15000,
        string_price=20000,
        stringing_fee=stringing_fee,
        string_mounting_fee=string_mounting_fee,
    )


def test_base_fee_priority_custom_order_catalog_fallback(engine, order_snapshot):
    draft = ApplicationDraft(
        order_ref=1,
        selections=(StringSelection("STR-1"), StringSelection(CUSTOM_ITEM, use_count=1)),
        catalog_mounting_fee=9000,
    )
    assert engine.base_fee(draft, order_snapshot) == (Money(15000), BaseFeeSource.CUSTOM)

    draft = draft.with_changes(selections=(StringSelection("STR-1"),))
    assert engine.base_fee(draft, order_snapshot) == (Money(12000), BaseFeeSource.ORDER)

    draft = draft.with_changes(order_ref=None)
    assert engine.base_fee(draft, None) == (Money(9000), BaseFeeSource.CATALOG)

    draft = draft.with_changes(catalog_mounting_fee=None)
    assert engine.base_fee(draft, None) == (Money(35000), BaseFeeSource.FALLBACK)


def test_courier_pickup_adds_logistics_fee(engine):
    draft = ApplicationDraft(selections=(StringSelection("STR-5"),), collection_method=CollectionMethod.COURIER_PICKUP)

    quote = engine.quote(draft)

    assert quote.base_fee.won == 35000
    assert quote.logistics_fee.won == 3000
    assert quote.total.won == 38000
    assert quote.funding_mode == FundingMode.CASH


@pytest.mark.parametrize("method", [CollectionMethod.VISIT, CollectionMethod.SELF_SHIP])
def test_visit_and_self_ship_have_no_logistics_fee(engine, method):
    draft = ApplicationDraft(selections=(StringSelection("STR-5"),), collection_method=method)

    assert engine.quote(draft).logistics_fee.won == 0


def test_sufficient_package_zeroes_total_but_keeps_breakdown(engine):
    draft = ApplicationDraft(
        selections=(StringSelection("STR-5"),),
        collection_method=CollectionMethod.COURIER_PICKUP,
        funding_requested=FundingMode.PACKAGE_CREDIT,
    )
    package = PackageEligibility(has=True, remaining=5, sufficient=True, pass_id=1)

    quote = engine.quote(draft, package=package)

    assert quote.funding_mode == FundingMode.PACKAGE_CREDIT
    assert quote.total.won == 0
    assert quote.base_fee.won == 35000
    assert quote.logistics_fee.won == 3000


def test_insufficient_package_falls_back_to_cash(engine):
    draft = ApplicationDraft(
        selections=(StringSelection(CUSTOM_ITEM, use_count=3),),
        funding_requested=FundingMode.PACKAGE_CREDIT,
    )
    package = PackageEligibility(has=True, remaining=2, sufficient=False, pass_id=1)

    quote = engine.quote(draft, package=package)

    assert quote.funding_mode == FundingMode.CASH
    assert quote.total.won == 15000
    assert quote.required_units == 3


def test_order_units_default_to_line_quantity_and_clamp(engine, order_snapshot):
    draft = ApplicationDraft(order_ref=1, selections=(StringSelection("STR-1"),))
    assert engine.required_units(draft, order_snapshot) == 3

    draft = draft.with_changes(selections=(StringSelection("STR-1", use_count=2),))
    assert engine.required_units(draft, order_snapshot) == 2

    draft = draft.with_changes(selections=(StringSelection("STR-1", use_count=10),))
    assert engine.required_units(draft, order_snapshot) == 3


def test_standalone_units_are_one_per_item_except_custom(engine):
    draft = ApplicationDraft(
        selections=(
            StringSelection("STR-5", use_count=4),
            StringSelection("STR-6"),
            StringSelection(CUSTOM_ITEM, use_count=3),
        )
    )

    assert engine.units_per_selection(draft) == {"STR-5": 1, "STR-6": 1, CUSTOM_ITEM: 3}
    assert engine.required_units(draft) == 5


def test_repeated_selections_of_one_item_add_up(engine, order_snapshot):
    draft = ApplicationDraft(
        order_ref=1,
        selections=(StringSelection("STR-1", use_count=2), StringSelection("STR-1", use_count=2)),
    )

    assert engine.units_per_selection(draft, order_snapshot) == {"STR-1": 4}
    assert engine.required_units(draft, order_snapshot) == 4

    lines = expand_lines(draft, engine.units_per_selection(draft, order_snapshot))
    assert len(lines) == 4


def test_rental_quote_prefers_stored_stringing_fee(engine):
    draft = ApplicationDraft(rental_ref=7, selections=(StringSelection("STR-9"),))

    quote = engine.quote(draft, rental=_rental())

    assert quote.funding_mode == FundingMode.RENTAL_PREPAID
    assert quote.total.won == 0
    assert quote.base_source == BaseFeeSource.RENTAL_SNAPSHOT
    assert quote.rental_snapshot == {
        "deposit": 100000,
        "rental_fee": 15000,
        "string_price": 20000,
        "stringing_fee": 10000,
    }


def test_rental_quote_recomputes_when_snapshot_missing(engine):
    draft = ApplicationDraft(rental_ref=7, selections=(StringSelection("STR-9"),))

    quote = engine.quote(draft, rental=_rental(stringing_fee=None))

    assert quote.base_fee.won == 12000
    assert quote.base_source == BaseFeeSource.CATALOG
    assert quote.rental_snapshot["stringing_fee"] == 12000


def test_rental_is_never_package_funded(engine):
    draft = ApplicationDraft(rental_ref=7, funding_requested=FundingMode.PACKAGE_CREDIT)
    package = PackageEligibility(has=True, remaining=10, sufficient=True, pass_id=1)

    assert engine.resolve_funding(draft, package) == FundingMode.RENTAL_PREPAID
