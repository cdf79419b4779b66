"""Read-only lookup of orders and rentals.

The stringing workflow never touches ``Order``/``RentalOrder`` rows
directly; it works on the immutable snapshots returned here. Storage
failures are reported as ``CollaboratorUnavailable`` so callers can treat
them as "unknown" rather than as an empty order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from django.db import DatabaseError  # type: ignore

from apps.stringing.exceptions import CollaboratorUnavailable
from shared.infrastructure.db import lock_queryset_if_possible

from .models import Order, OrderItem, RentalOrder, ServicePickupMethod

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderLineSnapshot:
    item_id: str
    name: str
    kind: str
    quantity: int
    mounting_fee: int

    @property
    def mountable(self) -> bool:
        return self.mounting_fee > 0


@dataclass(frozen=True)
class ContactSnapshot:
    name: str = ""
    email: str = ""
    phone: str = ""
    postal_code: str = ""
    address: str = ""
    address_detail: str = ""


@dataclass(frozen=True)
class OrderSnapshot:
    id: int
    user_id: Optional[int]
    pickup_method: str
    contact: ContactSnapshot
    lines: tuple = field(default_factory=tuple)

    @property
    def total_slots(self) -> int:
        """Number of rackets the order paid mounting for."""
        return sum(line.quantity for line in self.lines if line.mountable)

    @property
    def racket_lines(self) -> list:
        return [
            line for line in self.lines
            if line.kind in (OrderItem.Kind.RACKET, OrderItem.Kind.USED_RACKET)
        ]

    def line(self, item_id: str) -> Optional[OrderLineSnapshot]:
        for line in self.lines:
            if line.item_id == str(item_id):
                return line
        return None


@dataclass(frozen=True)
class RentalSnapshot:
    id: int
    user_id: Optional[int]
    pickup_method: str
    contact: ContactSnapshot
    racket_name: str
    racket_quantity: int
    stringing_requested: bool
    string_product_id: str
    string_name: str
    deposit: int
    rental_fee: int
    string_price: int
    stringing_fee: Optional[int]
    string_mounting_fee: Optional[int]

    @property
    def total_slots(self) -> int:
        return self.racket_quantity if self.stringing_requested else 0


def collection_method_for(pickup_method: str) -> str:
    """Map an order's service pickup method onto a collection method."""

    if pickup_method == ServicePickupMethod.COURIER_VISIT:
        return "courier_pickup"
    if pickup_method == ServicePickupMethod.SHOP_VISIT:
        return "visit"
    return "self_ship"


def _contact(obj) -> ContactSnapshot:
    return ContactSnapshot(
        name=obj.customer_name,
        email=obj.customer_email,
        phone=obj.customer_phone,
        postal_code=obj.postal_code,
        address=obj.address,
        address_detail=obj.address_detail,
    )


def get_order(order_id, *, lock: bool = False) -> Optional[OrderSnapshot]:
    """Return the order snapshot, or ``None`` when the order does not exist.

    With ``lock=True`` inside ``transaction.atomic()`` the order row stays
    locked until the transaction ends, which serializes entitlement checks
    for the same order.
    """

    try:
        qs = Order.objects.filter(pk=order_id)
        if lock:
            qs = lock_queryset_if_possible(qs)
        order = qs.first()
        if order is None:
            return None
        lines = tuple(
            OrderLineSnapshot(
                item_id=item.product_id,
                name=item.name,
                kind=item.kind,
                quantity=item.quantity,
                mounting_fee=item.mounting_fee,
            )
            for item in order.items.order_by("id")
        )
    except DatabaseError as exc:
        logger.error(f"Order lookup failed for {order_id}", exc_info=True)
        raise CollaboratorUnavailable(str(exc)) from exc

    return OrderSnapshot(
        id=order.pk,
        user_id=order.user_id,
        pickup_method=order.service_pickup_method,
        contact=_contact(order),
        lines=lines,
    )


def get_rental(rental_id, *, lock: bool = False) -> Optional[RentalSnapshot]:
    """Return the rental snapshot, or ``None`` when the rental does not exist."""

    try:
        qs = RentalOrder.objects.filter(pk=rental_id)
        if lock:
            qs = lock_queryset_if_possible(qs)
        rental = qs.first()
    except DatabaseError as exc:
        logger.error(f"Rental lookup failed for {rental_id}", exc_info=True)
        raise CollaboratorUnavailable(str(exc)) from exc

    if rental is None:
        return None

    return RentalSnapshot(
        id=rental.pk,
        user_id=rental.user_id,
        pickup_method=rental.service_pickup_method,
        contact=_contact(rental),
        racket_name=rental.racket_name,
        racket_quantity=rental.racket_quantity,
        stringing_requested=rental.stringing_requested,
        string_product_id=rental.string_product_id,
        string_name=rental.string_name,
        deposit=rental.deposit,
        rental_fee=rental.rental_fee,
        string_price=rental.string_price,
        stringing_fee=rental.stringing_fee,
        string_mounting_fee=rental.string_mounting_fee,
    )
