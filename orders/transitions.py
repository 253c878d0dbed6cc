"""Order status lifecycle.

Vendors move an order forward one step at a time (or cancel it before it
leaves the shop); admins may set any status. Balance settlement for
delivered orders is handled by ``finance.signals``.
"""

import logging

from django.db import transaction

from .exceptions import InvalidTransition
from .models import Order

logger = logging.getLogger(__name__)

_ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    Order.STATUS_PENDING: {Order.STATUS_CONFIRMED, Order.STATUS_CANCELLED},
    Order.STATUS_CONFIRMED: {Order.STATUS_PREPARING, Order.STATUS_CANCELLED},
    Order.STATUS_PREPARING: {Order.STATUS_READY, Order.STATUS_CANCELLED},
    Order.STATUS_READY: {Order.STATUS_DELIVERING},
    Order.STATUS_DELIVERING: {Order.STATUS_DELIVERED},
    Order.STATUS_DELIVERED: set(),
    Order.STATUS_CANCELLED: set(),
}

PROCESSING_STATUSES = (
    Order.STATUS_CONFIRMED,
    Order.STATUS_PREPARING,
    Order.STATUS_READY,
    Order.STATUS_DELIVERING,
)

VALID_STATUSES = {key for key, _label in Order.STATUS_CHOICES}


def allowed_next(current: str) -> set:
    return set(_ALLOWED_TRANSITIONS.get(current, set()))


def transition_allowed(current: str, requested: str) -> bool:
    return requested in _ALLOWED_TRANSITIONS.get(current, set())


def shop_owns_order(order, shop) -> bool:
    """True when every item of ``order`` belongs to ``shop``."""
    if shop is None:
        return False
    items = order.items.all()
    return items.exists() and not items.exclude(shop=shop).exists()


def change_status(order, new_status, *, enforce=True, payment_status=None):
    """Set ``order.status`` under a row lock.

    With ``enforce`` the move must follow the vendor lifecycle; otherwise
    any known status is accepted. Setting the current status again is a
    no-op. Raises :class:`InvalidTransition`.
    """
    if new_status not in VALID_STATUSES:
        raise InvalidTransition(order.status, new_status)

    with transaction.atomic():
        locked = Order.objects.select_for_update().get(pk=order.pk)
        previous = locked.status
        fields = []
        if new_status != previous:
            if enforce and not transition_allowed(previous, new_status):
                raise InvalidTransition(previous, new_status)
            locked.status = new_status
            fields.append('status')
        if payment_status and payment_status != locked.payment_status:
            locked.payment_status = payment_status
            fields.append('payment_status')
        if fields:
            locked.save(update_fields=fields + ['updated_at'])
            logger.info('Order %s: %s -> %s', locked.order_number, previous, locked.status)
    return locked
