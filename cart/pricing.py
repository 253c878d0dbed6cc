"""Cart totals: subtotal, promo discount, delivery fee."""

from decimal import Decimal

from backoffice.models import PromoCode
from backoffice.settings_registry import decimal_setting

CENT = Decimal('0.01')


def delivery_fee(subtotal) -> Decimal:
    """Free at or above the threshold, otherwise the configured fee."""
    subtotal = Decimal(str(subtotal or 0))
    if subtotal >= decimal_setting('order.free_delivery_threshold'):
        return Decimal('0')
    return decimal_setting('order.default_delivery_fee')


def apply_promo(code, subtotal, today=None):
    """Look ``code`` up and evaluate it against ``subtotal``.

    Returns ``(promo, discount, error)``; ``promo`` is ``None`` when the
    code is unknown or refused.
    """
    code = (code or '').strip().upper()
    if not code:
        return None, Decimal('0'), None
    promo = PromoCode.objects.filter(code=code).first()
    if promo is None:
        return None, Decimal('0'), 'Invalid promo code.'
    discount, reason = promo.evaluate(subtotal, today=today)
    if reason:
        return None, Decimal('0'), reason
    return promo, discount.quantize(CENT), None


def summarize(store, lines=None, promo_code=None, today=None) -> dict:
    """Totals for the cart held by ``store`` (a :class:`cart.store.CartStore`)."""
    lines = store.load() if lines is None else lines
    subtotal = store.subtotal(lines)
    promo, discount, promo_error = apply_promo(promo_code, subtotal, today=today)
    fee = delivery_fee(subtotal)
    return {
        'count': store.count(lines),
        'subtotal': subtotal.quantize(CENT),
        'discount': discount,
        'promo_code': promo.code if promo else None,
        'promo_error': promo_error,
        'delivery_fee': fee.quantize(CENT),
        'total': (subtotal - discount + fee).quantize(CENT),
    }
