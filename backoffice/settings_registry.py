"""Platform settings with code defaults.

Rows in :class:`~backoffice.models.PlatformSetting` override the defaults
below. Money and percentage defaults come from ``settings.MARKETPLACE`` so
deployments can change them without touching the database.
"""

from decimal import Decimal, InvalidOperation
import logging

from django.conf import settings

from .models import PlatformSetting

logger = logging.getLogger(__name__)


def default_settings() -> dict:
    market = settings.MARKETPLACE
    return {
        'platform.name': {'value': 'Topla', 'description': 'Platform name', 'category': 'general'},
        'platform.tagline': {'value': 'Delivery service', 'description': 'Platform tagline', 'category': 'general'},
        'platform.contact_phone': {'value': '+998 99 999 99 99', 'description': 'Contact phone', 'category': 'general'},
        'platform.contact_email': {'value': 'support@topla.uz', 'description': 'Contact email', 'category': 'general'},
        'order.min_amount': {'value': '15000', 'description': 'Minimum order amount', 'category': 'orders'},
        'order.default_delivery_fee': {'value': str(market['DELIVERY_FEE']), 'description': 'Default delivery fee', 'category': 'orders'},
        'order.free_delivery_threshold': {'value': str(market['FREE_DELIVERY_THRESHOLD']), 'description': 'Free delivery threshold', 'category': 'orders'},
        'vendor.commission_rate': {'value': str(market['DEFAULT_COMMISSION_RATE']), 'description': 'Vendor commission (%)', 'category': 'vendors'},
        'vendor.min_payout': {'value': str(market['MIN_PAYOUT_AMOUNT']), 'description': 'Minimum payout amount', 'category': 'vendors'},
        'vendor.payout_day': {'value': 'monday', 'description': 'Payout day', 'category': 'vendors'},
        'notification.order_updates': {'value': 'true', 'description': 'Order update notifications', 'category': 'notifications'},
        'notification.promo_alerts': {'value': 'true', 'description': 'Promo alert notifications', 'category': 'notifications'},
    }


def get_setting(key: str):
    """Return the stored value for ``key``, else its default, else ``None``."""
    value = PlatformSetting.objects.filter(key=key).values_list('value', flat=True).first()
    if value:
        return value
    default = default_settings().get(key)
    return default['value'] if default else None


NUMERIC_SETTINGS = frozenset({
    'order.min_amount',
    'order.default_delivery_fee',
    'order.free_delivery_threshold',
    'vendor.commission_rate',
    'vendor.min_payout',
})


def parse_amount(raw):
    """``Decimal`` for a finite, non-negative ``raw``, otherwise ``None``."""
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not value.is_finite() or value < 0:
        return None
    return value


def decimal_setting(key: str) -> Decimal:
    raw = get_setting(key)
    value = parse_amount(raw)
    if value is None:
        fallback = default_settings()[key]['value']
        logger.warning('Platform setting %s=%r is not a usable number; using default %s', key, raw, fallback)
        return Decimal(fallback)
    return value


def grouped_settings() -> list:
    """Return settings grouped by category, stored rows merged over defaults."""
    merged = {
        key: {'key': key, **meta}
        for key, meta in default_settings().items()
    }
    for row in PlatformSetting.objects.all():
        merged[row.key] = {
            'key': row.key,
            'value': row.value,
            'description': row.description or merged.get(row.key, {}).get('description', ''),
            'category': row.category,
        }

    categories: dict = {}
    for item in sorted(merged.values(), key=lambda s: s['key']):
        categories.setdefault(item['category'], []).append(item)
    return [{'category': category, 'settings': items} for category, items in categories.items()]


def update_setting(key: str, value: str) -> PlatformSetting:
    """Insert or update the row for ``key``."""
    meta = default_settings().get(key, {})
    obj, _ = PlatformSetting.objects.update_or_create(
        key=key,
        defaults={
            'value': value,
            'description': meta.get('description', ''),
            'category': meta.get('category', 'general'),
        },
    )
    return obj
