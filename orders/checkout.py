"""Checkout: form sections, validation and order submission.

The checkout page is four collapsible sections with at most one open at
a time. Which one is open is remembered in the session; opening a section
is never gated on the others being filled in. Everything is validated
together on submit.
"""

import hashlib
import logging

from django.db import IntegrityError, transaction
from django.db.models import F
from rest_framework import serializers

from accounts.models import Address
from accounts.validators import normalize_phone
from backoffice.models import PromoCode
from cart.pricing import summarize
from products.models import Product
from shops.models import Shop

from .exceptions import CheckoutError
from .models import Order, OrderItem

logger = logging.getLogger(__name__)

SECTION_CONTACT = 'contact'
SECTION_ADDRESS = 'address'
SECTION_DELIVERY = 'delivery'
SECTION_PAYMENT = 'payment'
SECTIONS = (SECTION_CONTACT, SECTION_ADDRESS, SECTION_DELIVERY, SECTION_PAYMENT)
DEFAULT_SECTION = SECTION_ADDRESS
SECTION_SESSION_KEY = 'checkout_section'

DELIVERY_ASAP = 'asap'
DELIVERY_SCHEDULED = 'scheduled'

TIME_SLOTS = (
    '09:00 - 12:00',
    '12:00 - 15:00',
    '15:00 - 18:00',
    '18:00 - 21:00',
)


def toggle_section(current, name):
    """Close ``name`` if it is the open section, otherwise open it."""
    return None if current == name else name


def current_section(session):
    if session is None or SECTION_SESSION_KEY not in session:
        return DEFAULT_SECTION
    return session[SECTION_SESSION_KEY]


class NewAddressSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    address = serializers.CharField(max_length=255, allow_blank=True)
    apartment = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')
    entrance = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')
    floor = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')
    comment = serializers.CharField(required=False, allow_blank=True, default='')


class CheckoutSerializer(serializers.Serializer):
    """Checkout form.

    Either ``address_id`` (a saved address of the signed-in user) or
    ``new_address`` is required. A scheduled delivery needs both
    ``scheduled_date`` and ``time_slot``.
    """

    customer_name = serializers.CharField(max_length=255, allow_blank=True)
    customer_phone = serializers.CharField(max_length=30, allow_blank=True)
    address_id = serializers.IntegerField(required=False, allow_null=True)
    new_address = NewAddressSerializer(required=False, allow_null=True)
    payment_method = serializers.ChoiceField(choices=Order.PAYMENT_METHOD_CHOICES, default=Order.PAYMENT_CASH)
    delivery_type = serializers.ChoiceField(choices=(DELIVERY_ASAP, DELIVERY_SCHEDULED), default=DELIVERY_ASAP)
    scheduled_date = serializers.DateField(required=False, allow_null=True)
    time_slot = serializers.ChoiceField(choices=TIME_SLOTS, required=False, allow_null=True, allow_blank=True)
    comment = serializers.CharField(required=False, allow_blank=True, default='')
    promo_code = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')

    def validate_customer_name(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError('Name is required.')
        return value

    def validate_customer_phone(self, value):
        return normalize_phone(value)

    def validate(self, attrs):
        errors = {}
        user = self.context.get('user')
        new_address = attrs.get('new_address')
        address_id = attrs.get('address_id')

        if new_address is not None:
            if not (new_address.get('address') or '').strip():
                errors['new_address'] = 'Address is required.'
        elif address_id:
            address = None
            if user is not None and user.is_authenticated:
                address = Address.objects.filter(pk=address_id, user=user).first()
            if address is None:
                errors['address_id'] = 'Saved address not found.'
            attrs['address'] = address
        else:
            errors['address'] = 'Choose a saved address or add a new one.'

        if attrs.get('delivery_type') == DELIVERY_SCHEDULED:
            if not attrs.get('scheduled_date') or not attrs.get('time_slot'):
                errors['schedule'] = 'Choose a delivery date and time slot.'

        if errors:
            raise serializers.ValidationError(errors)
        return attrs


def delivery_time_label(data):
    if data.get('delivery_type') == DELIVERY_SCHEDULED:
        return f"{data['scheduled_date'].isoformat()} {data['time_slot']}"
    return Order.DELIVERY_ASAP


def _claim_promo(code, subtotal):
    """Lock the promo row, re-check it and count one use."""
    promo = PromoCode.objects.select_for_update().filter(code=code).first()
    if promo is None:
        raise CheckoutError('Invalid promo code.')
    _discount, reason = promo.evaluate(subtotal)
    if reason:
        raise CheckoutError(reason)
    PromoCode.objects.filter(pk=promo.pk).update(used_count=F('used_count') + 1)


IDEMPOTENCY_KEY_MAX_LENGTH = 100


def owner_scoped_key(key, *, user=None, session_key=None):
    """Digest of ``key`` bound to whoever sent it.

    Signed-in customers are identified by user id, guests by session key.
    Returns ``None`` when there is no key or no owner to bind it to.
    """
    if not key:
        return None
    if user is not None:
        owner = f'user:{user.pk}'
    elif session_key:
        owner = f'session:{session_key}'
    else:
        return None
    return hashlib.sha256(f'{owner}:{key}'.encode()).hexdigest()


def place_order(cart, data, *, user=None, idempotency_key=None, session_key=None):
    """Create an order from the cart held by ``cart``.

    ``data`` is validated :class:`CheckoutSerializer` data. Returns
    ``(order, created)``; the same ``idempotency_key`` sent again by the same
    customer (or guest session) returns the order created the first time
    with ``created=False``. The key from another owner never matches. On
    success the cart is cleared with a single write.
    """
    if user is not None and not user.is_authenticated:
        user = None

    if idempotency_key and len(idempotency_key) > IDEMPOTENCY_KEY_MAX_LENGTH:
        raise CheckoutError(f'Idempotency-Key must be at most {IDEMPOTENCY_KEY_MAX_LENGTH} characters.')
    idempotency_key = owner_scoped_key(idempotency_key, user=user, session_key=session_key)
    if idempotency_key:
        existing = Order.objects.filter(idempotency_key=idempotency_key).first()
        if existing is not None:
            logger.info('Checkout replay -> %s', existing.order_number)
            return existing, False

    lines = cart.load()
    if not lines:
        raise CheckoutError('Cart is empty.')

    summary = summarize(cart, lines=lines, promo_code=data.get('promo_code'))
    if summary['promo_error']:
        raise CheckoutError(summary['promo_error'])

    try:
        with transaction.atomic():
            address = data.get('address')
            new_address = data.get('new_address')
            if new_address is not None:
                if user is not None:
                    address = Address.objects.create(user=user, **new_address)
                delivery_address = new_address['address'].strip()
            else:
                delivery_address = address.address

            if summary['promo_code']:
                _claim_promo(summary['promo_code'], summary['subtotal'])

            order = Order.objects.create(
                user=user,
                address=address,
                delivery_address=delivery_address,
                customer_name=data['customer_name'],
                customer_phone=data['customer_phone'],
                payment_method=data.get('payment_method') or Order.PAYMENT_CASH,
                delivery_time=delivery_time_label(data),
                comment=data.get('comment') or '',
                subtotal=summary['subtotal'],
                discount_amount=summary['discount'],
                promo_code=summary['promo_code'] or '',
                delivery_fee=summary['delivery_fee'],
                total_amount=summary['total'],
                idempotency_key=idempotency_key or None,
            )

            product_ids = [line['id'] for line in lines if line['id'].isdigit()]
            products = Product.objects.in_bulk([int(pk) for pk in product_ids])
            shop_ids = [int(line['shop_id']) for line in lines if (line.get('shop_id') or '').isdigit()]
            shops = Shop.objects.in_bulk(shop_ids)

            OrderItem.objects.bulk_create([
                OrderItem(
                    order=order,
                    product=products.get(int(line['id'])) if line['id'].isdigit() else None,
                    shop=shops.get(int(line['shop_id'])) if (line.get('shop_id') or '').isdigit() else None,
                    name=line['name'],
                    price=line['price'],
                    quantity=line['quantity'],
                    image_url=line.get('image_url') or '',
                )
                for line in lines
            ])
    except IntegrityError:
        if idempotency_key:
            existing = Order.objects.filter(idempotency_key=idempotency_key).first()
            if existing is not None:
                return existing, False
        raise

    cart.clear()
    logger.info('Order %s created (user=%s, items=%s, total=%s)',
                order.order_number, getattr(user, 'pk', None), len(lines), order.total_amount)
    return order, True
