"""Vendor onboarding wizard.

The wizard has three steps (personal info, shop info, documents). The step
index lives on the client; the server only validates a single step on
request and, on final submit, validates every step again and creates the
vendor account and its pending shop in one transaction. Nothing is stored
between steps.
"""

import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from rest_framework import serializers

from accounts.validators import normalize_phone

from .models import Shop

logger = logging.getLogger(__name__)

User = get_user_model()

STEP_PERSONAL = 1
STEP_SHOP = 2
STEP_DOCUMENTS = 3
FIRST_STEP = STEP_PERSONAL
LAST_STEP = STEP_DOCUMENTS

SHOP_CATEGORIES = (
    ('electronics', 'Elektronika'),
    ('clothing', 'Kiyim'),
    ('home', "Uy-ro'zg'or"),
    ('beauty', "Go'zallik"),
    ('sport', 'Sport'),
    ('food', 'Oziq-ovqat'),
    ('kids', 'Bolalar'),
    ('other', 'Boshqa'),
)

CITIES = (
    ('tashkent', 'Toshkent'),
    ('samarkand', 'Samarqand'),
    ('bukhara', 'Buxoro'),
    ('namangan', 'Namangan'),
    ('andijan', 'Andijon'),
    ('fergana', "Farg'ona"),
    ('other', 'Boshqa'),
)

BUSINESS_TYPES = (
    ('individual', 'Jismoniy shaxs'),
    ('ip', 'Yakka tartibdagi tadbirkor (YaTT)'),
    ('llc', "Mas'uliyati cheklangan jamiyat (MChJ)"),
)


def next_step(step: int) -> int:
    return min(int(step) + 1, LAST_STEP)


def previous_step(step: int) -> int:
    return max(int(step) - 1, FIRST_STEP)


class PersonalInfoSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=255)
    phone = serializers.CharField(max_length=30)
    email = serializers.EmailField()
    password = serializers.CharField(min_length=8, write_only=True)

    def validate_full_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Full name is required.')
        return value

    def validate_phone(self, value):
        return normalize_phone(value)

    def validate_email(self, value):
        value = value.strip().lower()
        if User.objects.filter(username__iexact=value).exists() or User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError('An account with this email already exists.')
        return value


class ShopInfoSerializer(serializers.Serializer):
    shop_name = serializers.CharField(max_length=255)
    shop_description = serializers.CharField(required=False, allow_blank=True, default='')
    category = serializers.ChoiceField(choices=SHOP_CATEGORIES)
    city = serializers.ChoiceField(choices=CITIES)
    address = serializers.CharField(max_length=255)

    def validate_shop_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Shop name is required.')
        return value


class DocumentsSerializer(serializers.Serializer):
    business_type = serializers.ChoiceField(choices=BUSINESS_TYPES)


STEP_SERIALIZERS = {
    STEP_PERSONAL: PersonalInfoSerializer,
    STEP_SHOP: ShopInfoSerializer,
    STEP_DOCUMENTS: DocumentsSerializer,
}


def _coerce_step(step):
    try:
        step = int(step)
    except (TypeError, ValueError):
        raise serializers.ValidationError({'step': 'Step must be a number.'})
    if step not in STEP_SERIALIZERS:
        raise serializers.ValidationError({'step': f'Step must be between {FIRST_STEP} and {LAST_STEP}.'})
    return step


def validate_step(step, data) -> dict:
    """Validate one wizard step; returns validated data, persists nothing."""
    step = _coerce_step(step)
    serializer = STEP_SERIALIZERS[step](data=data)
    serializer.is_valid(raise_exception=True)
    return dict(serializer.validated_data)


def register_vendor(data) -> Shop:
    """Validate every step and create the vendor user plus a pending shop.

    Errors from all steps are reported together.
    """
    validated = {}
    errors = {}
    for step, serializer_class in STEP_SERIALIZERS.items():
        serializer = serializer_class(data=data)
        if serializer.is_valid():
            validated.update(serializer.validated_data)
        else:
            errors.update(serializer.errors)
    if errors:
        raise serializers.ValidationError(errors)

    with transaction.atomic():
        user = User.objects.create_user(
            username=validated['email'],
            email=validated['email'],
            password=validated['password'],
            full_name=validated['full_name'],
            phone_number=validated['phone'],
            role=User.ROLE_VENDOR,
        )
        shop = Shop.objects.create(
            owner=user,
            name=validated['shop_name'],
            description=validated.get('shop_description', ''),
            main_category=validated['category'],
            city=validated['city'],
            address=validated['address'],
            phone=validated['phone'],
            business_type=validated['business_type'],
            status=Shop.STATUS_PENDING,
        )

    logger.info('Vendor registered: user=%s shop=%s', user.pk, shop.pk)
    return shop
