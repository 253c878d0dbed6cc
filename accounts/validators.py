"""Phone number normalization shared by registration, onboarding and checkout."""

import re

import phonenumbers
from rest_framework import serializers

DEFAULT_REGION = 'UZ'


def normalize_phone(value):
    """Return ``value`` in E.164 form or raise ValidationError.

    Numbers without a country code are parsed as Uzbek numbers; a leading
    ``00`` is treated as ``+``. Meant to be called from ``validate_<field>``.
    """
    raw = str(value or '').strip()
    if not raw:
        raise serializers.ValidationError('Phone number is required.')

    clean = re.sub(r'(?<!^)\+|[^\d+]', '', raw)
    if clean.startswith('00'):
        clean = '+' + clean[2:]

    try:
        parsed = phonenumbers.parse(clean, None if clean.startswith('+') else DEFAULT_REGION)
        if not phonenumbers.is_valid_number(parsed):
            raise ValueError(raw)
    except (phonenumbers.NumberParseException, ValueError):
        raise serializers.ValidationError(f'Phone number {raw} is not valid.')

    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)
