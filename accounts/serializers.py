"""Serializers for the accounts app.

Includes:
- Registration with username/phone validation
- Profile (``me``) read/update
- Saved delivery addresses
- Admin user management payloads
"""

import re

from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import Address
from .validators import normalize_phone


User = get_user_model()


def validate_username_value(value):
    if not re.match(r'^[a-zA-Z0-9._]+$', value):
        raise serializers.ValidationError('Username may contain only letters, digits, dots and underscores.')
    if len(value) < 4:
        raise serializers.ValidationError('Username must be at least 4 characters long.')
    if User.objects.filter(username__iexact=value).exists():
        raise serializers.ValidationError('A user with that username already exists.')
    return value


class AddressSerializer(serializers.ModelSerializer):
    """Saved delivery address payload used for create/update."""

    class Meta:
        model = Address
        fields = ['id', 'title', 'address', 'apartment', 'entrance', 'floor', 'comment', 'created_at']
        read_only_fields = ['created_at']

    def validate_address(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError('Address is required.')
        return value


class RegisterSerializer(serializers.ModelSerializer):
    """Create a new customer account."""

    password = serializers.CharField(write_only=True, min_length=8)
    phone_number = serializers.CharField(required=False, allow_blank=True)

    class Meta:
        model = User
        fields = ('id', 'username', 'password', 'email', 'full_name', 'phone_number')
        read_only_fields = ('id',)

    def validate_username(self, value):
        return validate_username_value(value)

    def validate_phone_number(self, value):
        if not value:
            return None
        return normalize_phone(value)

    def create(self, validated_data):
        return User.objects.create_user(role=User.ROLE_CUSTOMER, **validated_data)


class UserProfileSerializer(serializers.ModelSerializer):
    """Current user's profile with saved addresses."""

    addresses = AddressSerializer(many=True, read_only=True)

    class Meta:
        model = User
        fields = ('id', 'username', 'email', 'full_name', 'phone_number', 'role', 'addresses')
        read_only_fields = ('username', 'role')

    def validate_phone_number(self, value):
        if not value:
            return None
        return normalize_phone(value)


class AdminUserSerializer(serializers.ModelSerializer):
    """User row as shown on the admin users screen."""

    class Meta:
        model = User
        fields = ('id', 'username', 'email', 'full_name', 'phone_number', 'role', 'is_blocked', 'is_active', 'date_joined')
        read_only_fields = fields


class RoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES)
