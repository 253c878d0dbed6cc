"""Database models for users and their saved delivery addresses."""

from django.db import models
from django.contrib.auth.models import AbstractUser


class User(AbstractUser):
    """Custom user model.

    Extends Django's :class:`~django.contrib.auth.models.AbstractUser` with:
    - ``role`` to separate customer, vendor and admin flows
    - ``full_name`` / ``phone_number`` used by checkout and vendor screens
    - ``is_blocked`` managed from the admin users screen
    """

    ROLE_CUSTOMER = 'customer'
    ROLE_VENDOR = 'vendor'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = (
        (ROLE_CUSTOMER, 'Customer'),
        (ROLE_VENDOR, 'Vendor'),
        (ROLE_ADMIN, 'Admin'),
    )

    full_name = models.CharField(max_length=255, blank=True, default='')
    phone_number = models.CharField(max_length=20, null=True, blank=True)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_CUSTOMER)
    is_blocked = models.BooleanField(default=False)

    def __str__(self):
        return self.username

    @property
    def is_vendor(self):
        return self.role == self.ROLE_VENDOR

    @property
    def is_platform_admin(self):
        return self.role == self.ROLE_ADMIN or self.is_staff


class Address(models.Model):
    """Saved delivery address belonging to a user."""

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='addresses')
    title = models.CharField(max_length=100, blank=True, default='')
    address = models.CharField(max_length=255)
    apartment = models.CharField(max_length=20, blank=True, default='')
    entrance = models.CharField(max_length=20, blank=True, default='')
    floor = models.CharField(max_length=20, blank=True, default='')
    comment = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        verbose_name = "Address"
        verbose_name_plural = "Addresses"

    def __str__(self):
        return f"{self.title or 'Address'}: {self.address}"
