"""Database models for vendor shops."""

import time

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.text import slugify

from backoffice.settings_registry import decimal_setting

WEEKDAYS = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')


def unique_slug(name, model=None):
    """Slugify ``name`` and append a 4-digit suffix, retrying on collision."""
    model = model or Shop
    base = slugify(name) or 'shop'
    stamp = int(time.time() * 1000)
    for attempt in range(20):
        candidate = f"{base}-{str(stamp + attempt)[-4:]}"
        if not model.objects.filter(slug=candidate).exists():
            return candidate
    return f"{base}-{stamp}"


class Shop(models.Model):
    """A vendor's storefront and balance.

    ``balance`` is what the vendor can withdraw; ``pending_balance`` is
    money locked in open payout requests. A new shop without an explicit
    ``commission_rate`` takes the ``vendor.commission_rate`` platform
    setting at creation time.
    """

    STATUS_PENDING = 'pending'
    STATUS_ACTIVE = 'active'
    STATUS_BLOCKED = 'blocked'
    STATUS_REJECTED = 'rejected'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACTIVE, 'Active'),
        (STATUS_BLOCKED, 'Blocked'),
        (STATUS_REJECTED, 'Rejected'),
    )

    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='shops')
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=280, unique=True)
    description = models.TextField(blank=True, default='')
    main_category = models.CharField(max_length=50, blank=True, default='')
    city = models.CharField(max_length=50, blank=True, default='')
    address = models.CharField(max_length=255, blank=True, default='')
    phone = models.CharField(max_length=20, blank=True, default='')
    logo_url = models.URLField(max_length=500, blank=True, default='')
    business_type = models.CharField(max_length=30, blank=True, default='')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    balance = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    pending_balance = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    commission_rate = models.DecimalField(max_digits=5, decimal_places=2, blank=True)
    # opening hours and delivery terms, edited from the vendor settings screen
    is_open = models.BooleanField(default=True)
    opening_time = models.TimeField(null=True, blank=True)
    closing_time = models.TimeField(null=True, blank=True)
    working_days = models.JSONField(default=list, blank=True)
    min_order_amount = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    delivery_fee = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    estimated_delivery_time = models.CharField(max_length=50, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='shop_status_created_idx'),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_slug(self.name, type(self))
        if self.commission_rate is None:
            self.commission_rate = decimal_setting('vendor.commission_rate')
        super().save(*args, **kwargs)

    @property
    def is_active(self):
        return self.status == self.STATUS_ACTIVE

    def is_open_at(self, moment=None):
        """Whether the shop takes orders at ``moment`` (default: now, local time).

        The manual ``is_open`` switch wins; then ``working_days`` (empty means
        every day) and the opening hours, which may run past midnight.
        """
        if not self.is_open:
            return False
        moment = timezone.localtime(moment) if moment else timezone.localtime()
        if self.working_days and WEEKDAYS[moment.weekday()] not in self.working_days:
            return False
        if self.opening_time is None or self.closing_time is None:
            return True
        now = moment.time()
        if self.opening_time < self.closing_time:
            return self.opening_time <= now < self.closing_time
        return now >= self.opening_time or now < self.closing_time

    @classmethod
    def for_vendor(cls, user):
        """Return the vendor's shop (first one created) or ``None``."""
        if not user or not getattr(user, 'is_authenticated', False):
            return None
        return cls.objects.filter(owner=user).order_by('id').first()
