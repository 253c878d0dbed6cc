"""Database models for admin-managed marketplace entities."""

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone


class PromoCode(models.Model):
    """Discount code applied to a cart subtotal."""

    TYPE_PERCENTAGE = 'percentage'
    TYPE_FIXED = 'fixed'
    DISCOUNT_TYPE_CHOICES = (
        (TYPE_PERCENTAGE, 'Percentage'),
        (TYPE_FIXED, 'Fixed amount'),
    )

    code = models.CharField(max_length=50, unique=True)
    description = models.TextField(blank=True, default='')
    discount_type = models.CharField(max_length=20, choices=DISCOUNT_TYPE_CHOICES, default=TYPE_PERCENTAGE)
    discount_value = models.DecimalField(max_digits=12, decimal_places=2)
    min_order_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    max_discount_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    used_count = models.PositiveIntegerField(default=0)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return self.code

    def save(self, *args, **kwargs):
        self.code = (self.code or '').strip().upper()
        super().save(*args, **kwargs)

    def evaluate(self, subtotal, today=None):
        """Return ``(discount, reason)`` for a cart subtotal.

        ``reason`` is ``None`` when the code applies; otherwise the discount
        is zero and ``reason`` says why the code was refused.
        """
        subtotal = Decimal(str(subtotal or 0))
        today = today or timezone.localdate()

        if not self.is_active:
            return Decimal('0'), 'Promo code is not active.'
        if self.start_date and today < self.start_date:
            return Decimal('0'), 'Promo code is not active yet.'
        if self.end_date and today > self.end_date:
            return Decimal('0'), 'Promo code has expired.'
        if self.usage_limit is not None and self.used_count >= self.usage_limit:
            return Decimal('0'), 'Promo code usage limit reached.'
        if subtotal < (self.min_order_amount or 0):
            return Decimal('0'), f'Minimum order amount is {self.min_order_amount}.'

        if self.discount_type == self.TYPE_PERCENTAGE:
            discount = subtotal * self.discount_value / Decimal('100')
            if self.max_discount_amount is not None:
                discount = min(discount, self.max_discount_amount)
        else:
            discount = self.discount_value
        return min(discount, subtotal), None


class DeliveryZone(models.Model):
    """Delivery area with its own fee and minimum order."""

    name = models.CharField(max_length=255)
    region = models.CharField(max_length=255, blank=True, default='')
    districts = models.JSONField(default=list, blank=True)
    delivery_fee = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    min_order_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    estimated_time = models.CharField(max_length=100, blank=True, default='')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name


class BannerQuerySet(models.QuerySet):

    def live(self, today=None):
        """Active banners whose optional date window contains ``today``."""
        today = today or timezone.localdate()
        return self.filter(
            models.Q(start_date__isnull=True) | models.Q(start_date__lte=today),
            models.Q(end_date__isnull=True) | models.Q(end_date__gte=today),
            is_active=True,
        )


class Banner(models.Model):
    """Home page carousel slide; ``position`` orders the slides."""

    LINK_TYPE_CHOICES = (
        ('product', 'Product'),
        ('category', 'Category'),
        ('shop', 'Shop'),
        ('external', 'External'),
    )

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    image_url = models.URLField(max_length=500, blank=True, default='')
    link_url = models.URLField(max_length=500, blank=True, default='')
    link_type = models.CharField(max_length=20, choices=LINK_TYPE_CHOICES, blank=True, default='')
    link_id = models.CharField(max_length=64, blank=True, default='')
    position = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BannerQuerySet.as_manager()

    class Meta:
        ordering = ['position', 'id']

    def __str__(self):
        return self.title

    def save(self, *args, **kwargs):
        if self._state.adding and not self.position:
            last = type(self).objects.aggregate(top=models.Max('position'))['top']
            self.position = (last or 0) + 1
        super().save(*args, **kwargs)


class Notification(models.Model):
    """Admin-composed notification; sending only marks it as sent."""

    TYPE_CHOICES = (
        ('system', 'System'),
        ('order', 'Order'),
        ('promo', 'Promo'),
        ('news', 'News'),
    )
    TARGET_CHOICES = (
        ('all', 'All'),
        ('users', 'Users'),
        ('vendors', 'Vendors'),
        ('specific', 'Specific users'),
    )

    title = models.CharField(max_length=255)
    body = models.TextField()
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='system')
    target_type = models.CharField(max_length=20, choices=TARGET_CHOICES, default='all')
    target_user_ids = models.JSONField(null=True, blank=True)
    data = models.JSONField(null=True, blank=True)
    is_sent = models.BooleanField(default=False)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return self.title


class ActivityLog(models.Model):
    """Audit trail row written by admin and vendor actions."""

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='activity_logs')
    action = models.CharField(max_length=100)
    entity_type = models.CharField(max_length=100, blank=True, default='')
    entity_id = models.CharField(max_length=64, blank=True, default='')
    details = models.JSONField(null=True, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=255, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['action', 'created_at'], name='activity_action_created_idx'),
        ]

    def __str__(self):
        return f"{self.action} ({self.entity_type}:{self.entity_id})"


class PlatformSetting(models.Model):
    """Admin-editable key/value setting; see ``settings_registry`` for defaults."""

    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.CharField(max_length=255, blank=True, default='')
    category = models.CharField(max_length=50, default='general')
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['key']

    def __str__(self):
        return f"{self.key}={self.value}"
