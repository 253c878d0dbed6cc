"""Database models for orders and order items."""

import uuid

from django.conf import settings
from django.db import models
from django.db.models import ExpressionWrapper, F


# price x quantity of an OrderItem row, for aggregates
LINE_TOTAL = ExpressionWrapper(F('price') * F('quantity'), output_field=models.DecimalField(max_digits=16, decimal_places=2))


def generate_order_number():
    return f"TP-{uuid.uuid4().hex[:8].upper()}"


class Order(models.Model):
    """A customer's order.

    Items are snapshots of the cart lines at checkout time. ``settled_at``
    is set once the shops' balances have been credited for a delivered
    order.
    """

    STATUS_PENDING = 'pending'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_PREPARING = 'preparing'
    STATUS_READY = 'ready'
    STATUS_DELIVERING = 'delivering'
    STATUS_DELIVERED = 'delivered'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_PREPARING, 'Preparing'),
        (STATUS_READY, 'Ready'),
        (STATUS_DELIVERING, 'Delivering'),
        (STATUS_DELIVERED, 'Delivered'),
        (STATUS_CANCELLED, 'Cancelled'),
    )

    PAYMENT_CASH = 'cash'
    PAYMENT_METHOD_CHOICES = (
        (PAYMENT_CASH, 'Naqd pul'),
        ('payme', 'Payme'),
        ('click', 'Click'),
        ('uzum', 'Uzum Bank'),
    )

    PAYMENT_PENDING = 'pending'
    PAYMENT_STATUS_CHOICES = (
        (PAYMENT_PENDING, 'Pending'),
        ('paid', 'Paid'),
        ('failed', 'Failed'),
        ('refunded', 'Refunded'),
    )

    DELIVERY_ASAP = 'ASAP'

    order_number = models.CharField(max_length=20, unique=True, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                             related_name='orders')
    address = models.ForeignKey('accounts.Address', on_delete=models.SET_NULL, null=True, blank=True,
                                related_name='orders')
    delivery_address = models.CharField(max_length=500)
    customer_name = models.CharField(max_length=255)
    customer_phone = models.CharField(max_length=20)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default=PAYMENT_CASH)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_PENDING)
    delivery_time = models.CharField(max_length=50, default=DELIVERY_ASAP)
    comment = models.TextField(blank=True, default='')
    subtotal = models.DecimalField(max_digits=14, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    promo_code = models.CharField(max_length=50, blank=True, default='')
    delivery_fee = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=14, decimal_places=2)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    idempotency_key = models.CharField(max_length=100, unique=True, null=True, blank=True)
    settled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user', 'created_at'], name='order_user_created_idx'),
            models.Index(fields=['status', 'created_at'], name='order_status_created_idx'),
        ]

    def __str__(self):
        return self.order_number

    def save(self, *args, **kwargs):
        if not self.order_number:
            number = generate_order_number()
            while type(self).objects.filter(order_number=number).exists():
                number = generate_order_number()
            self.order_number = number
        super().save(*args, **kwargs)


class OrderItem(models.Model):
    """Line item inside an order (snapshot of a cart line)."""

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey('products.Product', on_delete=models.SET_NULL, null=True, blank=True,
                                related_name='order_items')
    shop = models.ForeignKey('shops.Shop', on_delete=models.SET_NULL, null=True, blank=True,
                             related_name='order_items')
    name = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=14, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1)
    image_url = models.URLField(max_length=500, blank=True, default='')

    class Meta:
        ordering = ['id']

    def __str__(self):
        return f"{self.quantity} x {self.name} ({self.order.order_number})"

    @property
    def line_total(self):
        return self.price * self.quantity
