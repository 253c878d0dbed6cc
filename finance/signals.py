"""Signals for finance side-effects (shop balance credit on delivery)."""

from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from orders.models import Order

from .services import settle_order


@receiver(pre_save, sender=Order)
def capture_old_status(sender, instance, **kwargs):
    """Remember the stored status so post_save can detect a change."""
    if instance.pk:
        instance._old_status = Order.objects.filter(pk=instance.pk).values_list('status', flat=True).first()
    else:
        instance._old_status = None


@receiver(post_save, sender=Order)
def settle_delivered_order(sender, instance, created, **kwargs):
    """Credit the shops once when an order becomes delivered."""
    if instance.status != Order.STATUS_DELIVERED or instance.settled_at is not None:
        return
    if getattr(instance, '_old_status', None) == Order.STATUS_DELIVERED:
        return
    settle_order(instance)
