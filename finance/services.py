"""Shop balances, delivered-order settlement and payout state changes.

Every change that touches a payout request and its shop's balance runs in
one transaction with the shop row locked.
"""

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from backoffice.settings_registry import decimal_setting
from orders.models import LINE_TOTAL, Order, OrderItem
from shops.models import Shop

from .exceptions import PayoutError
from .models import PayoutRequest

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


def commission_for(amount, rate) -> Decimal:
    return (Decimal(amount) * Decimal(rate) / Decimal('100')).quantize(CENT)


def delivered_items(shop):
    return OrderItem.objects.filter(shop=shop, order__status=Order.STATUS_DELIVERED)


def balance_info(shop) -> dict:
    total_earnings = delivered_items(shop).aggregate(total=Sum(LINE_TOTAL))['total'] or Decimal('0')
    total_withdrawn = (
        PayoutRequest.objects.filter(shop=shop, status=PayoutRequest.STATUS_COMPLETED)
        .aggregate(total=Sum('amount'))['total'] or Decimal('0')
    )
    return {
        'balance': shop.balance,
        'pending_balance': shop.pending_balance,
        'total_earnings': total_earnings,
        'total_withdrawn': total_withdrawn,
        'commission_rate': shop.commission_rate,
        'min_payout': decimal_setting('vendor.min_payout'),
    }


def earning_transactions(shop, limit=20) -> list:
    """Per-order earnings of ``shop`` from delivered orders, newest first."""
    rows = (
        delivered_items(shop)
        .values('order_id', 'order__order_number', 'order__created_at')
        .annotate(gross=Sum(LINE_TOTAL))
        .order_by('-order__created_at', '-order_id')[:limit]
    )
    result = []
    for row in rows:
        commission = commission_for(row['gross'], shop.commission_rate)
        result.append({
            'type': 'earning',
            'order_id': row['order_id'],
            'description': f"Buyurtma {row['order__order_number']}",
            'amount': row['gross'],
            'commission': commission,
            'net': row['gross'] - commission,
            'status': 'completed',
            'created_at': row['order__created_at'],
        })
    return result


def settle_order(order) -> bool:
    """Credit each shop in a delivered ``order`` with its items minus commission.

    Runs at most once per order: ``settled_at`` is claimed with a
    conditional update before any balance is touched.
    """
    with transaction.atomic():
        claimed = Order.objects.filter(
            pk=order.pk, status=Order.STATUS_DELIVERED, settled_at__isnull=True,
        ).update(settled_at=timezone.now())
        if not claimed:
            return False

        totals = (
            OrderItem.objects.filter(order_id=order.pk, shop__isnull=False)
            .values('shop_id')
            .annotate(gross=Sum(LINE_TOTAL))
        )
        for row in totals:
            shop = Shop.objects.select_for_update().get(pk=row['shop_id'])
            net = row['gross'] - commission_for(row['gross'], shop.commission_rate)
            Shop.objects.filter(pk=shop.pk).update(balance=F('balance') + net)
            logger.info('Order %s settled: shop=%s gross=%s net=%s', order.order_number, shop.pk, row['gross'], net)
    return True


def request_payout(shop, amount, *, bank_name='', account_number='', notes='') -> PayoutRequest:
    """Open a payout request and move ``amount`` from balance to pending balance."""
    amount = Decimal(amount)
    minimum = decimal_setting('vendor.min_payout')
    if amount < minimum:
        raise PayoutError(f'Minimum payout amount is {minimum}.')

    with transaction.atomic():
        locked = Shop.objects.select_for_update().get(pk=shop.pk)
        if amount > locked.balance:
            raise PayoutError('Insufficient balance.')
        payout = PayoutRequest.objects.create(
            shop=locked,
            amount=amount,
            bank_name=bank_name,
            account_number=account_number,
            notes=notes,
        )
        locked.balance -= amount
        locked.pending_balance += amount
        locked.save(update_fields=['balance', 'pending_balance', 'updated_at'])

    logger.info('Payout %s requested: shop=%s amount=%s', payout.pk, shop.pk, amount)
    return payout


def _lock(payout, allowed):
    locked = PayoutRequest.objects.select_for_update().select_related('shop').get(pk=payout.pk)
    if locked.status not in allowed:
        raise PayoutError(f'Payout request is already {locked.status}.')
    return locked


def approve_payout(payout, admin_notes='') -> PayoutRequest:
    with transaction.atomic():
        locked = _lock(payout, (PayoutRequest.STATUS_PENDING,))
        locked.status = PayoutRequest.STATUS_APPROVED
        locked.admin_notes = admin_notes or locked.admin_notes
        locked.save(update_fields=['status', 'admin_notes', 'updated_at'])
    logger.info('Payout %s approved', locked.pk)
    return locked


def complete_payout(payout) -> PayoutRequest:
    """Mark the money as sent; it leaves the pending balance for good."""
    with transaction.atomic():
        locked = _lock(payout, PayoutRequest.OPEN_STATUSES)
        shop = Shop.objects.select_for_update().get(pk=locked.shop_id)
        shop.pending_balance = max(Decimal('0'), shop.pending_balance - locked.amount)
        shop.save(update_fields=['pending_balance', 'updated_at'])
        locked.status = PayoutRequest.STATUS_COMPLETED
        locked.processed_at = timezone.now()
        locked.save(update_fields=['status', 'processed_at', 'updated_at'])
    logger.info('Payout %s completed', locked.pk)
    return locked


def reject_payout(payout, admin_notes='') -> PayoutRequest:
    """Refuse the request and return the amount to the shop balance."""
    with transaction.atomic():
        locked = _lock(payout, PayoutRequest.OPEN_STATUSES)
        shop = Shop.objects.select_for_update().get(pk=locked.shop_id)
        shop.balance += locked.amount
        shop.pending_balance = max(Decimal('0'), shop.pending_balance - locked.amount)
        shop.save(update_fields=['balance', 'pending_balance', 'updated_at'])
        locked.status = PayoutRequest.STATUS_REJECTED
        locked.admin_notes = admin_notes or locked.admin_notes
        locked.processed_at = timezone.now()
        locked.save(update_fields=['status', 'admin_notes', 'processed_at', 'updated_at'])
    logger.info('Payout %s rejected', locked.pk)
    return locked
