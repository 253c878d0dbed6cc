"""Sales reports for the admin reports screen and the vendor dashboard.

All figures come from aggregate queries. Cancelled orders are counted in
``orders_by_status`` but never in revenue. A shop's revenue is the total of
its own item lines; platform revenue is the order totals (delivery fee and
discount included).
"""

import calendar
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db.models import Avg, Count, Max, Q, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone

from core.mixins import status_counts
from products.models import Product

from .models import LINE_TOTAL, Order, OrderItem

CENT = Decimal('0.01')
PERIOD_WEEK = 'week'
PERIOD_MONTH = 'month'
PERIOD_YEAR = 'year'
PERIODS = (PERIOD_WEEK, PERIOD_MONTH, PERIOD_YEAR)
TOP_LIMIT = 10


def shift_months(moment, months):
    """``moment`` moved ``months`` back, with the day clamped to the month length."""
    index = moment.month - 1 - months
    year = moment.year + index // 12
    month = index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def period_bounds(period, now=None):
    """Return ``(start, previous_start)`` for a reporting period ending at ``now``."""
    now = now or timezone.now()
    if period == PERIOD_WEEK:
        return now - timedelta(days=7), now - timedelta(days=14)
    if period == PERIOD_YEAR:
        return shift_months(now, 12), shift_months(now, 24)
    return shift_months(now, 1), shift_months(now, 2)


def start_of_day(now=None):
    return timezone.localtime(now).replace(hour=0, minute=0, second=0, microsecond=0)


def _average(revenue, count):
    return (revenue / count).quantize(CENT) if count else Decimal('0')


def _overview(revenue, orders, previous_revenue, previous_orders):
    return {
        'total_revenue': revenue,
        'total_orders': orders,
        'average_order_value': _average(revenue, orders),
        'previous_revenue': previous_revenue,
        'previous_orders': previous_orders,
    }


def _order_totals(orders):
    agg = orders.exclude(status=Order.STATUS_CANCELLED).aggregate(revenue=Sum('total_amount'), count=Count('id'))
    return agg['revenue'] or Decimal('0'), agg['count']


def _item_totals(items):
    agg = items.exclude(order__status=Order.STATUS_CANCELLED).aggregate(
        revenue=Sum(LINE_TOTAL), count=Count('order', distinct=True),
    )
    return agg['revenue'] or Decimal('0'), agg['count']


def _status_rows(orders):
    counts = status_counts(orders)
    return [{'status': key, 'count': counts[key]} for key, _label in Order.STATUS_CHOICES if counts.get(key)]


def top_products(items, limit=TOP_LIMIT):
    rows = (
        items.exclude(order__status=Order.STATUS_CANCELLED)
        .filter(product__isnull=False)
        .order_by()
        .values('product_id')
        .annotate(product_name=Max('name'), sold=Sum('quantity'), revenue=Sum(LINE_TOTAL))
        .order_by('-revenue', 'product_id')[:limit]
    )
    return [
        {'id': row['product_id'], 'name': row['product_name'], 'quantity': row['sold'], 'revenue': row['revenue']}
        for row in rows
    ]


def top_shops(items, limit=TOP_LIMIT):
    rows = (
        items.exclude(order__status=Order.STATUS_CANCELLED)
        .filter(shop__isnull=False)
        .order_by()
        .values('shop_id', 'shop__name')
        .annotate(orders_count=Count('order', distinct=True), revenue=Sum(LINE_TOTAL))
        .order_by('-revenue', 'shop_id')[:limit]
    )
    return [
        {'id': row['shop_id'], 'name': row['shop__name'], 'orders_count': row['orders_count'],
         'revenue': row['revenue']}
        for row in rows
    ]


def platform_report(period=PERIOD_MONTH, now=None) -> dict:
    """Admin reports screen: the period against the one before it."""
    now = now or timezone.now()
    start, previous_start = period_bounds(period, now)
    current = Order.objects.filter(created_at__gte=start, created_at__lte=now)
    previous = Order.objects.filter(created_at__gte=previous_start, created_at__lt=start)
    items = OrderItem.objects.filter(order__in=current)

    revenue, count = _order_totals(current)
    previous_revenue, previous_count = _order_totals(previous)

    by_day = (
        current.exclude(status=Order.STATUS_CANCELLED)
        .annotate(day=TruncDate('created_at'))
        .order_by()
        .values('day')
        .annotate(revenue=Sum('total_amount'), order_count=Count('id'))
        .order_by('day')
    )

    User = get_user_model()
    return {
        'period': period,
        'sales_overview': _overview(revenue, count, previous_revenue, previous_count),
        'top_products': top_products(items),
        'top_shops': top_shops(items),
        'orders_by_status': _status_rows(current),
        'revenue_by_day': [
            {'date': row['day'].isoformat(), 'revenue': row['revenue'], 'orders': row['order_count']}
            for row in by_day
        ],
        'user_stats': {
            'total_users': User.objects.count(),
            'new_users_this_month': User.objects.filter(date_joined__gte=shift_months(now, 1)).count(),
            'active_users': current.filter(user__isnull=False).order_by().values('user').distinct().count(),
        },
    }


def shop_analytics(shop, period=PERIOD_MONTH, now=None) -> dict:
    """Vendor analytics screen, computed from the shop's own item lines."""
    now = now or timezone.now()
    start, previous_start = period_bounds(period, now)
    items = OrderItem.objects.filter(shop=shop)
    current = items.filter(order__created_at__gte=start, order__created_at__lte=now)
    previous = items.filter(order__created_at__gte=previous_start, order__created_at__lt=start)

    revenue, count = _item_totals(current)
    previous_revenue, previous_count = _item_totals(previous)

    by_day = (
        current.exclude(order__status=Order.STATUS_CANCELLED)
        .annotate(day=TruncDate('order__created_at'))
        .order_by()
        .values('day')
        .annotate(revenue=Sum(LINE_TOTAL), order_count=Count('order', distinct=True))
        .order_by('day')
    )

    customers = current.filter(order__user__isnull=False).order_by().values('order__user')
    returning = (
        items.filter(order__user__isnull=False)
        .order_by()
        .values('order__user')
        .annotate(n=Count('order', distinct=True))
        .filter(n__gt=1)
    )

    return {
        'period': period,
        'sales_overview': _overview(revenue, count, previous_revenue, previous_count),
        'top_products': top_products(current),
        'orders_by_status': _status_rows(Order.objects.filter(pk__in=current.values('order_id'))),
        'revenue_by_day': [
            {'date': row['day'].isoformat(), 'revenue': row['revenue'], 'orders': row['order_count']}
            for row in by_day
        ],
        'customer_stats': {
            'total_customers': customers.distinct().count(),
            'returning_customers': returning.count(),
        },
    }


def recent_shop_orders(shop, limit=5) -> list:
    rows = (
        OrderItem.objects.filter(shop=shop)
        .order_by()
        .values('order_id', 'order__order_number', 'order__customer_name', 'order__status', 'order__created_at')
        .annotate(vendor_subtotal=Sum(LINE_TOTAL))
        .order_by('-order__created_at', '-order_id')[:limit]
    )
    return [
        {
            'id': row['order_id'],
            'order_number': row['order__order_number'],
            'customer_name': row['order__customer_name'],
            'status': row['order__status'],
            'vendor_subtotal': row['vendor_subtotal'],
            'created_at': row['order__created_at'],
        }
        for row in rows
    ]


def shop_dashboard(shop, now=None) -> dict:
    """Vendor dashboard counters plus the five latest orders."""
    items = OrderItem.objects.filter(shop=shop)
    orders = Order.objects.filter(pk__in=items.values('order_id'))
    revenue, _count = _item_totals(items)
    today_revenue, today_orders = _item_totals(items.filter(order__created_at__gte=start_of_day(now)))
    products = Product.objects.filter(shop=shop).aggregate(
        total=Count('id'),
        active=Count('id', filter=Q(status=Product.STATUS_ACTIVE)),
        rating=Avg('rating', filter=Q(rating__gt=0)),
    )
    return {
        'total_revenue': revenue,
        'total_orders': orders.count(),
        'pending_orders': orders.filter(status=Order.STATUS_PENDING).count(),
        'total_products': products['total'],
        'active_products': products['active'],
        'today_revenue': today_revenue,
        'today_orders': today_orders,
        'average_rating': Decimal(str(products['rating'] or 0)).quantize(CENT),
        'is_open': shop.is_open_at(now),
        'recent_orders': recent_shop_orders(shop),
    }
