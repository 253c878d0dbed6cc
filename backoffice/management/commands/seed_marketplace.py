"""Seed reference data for a fresh marketplace database.

Creates (idempotently):
- promo codes TOPLA10 and TOPLA20
- top-level catalog categories
- a default Tashkent delivery zone
- with ``--demo``: a demo vendor, an active shop and a few active products

Usage:
  python manage.py seed_marketplace
  python manage.py seed_marketplace --demo
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from backoffice.models import DeliveryZone, PromoCode
from products.models import Category, Product
from shops.models import Shop

PROMO_CODES = (
    ('TOPLA10', Decimal('10'), '10% chegirma'),
    ('TOPLA20', Decimal('20'), '20% chegirma'),
)

CATEGORIES = (
    ('Elektronika', 'Электроника', 'smartphone'),
    ('Kiyim', 'Одежда', 'shirt'),
    ("Uy-ro'zg'or", 'Для дома', 'home'),
    ("Go'zallik", 'Красота', 'sparkles'),
    ('Sport', 'Спорт', 'dumbbell'),
    ('Oziq-ovqat', 'Продукты', 'apple'),
)

DEMO_PRODUCTS = (
    ('Simsiz quloqchin', Decimal('249000'), Decimal('299000'), 'Elektronika'),
    ('Paxta futbolka', Decimal('89000'), None, 'Kiyim'),
    ('Choynak 1.7L', Decimal('159000'), Decimal('189000'), "Uy-ro'zg'or"),
)


class Command(BaseCommand):
    help = 'Seed promo codes, categories and a delivery zone (optionally demo shop data).'

    def add_arguments(self, parser):
        parser.add_argument('--demo', action='store_true', help='Also create a demo vendor, shop and products.')

    @transaction.atomic
    def handle(self, *args, **options):
        for code, value, description in PROMO_CODES:
            _obj, created = PromoCode.objects.get_or_create(
                code=code,
                defaults={
                    'description': description,
                    'discount_type': PromoCode.TYPE_PERCENTAGE,
                    'discount_value': value,
                },
            )
            self._report('promo code', code, created)

        categories = {}
        for index, (name_uz, name_ru, icon) in enumerate(CATEGORIES):
            category = Category.objects.filter(name_uz=name_uz, parent__isnull=True).first()
            created = category is None
            if created:
                category = Category.objects.create(name_uz=name_uz, name_ru=name_ru, icon=icon, sort_order=index)
            categories[name_uz] = category
            self._report('category', name_uz, created)

        _zone, created = DeliveryZone.objects.get_or_create(
            name='Toshkent shahri',
            defaults={
                'region': 'Toshkent',
                'districts': ['Chilonzor', 'Yunusobod', "Mirzo Ulug'bek", 'Yakkasaroy'],
                'delivery_fee': Decimal('15000'),
                'estimated_time': '1-2 soat',
            },
        )
        self._report('delivery zone', 'Toshkent shahri', created)

        if options['demo']:
            self._seed_demo(categories)

    def _seed_demo(self, categories):
        User = get_user_model()
        vendor, created = User.objects.get_or_create(
            username='demo.vendor@topla.uz',
            defaults={'email': 'demo.vendor@topla.uz', 'full_name': 'Demo Vendor', 'role': User.ROLE_VENDOR},
        )
        if created:
            vendor.set_password('demo-vendor-pass')
            vendor.save(update_fields=['password'])
        self._report('vendor', vendor.username, created)

        shop = Shop.for_vendor(vendor)
        if shop is None:
            shop = Shop.objects.create(owner=vendor, name='Demo Shop', city='tashkent', status=Shop.STATUS_ACTIVE)
            self._report('shop', shop.name, True)

        for name, price, original, category_name in DEMO_PRODUCTS:
            _product, created = Product.objects.get_or_create(
                shop=shop,
                name=name,
                defaults={
                    'price': price,
                    'original_price': original,
                    'category': categories.get(category_name),
                    'stock': 25,
                    'status': Product.STATUS_ACTIVE,
                },
            )
            self._report('product', name, created)

    def _report(self, kind, name, created):
        verb = 'Created' if created else 'Exists'
        self.stdout.write(f'{verb} {kind}: {name}')
