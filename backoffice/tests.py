"""Back-office tests: promo codes, zones, notifications, logs, settings, banners, reports, dashboard."""

from datetime import date, timedelta
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from backoffice.models import ActivityLog, Banner, DeliveryZone, Notification, PromoCode
from backoffice.settings_registry import decimal_setting, update_setting
from cart.pricing import delivery_fee
from orders.models import Order, OrderItem
from products.models import Category, Product
from shops.models import Shop


class PromoEvaluateTests(TestCase):
	def test_percentage_with_cap(self):
		promo = PromoCode.objects.create(code='cap', discount_value=Decimal('50'), max_discount_amount=Decimal('30000'))
		self.assertEqual(promo.code, 'CAP')
		self.assertEqual(promo.evaluate(Decimal('100000')), (Decimal('30000'), None))
		self.assertEqual(promo.evaluate(Decimal('20000')), (Decimal('10000'), None))

	def test_fixed_amount_never_exceeds_subtotal(self):
		promo = PromoCode.objects.create(code='FIX', discount_type='fixed', discount_value=Decimal('50000'))
		self.assertEqual(promo.evaluate(Decimal('30000')), (Decimal('30000'), None))

	def test_refusal_reasons(self):
		today = date(2026, 5, 10)
		cases = {
			'inactive': dict(is_active=False),
			'early': dict(start_date=date(2026, 6, 1)),
			'late': dict(end_date=date(2026, 5, 1)),
			'used': dict(usage_limit=3, used_count=3),
			'small': dict(min_order_amount=Decimal('100000')),
		}
		for code, extra in cases.items():
			promo = PromoCode.objects.create(code=code, discount_value=Decimal('10'), **extra)
			discount, reason = promo.evaluate(Decimal('50000'), today=today)
			self.assertEqual(discount, Decimal('0'))
			self.assertIsNotNone(reason, code)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class BackofficeApiTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.admin = User.objects.create_user(username='office_admin', password='12345678', role='admin')
		cls.customer = User.objects.create_user(username='office_customer', password='12345678')

	def setUp(self):
		self.client = APIClient()
		self.client.force_authenticate(user=self.admin)

	def test_customer_is_forbidden(self):
		client = APIClient()
		client.force_authenticate(user=self.customer)
		self.assertEqual(client.get('/api/admin/promo-codes/').status_code, 403)
		self.assertEqual(client.get('/api/admin/dashboard/').status_code, 403)

	def test_promo_code_crud_toggle_and_stats(self):
		res = self.client.post('/api/admin/promo-codes/', {'code': ' spring ', 'discount_value': '15'}, format='json')
		self.assertEqual(res.status_code, 201, res.data)
		self.assertEqual(res.data['code'], 'SPRING')
		pk = res.data['id']

		res = self.client.post('/api/admin/promo-codes/', {'code': 'SPRING', 'discount_value': '5'}, format='json')
		self.assertEqual(res.status_code, 400)
		res = self.client.post('/api/admin/promo-codes/', {'code': 'BIG', 'discount_value': '150'}, format='json')
		self.assertEqual(res.status_code, 400)

		res = self.client.post(f'/api/admin/promo-codes/{pk}/toggle/')
		self.assertFalse(res.data['is_active'])

		res = self.client.get('/api/admin/promo-codes/stats/')
		self.assertEqual(res.data, {'total': 1, 'active': 0, 'inactive': 1, 'total_usage': 0})

		self.assertEqual(self.client.delete(f'/api/admin/promo-codes/{pk}/').status_code, 204)
		actions = list(ActivityLog.objects.order_by('id').values_list('action', flat=True))
		self.assertEqual(actions, ['promo_code.create', 'promo_code.toggle', 'promo_code.delete'])

	def test_delivery_zone_districts(self):
		res = self.client.post('/api/admin/delivery-zones/', {
			'name': 'Samarqand', 'districts': ['Markaz', ' '], 'delivery_fee': '20000',
		}, format='json')
		self.assertEqual(res.status_code, 201, res.data)
		self.assertEqual(DeliveryZone.objects.get().districts, ['Markaz'])

		res = self.client.post('/api/admin/delivery-zones/', {'name': 'Bad', 'districts': 'Markaz'}, format='json')
		self.assertEqual(res.status_code, 400)

	def test_notification_send_once(self):
		res = self.client.post('/api/admin/notifications/', {'title': 'Aksiya', 'body': 'Chegirmalar!'}, format='json')
		self.assertEqual(res.status_code, 201)
		notification = Notification.objects.get(pk=res.data['id'])
		self.assertEqual(notification.created_by, self.admin)

		res = self.client.post(f'/api/admin/notifications/{notification.pk}/send/')
		self.assertTrue(res.data['is_sent'])
		self.assertEqual(self.client.post(f'/api/admin/notifications/{notification.pk}/send/').status_code, 400)

		res = self.client.get('/api/admin/notifications/stats/')
		self.assertEqual(res.data, {'total': 1, 'sent': 1, 'pending': 0})

	def test_specific_notification_needs_users(self):
		res = self.client.post('/api/admin/notifications/', {
			'title': 'Hi', 'body': 'x', 'target_type': 'specific',
		}, format='json')
		self.assertEqual(res.status_code, 400)

	def test_activity_log_filter_and_stats(self):
		ActivityLog.objects.create(action='shop.approve')
		ActivityLog.objects.create(action='shop.approve')
		ActivityLog.objects.create(action='user.block')

		res = self.client.get('/api/admin/logs/?action=shop.approve')
		self.assertEqual(len(res.data), 2)
		self.assertEqual(len(self.client.get('/api/admin/logs/?limit=1').data), 1)

		res = self.client.get('/api/admin/logs/stats/')
		self.assertEqual(res.data['total'], 3)
		self.assertEqual(res.data['today'], 3)
		self.assertEqual(res.data['top_actions'][0], {'action': 'shop.approve', 'count': 2})

	def test_settings_upsert_drives_delivery_fee(self):
		res = self.client.get('/api/admin/settings/')
		categories = [group['category'] for group in res.data]
		self.assertIn('orders', categories)

		self.assertEqual(delivery_fee(Decimal('1000')), Decimal('15000'))
		res = self.client.put('/api/admin/settings/order.default_delivery_fee/', {'value': '20000'}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['category'], 'orders')
		self.assertEqual(delivery_fee(Decimal('1000')), Decimal('20000'))

		res = self.client.get('/api/admin/settings/order.default_delivery_fee/')
		self.assertEqual(res.data['value'], '20000')
		self.assertEqual(self.client.get('/api/admin/settings/unknown.key/').status_code, 404)
		self.assertEqual(self.client.put('/api/admin/settings/vendor.min_payout/', {}, format='json').status_code, 400)

	def test_numeric_settings_reject_non_finite_values(self):
		for bad in ('NaN', 'Infinity', '-5', 'abc'):
			res = self.client.put('/api/admin/settings/order.free_delivery_threshold/', {'value': bad}, format='json')
			self.assertEqual(res.status_code, 400, bad)
			self.assertIn('value', res.data)
		res = self.client.put('/api/admin/settings/vendor.commission_rate/', {'value': '150'}, format='json')
		self.assertEqual(res.status_code, 400)
		res = self.client.put('/api/admin/settings/platform.name/', {'value': 'NaN'}, format='json')
		self.assertEqual(res.status_code, 200)

		res = self.client.get('/api/cart/')
		self.assertEqual(res.status_code, 200)

	def test_stored_non_finite_value_falls_back_to_default(self):
		update_setting('order.free_delivery_threshold', 'NaN')
		update_setting('order.default_delivery_fee', 'Infinity')
		self.assertEqual(decimal_setting('order.free_delivery_threshold'), Decimal('100000'))
		self.assertEqual(delivery_fee(Decimal('1000')), Decimal('15000'))
		self.assertEqual(self.client.get('/api/cart/').status_code, 200)

	def test_dashboard_counters(self):
		vendor = get_user_model().objects.create_user(username='dash_vendor', password='12345678', role='vendor')
		shop = Shop.objects.create(owner=vendor, name='Dash Shop')
		Product.objects.create(shop=shop, name='Dash Product', price=Decimal('1000'))

		res = self.client.get('/api/admin/dashboard/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['pending_shops'], 1)
		self.assertEqual(res.data['pending_products'], 1)
		self.assertEqual(res.data['today_orders'], 0)
		self.assertEqual(res.data['recent_orders'], [])


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class BannerApiTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		cls.admin = get_user_model().objects.create_user(username='banner_admin', password='12345678', role='admin')

	def setUp(self):
		self.client = APIClient()
		self.client.force_authenticate(user=self.admin)

	def create_banner(self, title, **extra):
		res = self.client.post('/api/admin/banners/', {'title': title, **extra}, format='json')
		self.assertEqual(res.status_code, 201, res.data)
		return res.data

	def test_new_banners_go_to_the_end(self):
		first = self.create_banner('Kuz chegirmalari', link_type='category', link_id='7')
		second = self.create_banner('Yangi do\'konlar')
		self.assertEqual((first['position'], second['position']), (1, 2))

		res = self.client.post('/api/admin/banners/', {
			'title': 'Broken', 'start_date': '2026-05-10', 'end_date': '2026-05-01',
		}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertIn('end_date', res.data)

	def test_toggle_stats_and_reorder(self):
		first = self.create_banner('One')
		second = self.create_banner('Two')

		res = self.client.post(f"/api/admin/banners/{first['id']}/toggle/")
		self.assertFalse(res.data['is_active'])
		res = self.client.get('/api/admin/banners/stats/')
		self.assertEqual(res.data, {'total': 2, 'active': 1, 'inactive': 1})

		res = self.client.post('/api/admin/banners/positions/', {'positions': [
			{'id': second['id'], 'position': 1},
			{'id': first['id'], 'position': 2},
		]}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertEqual([row['title'] for row in res.data], ['Two', 'One'])

		res = self.client.post('/api/admin/banners/positions/', {'positions': [
			{'id': first['id'], 'position': 5},
			{'id': 9999, 'position': 1},
		]}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertEqual(res.data['ids'], [9999])
		self.assertEqual(Banner.objects.get(pk=first['id']).position, 2)

		actions = list(ActivityLog.objects.filter(entity_type='banner').values_list('action', flat=True))
		self.assertIn('banner.toggle', actions)
		self.assertIn('banner.reorder', actions)

	def test_home_page_lists_only_live_banners(self):
		today = timezone.localdate()
		Banner.objects.create(title='Live', position=2)
		Banner.objects.create(title='First', position=1, start_date=today)
		Banner.objects.create(title='Hidden', position=3, is_active=False)
		Banner.objects.create(title='Expired', position=4, end_date=today - timedelta(days=1))
		Banner.objects.create(title='Later', position=5, start_date=today + timedelta(days=3))

		res = APIClient().get('/api/banners/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual([row['title'] for row in res.data], ['First', 'Live'])


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class ReportApiTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.admin = User.objects.create_user(username='report_admin', password='12345678', role='admin')
		cls.customer = User.objects.create_user(username='report_customer', password='12345678')
		vendor_a = User.objects.create_user(username='report_vendor_a', password='12345678', role='vendor')
		vendor_b = User.objects.create_user(username='report_vendor_b', password='12345678', role='vendor')
		cls.shop_a = Shop.objects.create(owner=vendor_a, name='Shop A', status=Shop.STATUS_ACTIVE)
		cls.shop_b = Shop.objects.create(owner=vendor_b, name='Shop B', status=Shop.STATUS_ACTIVE)
		cls.lamp = Product.objects.create(shop=cls.shop_a, name='Lamp', price=Decimal('10000'))
		cls.sofa = Product.objects.create(shop=cls.shop_b, name='Sofa', price=Decimal('50000'))

		cls.place(cls.shop_a, cls.lamp, 2, '10000', total='35000', user=cls.customer)
		cls.place(cls.shop_b, cls.sofa, 1, '50000', total='50000', status=Order.STATUS_DELIVERED)
		cls.place(cls.shop_a, cls.lamp, 1, '99999', total='99999', status=Order.STATUS_CANCELLED)
		old = cls.place(cls.shop_a, cls.lamp, 1, '12000', total='12000')
		Order.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=40))

	@staticmethod
	def place(shop, product, quantity, price, total, status=Order.STATUS_PENDING, user=None):
		order = Order.objects.create(
			user=user, delivery_address='Chilonzor 1', customer_name='Buyer', customer_phone='+998912345678',
			subtotal=Decimal(total), total_amount=Decimal(total), status=status,
		)
		OrderItem.objects.create(order=order, product=product, shop=shop, name=product.name,
								 price=Decimal(price), quantity=quantity)
		return order

	def setUp(self):
		self.client = APIClient()
		self.client.force_authenticate(user=self.admin)

	def test_month_report(self):
		res = self.client.get('/api/admin/reports/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['period'], 'month')
		self.assertEqual(res.data['sales_overview'], {
			'total_revenue': Decimal('85000'),
			'total_orders': 2,
			'average_order_value': Decimal('42500.00'),
			'previous_revenue': Decimal('12000'),
			'previous_orders': 1,
		})
		self.assertEqual(
			[(row['name'], row['quantity'], row['revenue']) for row in res.data['top_products']],
			[('Sofa', 1, Decimal('50000')), ('Lamp', 2, Decimal('20000'))],
		)
		self.assertEqual(
			[(row['id'], row['orders_count'], row['revenue']) for row in res.data['top_shops']],
			[(self.shop_b.pk, 1, Decimal('50000')), (self.shop_a.pk, 1, Decimal('20000'))],
		)
		self.assertEqual(res.data['orders_by_status'], [
			{'status': 'pending', 'count': 1},
			{'status': 'delivered', 'count': 1},
			{'status': 'cancelled', 'count': 1},
		])
		self.assertEqual(res.data['revenue_by_day'], [
			{'date': timezone.localdate().isoformat(), 'revenue': Decimal('85000'), 'orders': 2},
		])
		self.assertEqual(res.data['user_stats'], {'total_users': 4, 'new_users_this_month': 4, 'active_users': 1})

	def test_year_report_includes_older_orders(self):
		res = self.client.get('/api/admin/reports/', {'period': 'year'})
		self.assertEqual(res.data['sales_overview']['total_orders'], 3)
		self.assertEqual(res.data['sales_overview']['previous_orders'], 0)

	def test_unknown_period_and_permissions(self):
		self.assertEqual(self.client.get('/api/admin/reports/', {'period': 'decade'}).status_code, 400)
		client = APIClient()
		client.force_authenticate(user=self.customer)
		self.assertEqual(client.get('/api/admin/reports/').status_code, 403)


class SeedCommandTests(TestCase):
	def test_seed_is_idempotent(self):
		call_command('seed_marketplace', '--demo', stdout=StringIO())
		call_command('seed_marketplace', '--demo', stdout=StringIO())

		self.assertEqual(PromoCode.objects.filter(code__in=['TOPLA10', 'TOPLA20']).count(), 2)
		self.assertEqual(Category.objects.count(), 6)
		self.assertEqual(DeliveryZone.objects.count(), 1)
		self.assertEqual(Shop.objects.filter(status=Shop.STATUS_ACTIVE).count(), 1)
		self.assertEqual(Product.objects.filter(status=Product.STATUS_ACTIVE).count(), 3)
