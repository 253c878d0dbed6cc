"""Shops app tests: onboarding, vendor shop settings and dashboard, admin moderation."""

from datetime import datetime, time, timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from backoffice.models import ActivityLog
from backoffice.settings_registry import update_setting
from orders.models import Order, OrderItem
from products.models import Product
from shops.models import Shop
from shops.onboarding import next_step, previous_step


def onboarding_payload(**overrides):
	data = {
		'full_name': 'Dilshod Rahimov',
		'phone': '+998 91 234 56 78',
		'email': 'Dilshod@Example.com',
		'password': 'strongpass1',
		'shop_name': 'Dilshod Electronics',
		'shop_description': 'Phones and accessories',
		'category': 'electronics',
		'city': 'tashkent',
		'address': 'Amir Temur 1',
		'business_type': 'ip',
	}
	data.update(overrides)
	return data


class StepNavigationTests(SimpleTestCase):
	def test_steps_are_clamped(self):
		self.assertEqual(next_step(1), 2)
		self.assertEqual(next_step(3), 3)
		self.assertEqual(previous_step(2), 1)
		self.assertEqual(previous_step(1), 1)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class OnboardingApiTests(TestCase):
	"""Per-step validation and the final vendor registration."""

	def setUp(self):
		self.client = APIClient()

	def test_validate_step_returns_clean_data_without_password(self):
		res = self.client.post('/api/vendor/onboarding/validate/', {
			'step': 1,
			'data': {'full_name': ' Dilshod ', 'phone': '912345678', 'email': 'a@b.uz', 'password': 'strongpass1'},
		}, format='json')
		self.assertEqual(res.status_code, 200, res.data)
		self.assertTrue(res.data['valid'])
		self.assertEqual(res.data['next_step'], 2)
		self.assertEqual(res.data['data']['full_name'], 'Dilshod')
		self.assertEqual(res.data['data']['phone'], '+998912345678')
		self.assertNotIn('password', res.data['data'])
		self.assertEqual(get_user_model().objects.count(), 0)

	def test_validate_last_step_stays_on_last(self):
		res = self.client.post('/api/vendor/onboarding/validate/', {
			'step': 3, 'data': {'business_type': 'llc'},
		}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['next_step'], 3)

	def test_validate_reports_step_errors(self):
		res = self.client.post('/api/vendor/onboarding/validate/', {
			'step': 2, 'data': {'shop_name': '', 'category': 'weapons', 'city': 'tashkent'},
		}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertIn('shop_name', res.data)
		self.assertIn('category', res.data)
		self.assertIn('address', res.data)

	def test_unknown_step_is_rejected(self):
		res = self.client.post('/api/vendor/onboarding/validate/', {'step': 7, 'data': {}}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertIn('step', res.data)

	def test_submit_creates_vendor_and_pending_shop(self):
		res = self.client.post('/api/vendor/onboarding/', onboarding_payload(), format='json')
		self.assertEqual(res.status_code, 201, res.data)
		self.assertEqual(res.data['status'], 'pending')

		user = get_user_model().objects.get(pk=res.data['user_id'])
		self.assertEqual(user.role, 'vendor')
		self.assertEqual(user.username, 'dilshod@example.com')
		self.assertEqual(user.phone_number, '+998912345678')
		self.assertTrue(user.check_password('strongpass1'))

		shop = Shop.objects.get(owner=user)
		self.assertEqual(shop.status, Shop.STATUS_PENDING)
		self.assertEqual(shop.business_type, 'ip')
		self.assertTrue(shop.slug.startswith('dilshod-electronics-'))

	def test_new_shop_takes_commission_from_platform_setting(self):
		update_setting('vendor.commission_rate', '25')
		res = self.client.post('/api/vendor/onboarding/', onboarding_payload(), format='json')
		self.assertEqual(res.status_code, 201, res.data)
		self.assertEqual(Shop.objects.get(owner_id=res.data['user_id']).commission_rate, Decimal('25'))

	def test_submit_reports_errors_from_all_steps_and_creates_nothing(self):
		res = self.client.post('/api/vendor/onboarding/', onboarding_payload(
			phone='123', shop_name='', business_type='',
		), format='json')
		self.assertEqual(res.status_code, 400)
		for field in ('phone', 'shop_name', 'business_type'):
			self.assertIn(field, res.data)
		self.assertEqual(get_user_model().objects.count(), 0)
		self.assertEqual(Shop.objects.count(), 0)

	def test_email_must_be_unique(self):
		get_user_model().objects.create_user(username='taken@example.com', email='taken@example.com', password='x')
		res = self.client.post('/api/vendor/onboarding/', onboarding_payload(email='TAKEN@example.com'), format='json')
		self.assertEqual(res.status_code, 400)
		self.assertIn('email', res.data)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class VendorShopApiTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.vendor = User.objects.create_user(username='shop_vendor', password='12345678', role='vendor')
		cls.customer = User.objects.create_user(username='shop_customer', password='12345678')
		cls.shop = Shop.objects.create(owner=cls.vendor, name='Old Name', status=Shop.STATUS_ACTIVE)

	def setUp(self):
		self.client = APIClient()

	def test_vendor_reads_and_updates_own_shop(self):
		self.client.force_authenticate(user=self.vendor)
		res = self.client.get('/api/vendor/shop/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['name'], 'Old Name')

		res = self.client.patch('/api/vendor/shop/', {
			'name': 'New Name', 'status': 'blocked', 'balance': '999999', 'commission_rate': '0',
		}, format='json')
		self.assertEqual(res.status_code, 200)
		self.shop.refresh_from_db()
		self.assertEqual(self.shop.name, 'New Name')
		self.assertEqual(self.shop.status, Shop.STATUS_ACTIVE)
		self.assertEqual(self.shop.balance, Decimal('0'))
		self.assertEqual(self.shop.commission_rate, Decimal('10'))

	def test_opening_hours_and_delivery_terms(self):
		self.client.force_authenticate(user=self.vendor)
		res = self.client.patch('/api/vendor/shop/', {
			'opening_time': '09:00', 'closing_time': '21:00',
			'working_days': ['Friday', 'monday', 'monday'],
			'min_order_amount': '20000', 'delivery_fee': '5000', 'estimated_delivery_time': '30-45 min',
		}, format='json')
		self.assertEqual(res.status_code, 200, res.data)
		self.assertEqual(res.data['working_days'], ['monday', 'friday'])
		self.shop.refresh_from_db()
		self.assertEqual(self.shop.opening_time, time(9, 0))
		self.assertEqual(self.shop.min_order_amount, Decimal('20000'))
		self.assertEqual(self.shop.delivery_fee, Decimal('5000'))

		res = self.client.patch('/api/vendor/shop/', {'closing_time': None}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertIn('opening_time', res.data)
		res = self.client.patch('/api/vendor/shop/', {'working_days': ['funday']}, format='json')
		self.assertEqual(res.status_code, 400)
		res = self.client.patch('/api/vendor/shop/', {'delivery_fee': '-1'}, format='json')
		self.assertEqual(res.status_code, 400)

	def test_toggle_open(self):
		self.client.force_authenticate(user=self.vendor)
		res = self.client.post('/api/vendor/shop/toggle-open/', {}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertFalse(res.data['is_open'])
		self.assertFalse(res.data['is_open_now'])

		res = self.client.post('/api/vendor/shop/toggle-open/', {'is_open': True}, format='json')
		self.assertTrue(res.data['is_open'])
		self.shop.refresh_from_db()
		self.assertTrue(self.shop.is_open)
		self.assertEqual(ActivityLog.objects.filter(action='shop.toggle_open').count(), 2)

	def test_vendor_without_shop_gets_404(self):
		other = get_user_model().objects.create_user(username='shopless', password='12345678', role='vendor')
		self.client.force_authenticate(user=other)
		self.assertEqual(self.client.get('/api/vendor/shop/').status_code, 404)

	def test_customer_is_forbidden(self):
		self.client.force_authenticate(user=self.customer)
		self.assertEqual(self.client.get('/api/vendor/shop/').status_code, 403)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class AdminShopApiTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.admin = User.objects.create_user(username='shop_admin', password='12345678', role='admin')
		cls.vendor = User.objects.create_user(username='moderated_vendor', password='12345678', role='vendor',
											  full_name='Moderated Person')

	def setUp(self):
		self.client = APIClient()
		self.client.force_authenticate(user=self.admin)
		self.shop = Shop.objects.create(owner=self.vendor, name='Pending Shop')

	def post(self, name):
		return self.client.post(f'/api/admin/shops/{self.shop.pk}/{name}/', {}, format='json')

	def test_moderation_flow(self):
		self.assertEqual(self.post('unblock').status_code, 400)

		res = self.post('approve')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['status'], 'active')

		self.assertEqual(self.post('reject').status_code, 400)
		self.assertEqual(self.post('block').data['status'], 'blocked')
		self.assertEqual(self.post('unblock').data['status'], 'active')

		actions = list(ActivityLog.objects.order_by('id').values_list('action', flat=True))
		self.assertEqual(actions, ['shop.approve', 'shop.block', 'shop.unblock'])

	def test_rejected_shop_can_be_approved_later(self):
		self.assertEqual(self.post('reject').data['status'], 'rejected')
		self.assertEqual(self.post('approve').data['status'], 'active')

	def test_commission_bounds(self):
		url = f'/api/admin/shops/{self.shop.pk}/commission/'
		self.assertEqual(self.client.patch(url, {'commission_rate': '101'}, format='json').status_code, 400)
		res = self.client.patch(url, {'commission_rate': '12.5'}, format='json')
		self.assertEqual(res.status_code, 200)
		self.shop.refresh_from_db()
		self.assertEqual(self.shop.commission_rate, Decimal('12.5'))

	def test_list_filters_and_stats(self):
		Shop.objects.create(owner=self.vendor, name='Active Shop', status=Shop.STATUS_ACTIVE)

		res = self.client.get('/api/admin/shops/?status=pending')
		self.assertEqual(res.data['count'], 1)
		res = self.client.get('/api/admin/shops/?q=moderated')
		self.assertEqual(res.data['count'], 2)
		self.assertEqual(res.data['results'][0]['owner_name'], 'Moderated Person')

		res = self.client.get('/api/admin/shops/stats/')
		self.assertEqual(res.data, {'total': 2, 'pending': 1, 'active': 1, 'blocked': 0, 'rejected': 0})

	def test_vendor_cannot_moderate(self):
		client = APIClient()
		client.force_authenticate(user=self.vendor)
		res = client.post(f'/api/admin/shops/{self.shop.pk}/approve/', {}, format='json')
		self.assertEqual(res.status_code, 403)


class CommissionDefaultTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		cls.vendor = get_user_model().objects.create_user(username='rate_vendor', password='12345678', role='vendor')

	def test_default_follows_platform_setting(self):
		before = Shop.objects.create(owner=self.vendor, name='Before')
		self.assertEqual(before.commission_rate, Decimal('10'))

		update_setting('vendor.commission_rate', '25')
		after = Shop.objects.create(owner=self.vendor, name='After')
		after.refresh_from_db()
		self.assertEqual(after.commission_rate, Decimal('25'))

		before.refresh_from_db()
		self.assertEqual(before.commission_rate, Decimal('10'))

	def test_explicit_rate_is_kept(self):
		update_setting('vendor.commission_rate', '25')
		shop = Shop.objects.create(owner=self.vendor, name='Own Rate', commission_rate=Decimal('7.5'))
		shop.refresh_from_db()
		self.assertEqual(shop.commission_rate, Decimal('7.5'))


class ShopHoursTests(SimpleTestCase):
	# 2026-10-19 is a Monday
	def at(self, day, hour, minute=0):
		return timezone.make_aware(datetime(2026, 10, day, hour, minute))

	def test_plain_hours(self):
		shop = Shop(opening_time=time(9, 0), closing_time=time(21, 0))
		self.assertTrue(shop.is_open_at(self.at(19, 9)))
		self.assertFalse(shop.is_open_at(self.at(19, 21)))
		self.assertFalse(shop.is_open_at(self.at(19, 8, 59)))

	def test_hours_past_midnight_and_working_days(self):
		shop = Shop(opening_time=time(22, 0), closing_time=time(2, 0), working_days=['monday'])
		self.assertTrue(shop.is_open_at(self.at(19, 23)))
		self.assertTrue(shop.is_open_at(self.at(19, 1)))
		self.assertFalse(shop.is_open_at(self.at(19, 12)))
		self.assertFalse(shop.is_open_at(self.at(20, 23)))

	def test_switch_and_missing_hours(self):
		self.assertTrue(Shop().is_open_at(self.at(20, 3)))
		self.assertFalse(Shop(is_open=False).is_open_at(self.at(19, 12)))


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class VendorDashboardTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.vendor = User.objects.create_user(username='dash_vendor_a', password='12345678', role='vendor')
		other_vendor = User.objects.create_user(username='dash_vendor_b', password='12345678', role='vendor')
		cls.customer = User.objects.create_user(username='dash_customer', password='12345678')
		cls.shop = Shop.objects.create(owner=cls.vendor, name='Lamp House', status=Shop.STATUS_ACTIVE)
		cls.other_shop = Shop.objects.create(owner=other_vendor, name='Other', status=Shop.STATUS_ACTIVE)
		cls.lamp = Product.objects.create(shop=cls.shop, name='Lamp', price=Decimal('10000'),
										  status=Product.STATUS_ACTIVE, rating=Decimal('4.5'))
		Product.objects.create(shop=cls.shop, name='Shade', price=Decimal('3000'))
		cup = Product.objects.create(shop=cls.other_shop, name='Cup', price=Decimal('5000'))

		cls.mixed = cls.place([(cls.shop, cls.lamp, 2, '10000'), (cls.other_shop, cup, 1, '5000')], user=cls.customer)
		cls.delivered = cls.place([(cls.shop, cls.lamp, 1, '10000')], user=cls.customer,
								  status=Order.STATUS_DELIVERED)
		cls.cancelled = cls.place([(cls.shop, cls.lamp, 1, '30000')], status=Order.STATUS_CANCELLED)

	@staticmethod
	def place(lines, user=None, status=Order.STATUS_PENDING):
		total = sum(Decimal(price) * quantity for _shop, _product, quantity, price in lines)
		order = Order.objects.create(
			user=user, delivery_address='Yunusobod 4', customer_name='Buyer', customer_phone='+998912345678',
			subtotal=total, total_amount=total, status=status,
		)
		for shop, product, quantity, price in lines:
			OrderItem.objects.create(order=order, product=product, shop=shop, name=product.name,
									 price=Decimal(price), quantity=quantity)
		return order

	def setUp(self):
		self.client = APIClient()
		self.client.force_authenticate(user=self.vendor)

	def test_dashboard_counts_only_own_items(self):
		res = self.client.get('/api/vendor/dashboard/')
		self.assertEqual(res.status_code, 200)
		data = res.data
		self.assertEqual(data['total_revenue'], Decimal('30000'))
		self.assertEqual(data['total_orders'], 3)
		self.assertEqual(data['pending_orders'], 1)
		self.assertEqual((data['total_products'], data['active_products']), (2, 1))
		self.assertEqual(data['today_revenue'], Decimal('30000'))
		self.assertEqual(data['today_orders'], 2)
		self.assertEqual(data['average_rating'], Decimal('4.50'))

		recent = data['recent_orders']
		self.assertEqual([row['id'] for row in recent], [self.cancelled.pk, self.delivered.pk, self.mixed.pk])
		self.assertEqual(recent[2]['vendor_subtotal'], Decimal('20000'))

	def test_analytics_compares_with_previous_period(self):
		Order.objects.filter(pk=self.delivered.pk).update(created_at=timezone.now() - timedelta(days=40))

		res = self.client.get('/api/vendor/analytics/', {'period': 'month'})
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['sales_overview'], {
			'total_revenue': Decimal('20000'),
			'total_orders': 1,
			'average_order_value': Decimal('20000.00'),
			'previous_revenue': Decimal('10000'),
			'previous_orders': 1,
		})
		self.assertEqual(res.data['orders_by_status'], [
			{'status': 'pending', 'count': 1},
			{'status': 'cancelled', 'count': 1},
		])
		self.assertEqual(res.data['top_products'], [
			{'id': self.lamp.pk, 'name': 'Lamp', 'quantity': 2, 'revenue': Decimal('20000')},
		])
		self.assertEqual(res.data['customer_stats'], {'total_customers': 1, 'returning_customers': 1})
		self.assertEqual(len(res.data['revenue_by_day']), 1)
		self.assertEqual(res.data['revenue_by_day'][0]['orders'], 1)

		self.assertEqual(self.client.get('/api/vendor/analytics/', {'period': 'decade'}).status_code, 400)

	def test_vendor_without_shop_gets_404(self):
		shopless = get_user_model().objects.create_user(username='dash_shopless', password='12345678', role='vendor')
		self.client.force_authenticate(user=shopless)
		self.assertEqual(self.client.get('/api/vendor/dashboard/').status_code, 404)
		self.assertEqual(self.client.get('/api/vendor/analytics/').status_code, 404)
