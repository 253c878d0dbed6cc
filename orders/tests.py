"""Orders app tests."""

import re
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIClient

from accounts.models import Address
from backoffice.models import PromoCode
from orders.checkout import toggle_section
from orders.models import Order, OrderItem
from orders.transitions import transition_allowed
from products.models import Product
from shops.models import Shop

PHONE = '+998912345678'


def checkout_payload(**overrides):
	data = {
		'customer_name': 'Aziz Karimov',
		'customer_phone': PHONE,
		'new_address': {'title': 'Uy', 'address': 'Chilonzor 9, 12-uy'},
		'payment_method': 'cash',
		'delivery_type': 'asap',
	}
	data.update(overrides)
	return data


class ToggleSectionTests(SimpleTestCase):
	def test_toggle_closes_open_section_and_opens_other(self):
		self.assertIsNone(toggle_section('address', 'address'))
		self.assertEqual(toggle_section('address', 'payment'), 'payment')
		self.assertEqual(toggle_section(None, 'contact'), 'contact')

	def test_vendor_lifecycle_map(self):
		self.assertTrue(transition_allowed('pending', 'confirmed'))
		self.assertTrue(transition_allowed('preparing', 'cancelled'))
		self.assertFalse(transition_allowed('ready', 'cancelled'))
		self.assertFalse(transition_allowed('pending', 'delivered'))
		self.assertFalse(transition_allowed('delivered', 'pending'))


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class CheckoutTests(TestCase):
	"""Checkout from the session cart."""

	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.customer = User.objects.create_user(username='checkout_customer', password='12345678')
		cls.vendor = User.objects.create_user(username='checkout_vendor', password='12345678', role='vendor')
		cls.shop = Shop.objects.create(owner=cls.vendor, name='Checkout Shop', status=Shop.STATUS_ACTIVE)
		cls.product = Product.objects.create(
			shop=cls.shop, name='Lamp', price=Decimal('10000'), stock=10, status=Product.STATUS_ACTIVE,
		)
		cls.promo = PromoCode.objects.create(code='TOPLA20', discount_value=Decimal('20'))

	def setUp(self):
		self.client = APIClient()

	def fill_cart(self, quantity=2):
		res = self.client.post('/api/cart/items/', {'product_id': self.product.pk, 'quantity': quantity}, format='json')
		self.assertEqual(res.status_code, 201)

	def test_checkout_creates_order_and_clears_cart(self):
		self.client.force_authenticate(user=self.customer)
		self.fill_cart(2)

		res = self.client.post('/api/orders/', checkout_payload(), format='json')
		self.assertEqual(res.status_code, 201)

		order = Order.objects.get(pk=res.data['order']['id'])
		self.assertRegex(order.order_number, r'^TP-[0-9A-F]{8}$')
		self.assertEqual(order.user, self.customer)
		self.assertEqual(order.status, Order.STATUS_PENDING)
		self.assertEqual(order.payment_status, 'pending')
		self.assertEqual(order.delivery_time, 'ASAP')
		self.assertEqual(order.customer_phone, PHONE)
		self.assertEqual(order.subtotal, Decimal('20000'))
		self.assertEqual(order.delivery_fee, Decimal('15000'))
		self.assertEqual(order.total_amount, Decimal('35000'))
		self.assertEqual(res.data['redirect'], f'/checkout/success?order={order.pk}')

		item = order.items.get()
		self.assertEqual((item.product, item.shop, item.quantity), (self.product, self.shop, 2))
		self.assertEqual(item.price, Decimal('10000'))

		# new address is saved for signed-in customers
		self.assertTrue(Address.objects.filter(user=self.customer, address='Chilonzor 9, 12-uy').exists())
		self.assertEqual(order.address.user, self.customer)

		self.assertEqual(self.client.get('/api/cart/').data['items'], [])

	def test_guest_checkout_with_schedule(self):
		self.fill_cart(1)
		payload = checkout_payload(delivery_type='scheduled', scheduled_date='2030-01-15', time_slot='12:00 - 15:00')

		res = self.client.post('/api/orders/', payload, format='json')
		self.assertEqual(res.status_code, 201)

		order = Order.objects.get(pk=res.data['order']['id'])
		self.assertIsNone(order.user)
		self.assertIsNone(order.address)
		self.assertEqual(order.delivery_time, '2030-01-15 12:00 - 15:00')
		self.assertEqual(Address.objects.count(), 0)

	def test_empty_cart_is_refused(self):
		res = self.client.post('/api/orders/', checkout_payload(), format='json')
		self.assertEqual(res.status_code, 400)
		self.assertEqual(res.data['detail'], 'Cart is empty.')
		self.assertEqual(Order.objects.count(), 0)

	def test_validation_errors(self):
		self.fill_cart(1)
		payload = checkout_payload(customer_name=' ', customer_phone='', delivery_type='scheduled')
		del payload['new_address']

		res = self.client.post('/api/orders/', payload, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertIn('customer_name', res.data)
		self.assertIn('customer_phone', res.data)

		res = self.client.post('/api/orders/', checkout_payload(delivery_type='scheduled'), format='json')
		self.assertEqual(res.status_code, 400)
		self.assertIn('schedule', res.data)

		payload = checkout_payload()
		del payload['new_address']
		res = self.client.post('/api/orders/', payload, format='json')
		self.assertIn('address', res.data)

		self.assertEqual(Order.objects.count(), 0)

	def test_saved_address_of_another_user_is_rejected(self):
		other = get_user_model().objects.create_user(username='other_customer', password='12345678')
		foreign = Address.objects.create(user=other, address='Somewhere')
		self.client.force_authenticate(user=self.customer)
		self.fill_cart(1)

		payload = checkout_payload(address_id=foreign.pk)
		del payload['new_address']
		res = self.client.post('/api/orders/', payload, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertIn('address_id', res.data)

	def test_idempotency_key_replays_the_first_order(self):
		self.fill_cart(1)
		first = self.client.post('/api/orders/', checkout_payload(), format='json', HTTP_IDEMPOTENCY_KEY='abc-123')
		self.assertEqual(first.status_code, 201)

		self.fill_cart(1)
		second = self.client.post('/api/orders/', checkout_payload(), format='json', HTTP_IDEMPOTENCY_KEY='abc-123')
		self.assertEqual(second.status_code, 200)
		self.assertEqual(second.data['order']['id'], first.data['order']['id'])
		self.assertEqual(Order.objects.count(), 1)

	def test_idempotency_key_from_another_visitor_is_not_replayed(self):
		self.fill_cart(1)
		first = self.client.post('/api/orders/', checkout_payload(), format='json', HTTP_IDEMPOTENCY_KEY='k1')
		self.assertEqual(first.status_code, 201)

		stranger = APIClient()
		payload = checkout_payload(customer_name='Boshqa Odam', new_address={'address': 'Yunusobod 4'})
		res = stranger.post('/api/orders/', payload, format='json', HTTP_IDEMPOTENCY_KEY='k1')
		self.assertEqual(res.status_code, 400)
		self.assertEqual(res.data['detail'], 'Cart is empty.')
		self.assertNotIn('order', res.data)

		res = stranger.post('/api/cart/items/', {'product_id': self.product.pk, 'quantity': 1}, format='json')
		self.assertEqual(res.status_code, 201)
		res = stranger.post('/api/orders/', payload, format='json', HTTP_IDEMPOTENCY_KEY='k1')
		self.assertEqual(res.status_code, 201)
		self.assertNotEqual(res.data['order']['id'], first.data['order']['id'])
		self.assertEqual(res.data['order']['customer_name'], 'Boshqa Odam')
		self.assertEqual(Order.objects.count(), 2)

	def test_idempotency_key_is_bound_to_the_signed_in_customer(self):
		self.client.force_authenticate(user=self.customer)
		self.fill_cart(1)
		first = self.client.post('/api/orders/', checkout_payload(), format='json', HTTP_IDEMPOTENCY_KEY='k2')
		self.assertEqual(first.status_code, 201)

		other = get_user_model().objects.create_user(username='replay_other', password='12345678')
		other_client = APIClient()
		other_client.force_authenticate(user=other)
		res = other_client.post('/api/orders/', checkout_payload(), format='json', HTTP_IDEMPOTENCY_KEY='k2')
		self.assertEqual(res.status_code, 400)
		self.assertEqual(Order.objects.count(), 1)

	def test_overlong_idempotency_key_is_refused(self):
		self.fill_cart(1)
		res = self.client.post('/api/orders/', checkout_payload(), format='json', HTTP_IDEMPOTENCY_KEY='x' * 101)
		self.assertEqual(res.status_code, 400)
		self.assertEqual(Order.objects.count(), 0)

	def test_promo_code_discount_and_usage(self):
		self.fill_cart(5)
		res = self.client.post('/api/orders/', checkout_payload(promo_code='topla20'), format='json')
		self.assertEqual(res.status_code, 201)

		order = Order.objects.get(pk=res.data['order']['id'])
		self.assertEqual(order.discount_amount, Decimal('10000'))
		self.assertEqual(order.delivery_fee, Decimal('15000'))
		self.assertEqual(order.total_amount, Decimal('55000'))
		self.assertEqual(order.promo_code, 'TOPLA20')
		self.promo.refresh_from_db()
		self.assertEqual(self.promo.used_count, 1)

	def test_exhausted_promo_code_is_refused(self):
		PromoCode.objects.filter(pk=self.promo.pk).update(usage_limit=1, used_count=1)
		self.fill_cart(1)
		res = self.client.post('/api/orders/', checkout_payload(promo_code='TOPLA20'), format='json')
		self.assertEqual(res.status_code, 400)
		self.assertEqual(Order.objects.count(), 0)

	def test_section_toggle_is_kept_in_session(self):
		self.assertEqual(self.client.get('/api/orders/section/').data['section'], 'address')
		res = self.client.post('/api/orders/section/', {'section': 'address'}, format='json')
		self.assertIsNone(res.data['section'])
		res = self.client.post('/api/orders/section/', {'section': 'payment'}, format='json')
		self.assertEqual(res.data['section'], 'payment')
		self.assertEqual(self.client.get('/api/orders/section/').data['section'], 'payment')

	def test_customer_sees_only_own_orders(self):
		self.client.force_authenticate(user=self.customer)
		self.fill_cart(1)
		self.client.post('/api/orders/', checkout_payload(), format='json')
		Order.objects.create(delivery_address='x', customer_name='Guest', customer_phone=PHONE,
							 subtotal=1, total_amount=1)

		res = self.client.get('/api/orders/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['count'], 1)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class OrderStatusTests(TestCase):
	"""Vendor and admin status changes, and balance settlement."""

	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.vendor = User.objects.create_user(username='status_vendor', password='12345678', role='vendor')
		cls.other_vendor = User.objects.create_user(username='status_vendor2', password='12345678', role='vendor')
		cls.admin = User.objects.create_user(username='status_admin', password='12345678', role='admin')
		cls.shop = Shop.objects.create(owner=cls.vendor, name='Status Shop', status=Shop.STATUS_ACTIVE)
		cls.other_shop = Shop.objects.create(owner=cls.other_vendor, name='Other Shop', status=Shop.STATUS_ACTIVE)

	def make_order(self, *shops):
		order = Order.objects.create(
			delivery_address='Yunusobod 4', customer_name='Buyer', customer_phone=PHONE,
			subtotal=Decimal('20000'), delivery_fee=Decimal('15000'), total_amount=Decimal('35000'),
		)
		for shop in shops:
			OrderItem.objects.create(order=order, shop=shop, name='Thing', price=Decimal('10000'), quantity=2)
		return order

	def vendor_client(self, user=None):
		client = APIClient()
		client.force_authenticate(user=user or self.vendor)
		return client

	def admin_client(self):
		client = APIClient()
		client.force_authenticate(user=self.admin)
		return client

	def test_vendor_follows_lifecycle(self):
		order = self.make_order(self.shop)
		client = self.vendor_client()
		url = f'/api/vendor/orders/{order.pk}/status/'

		res = client.patch(url, {'status': 'delivered'}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertEqual(res.data['allowed'], ['cancelled', 'confirmed'])

		for step in ('confirmed', 'preparing', 'ready', 'delivering', 'delivered'):
			res = client.patch(url, {'status': step}, format='json')
			self.assertEqual(res.status_code, 200, res.data)

		order.refresh_from_db()
		self.assertEqual(order.status, 'delivered')
		self.assertIsNotNone(order.settled_at)
		self.shop.refresh_from_db()
		self.assertEqual(self.shop.balance, Decimal('18000'))

	def test_vendor_cannot_move_multi_vendor_order(self):
		order = self.make_order(self.shop, self.other_shop)
		res = self.vendor_client().patch(f'/api/vendor/orders/{order.pk}/status/', {'status': 'confirmed'}, format='json')
		self.assertEqual(res.status_code, 403)

	def test_vendor_sees_only_own_items(self):
		order = self.make_order(self.shop, self.other_shop)
		self.make_order(self.other_shop)

		res = self.vendor_client().get('/api/vendor/orders/')
		self.assertEqual(len(res.data), 1)
		self.assertEqual(res.data[0]['id'], order.pk)
		self.assertEqual(len(res.data[0]['items']), 1)
		self.assertTrue(res.data[0]['is_multi_vendor'])
		self.assertEqual(Decimal(res.data[0]['vendor_subtotal']), Decimal('20000'))

	def test_vendor_stats(self):
		self.make_order(self.shop)
		confirmed = self.make_order(self.shop)
		Order.objects.filter(pk=confirmed.pk).update(status='preparing')
		cancelled = self.make_order(self.shop)
		Order.objects.filter(pk=cancelled.pk).update(status='cancelled')

		res = self.vendor_client().get('/api/vendor/orders/stats/')
		self.assertEqual(res.data, {'total': 3, 'pending': 1, 'processing': 1, 'completed': 0, 'cancelled': 1})

	def test_admin_sets_any_status_and_settles_once(self):
		order = self.make_order(self.shop, self.other_shop)
		client = self.admin_client()
		url = f'/api/admin/orders/{order.pk}/status/'

		self.assertEqual(client.patch(url, {'status': 'delivered'}, format='json').status_code, 200)
		self.assertEqual(client.patch(url, {'status': 'cancelled'}, format='json').status_code, 200)
		self.assertEqual(client.patch(url, {'status': 'delivered', 'payment_status': 'paid'}, format='json').status_code, 200)

		self.shop.refresh_from_db()
		self.other_shop.refresh_from_db()
		self.assertEqual(self.shop.balance, Decimal('18000'))
		self.assertEqual(self.other_shop.balance, Decimal('18000'))
		order.refresh_from_db()
		self.assertEqual(order.payment_status, 'paid')

	def test_admin_stats_include_delivered_revenue(self):
		order = self.make_order(self.shop)
		self.make_order(self.shop)
		self.admin_client().patch(f'/api/admin/orders/{order.pk}/status/', {'status': 'delivered'}, format='json')

		res = self.admin_client().get('/api/admin/orders/stats/')
		self.assertEqual(res.data['total'], 2)
		self.assertEqual(res.data['delivered'], 1)
		self.assertEqual(res.data['pending'], 1)
		self.assertEqual(res.data['total_revenue'], Decimal('35000'))

	def test_customer_cannot_use_admin_endpoint(self):
		order = self.make_order(self.shop)
		res = self.vendor_client().patch(f'/api/admin/orders/{order.pk}/status/', {'status': 'delivered'}, format='json')
		self.assertEqual(res.status_code, 403)

	def test_order_number_format(self):
		order = self.make_order(self.shop)
		self.assertTrue(re.match(r'^TP-[0-9A-F]{8}$', order.order_number))
