"""Cart app tests."""

import json
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIClient

from backoffice.models import PromoCode
from cart.pricing import delivery_fee
from cart.store import CartStore, FavoritesStore, SearchHistoryStore, StoreUnavailable
from products.models import Product
from shops.models import Shop


class FakeSession(dict):
	modified = False


def snapshot(item_id, price='10000', shop_id='1', shop_name='Shop One'):
	return {
		'id': item_id,
		'name': f'Product {item_id}',
		'price': price,
		'image_url': '',
		'shop_id': shop_id,
		'shop_name': shop_name,
	}


class SignalCounter:
	def __init__(self, store):
		self.calls = []
		self.disconnect = store.subscribe(self)

	def __call__(self, sender, **kwargs):
		self.calls.append(kwargs['value'])


class CartStoreTests(SimpleTestCase):
	def setUp(self):
		self.session = FakeSession()
		self.cart = CartStore(self.session)
		self.counter = SignalCounter(self.cart)

	def tearDown(self):
		self.counter.disconnect()

	def test_adding_same_product_twice_merges_into_one_line(self):
		self.cart.add(snapshot('p1'), 1)
		self.cart.add(snapshot('p1'), 1)

		lines = self.cart.load()
		self.assertEqual(len(lines), 1)
		self.assertEqual(lines[0]['quantity'], 2)
		self.assertEqual(CartStore.line_total(lines[0]), Decimal('20000'))

	def test_add_increments_existing_quantity_by_exactly_qty(self):
		self.cart.add(snapshot('p1'), 2)
		self.cart.add(snapshot('p1'), 3)
		self.assertEqual(self.cart.get_item('p1')['quantity'], 5)

	def test_add_rejects_quantity_below_one(self):
		with self.assertRaises(ValueError):
			self.cart.add(snapshot('p1'), 0)
		self.assertEqual(self.cart.load(), [])

	def test_ids_stay_unique_after_mixed_operations(self):
		self.cart.add(snapshot('p1'), 1)
		self.cart.add(snapshot('p2'), 1)
		self.cart.set_quantity('p1', 4)
		self.cart.add(snapshot('p2'), 2)
		self.cart.remove('p1')
		self.cart.add(snapshot('p1'), 1)

		ids = [line['id'] for line in self.cart.load()]
		self.assertEqual(len(ids), len(set(ids)))
		self.assertEqual(self.cart.count(), 4)

	def test_set_quantity_below_one_removes_line(self):
		self.cart.add(snapshot('p1'), 2)
		self.cart.set_quantity('p1', 0)
		self.assertIsNone(self.cart.get_item('p1'))

	def test_unknown_id_is_a_no_op_without_notification(self):
		self.cart.add(snapshot('p1'), 1)
		self.counter.calls.clear()

		self.cart.set_quantity('missing', 3)
		self.cart.remove('missing')

		self.assertEqual(self.counter.calls, [])
		self.assertEqual(self.cart.count(), 1)

	def test_clear_then_load_is_empty(self):
		self.cart.add(snapshot('p1'), 1)
		self.cart.clear()
		self.assertEqual(self.cart.load(), [])
		self.assertEqual(json.loads(self.session['cart']), [])

	def test_each_mutation_writes_and_notifies_once(self):
		self.cart.add(snapshot('p1'), 1)
		self.cart.set_quantity('p1', 3)
		self.cart.remove('p1')
		self.assertEqual(len(self.counter.calls), 3)
		self.assertTrue(self.session.modified)

	def test_batch_collapses_mutations_into_one_notification(self):
		with self.cart.batch():
			self.cart.add(snapshot('p1'), 1)
			self.cart.add(snapshot('p2'), 2)
			self.cart.set_quantity('p1', 5)
			self.assertNotIn('cart', self.session)

		self.assertEqual(len(self.counter.calls), 1)
		self.assertEqual(self.cart.count(), 7)

	def test_batch_that_raises_writes_nothing(self):
		with self.assertRaises(RuntimeError):
			with self.cart.batch():
				self.cart.add(snapshot('p1'), 1)
				raise RuntimeError('boom')

		self.assertEqual(self.counter.calls, [])
		self.assertEqual(self.cart.load(), [])

	def test_unparsable_document_loads_as_empty(self):
		self.session['cart'] = '{not json'
		self.assertEqual(self.cart.load(), [])

	def test_malformed_entries_are_dropped(self):
		self.session['cart'] = json.dumps([
			{'id': 'ok', 'name': 'Good', 'price': 5000, 'quantity': 2},
			{'name': 'no id', 'price': 100, 'quantity': 1},
			{'id': 'bad-price', 'price': 'abc', 'quantity': 1},
			{'id': 'bad-qty', 'price': 100, 'quantity': 0},
			'not-an-object',
		])

		lines = self.cart.load()
		self.assertEqual([line['id'] for line in lines], ['ok'])
		self.assertEqual(self.cart.subtotal(), Decimal('10000'))

	def test_infinite_quantity_is_dropped(self):
		self.session['cart'] = (
			'[{"id": "ok", "price": 100, "quantity": 1},'
			' {"id": "huge", "price": 100, "quantity": 1e400},'
			' {"id": "inf", "price": 100, "quantity": Infinity}]'
		)
		self.assertEqual([line['id'] for line in self.cart.load()], ['ok'])

	def test_grouped_by_shop_uses_other_group_for_missing_shop(self):
		self.cart.add(snapshot('p1', shop_id='7', shop_name='Seven'), 1)
		self.cart.add(snapshot('p2', shop_id=None, shop_name=None), 2)
		self.cart.add(snapshot('p3', shop_id='7', shop_name='Seven'), 1)

		groups = self.cart.grouped_by_shop()
		self.assertEqual([g['shop_id'] for g in groups], ['7', 'other'])
		self.assertEqual(groups[1]['shop_name'], 'Boshqa')
		self.assertEqual(len(groups[0]['items']), 2)
		self.assertEqual(groups[0]['subtotal'], Decimal('20000'))

	def test_write_without_session_raises(self):
		with self.assertRaises(StoreUnavailable):
			CartStore(None).add(snapshot('p1'), 1)


class FavoritesStoreTests(SimpleTestCase):
	def setUp(self):
		self.favorites = FavoritesStore(FakeSession())

	def test_toggle_twice_restores_membership(self):
		self.favorites.toggle('p1')
		before = self.favorites.is_favorite('p7')
		self.favorites.toggle('p7')
		self.favorites.toggle('p7')
		self.assertEqual(self.favorites.is_favorite('p7'), before)
		self.assertNotIn('p7', self.favorites.ids())
		self.assertIn('p1', self.favorites.ids())

	def test_toggle_returns_new_membership(self):
		self.assertTrue(self.favorites.toggle(5))
		self.assertTrue(self.favorites.is_favorite('5'))
		self.assertFalse(self.favorites.toggle('5'))

	def test_is_favorite_without_session_is_false(self):
		self.assertFalse(FavoritesStore(None).is_favorite('p1'))

	def test_clear(self):
		self.favorites.toggle('p1')
		self.favorites.clear()
		self.assertEqual(self.favorites.ids(), [])


class SearchHistoryStoreTests(SimpleTestCase):
	def setUp(self):
		self.history = SearchHistoryStore(FakeSession())

	def test_push_moves_term_to_front_without_duplicates(self):
		self.history.push('phone')
		self.history.push('shoes')
		self.history.push('  phone ')
		self.assertEqual(self.history.items(), ['phone', 'shoes'])

	def test_push_ignores_blank_terms(self):
		self.history.push('   ')
		self.assertEqual(self.history.items(), [])

	def test_history_is_capped(self):
		for i in range(15):
			self.history.push(f'term {i}')
		items = self.history.items()
		self.assertEqual(len(items), 10)
		self.assertEqual(items[0], 'term 14')

	def test_stored_duplicates_are_collapsed(self):
		self.history.session['searchHistory'] = json.dumps(['phone', 'shoes', 'phone', ' shoes ', '', 3])
		self.assertEqual(self.history.items(), ['phone', 'shoes'])


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class CartApiTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.vendor = User.objects.create_user(username='cart_vendor', password='12345678', role='vendor')
		cls.shop = Shop.objects.create(owner=cls.vendor, name='Cart Shop', status=Shop.STATUS_ACTIVE)
		cls.product = Product.objects.create(
			shop=cls.shop, name='Kettle', price=Decimal('10000'), stock=5, status=Product.STATUS_ACTIVE,
		)
		cls.pending_product = Product.objects.create(
			shop=cls.shop, name='Hidden', price=Decimal('5000'), status=Product.STATUS_PENDING,
		)
		PromoCode.objects.create(code='topla10', discount_value=Decimal('10'))

	def setUp(self):
		self.client = APIClient()

	def add(self, product, quantity=1):
		return self.client.post('/api/cart/items/', {'product_id': product.pk, 'quantity': quantity}, format='json')

	def test_add_twice_gives_one_line_with_summed_quantity(self):
		self.assertEqual(self.add(self.product).status_code, 201)
		res = self.add(self.product)
		self.assertEqual(res.status_code, 201)

		self.assertEqual(len(res.data['items']), 1)
		line = res.data['items'][0]
		self.assertEqual(line['quantity'], 2)
		self.assertEqual(Decimal(line['line_total']), Decimal('20000'))
		self.assertEqual(line['shop_name'], 'Cart Shop')
		self.assertEqual(res.data['summary']['count'], 2)

	def test_cannot_add_unapproved_product(self):
		res = self.add(self.pending_product)
		self.assertEqual(res.status_code, 400)

	def test_summary_applies_delivery_fee_and_promo(self):
		self.add(self.product, 2)

		res = self.client.get('/api/cart/', {'promo': 'TOPLA10'})
		summary = res.data['summary']
		self.assertEqual(summary['subtotal'], Decimal('20000.00'))
		self.assertEqual(summary['discount'], Decimal('2000.00'))
		self.assertEqual(summary['delivery_fee'], Decimal('15000.00'))
		self.assertEqual(summary['total'], Decimal('33000.00'))
		self.assertEqual(summary['promo_code'], 'TOPLA10')

	def test_unknown_promo_reports_error(self):
		self.add(self.product)
		res = self.client.get('/api/cart/', {'promo': 'NOPE'})
		self.assertEqual(res.data['summary']['discount'], Decimal('0'))
		self.assertEqual(res.data['summary']['promo_error'], 'Invalid promo code.')

	def test_patch_quantity_and_delete(self):
		self.add(self.product)
		url = f'/api/cart/items/{self.product.pk}/'

		res = self.client.patch(url, {'quantity': 4}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['items'][0]['quantity'], 4)

		res = self.client.delete(url)
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['items'], [])

		self.assertEqual(self.client.delete(url).status_code, 404)

	def test_patch_zero_removes_line(self):
		self.add(self.product)
		res = self.client.patch(f'/api/cart/items/{self.product.pk}/', {'quantity': 0}, format='json')
		self.assertEqual(res.data['items'], [])

	def test_clear(self):
		self.add(self.product)
		res = self.client.post('/api/cart/clear/')
		self.assertEqual(res.data['items'], [])
		self.assertEqual(self.client.get('/api/cart/').data['items'], [])

	def test_favorites_toggle_and_add_to_cart(self):
		res = self.client.post(f'/api/favorites/{self.product.pk}/toggle/')
		self.assertTrue(res.data['is_favorite'])

		res = self.client.get('/api/favorites/')
		self.assertEqual(res.data['ids'], [str(self.product.pk)])
		self.assertEqual(res.data['products'][0]['name'], 'Kettle')

		res = self.client.post(f'/api/favorites/{self.product.pk}/add-to-cart/')
		self.assertEqual(res.status_code, 201)
		self.assertEqual(res.data['summary']['count'], 1)

		res = self.client.post(f'/api/favorites/{self.product.pk}/toggle/')
		self.assertFalse(res.data['is_favorite'])
		self.assertFalse(self.client.get(f'/api/favorites/{self.product.pk}/').data['is_favorite'])

	def test_catalog_search_is_remembered(self):
		self.client.get('/api/products/', {'q': 'kettle'})
		self.client.get('/api/products/', {'q': 'phone'})

		res = self.client.get('/api/search-history/')
		self.assertEqual(res.data['terms'], ['phone', 'kettle'])

		self.client.post('/api/search-history/clear/')
		self.assertEqual(self.client.get('/api/search-history/').data['terms'], [])


class DeliveryFeeTests(TestCase):
	def test_free_delivery_at_threshold(self):
		self.assertEqual(delivery_fee(Decimal('100000')), Decimal('0'))
		self.assertEqual(delivery_fee(Decimal('99999')), Decimal('15000'))
