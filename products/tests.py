"""Products app tests: public catalog, vendor products, admin moderation."""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from backoffice.models import ActivityLog
from products.models import Category, Product
from shops.models import Shop


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class CatalogTests(TestCase):
	"""Storefront listing and the category tree."""

	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		vendor = User.objects.create_user(username='catalog_vendor', password='12345678', role='vendor')
		blocked_vendor = User.objects.create_user(username='blocked_vendor', password='12345678', role='vendor')
		cls.shop = Shop.objects.create(owner=vendor, name='Open Shop', status=Shop.STATUS_ACTIVE)
		cls.blocked_shop = Shop.objects.create(owner=blocked_vendor, name='Closed Shop', status=Shop.STATUS_BLOCKED)

		cls.electronics = Category.objects.create(name_uz='Elektronika', sort_order=1)
		cls.phones = Category.objects.create(name_uz='Telefonlar', parent=cls.electronics, sort_order=2)
		hidden = Category.objects.create(name_uz='Yashirin', is_active=False, sort_order=3)
		cls.orphan = Category.objects.create(name_uz='Aksessuarlar', parent=hidden, sort_order=4)

		cls.phone = Product.objects.create(
			shop=cls.shop, category=cls.phones, name='Phone X', price=Decimal('900000'),
			original_price=Decimal('1000000'), status=Product.STATUS_ACTIVE, stock=3,
		)
		Product.objects.create(shop=cls.shop, category=cls.phones, name='Phone Pending',
							   price=Decimal('100'), status=Product.STATUS_PENDING)
		Product.objects.create(shop=cls.blocked_shop, name='Phone Blocked', price=Decimal('100'),
							   status=Product.STATUS_ACTIVE)

	def setUp(self):
		self.client = APIClient()

	def test_only_active_products_of_active_shops_are_listed(self):
		res = self.client.get('/api/products/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual([row['name'] for row in res.data['results']], ['Phone X'])
		self.assertEqual(res.data['results'][0]['discount_percent'], 10)
		self.assertEqual(res.data['results'][0]['shop_name'], 'Open Shop')

	def test_hidden_product_detail_is_404(self):
		pending = Product.objects.get(name='Phone Pending')
		self.assertEqual(self.client.get(f'/api/products/{pending.pk}/').status_code, 404)
		self.assertEqual(self.client.get(f'/api/products/{self.phone.pk}/').status_code, 200)

	def test_filter_by_category_and_search(self):
		res = self.client.get(f'/api/products/?category={self.electronics.pk}')
		self.assertEqual(res.data['count'], 0)
		res = self.client.get(f'/api/products/?category={self.phones.pk}&q=phone')
		self.assertEqual(res.data['count'], 1)

	def test_category_tree(self):
		res = self.client.get('/api/categories/tree/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual([node['name_uz'] for node in res.data], ['Elektronika', 'Aksessuarlar'])
		self.assertEqual([child['name_uz'] for child in res.data[0]['children']], ['Telefonlar'])
		self.assertEqual(res.data[1]['children'], [])

	def test_category_slug_is_generated(self):
		self.assertTrue(self.electronics.slug.startswith('elektronika-'))


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class VendorProductTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.vendor = User.objects.create_user(username='product_vendor', password='12345678', role='vendor')
		cls.other_vendor = User.objects.create_user(username='product_vendor2', password='12345678', role='vendor')
		cls.shop = Shop.objects.create(owner=cls.vendor, name='Vendor Shop', status=Shop.STATUS_ACTIVE)
		other_shop = Shop.objects.create(owner=cls.other_vendor, name='Foreign Shop', status=Shop.STATUS_ACTIVE)
		cls.foreign = Product.objects.create(shop=other_shop, name='Foreign', price=Decimal('10'))

	def setUp(self):
		self.client = APIClient()
		self.client.force_authenticate(user=self.vendor)

	def test_create_goes_to_moderation(self):
		res = self.client.post('/api/vendor/products/', {
			'name': 'Kettle', 'price': '150000', 'original_price': '180000', 'stock': 4, 'status': 'active',
		}, format='json')
		self.assertEqual(res.status_code, 201, res.data)
		product = Product.objects.get(pk=res.data['id'])
		self.assertEqual(product.shop, self.shop)
		self.assertEqual(product.status, Product.STATUS_PENDING)

	def test_price_validation(self):
		res = self.client.post('/api/vendor/products/', {'name': 'Free', 'price': '0'}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertIn('price', res.data)
		res = self.client.post('/api/vendor/products/', {
			'name': 'Odd', 'price': '100', 'original_price': '50',
		}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertIn('original_price', res.data)

	def test_edit_resets_approval(self):
		product = Product.objects.create(shop=self.shop, name='Mug', price=Decimal('20000'),
										 status=Product.STATUS_REJECTED, rejection_reason='Blurry photo')
		res = self.client.patch(f'/api/vendor/products/{product.pk}/', {'price': '25000'}, format='json')
		self.assertEqual(res.status_code, 200)
		product.refresh_from_db()
		self.assertEqual(product.status, Product.STATUS_PENDING)
		self.assertEqual(product.rejection_reason, '')

	def test_foreign_products_are_invisible(self):
		self.assertEqual(self.client.get(f'/api/vendor/products/{self.foreign.pk}/').status_code, 404)
		self.assertEqual(self.client.delete(f'/api/vendor/products/{self.foreign.pk}/').status_code, 404)

	def test_toggle_and_stats(self):
		product = Product.objects.create(shop=self.shop, name='Cup', price=Decimal('1000'),
										 status=Product.STATUS_ACTIVE, stock=0)
		Product.objects.create(shop=self.shop, name='Plate', price=Decimal('1000'), stock=5)

		res = self.client.post(f'/api/vendor/products/{product.pk}/toggle/')
		self.assertEqual(res.data['status'], 'inactive')
		res = self.client.post(f'/api/vendor/products/{product.pk}/toggle/')
		self.assertEqual(res.data['status'], 'active')

		res = self.client.get('/api/vendor/products/stats/')
		self.assertEqual(res.data, {'total': 2, 'active': 1, 'pending': 1, 'out_of_stock': 1})

	def test_pending_product_cannot_be_toggled(self):
		product = Product.objects.create(shop=self.shop, name='Bowl', price=Decimal('1000'))
		res = self.client.post(f'/api/vendor/products/{product.pk}/toggle/')
		self.assertEqual(res.status_code, 400)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class AdminProductTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.admin = User.objects.create_user(username='product_admin', password='12345678', role='admin')
		vendor = User.objects.create_user(username='moderated_products', password='12345678', role='vendor')
		cls.shop = Shop.objects.create(owner=vendor, name='Moderated', status=Shop.STATUS_ACTIVE)

	def setUp(self):
		self.client = APIClient()
		self.client.force_authenticate(user=self.admin)
		self.product = Product.objects.create(shop=self.shop, name='Chair', price=Decimal('300000'))

	def test_approve_and_reject(self):
		res = self.client.post(f'/api/admin/products/{self.product.pk}/reject/', {'reason': 'No photo'}, format='json')
		self.assertEqual(res.data['status'], 'rejected')
		self.assertEqual(res.data['rejection_reason'], 'No photo')

		res = self.client.post(f'/api/admin/products/{self.product.pk}/approve/')
		self.assertEqual(res.data['status'], 'active')
		self.assertEqual(res.data['rejection_reason'], '')
		self.assertEqual(ActivityLog.objects.filter(action__startswith='product.').count(), 2)

	def test_stats_and_filter(self):
		Product.objects.create(shop=self.shop, name='Table', price=Decimal('1'), status=Product.STATUS_ACTIVE)
		res = self.client.get('/api/admin/products/stats/')
		self.assertEqual(res.data['total'], 2)
		self.assertEqual(res.data['pending'], 1)
		self.assertEqual(res.data['active'], 1)
		self.assertEqual(self.client.get('/api/admin/products/?status=active').data['count'], 1)

	def test_category_crud_and_toggle(self):
		res = self.client.post('/api/admin/categories/', {'name_uz': 'Sport', 'sort_order': 5}, format='json')
		self.assertEqual(res.status_code, 201)
		category = Category.objects.get(pk=res.data['id'])

		res = self.client.patch(f'/api/admin/categories/{category.pk}/', {'parent': category.pk}, format='json')
		self.assertEqual(res.status_code, 400)

		res = self.client.post(f'/api/admin/categories/{category.pk}/toggle/')
		self.assertFalse(res.data['is_active'])
		self.assertEqual(APIClient().get(f'/api/categories/{category.pk}/').status_code, 404)
