"""Accounts app tests: registration, profile, addresses, admin users screen."""

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework import serializers
from rest_framework.test import APIClient

from accounts.models import Address
from accounts.validators import normalize_phone
from backoffice.models import ActivityLog


class NormalizePhoneTests(SimpleTestCase):
	def test_local_and_international_forms(self):
		self.assertEqual(normalize_phone('91 234 56 78'), '+998912345678')
		self.assertEqual(normalize_phone('+998 (91) 234-56-78'), '+998912345678')
		self.assertEqual(normalize_phone('00998912345678'), '+998912345678')

	def test_invalid_numbers(self):
		for value in ('', '12', 'phone'):
			with self.assertRaises(serializers.ValidationError):
				normalize_phone(value)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class RegistrationTests(TestCase):
	def setUp(self):
		self.client = APIClient()

	def test_register_creates_customer(self):
		res = self.client.post('/api/accounts/register/', {
			'username': 'new.customer',
			'password': 'secret123',
			'full_name': 'New Customer',
			'phone_number': '912345678',
		}, format='json')
		self.assertEqual(res.status_code, 201, res.data)
		self.assertNotIn('password', res.data)

		user = get_user_model().objects.get(username='new.customer')
		self.assertEqual(user.role, 'customer')
		self.assertEqual(user.phone_number, '+998912345678')
		self.assertTrue(user.check_password('secret123'))

	def test_register_rejects_bad_username(self):
		for username in ('ab', 'bad name!'):
			res = self.client.post('/api/accounts/register/', {'username': username, 'password': 'secret123'},
								   format='json')
			self.assertEqual(res.status_code, 400)
			self.assertIn('username', res.data)

	def test_login_returns_tokens(self):
		get_user_model().objects.create_user(username='login_user', password='secret123')
		res = self.client.post('/api/accounts/login/', {'username': 'login_user', 'password': 'secret123'},
							   format='json')
		self.assertEqual(res.status_code, 200)
		self.assertIn('access', res.data)
		self.assertIn('refresh', res.data)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class ProfileTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.user = User.objects.create_user(username='profile_user', password='secret123')
		cls.other = User.objects.create_user(username='profile_other', password='secret123')
		cls.foreign_address = Address.objects.create(user=cls.other, address='Foreign street')

	def setUp(self):
		self.client = APIClient()
		self.client.force_authenticate(user=self.user)

	def test_me_requires_authentication(self):
		self.assertEqual(APIClient().get('/api/accounts/profile/me/').status_code, 401)

	def test_update_profile_keeps_role(self):
		res = self.client.patch('/api/accounts/profile/me/', {'full_name': 'Profile User', 'role': 'admin'},
								format='json')
		self.assertEqual(res.status_code, 200)
		self.user.refresh_from_db()
		self.assertEqual(self.user.full_name, 'Profile User')
		self.assertEqual(self.user.role, 'customer')

	def test_addresses_are_scoped_to_owner(self):
		res = self.client.post('/api/accounts/addresses/', {'title': 'Ish', 'address': 'Mirobod 7'}, format='json')
		self.assertEqual(res.status_code, 201)

		res = self.client.get('/api/accounts/addresses/')
		self.assertEqual([row['address'] for row in res.data], ['Mirobod 7'])
		self.assertEqual(self.client.get(f'/api/accounts/addresses/{self.foreign_address.pk}/').status_code, 404)

		res = self.client.get('/api/accounts/profile/me/')
		self.assertEqual(len(res.data['addresses']), 1)

	def test_blank_address_is_rejected(self):
		res = self.client.post('/api/accounts/addresses/', {'address': '   '}, format='json')
		self.assertEqual(res.status_code, 400)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class AdminUserTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.admin = User.objects.create_user(username='users_admin', password='secret123', role='admin')
		cls.customer = User.objects.create_user(username='plain_customer', password='secret123', full_name='Plain')
		User.objects.create_user(username='some_vendor', password='secret123', role='vendor')

	def setUp(self):
		self.client = APIClient()
		self.client.force_authenticate(user=self.admin)

	def test_stats(self):
		res = self.client.get('/api/admin/users/stats/')
		self.assertEqual(res.data, {'total': 3, 'customers': 1, 'vendors': 1, 'admins': 1, 'blocked': 0})

	def test_list_filters(self):
		self.assertEqual(self.client.get('/api/admin/users/?role=vendor').data['count'], 1)
		self.assertEqual(self.client.get('/api/admin/users/?q=plain').data['count'], 1)
		self.assertEqual(self.client.get('/api/admin/users/?role=all').data['count'], 3)

	def test_block_unblock_and_role(self):
		url = f'/api/admin/users/{self.customer.pk}/'
		self.assertTrue(self.client.post(url + 'block/').data['is_blocked'])
		self.assertFalse(self.client.post(url + 'unblock/').data['is_blocked'])

		res = self.client.patch(url + 'role/', {'role': 'vendor'}, format='json')
		self.assertEqual(res.data['role'], 'vendor')
		self.assertEqual(self.client.patch(url + 'role/', {'role': 'owner'}, format='json').status_code, 400)

		actions = list(ActivityLog.objects.order_by('id').values_list('action', flat=True))
		self.assertEqual(actions, ['user.block', 'user.unblock', 'user.role'])

	def test_admin_cannot_block_self(self):
		res = self.client.post(f'/api/admin/users/{self.admin.pk}/block/')
		self.assertEqual(res.status_code, 400)
