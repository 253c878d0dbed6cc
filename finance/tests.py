"""Finance app tests: settlement, balance summary and payouts."""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from finance.exceptions import PayoutError
from finance.models import PayoutRequest
from finance.services import (
	approve_payout,
	commission_for,
	complete_payout,
	reject_payout,
	request_payout,
	settle_order,
)
from orders.models import Order, OrderItem
from shops.models import Shop


class FinanceTestMixin:
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.vendor = User.objects.create_user(username='finance_vendor', password='12345678', role='vendor')
		cls.admin = User.objects.create_user(username='finance_admin', password='12345678', role='admin')

	def setUp(self):
		self.shop = Shop.objects.create(owner=self.vendor, name='Finance Shop', status=Shop.STATUS_ACTIVE,
										balance=Decimal('500000'))

	def delivered_order(self, price='100000', quantity=1):
		order = Order.objects.create(
			delivery_address='Sergeli 3', customer_name='Buyer', customer_phone='+998912345678',
			subtotal=Decimal(price) * quantity, total_amount=Decimal(price) * quantity,
		)
		OrderItem.objects.create(order=order, shop=self.shop, name='Item', price=Decimal(price), quantity=quantity)
		order.status = Order.STATUS_DELIVERED
		order.save()
		return order


class SettlementTests(FinanceTestMixin, TestCase):
	def test_commission_is_rounded_to_cents(self):
		self.assertEqual(commission_for(Decimal('333.33'), Decimal('10')), Decimal('33.33'))

	def test_delivery_credits_net_amount_once(self):
		order = self.delivered_order('100000', 2)
		self.shop.refresh_from_db()
		self.assertEqual(self.shop.balance, Decimal('680000'))

		order.refresh_from_db()
		self.assertIsNotNone(order.settled_at)
		self.assertFalse(settle_order(order))
		order.save()
		self.shop.refresh_from_db()
		self.assertEqual(self.shop.balance, Decimal('680000'))

	def test_undelivered_order_is_not_settled(self):
		order = Order.objects.create(delivery_address='x', customer_name='B', customer_phone='+998912345678',
									 subtotal=1, total_amount=1)
		self.assertFalse(settle_order(order))
		order.refresh_from_db()
		self.assertIsNone(order.settled_at)


class PayoutServiceTests(FinanceTestMixin, TestCase):
	def test_minimum_amount(self):
		with self.assertRaises(PayoutError):
			request_payout(self.shop, Decimal('99999'))
		self.assertEqual(PayoutRequest.objects.count(), 0)

	def test_insufficient_balance(self):
		with self.assertRaises(PayoutError):
			request_payout(self.shop, Decimal('500001'))
		self.shop.refresh_from_db()
		self.assertEqual(self.shop.balance, Decimal('500000'))

	def test_request_moves_money_to_pending(self):
		request_payout(self.shop, Decimal('200000'), bank_name='Kapitalbank')
		self.shop.refresh_from_db()
		self.assertEqual(self.shop.balance, Decimal('300000'))
		self.assertEqual(self.shop.pending_balance, Decimal('200000'))

	def test_approve_then_complete(self):
		payout = request_payout(self.shop, Decimal('200000'))
		approve_payout(payout, 'ok')
		payout = complete_payout(payout)
		self.assertEqual(payout.status, PayoutRequest.STATUS_COMPLETED)
		self.assertIsNotNone(payout.processed_at)
		self.shop.refresh_from_db()
		self.assertEqual(self.shop.balance, Decimal('300000'))
		self.assertEqual(self.shop.pending_balance, Decimal('0'))

		with self.assertRaises(PayoutError):
			reject_payout(payout)

	def test_reject_returns_money(self):
		payout = request_payout(self.shop, Decimal('200000'))
		payout = reject_payout(payout, 'Wrong account')
		self.assertEqual(payout.admin_notes, 'Wrong account')
		self.shop.refresh_from_db()
		self.assertEqual(self.shop.balance, Decimal('500000'))
		self.assertEqual(self.shop.pending_balance, Decimal('0'))

	def test_approve_only_from_pending(self):
		payout = request_payout(self.shop, Decimal('200000'))
		approve_payout(payout)
		with self.assertRaises(PayoutError):
			approve_payout(payout)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class FinanceApiTests(FinanceTestMixin, TestCase):
	def vendor_client(self):
		client = APIClient()
		client.force_authenticate(user=self.vendor)
		return client

	def admin_client(self):
		client = APIClient()
		client.force_authenticate(user=self.admin)
		return client

	def test_balance_and_transactions(self):
		self.delivered_order('50000', 2)

		res = self.vendor_client().get('/api/vendor/balance/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['balance'], Decimal('590000'))
		self.assertEqual(res.data['total_earnings'], Decimal('100000'))
		self.assertEqual(res.data['min_payout'], Decimal('100000'))

		res = self.vendor_client().get('/api/vendor/balance/transactions/')
		self.assertEqual(len(res.data), 1)
		self.assertEqual(res.data[0]['commission'], Decimal('10000'))
		self.assertEqual(res.data[0]['net'], Decimal('90000'))

	def test_vendor_payout_request(self):
		client = self.vendor_client()
		res = client.post('/api/vendor/payouts/', {'amount': '50000'}, format='json')
		self.assertEqual(res.status_code, 400)

		res = client.post('/api/vendor/payouts/', {'amount': '150000', 'bank_name': 'Hamkorbank'}, format='json')
		self.assertEqual(res.status_code, 201)
		self.assertEqual(res.data['status'], 'pending')
		self.assertEqual(len(client.get('/api/vendor/payouts/').data), 1)

	def test_admin_actions_and_stats(self):
		first = request_payout(self.shop, Decimal('100000'))
		second = request_payout(self.shop, Decimal('150000'))
		client = self.admin_client()

		res = client.post(f'/api/admin/payouts/{first.pk}/approve/', {'admin_notes': 'checked'}, format='json')
		self.assertEqual(res.data['status'], 'approved')
		res = client.post(f'/api/admin/payouts/{first.pk}/complete/')
		self.assertEqual(res.data['status'], 'completed')
		res = client.post(f'/api/admin/payouts/{second.pk}/reject/', {}, format='json')
		self.assertEqual(res.data['status'], 'rejected')
		res = client.post(f'/api/admin/payouts/{second.pk}/approve/', {}, format='json')
		self.assertEqual(res.status_code, 400)

		res = client.get('/api/admin/payouts/stats/')
		self.assertEqual(res.data['total'], 2)
		self.assertEqual(res.data['completed'], 1)
		self.assertEqual(res.data['rejected'], 1)
		self.assertEqual(res.data['pending_amount'], 0)
		self.assertEqual(res.data['total_amount'], Decimal('250000'))

		self.shop.refresh_from_db()
		self.assertEqual(self.shop.balance, Decimal('400000'))
		self.assertEqual(self.shop.pending_balance, Decimal('0'))

	def test_vendor_cannot_use_admin_payouts(self):
		self.assertEqual(self.vendor_client().get('/api/admin/payouts/').status_code, 403)
