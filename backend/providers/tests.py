from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate

from repairs.models import JobOffer
from services.dispatch import dispatch_repair_request
from services.tests.factories import make_repair, make_service_center, make_technician, make_user
from .views import ProviderPendingOffersView, ProviderProfilesView


class ProviderOffersViewTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.customer = make_user('customer')
		self.technician = make_technician('tech_rome', 1.0)
		self.center = make_service_center('centre_rome', 4.0)

		self.first = make_repair(self.customer)
		self.second = make_repair(self.customer, device_type='laptop')
		dispatch_repair_request(self.first.id)
		dispatch_repair_request(self.second.id)

	def get(self, view, user):
		request = self.factory.get('/api/providers/')
		force_authenticate(request, user=user)
		return view.as_view()(request)

	def test_lists_live_offers_for_caller(self):
		response = self.get(ProviderPendingOffersView, self.technician.user)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['count'], 2)
		self.assertEqual(
			sorted(offer['repair_request']['id'] for offer in response.data['offers']),
			sorted([self.first.id, self.second.id])
		)
		for offer in response.data['offers']:
			self.assertEqual(offer['provider_type'], 'technician')
			self.assertEqual(offer['provider_id'], self.technician.id)

	def test_expired_offers_are_hidden(self):
		JobOffer.objects.filter(repair_request=self.first).update(
			expires_at=timezone.now() - timedelta(seconds=1)
		)

		response = self.get(ProviderPendingOffersView, self.center.owner)

		self.assertEqual(response.data['count'], 1)
		self.assertEqual(response.data['offers'][0]['repair_request']['id'], self.second.id)

	def test_customer_without_provider_account(self):
		response = self.get(ProviderPendingOffersView, self.customer)

		self.assertEqual(response.status_code, 404)

	def test_profiles(self):
		response = self.get(ProviderProfilesView, self.technician.user)

		self.assertEqual(response.status_code, 200)
		self.assertEqual([t['id'] for t in response.data['technicians']], [self.technician.id])
		self.assertEqual(response.data['service_centers'], [])
