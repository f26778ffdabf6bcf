from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate
from unittest.mock import patch

from accounts.models import User
from services.dispatch import dispatch_repair_request
from services.tests.factories import make_repair, make_service_center, make_technician, make_user
from .models import JobOffer, RepairRequest
from .tasks import dispatch_repair_request_task, expire_job_offers_task
from .views import (
	accept_job_offer,
	cancel_repair_request,
	complete_repair_request,
	decline_job_offer,
	dispatch_repair,
	expire_old_offers,
	repair_request_detail,
)


class RepairApiTestCase(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.customer = make_user('customer')
		self.staff = make_user('ops', role=User.ROLE_STAFF)
		self.technician = make_technician('tech_rome', 1.0)
		self.center = make_service_center('centre_rome', 2.0)
		self.repair = make_repair(self.customer)

	def post(self, view, path, user, data=None, **kwargs):
		request = self.factory.post(path, data or {}, format='json')
		force_authenticate(request, user=user)
		return view(request, **kwargs)

	def dispatched_offers(self):
		result = dispatch_repair_request(self.repair.id)
		technician_offer = next(o for o in result.offers if o.provider_type == 'technician')
		center_offer = next(o for o in result.offers if o.provider_type == 'service_center')
		return technician_offer, center_offer


class DispatchApiTests(RepairApiTestCase):
	def test_dispatch_creates_offers(self):
		response = self.post(dispatch_repair, '/api/repairs/dispatch/', self.customer, {'repair_request_id': self.repair.id})

		self.assertEqual(response.status_code, 200)
		self.assertTrue(response.data['success'])
		self.assertEqual(response.data['offers_created'], 2)
		self.assertIn('expires_at', response.data)
		self.assertEqual(JobOffer.objects.filter(repair_request=self.repair).count(), 2)

	def test_no_providers_is_not_an_error(self):
		remote = make_repair(self.customer, customer_latitude=-33.0, customer_longitude=151.0)

		response = self.post(dispatch_repair, '/api/repairs/dispatch/', self.customer, {'repair_request_id': remote.id})

		self.assertEqual(response.status_code, 200)
		self.assertFalse(response.data['success'])
		self.assertEqual(response.data['message'], 'No nearby providers found')
		self.assertEqual(response.data['status'], RepairRequest.STATUS_NO_PROVIDERS)

	def test_unknown_request_is_404(self):
		response = self.post(dispatch_repair, '/api/repairs/dispatch/', self.staff, {'repair_request_id': 999999})

		self.assertEqual(response.status_code, 404)
		self.assertEqual(response.data['error'], 'request_not_found')

	def test_missing_id_is_400(self):
		response = self.post(dispatch_repair, '/api/repairs/dispatch/', self.customer, {})

		self.assertEqual(response.status_code, 400)
		self.assertIn('repair_request_id', response.data)

	def test_other_customers_request_is_forbidden(self):
		stranger = make_user('stranger')

		response = self.post(dispatch_repair, '/api/repairs/dispatch/', stranger, {'repair_request_id': self.repair.id})

		self.assertEqual(response.status_code, 403)

	def test_second_dispatch_during_live_round_is_400(self):
		self.post(dispatch_repair, '/api/repairs/dispatch/', self.customer, {'repair_request_id': self.repair.id})

		response = self.post(dispatch_repair, '/api/repairs/dispatch/', self.customer, {'repair_request_id': self.repair.id})

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['error'], 'request_not_dispatchable')

	@patch('repairs.views.dispatch_repair_request', side_effect=DatabaseError('database is locked'))
	def test_database_failure_is_500(self, mock_dispatch):
		with self.assertLogs('repairs.views', level='ERROR'):
			response = self.post(dispatch_repair, '/api/repairs/dispatch/', self.customer, {'repair_request_id': self.repair.id})

		self.assertEqual(response.status_code, 500)
		self.assertEqual(response.data, {
			'success': False,
			'error': 'store_unavailable',
			'message': 'The operation could not be completed. Please retry.',
		})


class OfferApiTests(RepairApiTestCase):
	def setUp(self):
		super().setUp()
		self.technician_offer, self.center_offer = self.dispatched_offers()

	def accept(self, user, offer, provider_id=None, provider_type=None):
		return self.post(accept_job_offer, '/api/repairs/offers/accept/', user, {
			'job_offer_id': offer.id,
			'provider_id': provider_id or offer.provider_id,
			'provider_type': provider_type or offer.provider_type,
		})

	def test_accept_assigns_repair(self):
		response = self.accept(self.technician.user, self.technician_offer)

		self.assertEqual(response.status_code, 200)
		self.assertTrue(response.data['success'])
		self.assertEqual(response.data['message'], 'Job accepted successfully')

		self.repair.refresh_from_db()
		self.assertEqual(self.repair.status, RepairRequest.STATUS_ASSIGNED)
		self.assertEqual(self.repair.assigned_provider_id, self.technician.id)

	def test_late_accept_gets_already_assigned(self):
		self.accept(self.technician.user, self.technician_offer)

		response = self.accept(self.center.owner, self.center_offer)

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['success'], False)
		self.assertEqual(response.data['error'], 'already_assigned')

	def test_expired_offer(self):
		JobOffer.objects.filter(id=self.technician_offer.id).update(expires_at=timezone.now() - timedelta(seconds=1))

		response = self.accept(self.technician.user, self.technician_offer)

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['error'], 'offer_expired')

	def test_accepting_for_someone_elses_provider_is_forbidden(self):
		response = self.accept(self.center.owner, self.technician_offer)

		self.assertEqual(response.status_code, 403)

	def test_offer_of_other_provider_is_mismatch(self):
		response = self.accept(
			self.center.owner,
			self.technician_offer,
			provider_id=self.center.id,
			provider_type='service_center'
		)

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['error'], 'provider_mismatch')

	def test_unknown_offer_is_404(self):
		response = self.post(accept_job_offer, '/api/repairs/offers/accept/', self.technician.user, {
			'job_offer_id': 999999,
			'provider_id': self.technician.id,
			'provider_type': 'technician',
		})

		self.assertEqual(response.status_code, 404)
		self.assertEqual(response.data['error'], 'offer_not_found')

	def test_unknown_provider_type_is_400(self):
		response = self.accept(self.technician.user, self.technician_offer, provider_type='courier')

		self.assertEqual(response.status_code, 400)
		self.assertIn('provider_type', response.data)

	def test_decline(self):
		response = self.post(decline_job_offer, '/api/repairs/offers/decline/', self.technician.user, {
			'job_offer_id': self.technician_offer.id,
		})

		self.assertEqual(response.status_code, 200)
		self.assertFalse(response.data['round_exhausted'])

		self.center_offer.refresh_from_db()
		self.assertEqual(self.center_offer.status, JobOffer.STATUS_PENDING)

	def test_accept_after_decline_is_not_pending(self):
		self.post(decline_job_offer, '/api/repairs/offers/decline/', self.technician.user, {
			'job_offer_id': self.technician_offer.id,
		})

		response = self.accept(self.technician.user, self.technician_offer)

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['error'], 'offer_not_pending')

	def test_decline_unknown_offer_is_404(self):
		response = self.post(decline_job_offer, '/api/repairs/offers/decline/', self.technician.user, {
			'job_offer_id': 999999,
		})

		self.assertEqual(response.status_code, 404)

	def test_expire_old_requires_staff(self):
		response = self.post(expire_old_offers, '/api/repairs/offers/expire-old/', self.customer)

		self.assertEqual(response.status_code, 403)

	def test_expire_old(self):
		JobOffer.objects.filter(repair_request=self.repair).update(expires_at=timezone.now() - timedelta(minutes=1))

		response = self.post(expire_old_offers, '/api/repairs/offers/expire-old/', self.staff)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['expired_count'], 2)
		self.assertEqual(response.data['exhausted_requests'], [self.repair.id])


class RepairLifecycleApiTests(RepairApiTestCase):
	def test_detail_includes_offers(self):
		self.dispatched_offers()
		request = self.factory.get('/api/repairs/%d/' % self.repair.id)
		force_authenticate(request, user=self.customer)

		response = repair_request_detail(request, request_id=self.repair.id)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['status'], RepairRequest.STATUS_DISPATCHED)
		self.assertEqual(len(response.data['offers']), 2)

	def test_cancel(self):
		self.dispatched_offers()

		response = self.post(cancel_repair_request, '/cancel/', self.customer, request_id=self.repair.id)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['status'], RepairRequest.STATUS_CANCELLED)
		self.assertFalse(JobOffer.objects.filter(repair_request=self.repair, status=JobOffer.STATUS_PENDING).exists())

	def test_complete_by_assigned_provider(self):
		technician_offer, _ = self.dispatched_offers()
		self.post(accept_job_offer, '/api/repairs/offers/accept/', self.technician.user, {
			'job_offer_id': technician_offer.id,
			'provider_id': self.technician.id,
			'provider_type': 'technician',
		})

		refused = self.post(complete_repair_request, '/complete/', self.center.owner, request_id=self.repair.id)
		response = self.post(complete_repair_request, '/complete/', self.technician.user, request_id=self.repair.id)

		self.assertEqual(refused.status_code, 403)
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['status'], RepairRequest.STATUS_COMPLETED)

	def test_complete_unassigned_is_400(self):
		response = self.post(complete_repair_request, '/complete/', self.staff, request_id=self.repair.id)

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['error'], 'request_not_available')


class OfferSweepJobTests(TestCase):
	def setUp(self):
		self.customer = make_user('customer')
		make_technician('tech_one', 1.0)
		make_technician('tech_two', 2.0)
		self.repair = make_repair(self.customer)
		dispatch_repair_request(self.repair.id)

	def age_offers(self):
		JobOffer.objects.filter(repair_request=self.repair).update(
			expires_at=timezone.now() - timedelta(minutes=1)
		)

	def test_command_expires_stale_offers(self):
		self.age_offers()
		out = StringIO()

		call_command('expire_job_offers', stdout=out)

		self.assertIn('Expired 2 offer(s)', out.getvalue())
		self.repair.refresh_from_db()
		self.assertEqual(self.repair.status, RepairRequest.STATUS_NO_PROVIDERS)

		out = StringIO()
		call_command('expire_job_offers', stdout=out)
		self.assertIn('Expired 0 offer(s)', out.getvalue())

	def test_task_reports_counts(self):
		self.age_offers()

		result = expire_job_offers_task()

		self.assertEqual(result, {
			'expired_count': 2,
			'exhausted_requests': [self.repair.id],
			'redispatched': 0,
		})

	def test_dispatch_task_refuses_live_round(self):
		result = dispatch_repair_request_task(self.repair.id)

		self.assertEqual(result, {'success': False, 'error': 'request_not_dispatchable'})
