from datetime import timedelta
from unittest.mock import patch

from django.test import TestCase, override_settings
from django.utils import timezone

from repairs.models import JobOffer, RepairRequest
from services.dispatch import (
	accept_offer,
	cancel_request,
	complete_request,
	dispatch_repair_request,
	expire_old,
	redispatch_exhausted,
)
from services.offers import (
	AlreadyAssignedError,
	OfferExpiredError,
	OfferNotFoundError,
	OfferNotPendingError,
	ProviderMismatchError,
	RepairRequestNotFoundError,
	RequestNotAvailableError,
	RequestNotDispatchableError,
	accept_job_offer,
	decline_job_offer,
	expire_stale_offers,
	list_pending_offers,
)

from .factories import make_repair, make_service_center, make_technician, make_user


class DispatchTestCase(TestCase):
	"""Two technicians and a centre in range, one technician out of its own radius."""

	def setUp(self):
		self.now = timezone.now()
		self.customer = make_user('customer')
		self.repair = make_repair(self.customer)

		self.near_tech = make_technician('tech_near', 1.0)
		self.mid_tech = make_technician('tech_mid', 3.0)
		self.center = make_service_center('centre', 5.0)
		make_technician('tech_far', 12.0, radius_km=10)

	def dispatch(self, now=None):
		return dispatch_repair_request(self.repair.id, now=now or self.now)

	def offer_for(self, provider):
		provider_type = 'service_center' if hasattr(provider, 'owner_id') else 'technician'
		return JobOffer.objects.get(
			repair_request=self.repair,
			provider_type=provider_type,
			provider_id=provider.id,
			dispatch_round=self.repair.dispatch_round or 1,
		)


class DispatchRoundTests(DispatchTestCase):
	def test_offers_every_provider_in_range(self):
		result = self.dispatch()

		self.assertTrue(result.success)
		self.assertEqual(result.offers_created, 3)
		self.assertEqual(
			[(o.provider_type, o.provider_id) for o in result.offers],
			[
				('technician', self.near_tech.id),
				('technician', self.mid_tech.id),
				('service_center', self.center.id),
			]
		)
		self.assertEqual(result.expires_at, self.now + timedelta(minutes=15))

		offers = JobOffer.objects.filter(repair_request=self.repair)
		self.assertEqual(offers.count(), 3)
		for offer in offers:
			self.assertEqual(offer.status, JobOffer.STATUS_PENDING)
			self.assertEqual(offer.dispatch_round, 1)
			self.assertEqual(offer.expires_at, self.now + timedelta(minutes=15))

		self.repair.refresh_from_db()
		self.assertEqual(self.repair.status, RepairRequest.STATUS_DISPATCHED)
		self.assertEqual(self.repair.dispatch_round, 1)
		self.assertIsNone(self.repair.assigned_provider_id)

	@override_settings(JOB_OFFER_TTL_MINUTES=5)
	def test_offer_lifetime_from_settings(self):
		result = self.dispatch()

		self.assertEqual(result.expires_at, self.now + timedelta(minutes=5))

	def test_no_providers_in_range(self):
		remote = make_repair(self.customer, customer_latitude=0.0, customer_longitude=0.0)

		result = dispatch_repair_request(remote.id, now=self.now)

		self.assertFalse(result.success)
		self.assertEqual(result.offers_created, 0)
		self.assertEqual(result.message, 'No nearby providers found')
		remote.refresh_from_db()
		self.assertEqual(remote.status, RepairRequest.STATUS_NO_PROVIDERS)
		self.assertFalse(JobOffer.objects.filter(repair_request=remote).exists())

	def test_unlocated_request_gets_no_offers(self):
		unlocated = make_repair(self.customer, located=False)

		result = dispatch_repair_request(unlocated.id, now=self.now)

		self.assertEqual(result.offers_created, 0)
		unlocated.refresh_from_db()
		self.assertEqual(unlocated.status, RepairRequest.STATUS_NO_PROVIDERS)

	def test_unknown_request(self):
		with self.assertRaises(RepairRequestNotFoundError):
			dispatch_repair_request(999999)

	def test_cannot_start_second_round_while_first_is_live(self):
		self.dispatch()

		with self.assertRaises(RequestNotDispatchableError):
			self.dispatch(now=self.now + timedelta(minutes=1))

		self.assertEqual(JobOffer.objects.filter(repair_request=self.repair).count(), 3)

	def test_new_round_after_previous_lapsed(self):
		self.dispatch()

		result = self.dispatch(now=self.now + timedelta(minutes=16))

		self.assertEqual(result.offers_created, 3)
		self.repair.refresh_from_db()
		self.assertEqual(self.repair.dispatch_round, 2)
		self.assertEqual(
			JobOffer.objects.filter(repair_request=self.repair, dispatch_round=1, status=JobOffer.STATUS_EXPIRED).count(),
			3
		)
		self.assertEqual(
			JobOffer.objects.filter(repair_request=self.repair, dispatch_round=2, status=JobOffer.STATUS_PENDING).count(),
			3
		)

	def test_assigned_request_is_not_dispatchable(self):
		self.dispatch()
		offer = self.offer_for(self.near_tech)
		accept_job_offer(offer.id, 'technician', self.near_tech.id, now=self.now)

		with self.assertRaises(RequestNotDispatchableError):
			self.dispatch(now=self.now + timedelta(minutes=30))

	@patch('services.dispatch.orchestrator.notify_customer_event')
	@patch('services.dispatch.orchestrator.notify_offer_round')
	def test_providers_notified_after_commit(self, mock_round, mock_customer):
		with self.captureOnCommitCallbacks(execute=False) as callbacks:
			result = self.dispatch()

		mock_round.assert_not_called()

		for callback in callbacks:
			callback()

		mock_round.assert_called_once_with(result.repair_request, result.offers)
		mock_customer.assert_called_once()
		self.assertEqual(mock_customer.call_args[0][0], 'repair_dispatched')


class AcceptOfferTests(DispatchTestCase):
	def setUp(self):
		super().setUp()
		self.dispatch()
		self.repair.refresh_from_db()
		self.near_offer = self.offer_for(self.near_tech)
		self.mid_offer = self.offer_for(self.mid_tech)
		self.center_offer = self.offer_for(self.center)

	def test_accept_assigns_request_and_expires_siblings(self):
		outcome = accept_job_offer(self.mid_offer.id, 'technician', self.mid_tech.id, now=self.now)

		self.assertEqual(outcome.offer.status, JobOffer.STATUS_ACCEPTED)
		self.assertEqual(
			sorted(outcome.superseded),
			sorted([('technician', self.near_tech.id), ('service_center', self.center.id)])
		)

		self.repair.refresh_from_db()
		self.near_offer.refresh_from_db()
		self.mid_offer.refresh_from_db()
		self.center_offer.refresh_from_db()

		self.assertEqual(self.repair.status, RepairRequest.STATUS_ASSIGNED)
		self.assertEqual(self.repair.assigned_provider_type, 'technician')
		self.assertEqual(self.repair.assigned_provider_id, self.mid_tech.id)
		self.assertEqual(self.repair.assigned_at, self.now)
		self.assertEqual(self.mid_offer.status, JobOffer.STATUS_ACCEPTED)
		self.assertEqual(self.near_offer.status, JobOffer.STATUS_EXPIRED)
		self.assertEqual(self.center_offer.status, JobOffer.STATUS_EXPIRED)

	def test_second_accept_loses(self):
		accept_job_offer(self.near_offer.id, 'technician', self.near_tech.id, now=self.now)

		with self.assertRaises(AlreadyAssignedError):
			accept_job_offer(self.center_offer.id, 'service_center', self.center.id, now=self.now)

		self.repair.refresh_from_db()
		self.near_offer.refresh_from_db()
		self.assertEqual(self.repair.assigned_provider_id, self.near_tech.id)
		self.assertEqual(self.near_offer.status, JobOffer.STATUS_ACCEPTED)
		self.assertEqual(
			JobOffer.objects.filter(repair_request=self.repair, status=JobOffer.STATUS_ACCEPTED).count(),
			1
		)

	def test_accepting_twice_reports_already_assigned(self):
		accept_job_offer(self.near_offer.id, 'technician', self.near_tech.id, now=self.now)

		with self.assertRaises(AlreadyAssignedError):
			accept_job_offer(self.near_offer.id, 'technician', self.near_tech.id, now=self.now)

	def test_wrong_provider(self):
		with self.assertRaises(ProviderMismatchError):
			accept_job_offer(self.near_offer.id, 'technician', self.mid_tech.id, now=self.now)
		with self.assertRaises(ProviderMismatchError):
			accept_job_offer(self.near_offer.id, 'service_center', self.near_tech.id, now=self.now)

		self.repair.refresh_from_db()
		self.assertFalse(self.repair.is_assigned)

	def test_accept_at_deadline_is_expired(self):
		with self.assertRaises(OfferExpiredError):
			accept_job_offer(
				self.near_offer.id, 'technician', self.near_tech.id,
				now=self.near_offer.expires_at
			)

		self.repair.refresh_from_db()
		self.assertFalse(self.repair.is_assigned)
		self.assertEqual(self.repair.status, RepairRequest.STATUS_DISPATCHED)

	def test_accept_swept_offer_is_expired(self):
		expire_stale_offers(now=self.now + timedelta(minutes=16))

		with self.assertRaises(OfferExpiredError):
			accept_job_offer(self.near_offer.id, 'technician', self.near_tech.id, now=self.now)

	def test_accept_declined_offer(self):
		decline_job_offer(self.near_offer.id, now=self.now)

		with self.assertRaises(OfferNotPendingError):
			accept_job_offer(self.near_offer.id, 'technician', self.near_tech.id, now=self.now)

	def test_accept_unknown_offer(self):
		with self.assertRaises(OfferNotFoundError):
			accept_job_offer(999999, 'technician', self.near_tech.id, now=self.now)

	def test_accept_on_cancelled_request(self):
		cancel_request(self.repair.id)

		with self.assertRaises(RequestNotAvailableError):
			accept_job_offer(self.near_offer.id, 'technician', self.near_tech.id, now=self.now)

	@patch('services.dispatch.orchestrator.notify_customer_event')
	@patch('services.dispatch.orchestrator.notify_provider_event')
	def test_winner_and_losers_notified(self, mock_provider, mock_customer):
		with self.captureOnCommitCallbacks(execute=True):
			accept_offer(self.near_offer.id, self.near_tech.id, 'technician')

		events = [(c[0][0], c[0][1], c[0][2]) for c in mock_provider.call_args_list]
		self.assertIn(('job_offer_accepted', 'technician', self.near_tech.id), events)
		self.assertIn(('job_offer_withdrawn', 'technician', self.mid_tech.id), events)
		self.assertIn(('job_offer_withdrawn', 'service_center', self.center.id), events)
		self.assertEqual(len(events), 3)
		self.assertEqual(mock_customer.call_args[0][0], 'repair_assigned')

	@patch('services.dispatch.orchestrator.notify_provider_event')
	def test_failed_accept_notifies_nobody(self, mock_provider):
		with self.captureOnCommitCallbacks(execute=True):
			with self.assertRaises(ProviderMismatchError):
				accept_offer(self.near_offer.id, self.mid_tech.id, 'technician')

		mock_provider.assert_not_called()


class DeclineOfferTests(DispatchTestCase):
	def setUp(self):
		super().setUp()
		self.dispatch()
		self.repair.refresh_from_db()
		self.offers = list(JobOffer.objects.filter(repair_request=self.repair))

	def test_decline_leaves_other_offers_open(self):
		outcome = decline_job_offer(self.offers[0].id, now=self.now)

		self.assertFalse(outcome.round_exhausted)
		self.assertEqual(outcome.offer.status, JobOffer.STATUS_DECLINED)
		self.assertEqual(
			JobOffer.objects.filter(repair_request=self.repair, status=JobOffer.STATUS_PENDING).count(),
			2
		)
		self.repair.refresh_from_db()
		self.assertEqual(self.repair.status, RepairRequest.STATUS_DISPATCHED)

	def test_last_decline_exhausts_round(self):
		outcomes = [decline_job_offer(offer.id, now=self.now) for offer in self.offers]

		self.assertEqual([o.round_exhausted for o in outcomes], [False, False, True])

	def test_decline_twice(self):
		decline_job_offer(self.offers[0].id, now=self.now)

		with self.assertRaises(OfferNotPendingError):
			decline_job_offer(self.offers[0].id, now=self.now)

	def test_decline_after_deadline(self):
		with self.assertRaises(OfferExpiredError):
			decline_job_offer(self.offers[0].id, now=self.now + timedelta(minutes=15))

		self.offers[0].refresh_from_db()
		self.assertEqual(self.offers[0].status, JobOffer.STATUS_PENDING)

	def test_accepted_offer_cannot_be_declined(self):
		offer = self.offers[0]
		accept_job_offer(offer.id, offer.provider_type, offer.provider_id, now=self.now)

		with self.assertRaises(OfferNotPendingError):
			decline_job_offer(offer.id, now=self.now)

		offer.refresh_from_db()
		self.assertEqual(offer.status, JobOffer.STATUS_ACCEPTED)

	def test_decline_unknown_offer(self):
		with self.assertRaises(OfferNotFoundError):
			decline_job_offer(999999, now=self.now)


class ExpirySweepTests(DispatchTestCase):
	def setUp(self):
		super().setUp()
		self.dispatch()

	def test_sweep_expires_stale_offers_once(self):
		later = self.now + timedelta(minutes=16)

		first = expire_old(now=later)
		second = expire_old(now=later)

		self.assertEqual(first.expired_count, 3)
		self.assertEqual(first.exhausted_request_ids, [self.repair.id])
		self.assertEqual(second.expired_count, 0)
		self.assertEqual(second.exhausted_request_ids, [])

		self.repair.refresh_from_db()
		self.assertEqual(self.repair.status, RepairRequest.STATUS_NO_PROVIDERS)
		self.assertFalse(
			JobOffer.objects.filter(repair_request=self.repair, status=JobOffer.STATUS_PENDING).exists()
		)

	def test_sweep_leaves_live_offers_alone(self):
		outcome = expire_old(now=self.now + timedelta(minutes=1))

		self.assertEqual(outcome.expired_count, 0)
		self.repair.refresh_from_db()
		self.assertEqual(self.repair.status, RepairRequest.STATUS_DISPATCHED)

	def test_sweep_closes_fully_declined_round(self):
		for offer in JobOffer.objects.filter(repair_request=self.repair):
			decline_job_offer(offer.id, now=self.now)

		outcome = expire_old(now=self.now + timedelta(minutes=1))

		self.assertEqual(outcome.expired_count, 0)
		self.assertEqual(outcome.exhausted_request_ids, [self.repair.id])

	def test_sweep_never_rewrites_terminal_offers(self):
		offers = list(JobOffer.objects.filter(repair_request=self.repair))
		decline_job_offer(offers[1].id, now=self.now)
		accept_job_offer(offers[0].id, offers[0].provider_type, offers[0].provider_id, now=self.now)

		outcome = expire_old(now=self.now + timedelta(hours=1))

		self.assertEqual(outcome.expired_count, 0)
		self.assertEqual(
			dict(JobOffer.objects.filter(repair_request=self.repair).values_list('id', 'status')),
			{
				offers[0].id: JobOffer.STATUS_ACCEPTED,
				offers[1].id: JobOffer.STATUS_DECLINED,
				offers[2].id: JobOffer.STATUS_EXPIRED,
			}
		)
		self.repair.refresh_from_db()
		self.assertEqual(self.repair.status, RepairRequest.STATUS_ASSIGNED)

	def test_exhausted_request_stays_put_at_round_limit(self):
		outcome = expire_old(now=self.now + timedelta(minutes=16))

		self.assertEqual(redispatch_exhausted(outcome.exhausted_request_ids), [])
		self.repair.refresh_from_db()
		self.assertEqual(self.repair.status, RepairRequest.STATUS_NO_PROVIDERS)

	@override_settings(REPAIR_DISPATCH_MAX_ROUNDS=2)
	def test_exhausted_request_redispatched_below_round_limit(self):
		outcome = expire_old(now=self.now + timedelta(minutes=16))

		results = redispatch_exhausted(outcome.exhausted_request_ids)

		self.assertEqual(len(results), 1)
		self.assertEqual(results[0].offers_created, 3)
		self.repair.refresh_from_db()
		self.assertEqual(self.repair.status, RepairRequest.STATUS_DISPATCHED)
		self.assertEqual(self.repair.dispatch_round, 2)


class RequestClosureTests(DispatchTestCase):
	def setUp(self):
		super().setUp()
		self.dispatch()

	def test_cancel_withdraws_pending_offers(self):
		repair = cancel_request(self.repair.id)

		self.assertEqual(repair.status, RepairRequest.STATUS_CANCELLED)
		self.assertFalse(
			JobOffer.objects.filter(repair_request=self.repair, status=JobOffer.STATUS_PENDING).exists()
		)

	def test_cancel_is_idempotent(self):
		cancel_request(self.repair.id)
		repair = cancel_request(self.repair.id)

		self.assertEqual(repair.status, RepairRequest.STATUS_CANCELLED)

	def test_complete_requires_assignment(self):
		with self.assertRaises(RequestNotAvailableError):
			complete_request(self.repair.id)

	def test_complete_then_cancel_refused(self):
		offer = self.offer_for(self.near_tech)
		accept_job_offer(offer.id, 'technician', self.near_tech.id, now=self.now)

		repair = complete_request(self.repair.id)
		self.assertEqual(repair.status, RepairRequest.STATUS_COMPLETED)

		with self.assertRaises(RequestNotAvailableError):
			cancel_request(self.repair.id)

	def test_cancel_assigned_request_keeps_assignment(self):
		offer = self.offer_for(self.center)
		accept_job_offer(offer.id, 'service_center', self.center.id, now=self.now)

		repair = cancel_request(self.repair.id)

		self.assertEqual(repair.status, RepairRequest.STATUS_CANCELLED)
		self.assertEqual(repair.assigned_provider_id, self.center.id)

	def test_list_pending_offers_per_provider(self):
		offers = list(list_pending_offers('technician', self.near_tech.id, now=self.now))

		self.assertEqual(len(offers), 1)
		self.assertEqual(offers[0].repair_request_id, self.repair.id)
		self.assertEqual(list(list_pending_offers('technician', self.near_tech.id, now=self.now + timedelta(minutes=15))), [])
