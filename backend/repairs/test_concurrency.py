import threading
from unittest.mock import patch

from django.db import connection
from django.test import TransactionTestCase
from django.utils import timezone

from repairs.models import JobOffer, RepairRequest
from services.dispatch import dispatch_repair_request
from services.offers import AlreadyAssignedError, DispatchError, accept_job_offer
from services.tests.factories import make_repair, make_service_center, make_technician, make_user


@patch('services.dispatch.orchestrator.notify_customer_event')
@patch('services.dispatch.orchestrator.notify_offer_round')
class AcceptRaceTests(TransactionTestCase):
	"""Providers accepting the same repair at the same time, each on its own connection."""

	PROVIDERS = 6

	def setUp(self):
		self.customer = make_user('race_customer')
		self.repair = make_repair(self.customer)
		for index in range(self.PROVIDERS // 2):
			make_technician(f'race_tech_{index}', 0.5 + index)
			make_service_center(f'race_centre_{index}', 1.5 + index)

	def race(self, offers):
		barrier = threading.Barrier(len(offers))
		results = {}

		def attempt(offer):
			try:
				barrier.wait()
				accept_job_offer(offer.id, offer.provider_type, offer.provider_id)
				results[offer.id] = 'won'
			except DispatchError as e:
				results[offer.id] = e.error_code
			finally:
				connection.close()

		threads = [threading.Thread(target=attempt, args=(offer,)) for offer in offers]
		for thread in threads:
			thread.start()
		for thread in threads:
			thread.join()
		return results

	def test_exactly_one_provider_wins(self, mock_round, mock_customer):
		result = dispatch_repair_request(self.repair.id)
		self.assertEqual(result.offers_created, self.PROVIDERS)

		results = self.race(result.offers)

		winners = [offer_id for offer_id, outcome in results.items() if outcome == 'won']
		self.assertEqual(len(winners), 1)
		self.assertEqual(
			sorted(outcome for outcome in results.values() if outcome != 'won'),
			[AlreadyAssignedError.error_code] * (self.PROVIDERS - 1)
		)

		winner = JobOffer.objects.get(id=winners[0])
		repair = RepairRequest.objects.get(id=self.repair.id)
		self.assertEqual(winner.status, JobOffer.STATUS_ACCEPTED)
		self.assertEqual(repair.status, RepairRequest.STATUS_ASSIGNED)
		self.assertEqual(
			(repair.assigned_provider_type, repair.assigned_provider_id),
			(winner.provider_type, winner.provider_id)
		)
		self.assertEqual(
			JobOffer.objects.filter(repair_request=self.repair, status=JobOffer.STATUS_ACCEPTED).count(),
			1
		)
		self.assertEqual(
			JobOffer.objects.filter(repair_request=self.repair, status=JobOffer.STATUS_EXPIRED).count(),
			self.PROVIDERS - 1
		)

	def test_same_offer_accepted_twice_at_once(self, mock_round, mock_customer):
		result = dispatch_repair_request(self.repair.id)
		offer = result.offers[0]

		results = []
		barrier = threading.Barrier(2)

		def attempt():
			try:
				barrier.wait()
				accept_job_offer(offer.id, offer.provider_type, offer.provider_id, now=timezone.now())
				results.append('won')
			except DispatchError as e:
				results.append(e.error_code)
			finally:
				connection.close()

		threads = [threading.Thread(target=attempt) for _ in range(2)]
		for thread in threads:
			thread.start()
		for thread in threads:
			thread.join()

		self.assertEqual(sorted(results), sorted(['won', AlreadyAssignedError.error_code]))
