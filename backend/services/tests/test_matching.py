from django.test import SimpleTestCase, TestCase, override_settings

from providers.models import MobileTechnician, ServiceCenter
from services.matching import (
	Coordinates,
	MobileTechnicianProvider,
	ServiceCenterProvider,
	find_candidates_for_request,
	get_provider,
	get_provider_owner_id,
	get_providers_for_user,
	load_eligible_providers,
	match_providers,
	resolve_request_coordinates,
	service_radius_km,
)
from services.offers import ProviderNotFoundError

from .factories import (
	ORIGIN_LAT,
	ORIGIN_LON,
	make_intake_location,
	make_repair,
	make_service_center,
	make_technician,
	make_user,
	north_of_origin,
)

ORIGIN = Coordinates(ORIGIN_LAT, ORIGIN_LON)


def technician_at(provider_id, distance_km, radius_km=10.0):
	return MobileTechnicianProvider(
		id=provider_id,
		location=Coordinates(north_of_origin(distance_km), ORIGIN_LON),
		service_radius_km=radius_km,
	)


def center_at(provider_id, distance_km):
	return ServiceCenterProvider(
		id=provider_id,
		location=Coordinates(north_of_origin(distance_km), ORIGIN_LON),
	)


class MatchProvidersTests(SimpleTestCase):
	def test_technician_radius_boundary(self):
		inside = technician_at(1, 9.9)
		outside = technician_at(2, 10.1)

		matches = match_providers(ORIGIN, [inside, outside])

		self.assertEqual([m.provider.id for m in matches], [1])
		self.assertAlmostEqual(matches[0].distance_km, 9.9, places=2)

	def test_service_center_radius_boundary(self):
		inside = center_at(1, 24.9)
		outside = center_at(2, 25.1)

		matches = match_providers(ORIGIN, [inside, outside])

		self.assertEqual([m.provider.id for m in matches], [1])

	@override_settings(SERVICE_CENTER_RADIUS_KM=5)
	def test_service_center_radius_from_settings(self):
		self.assertEqual(match_providers(ORIGIN, [center_at(1, 6)]), [])

	def test_matches_sorted_closest_first(self):
		providers = [
			technician_at(1, 3.0),
			center_at(2, 1.0),
			technician_at(3, 2.0),
		]

		matches = match_providers(ORIGIN, providers)

		self.assertEqual(
			[(m.provider.provider_type, m.provider.id) for m in matches],
			[('service_center', 2), ('technician', 3), ('technician', 1)]
		)
		distances = [m.distance_km for m in matches]
		self.assertEqual(distances, sorted(distances))

	def test_providers_without_location_are_skipped(self):
		unlocated = MobileTechnicianProvider(id=1, location=None, service_radius_km=50.0)

		self.assertEqual(match_providers(ORIGIN, [unlocated, center_at(2, 1.0)])[0].provider.id, 2)
		self.assertEqual(len(match_providers(ORIGIN, [unlocated])), 0)

	def test_no_origin_matches_nothing(self):
		self.assertEqual(match_providers(None, [technician_at(1, 0.5)]), [])

	def test_unknown_variant_is_rejected(self):
		with self.assertRaises(TypeError):
			service_radius_km(object())


class CatalogTests(TestCase):
	def test_only_approved_located_providers_are_loaded(self):
		approved = make_technician('tech_ok', 1.0)
		make_technician('tech_pending', 1.0, status=MobileTechnician.STATUS_PENDING)
		make_technician('tech_nowhere', None)
		center = make_service_center('centre_ok', 2.0)
		make_service_center('centre_suspended', 2.0, status=ServiceCenter.STATUS_SUSPENDED)

		providers = load_eligible_providers()

		self.assertEqual(
			sorted((p.provider_type, p.id) for p in providers),
			sorted([('technician', approved.id), ('service_center', center.id)])
		)

	def test_zero_radius_falls_back_to_default(self):
		make_technician('tech_zero', 14.0, radius_km=0)

		technician = load_eligible_providers()[0]

		self.assertEqual(technician.service_radius_km, 15.0)

	def test_get_provider_and_owner(self):
		technician = make_technician('tech_owner', 1.0)
		center = make_service_center('centre_owner', 1.0)

		self.assertEqual(get_provider_owner_id(get_provider('technician', technician.id)), technician.user_id)
		self.assertEqual(get_provider_owner_id(get_provider('service_center', center.id)), center.owner_id)

		with self.assertRaises(ProviderNotFoundError):
			get_provider('technician', 999999)
		with self.assertRaises(ProviderNotFoundError):
			get_provider('drone', technician.id)

	def test_providers_for_user_covers_both_kinds(self):
		technician = make_technician('tech_and_owner', 1.0)
		user = technician.user
		center = ServiceCenter.objects.create(owner=user, business_name='Side business')

		self.assertEqual(
			get_providers_for_user(user),
			[('technician', technician.id), ('service_center', center.id)]
		)
		self.assertEqual(get_providers_for_user(make_user('nobody')), [])


class RequestLocationTests(TestCase):
	def setUp(self):
		self.customer = make_user('customer')

	def test_own_coordinates_win(self):
		intake = make_intake_location()
		intake.latitude = 10.0
		intake.save()
		repair = make_repair(self.customer, intake_location=intake)

		self.assertEqual(resolve_request_coordinates(repair), ORIGIN)

	def test_falls_back_to_intake_location(self):
		repair = make_repair(self.customer, located=False, intake_location=make_intake_location())

		self.assertEqual(resolve_request_coordinates(repair), ORIGIN)

	def test_unresolvable_location(self):
		repair = make_repair(
			self.customer,
			located=False,
			intake_location=make_intake_location(located=False)
		)

		self.assertIsNone(resolve_request_coordinates(repair))

	def test_find_candidates_for_unlocated_request_is_empty(self):
		make_technician('tech_near', 0.5)
		repair = make_repair(self.customer, located=False)

		self.assertEqual(find_candidates_for_request(repair), [])
