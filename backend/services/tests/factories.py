"""Shared fixtures for dispatch tests: users, providers and repair requests around one origin."""

import math

from django.utils import timezone

from accounts.models import User
from common.utils import EARTH_RADIUS_KM
from providers.models import MobileTechnician, ServiceCenter
from repairs.models import IntakeLocation, RepairRequest

ORIGIN_LAT = 45.0
ORIGIN_LON = 9.0


def north_of_origin(distance_km):
	"""Latitude exactly distance_km north of the origin along its meridian."""
	return round(ORIGIN_LAT + math.degrees(distance_km / EARTH_RADIUS_KM), 6)


def make_user(username, role=User.ROLE_CUSTOMER, **extra):
	return User.objects.create_user(
		username=username,
		password='pass1234',
		role=role,
		**extra
	)


def make_technician(username, distance_km, radius_km=10, status=MobileTechnician.STATUS_APPROVED):
	user = make_user(username, role=User.ROLE_TECHNICIAN)
	return MobileTechnician.objects.create(
		user=user,
		full_name=username.replace('_', ' ').title(),
		service_radius_km=radius_km,
		status=status,
		approved_at=timezone.now() if status == MobileTechnician.STATUS_APPROVED else None,
		latitude=north_of_origin(distance_km) if distance_km is not None else None,
		longitude=ORIGIN_LON if distance_km is not None else None,
	)


def make_service_center(username, distance_km, status=ServiceCenter.STATUS_APPROVED):
	owner = make_user(username, role=User.ROLE_CENTRE_OWNER)
	return ServiceCenter.objects.create(
		owner=owner,
		business_name=f'{username} repairs',
		status=status,
		approved_at=timezone.now() if status == ServiceCenter.STATUS_APPROVED else None,
		latitude=north_of_origin(distance_km) if distance_km is not None else None,
		longitude=ORIGIN_LON if distance_km is not None else None,
	)


def make_repair(customer, located=True, intake_location=None, **extra):
	fields = {
		'customer': customer,
		'device_type': 'smartphone',
		'device_brand': 'Fairphone',
		'device_model': '5',
		'issue_description': 'Cracked screen',
	}
	if located:
		fields['customer_latitude'] = ORIGIN_LAT
		fields['customer_longitude'] = ORIGIN_LON
	fields.update(extra)
	return RepairRequest.objects.create(intake_location=intake_location, **fields)


def make_intake_location(name='Corner shop', located=True):
	return IntakeLocation.objects.create(
		name=name,
		latitude=ORIGIN_LAT if located else None,
		longitude=ORIGIN_LON if located else None,
	)
