"""
Dispatch configuration.

Every value can be overridden from Django settings under the same name;
the module-level constants are the defaults.
"""

from datetime import timedelta

from django.conf import settings

# Fixed platform-wide radius for service centres
SERVICE_CENTER_RADIUS_KM = 25.0

# Used when a technician has no usable radius configured
DEFAULT_TECHNICIAN_RADIUS_KM = 15.0

# Lifetime of every offer in a dispatch round
JOB_OFFER_TTL_MINUTES = 15

# Rounds a request may go through before the periodic sweep stops re-dispatching it
REPAIR_DISPATCH_MAX_ROUNDS = 1

# How often Celery beat runs the expiry sweep
JOB_OFFER_SWEEP_INTERVAL_SECONDS = 60


def get_service_center_radius_km() -> float:
    return float(getattr(settings, "SERVICE_CENTER_RADIUS_KM", SERVICE_CENTER_RADIUS_KM))


def get_default_technician_radius_km() -> float:
    return float(getattr(settings, "DEFAULT_TECHNICIAN_RADIUS_KM", DEFAULT_TECHNICIAN_RADIUS_KM))


def get_job_offer_ttl() -> timedelta:
    return timedelta(minutes=getattr(settings, "JOB_OFFER_TTL_MINUTES", JOB_OFFER_TTL_MINUTES))


def get_max_dispatch_rounds() -> int:
    return int(getattr(settings, "REPAIR_DISPATCH_MAX_ROUNDS", REPAIR_DISPATCH_MAX_ROUNDS))
