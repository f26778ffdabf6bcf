"""
Provider catalog reader.

Loads the approved, located providers that may receive job offers and
represents them as one of two variants:

    - MobileTechnicianProvider: carries its own service radius
    - ServiceCenterProvider: uses the platform-wide centre radius

The catalog is read-only. Database errors propagate so that a dispatch
attempt never matches against a partial catalog.
"""

import logging
from dataclasses import dataclass
from typing import ClassVar, List, Optional, Tuple, Union

from providers.models import (
    MobileTechnician,
    ServiceCenter,
    PROVIDER_TYPE_TECHNICIAN,
    PROVIDER_TYPE_SERVICE_CENTER,
)
from services.config import get_default_technician_radius_km
from services.offers.exceptions import ProviderNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class MobileTechnicianProvider:
    id: int
    location: Optional[Coordinates]
    service_radius_km: float

    provider_type: ClassVar[str] = PROVIDER_TYPE_TECHNICIAN


@dataclass(frozen=True)
class ServiceCenterProvider:
    id: int
    location: Optional[Coordinates]

    provider_type: ClassVar[str] = PROVIDER_TYPE_SERVICE_CENTER


Provider = Union[MobileTechnicianProvider, ServiceCenterProvider]

PROVIDER_MODELS = {
    PROVIDER_TYPE_TECHNICIAN: MobileTechnician,
    PROVIDER_TYPE_SERVICE_CENTER: ServiceCenter,
}


def _to_coordinates(latitude, longitude) -> Optional[Coordinates]:
    if latitude is None or longitude is None:
        return None
    return Coordinates(float(latitude), float(longitude))


def load_eligible_providers() -> List[Provider]:
    """
    Return every approved provider with a stored location.

    Technicians come first, then service centres; callers that need an
    order sort by distance themselves.
    """
    default_radius = get_default_technician_radius_km()

    technicians = MobileTechnician.objects.filter(
        status=MobileTechnician.STATUS_APPROVED,
        latitude__isnull=False,
        longitude__isnull=False,
    ).values_list("id", "latitude", "longitude", "service_radius_km")

    centers = ServiceCenter.objects.filter(
        status=ServiceCenter.STATUS_APPROVED,
        latitude__isnull=False,
        longitude__isnull=False,
    ).values_list("id", "latitude", "longitude")

    providers: List[Provider] = []
    for provider_id, lat, lon, radius in technicians:
        providers.append(MobileTechnicianProvider(
            id=provider_id,
            location=_to_coordinates(lat, lon),
            # A zero radius means "not configured", not "serves nobody"
            service_radius_km=float(radius) if radius else default_radius,
        ))
    for provider_id, lat, lon in centers:
        providers.append(ServiceCenterProvider(
            id=provider_id,
            location=_to_coordinates(lat, lon),
        ))

    logger.debug("Loaded %d eligible providers", len(providers))
    return providers


def get_provider(provider_type: str, provider_id: int):
    """
    Fetch the persistent record behind a provider reference.

    Raises:
        ProviderNotFoundError: unknown type tag or id
    """
    model = PROVIDER_MODELS.get(provider_type)
    if model is None:
        raise ProviderNotFoundError(f"Unknown provider type: {provider_type}")
    try:
        return model.objects.get(id=provider_id)
    except model.DoesNotExist:
        raise ProviderNotFoundError(f"No {provider_type} with id {provider_id}")


def get_provider_owner_id(provider) -> int:
    """User id of the account operating a provider record."""
    if isinstance(provider, MobileTechnician):
        return provider.user_id
    if isinstance(provider, ServiceCenter):
        return provider.owner_id
    raise TypeError(f"Unsupported provider record: {type(provider).__name__}")


def get_providers_for_user(user) -> List[Tuple[str, int]]:
    """All (provider_type, provider_id) references operated by a user."""
    refs: List[Tuple[str, int]] = []
    for technician_id in MobileTechnician.objects.filter(user=user).values_list("id", flat=True):
        refs.append((PROVIDER_TYPE_TECHNICIAN, technician_id))
    for center_id in ServiceCenter.objects.filter(owner=user).values_list("id", flat=True):
        refs.append((PROVIDER_TYPE_SERVICE_CENTER, center_id))
    return refs
