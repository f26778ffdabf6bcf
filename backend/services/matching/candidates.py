"""
Match eligible providers to a repair request.

Uses the request location and provider distances to build the list of
providers that receive an offer (closest first).
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from common.utils import calculate_distance_km
from repairs.models import RepairRequest
from services.config import get_service_center_radius_km
from .catalog import (
    Coordinates,
    MobileTechnicianProvider,
    Provider,
    ServiceCenterProvider,
    load_eligible_providers,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderMatch:
    provider: Provider
    distance_km: float


def service_radius_km(provider: Provider) -> float:
    """Radius within which a provider accepts jobs."""
    if isinstance(provider, MobileTechnicianProvider):
        return provider.service_radius_km
    if isinstance(provider, ServiceCenterProvider):
        return get_service_center_radius_km()
    raise TypeError(f"Unsupported provider variant: {type(provider).__name__}")


def resolve_request_coordinates(repair_request: RepairRequest) -> Optional[Coordinates]:
    """
    Work out where a repair request is.

    The request's own coordinates win; otherwise the intake location's are
    used. Returns None when neither is available.
    """
    if repair_request.customer_latitude is not None and repair_request.customer_longitude is not None:
        return Coordinates(
            float(repair_request.customer_latitude),
            float(repair_request.customer_longitude),
        )

    intake = repair_request.intake_location
    if intake is not None and intake.latitude is not None and intake.longitude is not None:
        return Coordinates(float(intake.latitude), float(intake.longitude))

    return None


def match_providers(origin: Optional[Coordinates], providers: Iterable[Provider]) -> List[ProviderMatch]:
    """
    Filter providers to those whose radius covers the origin.

    Args:
        origin: Location of the job, or None if it could not be resolved
        providers: Catalog entries to consider

    Returns:
        ProviderMatch list sorted by distance (closest first)
    """
    if origin is None:
        return []

    matches: List[ProviderMatch] = []
    for provider in providers:
        # Providers without a location are simply not eligible
        if provider.location is None:
            continue

        distance = calculate_distance_km(
            origin.latitude,
            origin.longitude,
            provider.location.latitude,
            provider.location.longitude,
        )
        if distance <= service_radius_km(provider):
            matches.append(ProviderMatch(provider=provider, distance_km=distance))

    # Sort closest → farthest; distance is the only ranking signal
    matches.sort(key=lambda match: match.distance_km)
    return matches


def find_candidates_for_request(repair_request: RepairRequest) -> List[ProviderMatch]:
    """Resolve the request location and match it against the live catalog."""
    origin = resolve_request_coordinates(repair_request)
    if origin is None:
        logger.info("Repair %s has no resolvable location", repair_request.id)
        return []

    matches = match_providers(origin, load_eligible_providers())

    logger.info(
        "Matched %d providers for repair %s at (%.5f, %.5f)",
        len(matches), repair_request.id, origin.latitude, origin.longitude
    )
    return matches
