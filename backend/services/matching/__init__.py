"""
Provider matching service.

This module handles:
    - Reading the approved provider catalog (technicians and service centres)
    - Resolving where a repair request is
    - Filtering providers by service radius, closest first
"""

from .catalog import (
    Coordinates,
    MobileTechnicianProvider,
    ServiceCenterProvider,
    Provider,
    load_eligible_providers,
    get_provider,
    get_provider_owner_id,
    get_providers_for_user,
)
from .candidates import (
    ProviderMatch,
    service_radius_km,
    resolve_request_coordinates,
    match_providers,
    find_candidates_for_request,
)

__all__ = [
    "Coordinates",
    "MobileTechnicianProvider",
    "ServiceCenterProvider",
    "Provider",
    "load_eligible_providers",
    "get_provider",
    "get_provider_owner_id",
    "get_providers_for_user",
    "ProviderMatch",
    "service_radius_km",
    "resolve_request_coordinates",
    "match_providers",
    "find_candidates_for_request",
]
