"""
Services package - Business logic layer.

This package contains all business logic services that operate on Django models
but are decoupled from the HTTP/WebSocket layer.

Modules:
    - matching: Provider catalog and radius-based candidate matching
    - offers: Job offer lifecycle (create, accept, decline, expire)
    - dispatch: Public entry points coordinating matching and offers
"""

# Expose commonly used functions at package level
from .matching import (
    find_candidates_for_request,
    load_eligible_providers,
    match_providers,
)
from .offers import (
    DispatchError,
    RepairRequestNotFoundError,
    OfferNotFoundError,
    ProviderNotFoundError,
    OfferExpiredError,
    AlreadyAssignedError,
    OfferNotPendingError,
    ProviderMismatchError,
    RequestNotAvailableError,
    RequestNotDispatchableError,
)
from .dispatch import (
    DispatchResult,
    dispatch_repair_request,
    accept_offer,
    decline_offer,
    expire_old,
    redispatch_exhausted,
    cancel_request,
    complete_request,
)

__all__ = [
    # Matching
    "find_candidates_for_request",
    "load_eligible_providers",
    "match_providers",
    # Dispatch
    "DispatchResult",
    "dispatch_repair_request",
    "accept_offer",
    "decline_offer",
    "expire_old",
    "redispatch_exhausted",
    "cancel_request",
    "complete_request",
    # Exceptions
    "DispatchError",
    "RepairRequestNotFoundError",
    "OfferNotFoundError",
    "ProviderNotFoundError",
    "OfferExpiredError",
    "AlreadyAssignedError",
    "OfferNotPendingError",
    "ProviderMismatchError",
    "RequestNotAvailableError",
    "RequestNotDispatchableError",
]
