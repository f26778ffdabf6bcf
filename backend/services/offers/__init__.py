"""
Job offer lifecycle service.

This module handles:
    - Creating a round of offers for a repair request
    - Accepting offers (exactly one winner per request)
    - Declining offers
    - Expiring stale offers
    - Cancelling / completing repair requests
"""

from .lifecycle import (
    OfferRound,
    AcceptOutcome,
    DeclineOutcome,
    SweepOutcome,
    lock_repair_request,
    expire_pending_offers,
    create_offer_round,
    accept_job_offer,
    decline_job_offer,
    expire_stale_offers,
    cancel_repair_request,
    complete_repair_request,
    list_pending_offers,
)

from .exceptions import (
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

__all__ = [
    # Results
    "OfferRound",
    "AcceptOutcome",
    "DeclineOutcome",
    "SweepOutcome",
    # Lifecycle operations
    "lock_repair_request",
    "expire_pending_offers",
    "create_offer_round",
    "accept_job_offer",
    "decline_job_offer",
    "expire_stale_offers",
    "cancel_repair_request",
    "complete_repair_request",
    "list_pending_offers",
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
