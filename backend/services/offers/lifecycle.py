"""
Job offer lifecycle.

Offers move one way through:

    pending → accepted | declined | expired

and never change again once a terminal state is reached.

Every write that decides who gets a repair request is a conditional
UPDATE whose affected-row count is checked inside the same transaction,
so correctness does not depend on in-process locking. Rows are always
locked in the same order (repair request first, then its offers) so that
concurrent accepts, dispatches, cancels and the expiry sweep queue up
behind each other instead of deadlocking.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from django.db import transaction
from django.utils import timezone

from repairs.models import JobOffer, RepairRequest
from services.config import get_job_offer_ttl
from .exceptions import (
    AlreadyAssignedError,
    OfferExpiredError,
    OfferNotFoundError,
    OfferNotPendingError,
    ProviderMismatchError,
    RepairRequestNotFoundError,
    RequestNotAvailableError,
)

logger = logging.getLogger(__name__)

ProviderRef = Tuple[str, int]


@dataclass
class OfferRound:
    """Offers created by one dispatch round."""
    offers: List[JobOffer]
    expires_at: datetime
    dispatch_round: int
    superseded_count: int = 0


@dataclass
class AcceptOutcome:
    offer: JobOffer
    repair_request: RepairRequest
    superseded: List[ProviderRef] = field(default_factory=list)


@dataclass
class DeclineOutcome:
    offer: JobOffer
    round_exhausted: bool


@dataclass
class SweepOutcome:
    expired_count: int
    exhausted_request_ids: List[int] = field(default_factory=list)


# ===================== Helpers =====================

def locked_repair_requests():
    """
    Repair requests selected FOR UPDATE, with the intake location joined in.

    The intake location is an outer join, and PostgreSQL refuses to lock the
    nullable side of one, so only the request rows are locked.
    """
    return (
        RepairRequest.objects.select_for_update(of=("self",))
        .select_related("intake_location")
    )


def lock_repair_request(request_id: int) -> RepairRequest:
    """Fetch a repair request holding its row lock until the transaction ends."""
    try:
        return locked_repair_requests().get(id=request_id)
    except RepairRequest.DoesNotExist:
        raise RepairRequestNotFoundError(f"Repair request {request_id} not found")


def expire_pending_offers(request_id: int, now: datetime, exclude_id: Optional[int] = None) -> List[ProviderRef]:
    """Expire the request's pending offers and return who held them."""
    pending = JobOffer.objects.filter(repair_request_id=request_id, status=JobOffer.STATUS_PENDING)
    if exclude_id is not None:
        pending = pending.exclude(id=exclude_id)

    refs = list(pending.values_list("provider_type", "provider_id"))
    if refs:
        pending.update(status=JobOffer.STATUS_EXPIRED, responded_at=now)
    return refs


def _has_pending_offers(request_id: int) -> bool:
    return JobOffer.objects.filter(
        repair_request_id=request_id,
        status=JobOffer.STATUS_PENDING,
    ).exists()


# ===================== Round Creation =====================

@transaction.atomic
def create_offer_round(
    repair_request: RepairRequest,
    matches: Sequence,
    dispatch_round: int,
    now: Optional[datetime] = None,
) -> OfferRound:
    """
    Insert one pending offer per matched provider.

    Leftover pending offers from an earlier round are expired first, so a
    request never has two live rounds. The caller must already hold the
    request's row lock.

    Args:
        repair_request: Request the offers are for
        matches: ProviderMatch items (provider + distance_km), closest first
        dispatch_round: Number stamped on every offer of this round
        now: Creation time (defaults to timezone.now())

    Returns:
        OfferRound with the created offers and their shared expiry
    """
    now = now or timezone.now()
    expires_at = now + get_job_offer_ttl()

    superseded = expire_pending_offers(repair_request.id, now)

    offers = JobOffer.objects.bulk_create([
        JobOffer(
            repair_request=repair_request,
            provider_type=match.provider.provider_type,
            provider_id=match.provider.id,
            distance_km=round(match.distance_km, 3),
            dispatch_round=dispatch_round,
            status=JobOffer.STATUS_PENDING,
            offered_at=now,
            expires_at=expires_at,
        )
        for match in matches
    ])

    logger.info(
        "Created %d offers for repair %s (round=%s, superseded=%d, expires=%s)",
        len(offers), repair_request.id, dispatch_round, len(superseded), expires_at.isoformat()
    )

    return OfferRound(
        offers=offers,
        expires_at=expires_at,
        dispatch_round=dispatch_round,
        superseded_count=len(superseded),
    )


# ===================== Provider Responses =====================

def accept_job_offer(
    offer_id: int,
    provider_type: str,
    provider_id: int,
    now: Optional[datetime] = None,
) -> AcceptOutcome:
    """
    Accept an offer, assigning its repair request to the offering provider.

    In a single transaction: claim the request with a compare-and-set on
    its assignment columns, mark this offer accepted and expire every other
    pending offer of the request. Either all of it commits or none of it.

    Raises:
        OfferNotFoundError: unknown offer id
        ProviderMismatchError: offer belongs to another provider
        AlreadyAssignedError: request already has a provider
        RequestNotAvailableError: request was cancelled or completed
        OfferExpiredError: offer expired (by time or by the sweep)
        OfferNotPendingError: offer was already declined
    """
    now = now or timezone.now()

    with transaction.atomic():
        request_id = (
            JobOffer.objects.filter(id=offer_id)
            .values_list("repair_request_id", flat=True)
            .first()
        )
        if request_id is None:
            raise OfferNotFoundError(f"Job offer {offer_id} not found")

        # Request row first, then the offer; same order as every other writer
        repair = lock_repair_request(request_id)
        offer = JobOffer.objects.select_for_update().get(id=offer_id)

        if offer.provider_type != provider_type or offer.provider_id != int(provider_id):
            raise ProviderMismatchError()

        if repair.is_assigned:
            raise AlreadyAssignedError()

        if repair.status in RepairRequest.CLOSED_STATUSES:
            raise RequestNotAvailableError(f"Repair request is {repair.status}")

        if offer.status == JobOffer.STATUS_EXPIRED or now >= offer.expires_at:
            raise OfferExpiredError()

        if offer.status != JobOffer.STATUS_PENDING:
            raise OfferNotPendingError(f"Job offer was already {offer.status}")

        claimed = RepairRequest.objects.filter(
            id=repair.id,
            assigned_provider_id__isnull=True,
            status=RepairRequest.STATUS_DISPATCHED,
        ).update(
            status=RepairRequest.STATUS_ASSIGNED,
            assigned_provider_type=offer.provider_type,
            assigned_provider_id=offer.provider_id,
            assigned_at=now,
            updated_at=now,
        )
        if claimed != 1:
            raise AlreadyAssignedError()

        accepted = JobOffer.objects.filter(
            id=offer.id,
            status=JobOffer.STATUS_PENDING,
            expires_at__gt=now,
        ).update(status=JobOffer.STATUS_ACCEPTED, responded_at=now)
        if accepted != 1:
            # Raising rolls back the claim above
            raise OfferExpiredError()

        superseded = expire_pending_offers(repair.id, now, exclude_id=offer.id)

    offer.status = JobOffer.STATUS_ACCEPTED
    offer.responded_at = now
    repair.status = RepairRequest.STATUS_ASSIGNED
    repair.assigned_provider_type = offer.provider_type
    repair.assigned_provider_id = offer.provider_id
    repair.assigned_at = now

    logger.info(
        "Repair %s assigned to %s %s via offer %s (%d sibling offers expired)",
        repair.id, offer.provider_type, offer.provider_id, offer.id, len(superseded)
    )

    return AcceptOutcome(offer=offer, repair_request=repair, superseded=superseded)


@transaction.atomic
def decline_job_offer(offer_id: int, now: Optional[datetime] = None) -> DeclineOutcome:
    """
    Decline a pending offer.

    Sibling offers and the parent request are left alone; the other
    providers can still accept.

    Raises:
        OfferNotFoundError: unknown offer id
        OfferExpiredError: offer expired
        OfferNotPendingError: offer already accepted or declined
    """
    now = now or timezone.now()

    declined = JobOffer.objects.filter(
        id=offer_id,
        status=JobOffer.STATUS_PENDING,
        expires_at__gt=now,
    ).update(status=JobOffer.STATUS_DECLINED, responded_at=now)

    try:
        offer = JobOffer.objects.select_related("repair_request").get(id=offer_id)
    except JobOffer.DoesNotExist:
        raise OfferNotFoundError(f"Job offer {offer_id} not found")

    if not declined:
        if offer.status == JobOffer.STATUS_EXPIRED or (
            offer.status == JobOffer.STATUS_PENDING and now >= offer.expires_at
        ):
            raise OfferExpiredError()
        raise OfferNotPendingError(f"Job offer was already {offer.status}")

    round_exhausted = (
        not offer.repair_request.is_assigned
        and not _has_pending_offers(offer.repair_request_id)
    )

    logger.info(
        "Offer %s declined by %s %s (round_exhausted=%s)",
        offer.id, offer.provider_type, offer.provider_id, round_exhausted
    )

    return DeclineOutcome(offer=offer, round_exhausted=round_exhausted)


# ===================== Maintenance =====================

def expire_stale_offers(now: Optional[datetime] = None) -> SweepOutcome:
    """
    Expire pending offers whose deadline has passed.

    Safe to run repeatedly: an offer is counted only by the run that
    actually moves it out of pending. Afterwards every dispatched,
    unassigned request left without pending offers (through expiry or
    declines) becomes no_providers. Nothing is re-dispatched here.
    """
    now = now or timezone.now()

    stale_request_ids = set(
        JobOffer.objects.filter(status=JobOffer.STATUS_PENDING, expires_at__lt=now)
        .values_list("repair_request_id", flat=True)
    )
    drained_request_ids = set(
        RepairRequest.objects.filter(
            status=RepairRequest.STATUS_DISPATCHED,
            assigned_provider_id__isnull=True,
        )
        .exclude(offers__status=JobOffer.STATUS_PENDING)
        .values_list("id", flat=True)
    )

    outcome = SweepOutcome(expired_count=0)

    for request_id in sorted(stale_request_ids | drained_request_ids):
        with transaction.atomic():
            try:
                repair = lock_repair_request(request_id)
            except RepairRequestNotFoundError:
                continue

            outcome.expired_count += JobOffer.objects.filter(
                repair_request_id=request_id,
                status=JobOffer.STATUS_PENDING,
                expires_at__lt=now,
            ).update(status=JobOffer.STATUS_EXPIRED, responded_at=now)

            if (
                repair.status == RepairRequest.STATUS_DISPATCHED
                and not repair.is_assigned
                and not _has_pending_offers(request_id)
            ):
                RepairRequest.objects.filter(id=request_id).update(
                    status=RepairRequest.STATUS_NO_PROVIDERS,
                    updated_at=now,
                )
                outcome.exhausted_request_ids.append(request_id)

    if outcome.expired_count or outcome.exhausted_request_ids:
        logger.info(
            "Offer sweep expired %d offers; %d requests left without providers",
            outcome.expired_count, len(outcome.exhausted_request_ids)
        )

    return outcome


# ===================== Request Closure =====================

def cancel_repair_request(request_id: int, now: Optional[datetime] = None) -> Tuple[RepairRequest, List[ProviderRef]]:
    """
    Cancel a repair request and withdraw its pending offers.

    Returns the request and the providers whose offers were withdrawn.
    Cancelling twice is a no-op.
    """
    now = now or timezone.now()

    with transaction.atomic():
        repair = lock_repair_request(request_id)

        if repair.status == RepairRequest.STATUS_CANCELLED:
            return repair, []
        if repair.status == RepairRequest.STATUS_COMPLETED:
            raise RequestNotAvailableError("Completed requests cannot be cancelled")

        withdrawn = expire_pending_offers(repair.id, now)

        repair.status = RepairRequest.STATUS_CANCELLED
        repair.save(update_fields=["status", "updated_at"])

    logger.info("Repair %s cancelled (%d offers withdrawn)", repair.id, len(withdrawn))
    return repair, withdrawn


def complete_repair_request(request_id: int) -> RepairRequest:
    """Mark an assigned repair request as completed."""
    with transaction.atomic():
        repair = lock_repair_request(request_id)

        if repair.status != RepairRequest.STATUS_ASSIGNED:
            raise RequestNotAvailableError(
                f"Only assigned requests can be completed (status is {repair.status})"
            )

        repair.status = RepairRequest.STATUS_COMPLETED
        repair.save(update_fields=["status", "updated_at"])

    logger.info("Repair %s completed", repair.id)
    return repair


# ===================== Queries =====================

def list_pending_offers(provider_type: str, provider_id: int, now: Optional[datetime] = None):
    """Live (pending and unexpired) offers for one provider, newest first."""
    now = now or timezone.now()
    return (
        JobOffer.objects.filter(
            provider_type=provider_type,
            provider_id=provider_id,
            status=JobOffer.STATUS_PENDING,
            expires_at__gt=now,
        )
        .select_related("repair_request", "repair_request__intake_location")
        .order_by("-offered_at", "id")
    )
