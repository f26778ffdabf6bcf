"""
Dispatch orchestrator - public entry point for repair job dispatch.

Coordinates provider matching and the offer lifecycle, and schedules the
realtime notifications that follow each committed state change. HTTP
views, Celery tasks and management commands all go through here.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from django.db import transaction
from django.utils import timezone

from realtime.notifications import (
    notify_customer_event,
    notify_offer_round,
    notify_provider_event,
)
from repairs.models import JobOffer, RepairRequest
from services.config import get_max_dispatch_rounds
from services.matching import find_candidates_for_request
from services.offers import (
    AcceptOutcome,
    DeclineOutcome,
    DispatchError,
    RepairRequestNotFoundError,
    RequestNotDispatchableError,
    SweepOutcome,
    accept_job_offer,
    cancel_repair_request,
    complete_repair_request,
    create_offer_round,
    decline_job_offer,
    expire_pending_offers,
    expire_stale_offers,
    lock_repair_request,
)

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Result object for a dispatch attempt."""
    repair_request: RepairRequest
    offers_created: int = 0
    expires_at: Optional[datetime] = None
    message: str = ""
    offers: List[JobOffer] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.offers_created > 0


# ===================== Dispatch =====================

def _ensure_dispatchable(repair: RepairRequest, now: datetime):
    """Refuse to start a round while one is live or after assignment/closure."""
    if repair.is_assigned or repair.status not in RepairRequest.DISPATCHABLE_STATUSES:
        raise RequestNotDispatchableError(f"Repair request is {repair.status}")

    if repair.status == RepairRequest.STATUS_DISPATCHED:
        live_round = JobOffer.objects.filter(
            repair_request_id=repair.id,
            status=JobOffer.STATUS_PENDING,
            expires_at__gt=now,
        ).exists()
        if live_round:
            raise RequestNotDispatchableError("A dispatch round is still active for this request")


def _transition_request(repair: RepairRequest, now: datetime, **fields):
    """
    Compare-and-set the request against the status and round read under lock.

    Raises RequestNotDispatchableError if another writer got there first.
    """
    updated = RepairRequest.objects.filter(
        id=repair.id,
        status=repair.status,
        dispatch_round=repair.dispatch_round,
        assigned_provider_id__isnull=True,
    ).update(updated_at=now, **fields)
    if updated != 1:
        raise RequestNotDispatchableError("Repair request changed while dispatching")

    for name, value in fields.items():
        setattr(repair, name, value)


def dispatch_repair_request(request_id: int, now: Optional[datetime] = None) -> DispatchResult:
    """
    Start a dispatch round: offer the job to every eligible provider at once.

    Args:
        request_id: RepairRequest id
        now: Dispatch time (defaults to timezone.now())

    Returns:
        DispatchResult; offers_created is 0 when no provider is in range and
        the request is left in no_providers

    Raises:
        RepairRequestNotFoundError: unknown request id
        RequestNotDispatchableError: request assigned, closed, or mid-round
    """
    now = now or timezone.now()

    with transaction.atomic():
        repair = lock_repair_request(request_id)
        _ensure_dispatchable(repair, now)

        matches = find_candidates_for_request(repair)

        if not matches:
            _transition_request(
                repair, now,
                status=RepairRequest.STATUS_NO_PROVIDERS,
                expires_at=None,
            )
            # Withdraw anything left over from an earlier round
            expire_pending_offers(repair.id, now)

            transaction.on_commit(
                lambda: notify_customer_event(
                    'no_providers_available',
                    repair,
                    'No repair providers found nearby. Our staff will follow up.',
                ),
                robust=True,
            )
            logger.info("Repair %s: no providers in range", repair.id)
            return DispatchResult(
                repair_request=repair,
                message="No nearby providers found",
            )

        next_round = repair.dispatch_round + 1
        offer_round = create_offer_round(repair, matches, next_round, now=now)
        _transition_request(
            repair, now,
            status=RepairRequest.STATUS_DISPATCHED,
            dispatch_round=next_round,
            expires_at=offer_round.expires_at,
        )

        offers = offer_round.offers
        transaction.on_commit(lambda: notify_offer_round(repair, offers), robust=True)
        transaction.on_commit(
            lambda: notify_customer_event(
                'repair_dispatched',
                repair,
                'Looking for a repair provider near you...',
                extra={"offers_created": len(offers)},
            ),
            robust=True,
        )

    return DispatchResult(
        repair_request=repair,
        offers_created=len(offer_round.offers),
        expires_at=offer_round.expires_at,
        message=f"Offered to {len(offer_round.offers)} nearby providers",
        offers=offer_round.offers,
    )


# ===================== Provider Responses =====================

def accept_offer(offer_id: int, provider_id: int, provider_type: str) -> AcceptOutcome:
    """Accept a job offer on behalf of a provider; see accept_job_offer for failures."""
    outcome = accept_job_offer(offer_id, provider_type, provider_id)

    def _notify():
        repair = outcome.repair_request
        notify_provider_event(
            'job_offer_accepted',
            outcome.offer.provider_type,
            outcome.offer.provider_id,
            repair,
            offer=outcome.offer,
            message='The job is yours.',
        )
        for other_type, other_id in outcome.superseded:
            notify_provider_event(
                'job_offer_withdrawn',
                other_type,
                other_id,
                repair,
                message='This job was taken by another provider.',
            )
        notify_customer_event(
            'repair_assigned',
            repair,
            'A provider has accepted your repair request.',
        )

    transaction.on_commit(_notify, robust=True)
    return outcome


def decline_offer(offer_id: int) -> DeclineOutcome:
    """Decline a job offer; the other providers keep theirs."""
    return decline_job_offer(offer_id)


# ===================== Maintenance =====================

def expire_old(now: Optional[datetime] = None) -> SweepOutcome:
    """
    Expire stale offers and close out exhausted rounds.

    Meant for a periodic scheduler (Celery beat, cron), not request handlers.
    """
    outcome = expire_stale_offers(now)

    if outcome.exhausted_request_ids:
        def _notify():
            for repair in RepairRequest.objects.filter(id__in=outcome.exhausted_request_ids):
                notify_customer_event(
                    'no_providers_available',
                    repair,
                    'No provider accepted your repair request yet.',
                )

        transaction.on_commit(_notify, robust=True)

    return outcome


def redispatch_exhausted(request_ids: List[int]) -> List[DispatchResult]:
    """
    Start a new round for exhausted requests that still have rounds left.

    Requests that reached REPAIR_DISPATCH_MAX_ROUNDS stay in no_providers
    for operations staff to handle.
    """
    max_rounds = get_max_dispatch_rounds()
    results: List[DispatchResult] = []

    eligible = RepairRequest.objects.filter(
        id__in=request_ids,
        status=RepairRequest.STATUS_NO_PROVIDERS,
        dispatch_round__lt=max_rounds,
    ).values_list("id", flat=True)

    for request_id in eligible:
        try:
            results.append(dispatch_repair_request(request_id))
        except DispatchError as e:
            logger.warning("Re-dispatch of repair %s skipped: %s", request_id, e)

    return results


# ===================== Request Closure =====================

def cancel_request(request_id: int) -> RepairRequest:
    """Cancel a repair request and tell providers their offers are gone."""
    repair, withdrawn = cancel_repair_request(request_id)

    def _notify():
        for provider_type, provider_id in withdrawn:
            notify_provider_event(
                'job_offer_withdrawn',
                provider_type,
                provider_id,
                repair,
                message='The customer cancelled this repair request.',
            )
        if repair.is_assigned:
            notify_provider_event(
                'repair_cancelled',
                repair.assigned_provider_type,
                repair.assigned_provider_id,
                repair,
                message='This repair request was cancelled.',
            )
        notify_customer_event('repair_cancelled', repair, 'Your repair request was cancelled.')

    transaction.on_commit(_notify, robust=True)
    return repair


def complete_request(request_id: int) -> RepairRequest:
    return complete_repair_request(request_id)


def get_repair_request(request_id: int) -> RepairRequest:
    try:
        return RepairRequest.objects.select_related("intake_location", "customer").get(id=request_id)
    except RepairRequest.DoesNotExist:
        raise RepairRequestNotFoundError(f"Repair request {request_id} not found")
