"""Celery tasks for repair dispatch background processing."""

from celery import shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task
def expire_job_offers_task():
    """
    Periodic offer sweep, scheduled by Celery beat.

    Expires offers past their deadline, then starts a fresh round for
    exhausted requests that still have rounds left.
    """
    from services.dispatch import expire_old, redispatch_exhausted

    outcome = expire_old()
    results = redispatch_exhausted(outcome.exhausted_request_ids)

    redispatched = sum(1 for result in results if result.success)
    if outcome.expired_count or redispatched:
        logger.info(
            "Sweep: %d offers expired, %d requests re-dispatched",
            outcome.expired_count, redispatched
        )

    return {
        "expired_count": outcome.expired_count,
        "exhausted_requests": outcome.exhausted_request_ids,
        "redispatched": redispatched,
    }


@shared_task
def dispatch_repair_request_task(request_id: int):
    """Dispatch a repair request off the request/response path."""
    from services.dispatch import dispatch_repair_request
    from services.offers import DispatchError

    try:
        result = dispatch_repair_request(request_id)
    except DispatchError as e:
        logger.warning("Dispatch of repair %s refused: %s", request_id, e.error_code)
        return {"success": False, "error": e.error_code}

    return {"success": result.success, "offers_created": result.offers_created}
