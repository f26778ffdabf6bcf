"""
Notification helpers for sending WebSocket messages to connected clients.

This module provides functions to:
- Push new / withdrawn / accepted job offers to a provider's group
- Send repair request events (dispatched, assigned, no providers) to customers

Notifications are fire-after-commit: callers schedule them with
transaction.on_commit so a rolled-back transaction never notifies anyone.
"""

from __future__ import annotations

import logging
from typing import Dict, Any

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)


def provider_group_name(provider_type: str, provider_id: int) -> str:
    """Channel layer group that receives a provider's offer events."""
    return f"provider_{provider_type}_{provider_id}"


def customer_group_name(customer_id: int) -> str:
    return f"user_{customer_id}"


def notify_provider_event(
    event_type: str,
    provider_type: str,
    provider_id: int,
    repair,
    offer=None,
    message: str = "",
    extra: Dict[str, Any] = None,
) -> bool:
    """
    Send an event to one provider using their group: provider_<type>_<id>

    Args:
        event_type: Handler name in consumer (job_offer, job_offer_withdrawn, job_offer_accepted)
        provider_type: Provider type tag
        provider_id: Provider id within its type
        repair: RepairRequest model instance
        offer: JobOffer model instance the event is about (optional)
        message: Optional message to include
        extra: Additional payload data

    Returns:
        True if sent successfully, False otherwise
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return False

    from repairs.serializers import JobOfferSerializer, RepairRequestSerializer

    payload = {
        "type": event_type,
        "repair_request_id": repair.id,
        "repair": RepairRequestSerializer(repair).data,
        **(extra or {}),
    }
    if offer is not None:
        payload["offer"] = JobOfferSerializer(offer).data

    if message:
        payload["message"] = message

    group = provider_group_name(provider_type, provider_id)
    logger.debug("WS -> %s: %s", group, payload)
    async_to_sync(channel_layer.group_send)(group, payload)

    return True


def notify_customer_event(
    event_type: str,
    repair,
    message: str = "",
    extra: Dict[str, Any] = None,
) -> bool:
    """
    Send a repair request event to the customer through: user_<customer_id>

    Args:
        event_type: Handler name in consumer (repair_dispatched, repair_assigned, no_providers_available, repair_cancelled)
        repair: RepairRequest model instance
        message: Optional message to include
        extra: Additional payload data

    Returns:
        True if sent successfully, False otherwise
    """
    customer_id = repair.customer_id
    if not customer_id:
        return False

    channel_layer = get_channel_layer()
    if channel_layer is None:
        return False

    from repairs.serializers import RepairRequestSerializer

    payload = {
        "type": event_type,
        "repair_request_id": repair.id,
        "status": repair.status,
        "repair": RepairRequestSerializer(repair).data,
        **(extra or {}),
    }

    if message:
        payload["message"] = message

    group = customer_group_name(customer_id)
    logger.debug("WS -> %s: %s", group, payload)
    async_to_sync(channel_layer.group_send)(group, payload)

    return True


def notify_offer_round(repair, offers) -> int:
    """Push every offer of a fresh round to its provider. Returns how many were sent."""
    sent = 0
    for offer in offers:
        if notify_provider_event(
            "job_offer",
            offer.provider_type,
            offer.provider_id,
            repair,
            offer=offer,
            message="New repair job available nearby.",
        ):
            sent += 1
    return sent
