"""Provider WebSocket consumer: job offers for technicians and service centre owners."""

import logging
from typing import Dict, Any, List, Tuple

from channels.db import database_sync_to_async

from .base import BaseConsumer
from realtime.notifications import provider_group_name

logger = logging.getLogger(__name__)


class ProviderConsumer(BaseConsumer):
    """
    WebSocket consumer for repair providers.

    Handles:
        - One provider_<type>_<id> group per provider account the user runs
        - New job offers, offers withdrawn after another provider won, and wins
        - Pending offer snapshot on request (after a reconnect)
    """

    commands = {
        **BaseConsumer.commands,
        "get_pending_offers": "pending_offers_command",
    }

    async def extra_groups(self):
        self.provider_refs = await self._get_provider_refs()
        if not self.provider_refs:
            logger.info("User %s has no provider account, refusing provider socket", self.user_id)
            return None
        return [
            provider_group_name(provider_type, provider_id)
            for provider_type, provider_id in self.provider_refs
        ]

    async def on_connect(self):
        await self.send_success(
            "connection_established",
            user_id=self.user_id,
            role=self.role,
            providers=[
                {"provider_type": provider_type, "provider_id": provider_id}
                for provider_type, provider_id in self.provider_refs
            ],
            message="Provider connected successfully",
        )
        logger.info("Provider user %s connected (%d accounts)", self.user_id, len(self.provider_refs))

    async def pending_offers_command(self, data: Dict[str, Any]):
        offers = await self._get_pending_offers()
        await self.send_success("pending_offers", count=len(offers), offers=offers)

    # ---------------------- Database Helpers ----------------------

    @database_sync_to_async
    def _get_provider_refs(self) -> List[Tuple[str, int]]:
        from services.matching import get_providers_for_user
        return get_providers_for_user(self.user)

    @database_sync_to_async
    def _get_pending_offers(self) -> List[Dict[str, Any]]:
        from repairs.serializers import ProviderJobOfferSerializer
        from services.offers import list_pending_offers

        offers = []
        for provider_type, provider_id in self.provider_refs:
            offers.extend(list_pending_offers(provider_type, provider_id))
        return ProviderJobOfferSerializer(offers, many=True).data

    # ---------------------- Event Handlers (from group_send) ----------------------

    async def job_offer(self, event):
        """A new repair job offered to this provider."""
        await self.relay(event, ["repair_request_id", "offer", "repair"])

    async def job_offer_withdrawn(self, event):
        """The offer is gone: another provider won or the customer cancelled."""
        await self.relay(event, ["repair_request_id"])

    async def job_offer_accepted(self, event):
        """Confirmation that this provider won the job."""
        await self.relay(event, ["repair_request_id", "offer", "repair"])
