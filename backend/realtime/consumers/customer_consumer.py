"""Customer WebSocket consumer for repair request status updates."""

import logging
from typing import Dict, Any, Optional

from channels.db import database_sync_to_async

from .base import BaseConsumer

logger = logging.getLogger(__name__)


class CustomerConsumer(BaseConsumer):
    """
    WebSocket consumer for customers.

    Receives, through the personal user_<id> group:
        - repair_dispatched: offers went out to nearby providers
        - repair_assigned: a provider accepted
        - no_providers_available: nobody in range, or nobody accepted in time
        - repair_cancelled
    """

    commands = {
        **BaseConsumer.commands,
        "get_repair_status": "repair_status_command",
    }

    async def on_connect(self):
        await self.send_success(
            "connection_established",
            user_id=self.user_id,
            role=self.role,
            message="Customer connected successfully",
        )

    async def repair_status_command(self, data: Dict[str, Any]):
        request_id = data.get("repair_request_id")
        if not request_id:
            await self.send_error("get_repair_status requires repair_request_id")
            return

        repair = await self._get_repair(int(request_id))
        if repair is None:
            await self.send_error("Repair request not found")
            return

        await self.send_success("repair_status", repair=repair)

    @database_sync_to_async
    def _get_repair(self, request_id: int) -> Optional[Dict[str, Any]]:
        from repairs.models import RepairRequest
        from repairs.serializers import RepairRequestSerializer

        repair = (
            RepairRequest.objects.select_related("intake_location")
            .filter(id=request_id, customer_id=self.user_id)
            .first()
        )
        if repair is None:
            return None
        return RepairRequestSerializer(repair).data

    # ---------------------- Event Handlers (from group_send) ----------------------

    async def repair_dispatched(self, event):
        await self.relay(event, ["repair_request_id", "status", "offers_created"])

    async def repair_assigned(self, event):
        """Sent when a provider accepts the repair."""
        await self.relay(event, ["repair_request_id", "repair"])

    async def no_providers_available(self, event):
        await self.relay(event, ["repair_request_id"], default_message="No providers available")
