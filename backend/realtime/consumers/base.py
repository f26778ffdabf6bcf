"""
Shared plumbing for the repair websocket endpoints.

A socket belongs to one authenticated user. On connect it subscribes to the
user's personal channel group (customer-facing repair events) plus whatever
groups the endpoint adds, and it unsubscribes from all of them on close.
Client messages are small JSON commands looked up in ``commands``.
"""

import logging
from typing import Any, Dict, Iterable, List

from channels.generic.websocket import AsyncJsonWebsocketConsumer

from realtime.notifications import customer_group_name

logger = logging.getLogger(__name__)

# Close code for an authenticated user the endpoint has nothing for
CLOSE_NOT_ALLOWED = 4403


class BaseConsumer(AsyncJsonWebsocketConsumer):
    # message type -> coroutine method name
    commands: Dict[str, str] = {"ping": "ping_command"}

    async def connect(self):
        self.user = self.scope["user"]
        self.joined_groups = set()

        if self.user.is_anonymous:
            await self.close()
            return

        self.user_id = self.user.id
        self.role = getattr(self.user, "role", None)

        extra_groups = await self.extra_groups()
        if extra_groups is None:
            await self.close(code=CLOSE_NOT_ALLOWED)
            return

        for group in [customer_group_name(self.user_id), *extra_groups]:
            await self._join_group(group)

        await self.accept()
        await self.on_connect()

    async def extra_groups(self) -> Iterable[str]:
        """Groups beyond the personal one; None refuses the socket."""
        return []

    async def on_connect(self):
        await self.send_success(
            "connection_established",
            user_id=self.user_id,
            role=self.role,
            groups=sorted(self.joined_groups),
        )

    async def disconnect(self, close_code):
        for group in list(self.joined_groups):
            await self._leave_group(group)
        logger.debug("Socket for user %s closed (%s)", getattr(self, "user_id", None), close_code)

    async def receive_json(self, content: Dict[str, Any], **kwargs):
        msg_type = content.get("type")
        if not msg_type:
            await self.send_error("Message type is required")
            return

        try:
            await self.handle_message(msg_type, content)
        except Exception:
            logger.exception("Websocket command %s failed for user %s", msg_type, self.user_id)
            await self.send_error(f"Error processing {msg_type}")

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        method_name = self.commands.get(msg_type)
        if method_name is None:
            await self.send_error(f"Unknown message type: {msg_type}")
            return
        await getattr(self, method_name)(data)

    async def ping_command(self, data):
        await self.send_success("pong")

    async def _join_group(self, group_name: str):
        await self.channel_layer.group_add(group_name, self.channel_name)
        self.joined_groups.add(group_name)

    async def _leave_group(self, group_name: str):
        await self.channel_layer.group_discard(group_name, self.channel_name)
        self.joined_groups.discard(group_name)

    async def send_error(self, message: str):
        await self.send_json({"type": "error", "message": message})

    async def send_success(self, event_type: str, **kwargs):
        await self.send_json({"type": event_type, **kwargs})

    async def relay(self, event: Dict[str, Any], fields: List[str], default_message: str = ""):
        """Pass a notification event to the client, keeping only the given fields."""
        payload = {name: event.get(name) for name in fields}
        payload["message"] = event.get("message", default_message)
        await self.send_success(event["type"], **payload)

    # Channel layer events. Both customers and assigned providers get this one.

    async def repair_cancelled(self, event):
        await self.relay(event, ["repair_request_id"])
