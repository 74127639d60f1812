# utils/realtime.py
import logging
from typing import Any, Dict, Iterable, Set

from fastapi import WebSocket
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Event names pushed to every connected browser and cart device
CART_CONNECTED = "cart_connected"
CART_DISCONNECTED = "cart_disconnected"
PRODUCT_SCANNED = "product_scanned"
PRODUCT_NOT_FOUND = "product_not_found"
CART_UPDATED = "cart_updated"
INVENTORY_UPDATED = "inventory_updated"
CHECKOUT_COMPLETE = "checkout_complete"
ERROR = "error"


class Event(BaseModel):
    event: str
    data: Dict[str, Any] = Field(default_factory=dict)


class BroadcastHub:
    """Every live socket subscribes to every event; no topics, no acks.

    Delivery is best effort: a subscriber whose send fails is dropped and the
    publish carries on with the rest.
    """

    def __init__(self):
        self._subscribers: Set[WebSocket] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self._subscribers.add(websocket)
        logger.info(f"Socket connected, {self.subscriber_count} subscriber(s)")

    def disconnect(self, websocket: WebSocket):
        self._subscribers.discard(websocket)

    async def send(self, websocket: WebSocket, event: str, data: Dict[str, Any]):
        # Direct reply to a single socket, not a broadcast
        await websocket.send_json({"event": event, "data": data})

    async def publish(self, event: str, data: Dict[str, Any]):
        message = {"event": event, "data": data}
        for websocket in list(self._subscribers):
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.warning(f"Dropping subscriber after failed '{event}' delivery: {e}")
                self.disconnect(websocket)

    async def publish_all(self, events: Iterable[Event]):
        for ev in events:
            await self.publish(ev.event, ev.data)


hub = BroadcastHub()


async def run_and_publish(svc, command, *args, **kwargs):
    """Run a blocking service command off the event loop, then push whatever it emitted."""
    result = await run_in_threadpool(command, *args, **kwargs)
    await hub.publish_all(svc.events)
    return result
