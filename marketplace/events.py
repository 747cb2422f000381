"""Marketplace events and their delivery.

Events are published after the state change they describe has committed.
Delivery problems are logged and never undo a listing or a sale.
"""

import asyncio
from collections import deque
import logging
from typing import Deque, List, Protocol, Set, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

class Offered(BaseModel):
    """An item was listed and the marketplace took custody of it."""
    model_config = ConfigDict(frozen=True)

    item_id: int
    asset_ref: str
    token_id: int
    price: int
    seller: str

class Bought(BaseModel):
    """An item was sold and the asset moved to the buyer."""
    model_config = ConfigDict(frozen=True)

    item_id: int
    asset_ref: str
    token_id: int
    price: int
    seller: str
    buyer: str

MarketplaceEvent = Union[Offered, Bought]

@runtime_checkable
class EventListener(Protocol):
    async def notify(self, event: MarketplaceEvent) -> None:
        ...

class EventBus:
    """Fan-out of marketplace events to listeners and subscriber queues."""

    def __init__(self, max_history: int = 10000):
        self._listeners: List[EventListener] = []
        self._queues: Set[asyncio.Queue] = set()
        self.history: Deque[MarketplaceEvent] = deque(maxlen=max_history)
        self.max_history = max_history

    def add_listener(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        self._listeners.remove(listener)

    def subscribe(self, maxsize: int = 0) -> asyncio.Queue:
        """Get a queue that receives every event published from now on."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._queues.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._queues.discard(queue)

    async def publish(self, event: MarketplaceEvent) -> None:
        """Deliver an event to every listener and subscriber."""
        self.history.append(event)

        for queue in list(self._queues):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(f"Dropping {type(event).__name__} for a full subscriber queue")

        for listener in list(self._listeners):
            try:
                await listener.notify(event)
            except Exception as e:
                logger.error(f"Listener {listener!r} failed on {type(event).__name__}: {e}")
