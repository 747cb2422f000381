"""Item ledger module for marketplace listing records.

This module provides:
- The Item record stored for every listing
- An append-only in-memory ledger with sequential item ids
- A Postgres-backed ledger with the same interface (ledger.postgres)

Records are never deleted. Apart from the sold flag every field is fixed at
creation, and sold only ever goes from False to True.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass

class ItemNotFoundError(LedgerError, LookupError):
    """Raised when an item id was never assigned."""
    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"Item {item_id} does not exist")

class ItemAlreadySoldError(LedgerError):
    """Raised when marking an item sold a second time."""
    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"Item {item_id} is already sold")

class Item(BaseModel):
    """A marketplace listing record."""
    model_config = ConfigDict(frozen=True)

    item_id: int = Field(..., ge=1, description="Sequential id, starting at 1")
    asset_ref: str = Field(..., min_length=1, description="Address of the asset's collection")
    token_id: int = Field(..., description="Token id within the collection")
    price: int = Field(..., gt=0, description="Price in the smallest currency unit")
    seller: str = Field(..., min_length=1, description="Identity of the lister")
    sold: bool = False

class ItemLedger:
    """Append-only in-memory store of listing records."""

    def __init__(self) -> None:
        self._items: Dict[int, Item] = {}
        self._count = 0
        self._counter_lock = asyncio.Lock()

    async def create_listing(self, asset_ref: str, token_id: int, price: int, seller: str) -> int:
        """Append a new unsold item and return its id.

        The id is only consumed once the record is stored, so a rejected
        record leaves the counter untouched.

        Raises:
            LedgerError: If the record is invalid
        """
        async with self._counter_lock:
            item_id = self._count + 1
            try:
                item = Item(
                    item_id=item_id,
                    asset_ref=asset_ref,
                    token_id=token_id,
                    price=price,
                    seller=seller
                )
            except ValidationError as e:
                raise LedgerError(f"Invalid item record: {e}") from e

            self._items[item_id] = item
            self._count = item_id

        logger.debug(f"Stored item {item_id}")
        return item_id

    async def get(self, item_id: int) -> Item:
        """Get an item by id.

        Raises:
            ItemNotFoundError: If the id was never assigned
        """
        try:
            return self._items[item_id]
        except (KeyError, TypeError):
            raise ItemNotFoundError(item_id)

    async def item_count(self) -> int:
        return self._count

    async def list_items(self, include_sold: bool = False) -> List[Item]:
        """Get items in id order, unsold only unless include_sold is set."""
        return [
            self._items[item_id]
            for item_id in range(1, self._count + 1)
            if include_sold or not self._items[item_id].sold
        ]

    async def mark_sold(self, item_id: int) -> None:
        """Flag an item as sold.

        Raises:
            ItemNotFoundError: If the id was never assigned
            ItemAlreadySoldError: If the item is already sold
        """
        item = await self.get(item_id)
        if item.sold:
            raise ItemAlreadySoldError(item_id)
        self._items[item_id] = item.model_copy(update={'sold': True})
        logger.debug(f"Marked item {item_id} sold")

    @asynccontextmanager
    async def settle(self, item_id: int) -> AsyncIterator[Item]:
        """Yield an unsold item and mark it sold if the block completes.

        Raises:
            ItemNotFoundError: If the id was never assigned
            ItemAlreadySoldError: If the item is already sold
        """
        item = await self.get(item_id)
        if item.sold:
            raise ItemAlreadySoldError(item_id)
        yield item
        await self.mark_sold(item_id)

__all__ = [
    'Item',
    'ItemLedger',
    'LedgerError',
    'ItemNotFoundError',
    'ItemAlreadySoldError',
]
