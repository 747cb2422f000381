"""Postgres-backed item ledger.

Same interface as ItemLedger. Item ids come from the single item_counter row,
which is locked by the UPDATE inside the inserting transaction: concurrent
listings serialize on it, and a rolled back insert also rolls back the id.
"""

import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, AsyncIterator, List, Optional

from asyncpg.exceptions import PostgresError
from asyncpg.pool import Pool

from database import get_pool
from database.exceptions import DatabaseError
from . import Item, LedgerError, ItemNotFoundError, ItemAlreadySoldError

logger = logging.getLogger(__name__)

ITEM_COLUMNS = 'item_id, asset_ref, token_id, price, seller, sold'

def _row_to_item(row: Any) -> Item:
    return Item(
        item_id=row['item_id'],
        asset_ref=row['asset_ref'],
        token_id=int(row['token_id']),
        price=int(row['price']),
        seller=row['seller'],
        sold=row['sold']
    )

class PostgresItemLedger:
    """Append-only store of listing records in the items table."""

    def __init__(self, pool: Optional[Pool] = None) -> None:
        """Initialize the ledger.

        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def create_listing(self, asset_ref: str, token_id: int, price: int, seller: str) -> int:
        """Append a new unsold item and return its id.

        Raises:
            LedgerError: If the record is invalid
            DatabaseError: If the insert fails
        """
        if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
            raise LedgerError(f"Invalid item record: price must be a positive integer, got {price!r}")
        if not asset_ref or not seller:
            raise LedgerError("Invalid item record: asset_ref and seller are required")

        await self.ensure_pool()

        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    item_id = await conn.fetchval(
                        '''
                        UPDATE item_counter
                        SET last_item_id = last_item_id + 1
                        WHERE id = 1
                        RETURNING last_item_id
                        '''
                    )
                    if item_id is None:
                        raise DatabaseError("item_counter row is missing; was the schema initialized?")

                    await conn.execute(
                        '''
                        INSERT INTO items (item_id, asset_ref, token_id, price, seller)
                        VALUES ($1, $2, $3, $4, $5)
                        ''',
                        item_id,
                        asset_ref,
                        Decimal(token_id),
                        Decimal(price),
                        seller
                    )
        except PostgresError as e:
            logger.error(f"Error storing item: {e}")
            raise DatabaseError(f"Failed to store item: {e}") from e

        logger.debug(f"Stored item {item_id}")
        return item_id

    async def get(self, item_id: int) -> Item:
        """Get an item by id.

        Raises:
            ItemNotFoundError: If the id was never assigned
        """
        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f'SELECT {ITEM_COLUMNS} FROM items WHERE item_id = $1',
                item_id
            )

        if not row:
            raise ItemNotFoundError(item_id)
        return _row_to_item(row)

    async def item_count(self) -> int:
        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            count = await conn.fetchval(
                'SELECT last_item_id FROM item_counter WHERE id = 1'
            )
        return count or 0

    async def list_items(self, include_sold: bool = False) -> List[Item]:
        """Get items in id order, unsold only unless include_sold is set."""
        await self.ensure_pool()

        where = '' if include_sold else 'WHERE sold = false'
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f'SELECT {ITEM_COLUMNS} FROM items {where} ORDER BY item_id'
            )
        return [_row_to_item(row) for row in rows]

    async def mark_sold(self, item_id: int) -> None:
        """Flag an item as sold.

        Raises:
            ItemNotFoundError: If the id was never assigned
            ItemAlreadySoldError: If the item is already sold
        """
        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            updated = await conn.fetchval(
                '''
                UPDATE items
                SET sold = true, sold_at = now()
                WHERE item_id = $1 AND sold = false
                RETURNING item_id
                ''',
                item_id
            )
            if updated is None:
                exists = await conn.fetchval(
                    'SELECT EXISTS(SELECT 1 FROM items WHERE item_id = $1)',
                    item_id
                )
                if not exists:
                    raise ItemNotFoundError(item_id)
                raise ItemAlreadySoldError(item_id)

        logger.debug(f"Marked item {item_id} sold")

    @asynccontextmanager
    async def settle(self, item_id: int) -> AsyncIterator[Item]:
        """Yield a locked unsold item and mark it sold if the block completes.

        The row stays locked until the block finishes; if the block raises,
        the transaction rolls back and the item stays unsold.

        Raises:
            ItemNotFoundError: If the id was never assigned
            ItemAlreadySoldError: If the item is already sold
        """
        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    f'SELECT {ITEM_COLUMNS} FROM items WHERE item_id = $1 FOR UPDATE',
                    item_id
                )
                if not row:
                    raise ItemNotFoundError(item_id)
                if row['sold']:
                    raise ItemAlreadySoldError(item_id)

                yield _row_to_item(row)

                await conn.execute(
                    'UPDATE items SET sold = true, sold_at = now() WHERE item_id = $1',
                    item_id
                )
        logger.debug(f"Settled item {item_id}")
