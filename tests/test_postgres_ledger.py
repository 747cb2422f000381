"""Tests for the Postgres item ledger and schema setup against a mocked pool."""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from database import DatabaseError, DatabaseSchemaError, SchemaManager
from ledger import Item, LedgerError, ItemNotFoundError, ItemAlreadySoldError
from ledger.postgres import PostgresItemLedger

def make_row(item_id=1, sold=False):
    return {
        'item_id': item_id,
        'asset_ref': '0xCollection',
        'token_id': Decimal(7),
        'price': Decimal(10 ** 18),
        'seller': '0xSeller',
        'sold': sold
    }

@pytest.fixture
def conn():
    conn = MagicMock()
    conn.fetchval = AsyncMock()
    conn.fetchrow = AsyncMock()
    conn.fetch = AsyncMock()
    conn.execute = AsyncMock()
    return conn

@pytest.fixture
def pool(conn):
    pool = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = conn
    return pool

@pytest.fixture
def ledger(pool):
    return PostgresItemLedger(pool)

@pytest.mark.asyncio
async def test_create_listing(ledger, conn):
    conn.fetchval.return_value = 4

    item_id = await ledger.create_listing('0xCollection', 7, 10 ** 18, '0xSeller')

    assert item_id == 4
    assert 'item_counter' in conn.fetchval.call_args.args[0]
    insert_args = conn.execute.call_args.args
    assert 'INSERT INTO items' in insert_args[0]
    assert insert_args[1:] == (4, '0xCollection', Decimal(7), Decimal(10 ** 18), '0xSeller')
    conn.transaction.assert_called_once()

@pytest.mark.asyncio
@pytest.mark.parametrize("asset_ref,price,seller", [
    ('0xCollection', 0, '0xSeller'),
    ('0xCollection', True, '0xSeller'),
    ('', 10, '0xSeller'),
    ('0xCollection', 10, ''),
])
async def test_create_listing_validates_before_writing(ledger, pool, asset_ref, price, seller):
    with pytest.raises(LedgerError):
        await ledger.create_listing(asset_ref, 7, price, seller)
    pool.acquire.assert_not_called()

@pytest.mark.asyncio
async def test_create_listing_without_counter_row(ledger, conn):
    conn.fetchval.return_value = None
    with pytest.raises(DatabaseError, match="item_counter"):
        await ledger.create_listing('0xCollection', 7, 10, '0xSeller')
    conn.execute.assert_not_called()

@pytest.mark.asyncio
async def test_get(ledger, conn):
    conn.fetchrow.return_value = make_row()

    item = await ledger.get(1)

    assert item == Item(item_id=1, asset_ref='0xCollection', token_id=7, price=10 ** 18, seller='0xSeller')
    assert isinstance(item.price, int)

@pytest.mark.asyncio
async def test_get_missing(ledger, conn):
    conn.fetchrow.return_value = None
    with pytest.raises(ItemNotFoundError):
        await ledger.get(9)

@pytest.mark.asyncio
async def test_item_count(ledger, conn):
    conn.fetchval.return_value = None
    assert await ledger.item_count() == 0
    conn.fetchval.return_value = 3
    assert await ledger.item_count() == 3

@pytest.mark.asyncio
async def test_list_items(ledger, conn):
    conn.fetch.return_value = [make_row(1), make_row(2)]

    items = await ledger.list_items()
    assert [item.item_id for item in items] == [1, 2]
    assert 'sold = false' in conn.fetch.call_args.args[0]

    await ledger.list_items(include_sold=True)
    assert 'sold = false' not in conn.fetch.call_args.args[0]

@pytest.mark.asyncio
async def test_mark_sold(ledger, conn):
    conn.fetchval.return_value = 1
    await ledger.mark_sold(1)

    conn.fetchval.side_effect = [None, True]
    with pytest.raises(ItemAlreadySoldError):
        await ledger.mark_sold(1)

    conn.fetchval.side_effect = [None, False]
    with pytest.raises(ItemNotFoundError):
        await ledger.mark_sold(2)

@pytest.mark.asyncio
async def test_settle_locks_row_and_marks_sold(ledger, conn):
    conn.fetchrow.return_value = make_row()

    async with ledger.settle(1) as item:
        assert item.item_id == 1
        assert 'FOR UPDATE' in conn.fetchrow.call_args.args[0]
        conn.execute.assert_not_called()

    assert 'SET sold = true' in conn.execute.call_args.args[0]

@pytest.mark.asyncio
async def test_settle_failure_rolls_back(ledger, conn):
    conn.fetchrow.return_value = make_row()
    transaction = conn.transaction.return_value

    with pytest.raises(RuntimeError):
        async with ledger.settle(1):
            raise RuntimeError("payment failed")

    conn.execute.assert_not_called()
    exc_type = transaction.__aexit__.call_args.args[0]
    assert exc_type is RuntimeError

@pytest.mark.asyncio
async def test_settle_rejects_sold_and_missing(ledger, conn):
    conn.fetchrow.return_value = make_row(sold=True)
    with pytest.raises(ItemAlreadySoldError):
        async with ledger.settle(1):
            pass

    conn.fetchrow.return_value = None
    with pytest.raises(ItemNotFoundError):
        async with ledger.settle(1):
            pass

@pytest.mark.asyncio
async def test_schema_fresh_install(pool, conn):
    conn.fetchrow.return_value = None

    manager = SchemaManager(pool)
    await manager.initialize()

    statements = [call.args[0] for call in conn.execute.call_args_list]
    assert any('CREATE TABLE IF NOT EXISTS items' in s for s in statements)
    assert any('CREATE TABLE IF NOT EXISTS item_counter' in s for s in statements)
    assert any('CHECK (price > 0)' in s for s in statements)
    assert any('INSERT INTO item_counter' in s for s in statements)
    assert conn.execute.call_args.args == ('INSERT INTO schema_version (version) VALUES ($1)', 1)
    assert manager.current_version == 1

@pytest.mark.asyncio
async def test_schema_up_to_date(pool, conn):
    conn.fetchrow.return_value = {'version': 1}

    manager = SchemaManager(pool)
    await manager.initialize()

    # Only the schema_version table check runs
    assert conn.execute.call_count == 1
    assert manager.current_version == 1

@pytest.mark.asyncio
async def test_schema_without_files(pool, conn, tmp_path):
    conn.fetchrow.return_value = None

    with pytest.raises(DatabaseSchemaError):
        await SchemaManager(pool, schema_dir=tmp_path).initialize()
