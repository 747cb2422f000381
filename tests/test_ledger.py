"""Tests for the in-memory item ledger."""

import asyncio
import pytest
import pytest_asyncio
from pydantic import ValidationError

from ledger import (
    Item,
    ItemLedger,
    LedgerError,
    ItemNotFoundError,
    ItemAlreadySoldError
)

ASSET_REF = "0xCollection"
SELLER = "0xSeller"

@pytest_asyncio.fixture
async def ledger():
    return ItemLedger()

@pytest.mark.asyncio
async def test_create_listing_assigns_sequential_ids(ledger):
    assert await ledger.item_count() == 0

    first = await ledger.create_listing(ASSET_REF, 7, 100, SELLER)
    second = await ledger.create_listing(ASSET_REF, 8, 200, SELLER)

    assert (first, second) == (1, 2)
    assert await ledger.item_count() == 2

    item = await ledger.get(2)
    assert item == Item(item_id=2, asset_ref=ASSET_REF, token_id=8, price=200, seller=SELLER)
    assert item.sold is False

@pytest.mark.asyncio
async def test_invalid_record_does_not_consume_id(ledger):
    with pytest.raises(LedgerError):
        await ledger.create_listing(ASSET_REF, 7, 0, SELLER)
    with pytest.raises(LedgerError):
        await ledger.create_listing("", 7, 100, SELLER)

    assert await ledger.item_count() == 0
    assert await ledger.create_listing(ASSET_REF, 7, 100, SELLER) == 1

@pytest.mark.asyncio
@pytest.mark.parametrize("item_id", [0, 1, -1, "1"])
async def test_get_unknown_item(ledger, item_id):
    with pytest.raises(ItemNotFoundError) as excinfo:
        await ledger.get(item_id)
    assert isinstance(excinfo.value, LookupError)

@pytest.mark.asyncio
async def test_mark_sold_is_one_way(ledger):
    item_id = await ledger.create_listing(ASSET_REF, 7, 100, SELLER)

    await ledger.mark_sold(item_id)
    assert (await ledger.get(item_id)).sold is True

    with pytest.raises(ItemAlreadySoldError):
        await ledger.mark_sold(item_id)
    with pytest.raises(ItemNotFoundError):
        await ledger.mark_sold(5)

@pytest.mark.asyncio
async def test_settle_marks_sold_on_success(ledger):
    item_id = await ledger.create_listing(ASSET_REF, 7, 100, SELLER)

    async with ledger.settle(item_id) as item:
        assert item.item_id == item_id
        assert item.sold is False

    assert (await ledger.get(item_id)).sold is True

@pytest.mark.asyncio
async def test_settle_leaves_item_unsold_on_error(ledger):
    item_id = await ledger.create_listing(ASSET_REF, 7, 100, SELLER)

    with pytest.raises(RuntimeError):
        async with ledger.settle(item_id):
            raise RuntimeError("delivery failed")

    assert (await ledger.get(item_id)).sold is False

@pytest.mark.asyncio
async def test_settle_rejects_sold_item(ledger):
    item_id = await ledger.create_listing(ASSET_REF, 7, 100, SELLER)
    await ledger.mark_sold(item_id)

    with pytest.raises(ItemAlreadySoldError):
        async with ledger.settle(item_id):
            pass

@pytest.mark.asyncio
async def test_list_items(ledger):
    for token_id in range(3):
        await ledger.create_listing(ASSET_REF, token_id, 10 + token_id, SELLER)
    await ledger.mark_sold(2)

    assert [item.item_id for item in await ledger.list_items()] == [1, 3]
    assert [item.item_id for item in await ledger.list_items(include_sold=True)] == [1, 2, 3]

@pytest.mark.asyncio
async def test_concurrent_listings_get_distinct_ids(ledger):
    ids = await asyncio.gather(*(
        ledger.create_listing(ASSET_REF, token_id, 100, SELLER)
        for token_id in range(50)
    ))

    assert sorted(ids) == list(range(1, 51))
    assert await ledger.item_count() == 50

def test_item_is_immutable():
    item = Item(item_id=1, asset_ref=ASSET_REF, token_id=1, price=1, seller=SELLER)
    with pytest.raises(ValidationError):
        item.price = 2
