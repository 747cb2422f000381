"""Shared fixtures for marketplace tests."""

import pytest
import pytest_asyncio

from marketplace import Marketplace, to_base_units
from payments import BalanceBook
from registry import AssetCollection

# Test identities
DEPLOYER = "0xDeployer"
SELLER = "0xSeller"
BUYER = "0xBuyer"
MARKET_ADDRESS = "0xMarketplace"
COLLECTION_ADDRESS = "0xCarsyCollection"

FEE_PERCENT = 1
URI = "A Sample URI Data for Testing NFT"
STARTING_BALANCE = to_base_units(10000)

class RecordingListener:
    """Listener that keeps every event it receives."""

    def __init__(self):
        self.events = []

    async def notify(self, event):
        self.events.append(event)

@pytest.fixture
def funds():
    """Balances for every test identity."""
    return BalanceBook({
        DEPLOYER: STARTING_BALANCE,
        SELLER: STARTING_BALANCE,
        BUYER: STARTING_BALANCE,
    })

@pytest.fixture
def collection():
    """An empty collection."""
    return AssetCollection("Carsy", "CARSY", COLLECTION_ADDRESS)

@pytest.fixture
def listener():
    return RecordingListener()

@pytest.fixture
def marketplace(funds, listener):
    """A marketplace deployed by DEPLOYER with a 1% fee."""
    return Marketplace.deploy(
        DEPLOYER,
        FEE_PERCENT,
        funds,
        listeners=[listener],
        address=MARKET_ADDRESS
    )

@pytest_asyncio.fixture
async def approved_token(collection):
    """Token 1, minted by SELLER, with the marketplace approved as operator."""
    token_id = await collection.mint(SELLER, URI)
    await collection.set_approval_for_all(SELLER, MARKET_ADDRESS, True)
    return token_id
