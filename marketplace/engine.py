"""Marketplace engine.

The engine holds listed assets in escrow and settles purchases:

- create_listing: takes custody of a token and records a new item
- get_total_price: price plus the marketplace fee
- purchase_item: escrows the payment, delivers the token, marks the item sold,
  then pays seller and fee account out of escrow

Every operation either completes fully or raises with ledger, balances and
custody unchanged. Purchases of the same item are serialized by a per-item
lock; everything else runs concurrently.
"""

import asyncio
import weakref
import logging
from typing import Dict, Iterable, List, Optional

import ledger as item_ledger
from ledger import Item, ItemLedger
from payments import FundsLedger
from registry import AssetRegistry, TokenNotFoundError, TransferNotAuthorizedError

from .events import Bought, EventBus, EventListener, Offered
from .exceptions import (
    AlreadySoldError,
    InsufficientPaymentError,
    InvalidPriceError,
    ItemNotFoundError,
    MarketplaceError,
    UnauthorizedError,
)
from .fees import FeeConfiguration
from .settlement import Settlement

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = 'marketplace'

def _is_amount(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)

class Marketplace:
    """Escrow marketplace for uniquely identified assets."""

    def __init__(
        self,
        fees: FeeConfiguration,
        funds: FundsLedger,
        ledger=None,
        events: Optional[EventBus] = None,
        listeners: Iterable[EventListener] = (),
        registries: Iterable[AssetRegistry] = (),
        address: str = DEFAULT_ADDRESS
    ) -> None:
        """Initialize the marketplace.

        Args:
            fees: Fee recipient and percentage, fixed for the engine's lifetime
            funds: Ledger used to move payments
            ledger: Item ledger; defaults to a fresh in-memory ItemLedger
            events: Event bus; defaults to a fresh EventBus
            listeners: Listeners to register on the event bus
            registries: Registries whose items may already be in the ledger
            address: Identity that holds escrowed assets and incoming payments
        """
        self.fees = fees
        self.funds = funds
        self.ledger = ledger if ledger is not None else ItemLedger()
        self.events = events if events is not None else EventBus()
        for listener in listeners:
            self.events.add_listener(listener)
        self.address = address
        self._registries: Dict[str, AssetRegistry] = {
            registry.address: registry for registry in registries
        }
        # Entries vanish once no purchase holds or awaits the lock
        self._item_locks = weakref.WeakValueDictionary()

    @classmethod
    def deploy(cls, deployer: str, fee_percent: int, funds: FundsLedger, **kwargs) -> 'Marketplace':
        """Create a marketplace whose fee account is the deploying identity."""
        return cls(FeeConfiguration.create(deployer, fee_percent), funds, **kwargs)

    @property
    def fee_account(self) -> str:
        return self.fees.fee_account

    @property
    def fee_percent(self) -> int:
        return self.fees.fee_percent

    async def item_count(self) -> int:
        return await self.ledger.item_count()

    async def items(self, item_id: int) -> Item:
        """Get the full record of an item, including its sold flag."""
        return await self._require_item(item_id)

    async def list_items(self, include_sold: bool = False) -> List[Item]:
        return await self.ledger.list_items(include_sold=include_sold)

    def register_registry(self, registry: AssetRegistry) -> None:
        """Make a registry known so its items can be purchased."""
        self._registries[registry.address] = registry

    async def create_listing(self, caller: str, registry: AssetRegistry, token_id: int, price: int) -> int:
        """List token_id of registry for sale at price.

        The caller must own the token and have approved the marketplace as
        operator for all of its tokens in the registry.

        Args:
            caller: Identity of the seller
            registry: Collection the token belongs to
            token_id: Token to list
            price: Price in the smallest currency unit

        Returns:
            The new item id

        Raises:
            InvalidPriceError: If price is not a positive integer
            UnauthorizedError: If the caller does not own the token or has
                not granted custody to the marketplace
        """
        if not _is_amount(price) or price <= 0:
            logger.warning(f"Rejected listing of token {token_id} by {caller}: invalid price {price!r}")
            raise InvalidPriceError(price)

        asset_ref = registry.address
        try:
            owner = await registry.owner_of(token_id)
        except TokenNotFoundError as e:
            logger.warning(f"Rejected listing by {caller}: {e}")
            raise UnauthorizedError(f"Token {token_id} does not exist in {asset_ref}") from e

        if owner != caller:
            logger.warning(f"Rejected listing of token {token_id} by {caller}: owned by {owner}")
            raise UnauthorizedError(f"{caller} does not own token {token_id} of {asset_ref}")

        if not await registry.is_approved_for_all(caller, self.address):
            logger.warning(f"Rejected listing of token {token_id} by {caller}: marketplace not approved")
            raise UnauthorizedError(
                f"{caller} has not approved the marketplace to take custody of {asset_ref} tokens"
            )

        logger.debug(f"Listing checks passed for token {token_id} of {asset_ref}")

        async with Settlement(f"listing of token {token_id} of {asset_ref}") as unit:
            await unit.step(
                lambda: self._move_custody(registry, caller, self.address, token_id),
                undo=lambda: registry.transfer_custody(self.address, self.address, caller, token_id),
                description="take custody"
            )
            item_id = await self.ledger.create_listing(asset_ref, token_id, price, caller)

        self._registries[asset_ref] = registry
        logger.info(f"Item {item_id}: token {token_id} of {asset_ref} listed by {caller} at {price}")

        await self.events.publish(Offered(
            item_id=item_id,
            asset_ref=asset_ref,
            token_id=token_id,
            price=price,
            seller=caller
        ))
        return item_id

    async def get_total_price(self, item_id: int) -> int:
        """Get the amount a buyer must pay for an item: price plus fee.

        Raises:
            ItemNotFoundError: If item_id is outside the range of created items
        """
        item = await self._require_item(item_id)
        return self.fees.total_price(item.price)

    async def purchase_item(self, item_id: int, buyer: str, paid_amount: int) -> Item:
        """Buy an item.

        Preconditions are checked in order: the item exists, it is unsold,
        and paid_amount covers the total price. Then, as one unit, the buyer
        pays paid_amount into escrow, the token moves to the buyer and the
        item is marked sold. Only once that unit has committed are the seller
        and the fee account paid out of escrow, so no reversal ever has to
        take funds back from a third party. Only the total price is paid
        out; any excess stays with the marketplace.

        Returns:
            The sold item record

        Raises:
            ItemNotFoundError: If item_id is outside the range of created items
            AlreadySoldError: If the item was already sold
            InsufficientPaymentError: If paid_amount is below the total price
            payments.InsufficientFundsError: If the buyer cannot cover paid_amount
        """
        if not _is_amount(paid_amount):
            raise TypeError(f"paid_amount must be an integer, got {paid_amount!r}")

        # Ids are never removed, so existence can be checked before taking the lock
        await self._require_item(item_id)

        lock = self._item_locks.get(item_id)
        if lock is None:
            lock = asyncio.Lock()
            self._item_locks[item_id] = lock

        async with lock:
            item = await self.ledger.get(item_id)
            if item.sold:
                logger.warning(f"Rejected purchase of item {item_id} by {buyer}: already sold")
                raise AlreadySoldError(item_id)

            total_price = self.fees.total_price(item.price)
            if paid_amount < total_price:
                logger.warning(
                    f"Rejected purchase of item {item_id} by {buyer}: "
                    f"paid {paid_amount}, required {total_price}"
                )
                raise InsufficientPaymentError(item_id, total_price, paid_amount)

            registry = self._registry_for(item)
            fee = total_price - item.price
            logger.debug(f"Settling item {item_id}: price {item.price}, fee {fee}, paid {paid_amount}")

            try:
                async with Settlement(f"purchase of item {item_id}") as unit:
                    async with self.ledger.settle(item_id) as item:
                        await self._collect_and_deliver(unit, item, registry, buyer, paid_amount)
            except item_ledger.ItemAlreadySoldError as e:
                # Another process sold the item between our check and the row lock
                logger.warning(f"Rejected purchase of item {item_id} by {buyer}: already sold")
                raise AlreadySoldError(item_id) from e

            await self._pay_out(item, fee)

        logger.info(
            f"Item {item_id}: token {item.token_id} of {item.asset_ref} sold by {item.seller} "
            f"to {buyer} for {item.price} (fee {fee})"
        )

        await self.events.publish(Bought(
            item_id=item_id,
            asset_ref=item.asset_ref,
            token_id=item.token_id,
            price=item.price,
            seller=item.seller,
            buyer=buyer
        ))
        return item.model_copy(update={'sold': True})

    async def _collect_and_deliver(
        self,
        unit: Settlement,
        item: Item,
        registry: AssetRegistry,
        buyer: str,
        paid_amount: int
    ) -> None:
        """Move the payment into escrow and the token to the buyer inside unit."""
        funds = self.funds

        await unit.step(
            lambda: funds.transfer(buyer, self.address, paid_amount),
            undo=lambda: funds.transfer(self.address, buyer, paid_amount),
            description="collect payment"
        )
        # Reversal is done by the buyer's side of the registry: the buyer owns the token at that point
        await unit.step(
            lambda: self._move_custody(registry, self.address, buyer, item.token_id),
            undo=lambda: registry.transfer_custody(buyer, buyer, self.address, item.token_id),
            description="deliver token"
        )

    async def _pay_out(self, item: Item, fee: int) -> None:
        """Pay seller and fee account from escrow after the sale has committed."""
        try:
            await self.funds.transfer(self.address, item.seller, item.price)
            if fee > 0:
                await self.funds.transfer(self.address, self.fee_account, fee)
        except Exception as e:
            logger.error(f"Item {item.item_id} is sold but its payout from escrow failed: {e}")
            raise

    async def _move_custody(self, registry: AssetRegistry, sender: str, recipient: str, token_id: int) -> None:
        try:
            await registry.transfer_custody(self.address, sender, recipient, token_id)
        except TransferNotAuthorizedError as e:
            raise UnauthorizedError(str(e)) from e

    async def _require_item(self, item_id: int) -> Item:
        count = await self.ledger.item_count()
        if not _is_amount(item_id) or item_id < 1 or item_id > count:
            raise ItemNotFoundError(item_id)
        return await self.ledger.get(item_id)

    def _registry_for(self, item: Item) -> AssetRegistry:
        try:
            return self._registries[item.asset_ref]
        except KeyError:
            raise MarketplaceError(
                f"No registry known for {item.asset_ref}; register it before selling item {item.item_id}"
            )
