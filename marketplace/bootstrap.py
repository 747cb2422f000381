"""Build a marketplace from settings.conf."""

import logging
from typing import Any, Dict, Iterable, Optional

from ledger import ItemLedger
from payments import FundsLedger
from registry import AssetRegistry

from .engine import Marketplace
from .events import EventListener
from .fees import FeeConfiguration

logger = logging.getLogger(__name__)

async def build_marketplace(
    funds: FundsLedger,
    settings: Optional[Dict[str, Any]] = None,
    registries: Iterable[AssetRegistry] = (),
    listeners: Iterable[EventListener] = ()
) -> Marketplace:
    """Create a Marketplace wired according to settings.

    Args:
        funds: Ledger used to move payments
        settings: Validated settings; loaded from settings.conf if not provided
        registries: Registries whose items may already be in the ledger
        listeners: Event listeners to register

    Returns:
        A ready-to-use Marketplace
    """
    if settings is None:
        from config import get_settings
        settings = get_settings()

    fees = FeeConfiguration.from_settings(settings)

    if settings['ledger_backend'] == 'postgres':
        # Import here so the in-memory backend works without a database
        from database import init_db
        from ledger.postgres import PostgresItemLedger

        await init_db(settings['db_url'])
        ledger = PostgresItemLedger()
        await ledger.ensure_pool()
    else:
        ledger = ItemLedger()

    registries = list(registries)
    if settings.get('registry_rpc_url'):
        from rpc import RegistryRPC
        from registry import RemoteAssetRegistry

        client = RegistryRPC.from_settings(settings)
        registries.extend(
            RemoteAssetRegistry(client, address)
            for address in settings.get('registry_addresses', [])
        )

    logger.info(
        f"Marketplace {settings['marketplace_address']} using {settings['ledger_backend']} ledger, "
        f"fee {fees.fee_percent}% to {fees.fee_account}"
    )

    return Marketplace(
        fees,
        funds,
        ledger=ledger,
        listeners=listeners,
        registries=registries,
        address=settings['marketplace_address']
    )
