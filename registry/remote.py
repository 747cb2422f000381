"""Asset registry served by a remote asset node over JSON-RPC."""

import asyncio
import logging
from typing import Any

from rpc import RegistryRPC, NodeError
from .exceptions import RegistryError, TokenNotFoundError, TransferNotAuthorizedError

logger = logging.getLogger(__name__)

# Node error codes with a registry meaning
TOKEN_NOT_FOUND = -3
TRANSFER_NOT_AUTHORIZED = -13

class RemoteAssetRegistry:
    """AssetRegistry backed by a RegistryRPC client.

    RPC calls are blocking, so they run in the default executor.
    """

    def __init__(self, client: RegistryRPC, address: str):
        self.client = client
        self._address = address

    @property
    def address(self) -> str:
        return self._address

    async def _call(self, method: str, *args) -> Any:
        call = getattr(self.client, method)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: call(self._address, *args))

    async def owner_of(self, token_id: int) -> str:
        try:
            return await self._call('ownerof', token_id)
        except NodeError as e:
            if e.code == TOKEN_NOT_FOUND:
                raise TokenNotFoundError(token_id) from e
            raise RegistryError(f"ownerof failed for token {token_id}: {e}") from e

    async def is_approved_for_all(self, owner: str, operator: str) -> bool:
        try:
            return bool(await self._call('isapprovedforall', owner, operator))
        except NodeError as e:
            raise RegistryError(f"isapprovedforall failed for {owner}: {e}") from e

    async def transfer_custody(self, operator: str, sender: str, recipient: str, token_id: int) -> None:
        try:
            tx_hash = await self._call('transfercustody', operator, sender, recipient, token_id)
        except NodeError as e:
            if e.code == TOKEN_NOT_FOUND:
                raise TokenNotFoundError(token_id) from e
            if e.code == TRANSFER_NOT_AUTHORIZED:
                raise TransferNotAuthorizedError(str(e)) from e
            raise RegistryError(f"transfercustody failed for token {token_id}: {e}") from e
        logger.info(f"Token {token_id} of {self._address} moved {sender} -> {recipient}: {tx_hash}")
