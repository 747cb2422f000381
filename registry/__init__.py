"""Asset registry module.

The registry owns asset identity, ownership and custody authorization. The
marketplace only consumes the AssetRegistry protocol, so any collection that
implements it can be listed:

- AssetCollection: in-process collection with minting and approvals
- RemoteAssetRegistry: collection served by an asset node over JSON-RPC
"""

from typing import Protocol, runtime_checkable

from .exceptions import RegistryError, TokenNotFoundError, TransferNotAuthorizedError

@runtime_checkable
class AssetRegistry(Protocol):
    """Custody capability the marketplace needs from a collection."""

    @property
    def address(self) -> str:
        ...

    async def owner_of(self, token_id: int) -> str:
        ...

    async def is_approved_for_all(self, owner: str, operator: str) -> bool:
        ...

    async def transfer_custody(self, operator: str, sender: str, recipient: str, token_id: int) -> None:
        ...

from .collection import AssetCollection
from .remote import RemoteAssetRegistry

__all__ = [
    'AssetRegistry',
    'AssetCollection',
    'RemoteAssetRegistry',
    'RegistryError',
    'TokenNotFoundError',
    'TransferNotAuthorizedError',
]
