"""In-process asset collection.

Tokens are minted with sequential ids starting at 1. Ownership changes only
through transfer_custody, which the owner or an operator approved for all of
the owner's tokens may perform.

Mutations never await, so each one completes without yielding to the event
loop and is atomic with respect to other coroutines.
"""

import logging
from typing import Dict, Set, Tuple

from .exceptions import TokenNotFoundError, TransferNotAuthorizedError

logger = logging.getLogger(__name__)

class AssetCollection:
    """A collection of uniquely identified tokens."""

    def __init__(self, name: str, symbol: str, address: str):
        """Initialize an empty collection.

        Args:
            name: Collection name
            symbol: Collection ticker symbol
            address: Identity of the collection, stored as asset_ref on listings
        """
        self.name = name
        self.symbol = symbol
        self._address = address
        self._owners: Dict[int, str] = {}
        self._uris: Dict[int, str] = {}
        self._approvals: Set[Tuple[str, str]] = set()
        self._token_count = 0

    @property
    def address(self) -> str:
        return self._address

    @property
    def token_count(self) -> int:
        return self._token_count

    async def mint(self, owner: str, uri: str) -> int:
        """Mint a new token to owner and return its id."""
        self._token_count += 1
        token_id = self._token_count
        self._owners[token_id] = owner
        self._uris[token_id] = uri
        logger.info(f"{self.symbol}: minted token {token_id} to {owner}")
        return token_id

    async def owner_of(self, token_id: int) -> str:
        try:
            return self._owners[token_id]
        except KeyError:
            raise TokenNotFoundError(token_id)

    async def token_uri(self, token_id: int) -> str:
        try:
            return self._uris[token_id]
        except KeyError:
            raise TokenNotFoundError(token_id)

    async def balance_of(self, owner: str) -> int:
        return sum(1 for holder in self._owners.values() if holder == owner)

    async def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> None:
        """Grant or revoke operator's right to move all of owner's tokens."""
        if owner == operator:
            raise TransferNotAuthorizedError("Cannot approve yourself as operator")
        if approved:
            self._approvals.add((owner, operator))
        else:
            self._approvals.discard((owner, operator))
        logger.debug(f"{self.symbol}: approval {owner} -> {operator} set to {approved}")

    async def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return (owner, operator) in self._approvals

    async def transfer_custody(self, operator: str, sender: str, recipient: str, token_id: int) -> None:
        """Move token_id from sender to recipient on behalf of operator.

        Raises:
            TokenNotFoundError: If the token does not exist
            TransferNotAuthorizedError: If sender does not own the token or
                operator is neither sender nor approved by sender
        """
        owner = await self.owner_of(token_id)
        if owner != sender:
            raise TransferNotAuthorizedError(
                f"Token {token_id} is owned by {owner}, not {sender}"
            )
        if operator != sender and (sender, operator) not in self._approvals:
            raise TransferNotAuthorizedError(
                f"{operator} is not approved to transfer tokens of {sender}"
            )
        if not recipient:
            raise TransferNotAuthorizedError("Cannot transfer to an empty recipient")

        self._owners[token_id] = recipient
        logger.debug(f"{self.symbol}: token {token_id} moved {sender} -> {recipient}")
