"""Payments module for moving funds between identities.

Amounts are integers in the smallest currency unit. The marketplace only
consumes the FundsLedger protocol; BalanceBook is the in-process ledger.
"""

import logging
from collections import defaultdict
from typing import Dict, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

class PaymentError(Exception):
    """Base exception for payment operations."""
    pass

class InsufficientFundsError(PaymentError):
    """Raised when a sender cannot cover a transfer."""
    def __init__(self, identity: str, available: int, requested: int):
        self.identity = identity
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient funds for {identity}: "
            f"available {available}, requested {requested}"
        )

@runtime_checkable
class FundsLedger(Protocol):
    """Funds capability the marketplace needs."""

    async def balance_of(self, identity: str) -> int:
        ...

    async def transfer(self, sender: str, recipient: str, amount: int) -> None:
        ...

class BalanceBook:
    """In-process balances keyed by identity.

    Mutations never await, so a transfer is atomic with respect to other
    coroutines.
    """

    def __init__(self, balances: Optional[Dict[str, int]] = None):
        self._balances: Dict[str, int] = defaultdict(int)
        for identity, amount in (balances or {}).items():
            self._check_amount(amount, allow_zero=True)
            self._balances[identity] = amount

    @staticmethod
    def _check_amount(amount: int, allow_zero: bool = False) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise PaymentError(f"Amount must be an integer, got {amount!r}")
        if amount < 0 or (amount == 0 and not allow_zero):
            raise PaymentError(f"Amount must be positive, got {amount}")

    async def balance_of(self, identity: str) -> int:
        return self._balances.get(identity, 0)

    async def deposit(self, identity: str, amount: int) -> None:
        """Credit identity with newly issued funds."""
        self._check_amount(amount)
        self._balances[identity] += amount
        logger.debug(f"Deposited {amount} to {identity}")

    async def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """Move amount from sender to recipient.

        Raises:
            PaymentError: If amount is not a positive integer
            InsufficientFundsError: If sender's balance is below amount
        """
        self._check_amount(amount)
        available = self._balances.get(sender, 0)
        if available < amount:
            raise InsufficientFundsError(sender, available, amount)

        self._balances[sender] = available - amount
        self._balances[recipient] += amount
        logger.debug(f"Transferred {amount} from {sender} to {recipient}")

    def total_supply(self) -> int:
        """Sum of all balances; transfers never change it."""
        return sum(self._balances.values())

__all__ = [
    'FundsLedger',
    'BalanceBook',
    'PaymentError',
    'InsufficientFundsError',
]
