"""Marketplace exceptions.

Every one of these aborts the triggering call before any state changes.
"""

import ledger

class MarketplaceError(Exception):
    """Base class for marketplace errors."""
    pass

class ConfigurationError(MarketplaceError):
    """Raised when the fee configuration is invalid."""
    pass

class InvalidPriceError(MarketplaceError):
    """Raised when a listing price is not a positive integer."""
    def __init__(self, price):
        self.price = price
        super().__init__(f"Price must be greater than 0, got {price!r}")

class UnauthorizedError(MarketplaceError):
    """Raised when the caller has not granted the marketplace custody of the asset."""
    pass

class ItemNotFoundError(MarketplaceError, ledger.ItemNotFoundError):
    """Raised when an item id is outside the range of created items."""
    pass

class AlreadySoldError(MarketplaceError):
    """Raised when purchasing an item that was already sold."""
    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"Item {item_id} is already sold")

class InsufficientPaymentError(MarketplaceError):
    """Raised when the payment does not cover price and fee."""
    def __init__(self, item_id: int, required: int, paid: int):
        self.item_id = item_id
        self.required = required
        self.paid = paid
        super().__init__(
            f"Not enough paid to cover item {item_id} price and market fee: "
            f"required {required}, paid {paid}"
        )
