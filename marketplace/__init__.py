"""Marketplace module: escrow listing and purchase of uniquely identified assets.

This module provides:
- The Marketplace engine (listing, pricing, purchasing)
- The immutable fee configuration
- Offered / Bought events and the event bus that delivers them
- Conversion helpers between whole currency amounts and base units
"""

from .exceptions import (
    MarketplaceError,
    ConfigurationError,
    InvalidPriceError,
    UnauthorizedError,
    ItemNotFoundError,
    AlreadySoldError,
    InsufficientPaymentError,
)
from .fees import FeeConfiguration
from .events import Offered, Bought, EventBus, EventListener
from .settlement import Settlement, RollbackError
from .units import to_base_units, from_base_units
from .engine import Marketplace
from .bootstrap import build_marketplace

__all__ = [
    'Marketplace',
    'build_marketplace',
    'FeeConfiguration',
    'Offered',
    'Bought',
    'EventBus',
    'EventListener',
    'Settlement',
    'RollbackError',
    'to_base_units',
    'from_base_units',
    'MarketplaceError',
    'ConfigurationError',
    'InvalidPriceError',
    'UnauthorizedError',
    'ItemNotFoundError',
    'AlreadySoldError',
    'InsufficientPaymentError',
]
