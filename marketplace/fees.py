"""Marketplace fee configuration and arithmetic."""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import ConfigurationError

class FeeConfiguration(BaseModel):
    """Fee recipient and commission percentage, fixed for the engine's lifetime.

    The fee on a price is ``price * fee_percent // 100``: integer arithmetic
    truncating toward zero. No upper bound is placed on fee_percent.
    """
    model_config = ConfigDict(frozen=True, strict=True)

    fee_account: str = Field(..., min_length=1)
    fee_percent: int = Field(..., ge=0)

    @classmethod
    def create(cls, fee_account: str, fee_percent: int) -> 'FeeConfiguration':
        """Build a configuration, raising ConfigurationError when invalid."""
        try:
            return cls(fee_account=fee_account, fee_percent=fee_percent)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid fee configuration: {e}") from e

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> 'FeeConfiguration':
        return cls.create(settings['fee_account'], int(settings['fee_percent']))

    def fee_for(self, price: int) -> int:
        return price * self.fee_percent // 100

    def total_price(self, price: int) -> int:
        """Amount a buyer must pay for an item listed at price."""
        return price + self.fee_for(price)
