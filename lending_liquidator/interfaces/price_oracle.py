"""Price oracle protocol — price feed abstraction."""
from typing import Protocol


class PriceOracle(Protocol):
    """Abstract interface for reading an asset price normalized to 18 decimals."""

    async def get_price(self, oracle_address: str) -> int: ...
