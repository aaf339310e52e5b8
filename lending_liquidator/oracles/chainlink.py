"""Chainlink-style aggregator price reader."""
from __future__ import annotations

import logging
import time

from ..fixed_point import normalize_price
from ..interfaces.chain import ChainGateway
from ..protocols.lending.abi import ORACLE_ABI

logger = logging.getLogger(__name__)


class StalePriceError(RuntimeError):
    """Raised when an oracle answer is older than the configured maximum age."""


class ChainlinkOracle:
    """Read ``latestRoundData`` / ``decimals`` and normalize to 18 decimals."""

    def __init__(self, client: ChainGateway, max_age_seconds: int = 0) -> None:
        self._client = client
        self._max_age = max_age_seconds
        self._decimals: dict[str, int] = {}

    async def get_decimals(self, oracle_address: str) -> int:
        """Feed decimals (cached; a feed's scale never changes)."""
        key = oracle_address.lower()
        if key not in self._decimals:
            self._decimals[key] = int(
                await self._client.call(oracle_address, ORACLE_ABI, "decimals")
            )
        return self._decimals[key]

    async def get_price(self, oracle_address: str) -> int:
        """Latest answer of the feed at ``oracle_address`` scaled to 18 decimals.

        Only ``answer`` is used unless a maximum age is configured, in which
        case an answer whose ``updatedAt`` is too old raises StalePriceError.
        """
        _, answer, _, updated_at, _ = await self._client.call(
            oracle_address, ORACLE_ABI, "latestRoundData"
        )
        if int(answer) <= 0:
            raise ValueError(f"Oracle {oracle_address} returned non-positive answer {answer}")
        decimals = await self.get_decimals(oracle_address)

        if self._max_age > 0:
            age = int(time.time()) - int(updated_at)
            if age > self._max_age:
                raise StalePriceError(
                    f"Oracle {oracle_address} answer is {age}s old "
                    f"(max {self._max_age}s)"
                )

        price = normalize_price(int(answer), decimals)
        logger.debug("Oracle %s: %d (decimals=%d)", oracle_address, price, decimals)
        return price
