"""Best-effort mirror of lending market parameters."""
from __future__ import annotations

import logging

from ..interfaces.protocol_adapter import ProtocolAdapter
from ..models import Market

logger = logging.getLogger(__name__)


class MarketCache:
    """Markets keyed by id, fully re-fetched on every refresh."""

    def __init__(self, protocol: ProtocolAdapter) -> None:
        self._protocol = protocol
        self._markets: dict[int, Market] = {}

    def get(self, market_id: int) -> Market | None:
        return self._markets.get(market_id)

    def __len__(self) -> int:
        return len(self._markets)

    async def refresh_all(self) -> int:
        """Re-read markets ``[0, marketCount)``; a failed market keeps its old entry."""
        count = await self._protocol.market_count()
        refreshed = 0

        for market_id in range(count):
            try:
                self._markets[market_id] = await self._protocol.get_market(market_id)
                refreshed += 1
            except Exception as e:
                logger.error("Error refreshing market %d: %s", market_id, e)

        logger.debug("Refreshed %d/%d markets", refreshed, count)
        return refreshed
