"""Opportunity scanner — turns tracked positions into liquidation candidates."""
from __future__ import annotations

import logging
from collections.abc import Mapping

from ..fixed_point import (
    DEFAULT_CLOSE_FACTOR_BPS,
    estimate_profit,
    is_liquidatable,
    max_repay_amount,
)
from ..interfaces.price_oracle import PriceOracle
from ..interfaces.protocol_adapter import ProtocolAdapter
from ..models import LiquidationOpportunity, UserPosition
from .market_cache import MarketCache

logger = logging.getLogger(__name__)


class OpportunityScanner:
    """Evaluates each tracked position against live health factors and prices.

    The scanner reports every liquidatable position with its profit estimate,
    including unprofitable ones; filtering is left to the caller.
    """

    def __init__(
        self,
        protocol: ProtocolAdapter,
        oracle: PriceOracle,
        market_cache: MarketCache,
        close_factor_bps: int = DEFAULT_CLOSE_FACTOR_BPS,
    ) -> None:
        self._protocol = protocol
        self._oracle = oracle
        self._markets = market_cache
        self._close_factor_bps = close_factor_bps

    async def scan_positions(
        self, positions: Mapping[str, UserPosition]
    ) -> list[LiquidationOpportunity]:
        """Scan all positions and return the liquidatable ones."""
        await self._markets.refresh_all()

        opportunities: list[LiquidationOpportunity] = []
        for key, position in positions.items():
            try:
                opportunity = await self.check_position(position)
            except Exception as e:
                logger.error("Error checking position %s: %s", key, e)
                continue
            if opportunity is not None:
                opportunities.append(opportunity)

        if opportunities:
            logger.info("Found %d liquidation opportunities", len(opportunities))
        return opportunities

    async def check_position(
        self, position: UserPosition
    ) -> LiquidationOpportunity | None:
        """Evaluate one position; None when healthy or its market is unknown."""
        if position.borrowed_amount == 0:
            return None

        market = self._markets.get(position.market_id)
        if market is None:
            return None

        health_factor = await self._protocol.get_health_factor(
            position.market_id, position.user
        )
        if not is_liquidatable(health_factor):
            return None

        repay_amount = max_repay_amount(position.borrowed_amount, self._close_factor_bps)
        collateral_price = await self._oracle.get_price(market.collateral_oracle)
        supply_price = await self._oracle.get_price(market.supply_oracle)

        _, _, gross_profit = estimate_profit(
            repay_amount, supply_price, collateral_price, market.liquidation_bonus
        )

        return LiquidationOpportunity(
            market_id=position.market_id,
            borrower=position.user,
            health_factor=health_factor,
            debt_amount=position.borrowed_amount,
            collateral_amount=position.collateral_deposited,
            max_repay_amount=repay_amount,
            estimated_profit=gross_profit,
            collateral_price=collateral_price,
            supply_price=supply_price,
        )
