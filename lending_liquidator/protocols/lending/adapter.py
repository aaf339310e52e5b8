"""Lending protocol adapter — contract reads, liquidation calls and events."""
from __future__ import annotations

import asyncio
import logging

from ...chains.evm.events import EventPoller
from ...interfaces.chain import ChainGateway
from ...models import EventLog, Market, UserPosition
from . import parser
from .abi import FLASH_LOAN_LIQUIDATOR_ABI, LENDING_PROTOCOL_ABI, POSITION_EVENTS

logger = logging.getLogger(__name__)


class LendingProtocolAdapter:
    """Typed access to the lending protocol contract through a ChainGateway."""

    def __init__(self, client: ChainGateway, address: str) -> None:
        self._client = client
        self.address = address

    async def _call(self, fn_name: str, *args: object) -> object:
        return await self._client.call(self.address, LENDING_PROTOCOL_ABI, fn_name, *args)

    async def market_count(self) -> int:
        return int(await self._call("marketCount"))

    async def get_market(self, market_id: int) -> Market:
        raw = await self._call("getMarket", market_id)
        return parser.parse_market(market_id, raw)

    async def get_position(self, market_id: int, user: str) -> UserPosition:
        raw = await self._call("getPosition", market_id, user)
        return parser.parse_position(market_id, user, raw)

    async def get_health_factor(self, market_id: int, user: str) -> int:
        """Health factor as a ray (1e27 = 1.0); accrues interest on-chain."""
        return int(await self._call("getHealthFactor", market_id, user))

    async def estimate_liquidation_gas(
        self, market_id: int, borrower: str, repay_amount: int
    ) -> int:
        return int(
            await self._client.estimate_gas(
                self.address,
                LENDING_PROTOCOL_ABI,
                "liquidate",
                market_id,
                borrower,
                repay_amount,
            )
        )

    async def submit_liquidation(
        self,
        market_id: int,
        borrower: str,
        repay_amount: int,
        gas_limit: int,
        gas_price: int | None = None,
    ) -> str:
        return await self._client.send_transaction(
            self.address,
            LENDING_PROTOCOL_ABI,
            "liquidate",
            market_id,
            borrower,
            repay_amount,
            gas_limit=gas_limit,
            gas_price=gas_price,
        )

    async def fetch_events(
        self, event_name: str, from_block: int, to_block: int
    ) -> list[EventLog]:
        """Historical position events in ``[from_block, to_block]``."""
        if from_block > to_block:
            return []
        raw_logs = await self._client.get_events(
            self.address, LENDING_PROTOCOL_ABI, event_name, from_block, to_block
        )
        events: list[EventLog] = []
        for raw in raw_logs:
            try:
                events.append(parser.parse_event(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping undecodable %s log: %s", event_name, e)
        return events

    def subscribe(
        self,
        queue: "asyncio.Queue[EventLog]",
        start_block: int,
        poll_interval: float,
    ) -> "asyncio.Task[None]":
        """Start polling all position events after ``start_block`` into ``queue``."""
        poller = EventPoller(
            fetch_events=self.fetch_events,
            block_number=self._client.block_number,
            event_names=POSITION_EVENTS,
            queue=queue,
            poll_interval=poll_interval,
            start_block=start_block,
        )
        return asyncio.create_task(poller.run(), name="position-event-poller")


class FlashLoanLiquidatorAdapter:
    """Flash-loan liquidator contract: sources repay capital within the tx."""

    def __init__(self, client: ChainGateway, address: str) -> None:
        self._client = client
        self.address = address

    async def submit_liquidation(
        self,
        market_id: int,
        borrower: str,
        repay_amount: int,
        gas_limit: int,
        gas_price: int | None = None,
    ) -> str:
        return await self._client.send_transaction(
            self.address,
            FLASH_LOAN_LIQUIDATOR_ABI,
            "initiateLiquidation",
            market_id,
            borrower,
            repay_amount,
            gas_limit=gas_limit,
            gas_price=gas_price,
        )
