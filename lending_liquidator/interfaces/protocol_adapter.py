"""Protocol adapter — lending protocol reads and liquidation calls."""
import asyncio
from typing import Protocol

from ..models import EventLog, Market, UserPosition


class ProtocolAdapter(Protocol):
    """Abstract interface for the on-chain lending protocol."""

    async def market_count(self) -> int: ...

    async def get_market(self, market_id: int) -> Market: ...

    async def get_position(self, market_id: int, user: str) -> UserPosition: ...

    async def get_health_factor(self, market_id: int, user: str) -> int: ...

    async def estimate_liquidation_gas(
        self, market_id: int, borrower: str, repay_amount: int
    ) -> int: ...

    async def submit_liquidation(
        self,
        market_id: int,
        borrower: str,
        repay_amount: int,
        gas_limit: int,
        gas_price: int | None = None,
    ) -> str: ...

    async def fetch_events(
        self, event_name: str, from_block: int, to_block: int
    ) -> list[EventLog]: ...

    def subscribe(
        self,
        queue: "asyncio.Queue[EventLog]",
        start_block: int,
        poll_interval: float,
    ) -> "asyncio.Task[None]": ...
