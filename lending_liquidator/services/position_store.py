"""Event-sourced store of borrow positions with nonzero debt."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from types import MappingProxyType

from ..interfaces.protocol_adapter import ProtocolAdapter
from ..models import EventLog, UserPosition, position_key

logger = logging.getLogger(__name__)


class PositionStore:
    """Tracks every (market, borrower) pair with outstanding debt.

    ``refresh_position`` is the only write path. Concurrent refreshes of the
    same key are last-write-wins; each write reflects an authoritative chain
    read at the time it was made.
    """

    def __init__(
        self,
        protocol: ProtocolAdapter,
        block_number: Callable[[], Awaitable[int]],
        poll_interval: float = 2.0,
        queue_size: int = 1_000,
    ) -> None:
        self._protocol = protocol
        self._block_number = block_number
        self._poll_interval = poll_interval
        self._queue_size = queue_size
        self._positions: dict[str, UserPosition] = {}
        self._last_block = 0
        self._tasks: list[asyncio.Task[None]] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_active_positions(self) -> Mapping[str, UserPosition]:
        """Read-only snapshot of the tracked positions keyed by ``marketId-user``."""
        return MappingProxyType(dict(self._positions))

    @property
    def position_count(self) -> int:
        return len(self._positions)

    @property
    def last_block(self) -> int:
        return self._last_block

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def refresh_position(self, market_id: int, user: str) -> UserPosition | None:
        """Re-read a position; keep it only while it carries debt."""
        position = await self._protocol.get_position(market_id, user)
        key = position_key(market_id, user)

        if position.borrowed_amount > 0:
            self._positions[key] = position
            return position

        if self._positions.pop(key, None) is not None:
            logger.info("Position %s closed, no longer tracked", key)
        return None

    async def bootstrap(self, from_block: int = 0) -> int:
        """Seed the store from historical Borrow events up to the current head."""
        logger.info("Bootstrapping positions from block %d...", from_block)

        head = await self._block_number()
        events = await self._protocol.fetch_events("Borrow", from_block, head)

        seen: set[tuple[int, str]] = set()
        for event in events:
            account = (event.market_id, event.user)
            if account in seen:
                continue
            seen.add(account)
            try:
                await self.refresh_position(event.market_id, event.user)
            except Exception as e:
                logger.error(
                    "Bootstrap refresh failed for %s: %s",
                    position_key(event.market_id, event.user),
                    e,
                )

        self._last_block = head
        logger.info(
            "Bootstrapped %d positions from %d borrowers (blocks %d-%d)",
            len(self._positions),
            len(seen),
            from_block,
            head,
        )
        return len(self._positions)

    # ------------------------------------------------------------------
    # Live subscription
    # ------------------------------------------------------------------

    async def _handle_event(self, event: EventLog) -> None:
        logger.info(
            "%s event — market %d · %s (block %d)",
            event.name,
            event.market_id,
            event.user,
            event.block_number,
        )
        await self.refresh_position(event.market_id, event.user)

    async def _consume(self, queue: "asyncio.Queue[EventLog]") -> None:
        while True:
            event = await queue.get()
            try:
                await self._handle_event(event)
            except Exception as e:
                logger.error(
                    "Refresh after %s event failed for %s: %s",
                    event.name,
                    position_key(event.market_id, event.user),
                    e,
                )
            finally:
                queue.task_done()

    async def start_listening(self) -> "asyncio.Queue[EventLog]":
        """Follow Borrow, Repay, Liquidation and collateral events from the last bootstrap block."""
        logger.info("Starting real-time event monitoring...")
        queue: asyncio.Queue[EventLog] = asyncio.Queue(maxsize=self._queue_size)
        self._tasks.append(
            self._protocol.subscribe(queue, self._last_block, self._poll_interval)
        )
        self._tasks.append(
            asyncio.create_task(self._consume(queue), name="position-event-consumer")
        )
        return queue

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
