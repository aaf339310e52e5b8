"""Polling event subscription feeding a bounded queue."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

from ...models import EventLog

logger = logging.getLogger(__name__)

FetchEvents = Callable[[str, int, int], Awaitable[list[EventLog]]]


class EventPoller:
    """Poll the chain head and push newly emitted events into a queue.

    Each poll covers ``(last_block, head]`` for every event name. The range is
    only advanced after all event types were fetched, so a failed poll is
    retried in full on the next interval. ``queue.put`` blocks while the queue
    is full, which throttles polling instead of fanning out handlers.
    """

    def __init__(
        self,
        fetch_events: FetchEvents,
        block_number: Callable[[], Awaitable[int]],
        event_names: Sequence[str],
        queue: "asyncio.Queue[EventLog]",
        poll_interval: float,
        start_block: int,
    ) -> None:
        self._fetch_events = fetch_events
        self._block_number = block_number
        self._event_names = tuple(event_names)
        self._queue = queue
        self._poll_interval = poll_interval
        self.last_block = start_block

    async def poll_once(self) -> int:
        """Fetch events up to the current head; return how many were queued."""
        head = await self._block_number()
        if head <= self.last_block:
            return 0

        batch: list[EventLog] = []
        for name in self._event_names:
            batch.extend(await self._fetch_events(name, self.last_block + 1, head))
        batch.sort(key=lambda e: e.block_number)

        for event in batch:
            await self._queue.put(event)
        self.last_block = head
        return len(batch)

    async def run(self) -> None:
        logger.info(
            "Polling %s from block %d every %.1fs",
            ", ".join(self._event_names),
            self.last_block + 1,
            self._poll_interval,
        )
        while True:
            try:
                await self.poll_once()
            except Exception as e:
                logger.error("Event polling failed: %s", e)
            await asyncio.sleep(self._poll_interval)
