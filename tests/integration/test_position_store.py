"""Integration tests for the position store — bootstrap, refresh and live events."""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from lending_liquidator.models import EventLog
from lending_liquidator.services.position_store import PositionStore

from conftest import USER_A, USER_B, make_position


@pytest.fixture()
def store(mock_protocol: AsyncMock, mock_client: AsyncMock) -> PositionStore:
    return PositionStore(mock_protocol, mock_client.block_number, poll_interval=0.01)


class TestRefreshPosition:
    @pytest.mark.asyncio
    async def test_debt_is_tracked(self, store: PositionStore, mock_protocol: AsyncMock) -> None:
        mock_protocol.get_position.return_value = make_position(USER_A)
        position = await store.refresh_position(0, USER_A)

        assert position is not None
        assert dict(store.get_active_positions()) == {f"0-{USER_A}": position}

    @pytest.mark.asyncio
    async def test_zero_debt_removes_entry(
        self, store: PositionStore, mock_protocol: AsyncMock
    ) -> None:
        mock_protocol.get_position.return_value = make_position(USER_A)
        await store.refresh_position(0, USER_A)

        mock_protocol.get_position.return_value = make_position(USER_A, borrowed=0)
        assert await store.refresh_position(0, USER_A) is None
        assert store.position_count == 0

    @pytest.mark.asyncio
    async def test_zero_debt_for_unknown_key_is_noop(
        self, store: PositionStore, mock_protocol: AsyncMock
    ) -> None:
        mock_protocol.get_position.return_value = make_position(USER_B, borrowed=0)
        assert await store.refresh_position(0, USER_B) is None
        assert store.position_count == 0

    @pytest.mark.asyncio
    async def test_refresh_is_idempotent(
        self, store: PositionStore, mock_protocol: AsyncMock
    ) -> None:
        mock_protocol.get_position.return_value = make_position(USER_A)
        await store.refresh_position(0, USER_A)
        first = dict(store.get_active_positions())
        await store.refresh_position(0, USER_A)
        assert dict(store.get_active_positions()) == first

    @pytest.mark.asyncio
    async def test_same_user_in_two_markets_has_two_keys(
        self, store: PositionStore, mock_protocol: AsyncMock
    ) -> None:
        mock_protocol.get_position.side_effect = lambda market_id, user: make_position(
            user, market_id
        )
        await store.refresh_position(0, USER_A)
        await store.refresh_position(1, USER_A)
        assert set(store.get_active_positions()) == {f"0-{USER_A}", f"1-{USER_A}"}

    @pytest.mark.asyncio
    async def test_snapshot_is_read_only(
        self, store: PositionStore, mock_protocol: AsyncMock
    ) -> None:
        mock_protocol.get_position.return_value = make_position(USER_A)
        await store.refresh_position(0, USER_A)
        snapshot = store.get_active_positions()
        with pytest.raises(TypeError):
            snapshot["x"] = make_position(USER_B)  # type: ignore[index]

    @pytest.mark.asyncio
    async def test_read_error_propagates(
        self, store: PositionStore, mock_protocol: AsyncMock
    ) -> None:
        mock_protocol.get_position.side_effect = RuntimeError("All RPC endpoints failed")
        with pytest.raises(RuntimeError):
            await store.refresh_position(0, USER_A)


class TestBootstrap:
    @pytest.mark.asyncio
    async def test_dedupes_borrowers(
        self, store: PositionStore, mock_protocol: AsyncMock
    ) -> None:
        mock_protocol.fetch_events.return_value = [
            EventLog("Borrow", 0, USER_A, 10),
            EventLog("Borrow", 0, USER_A, 11),
            EventLog("Borrow", 0, USER_B, 12),
        ]
        mock_protocol.get_position.side_effect = lambda market_id, user: make_position(
            user, market_id
        )

        count = await store.bootstrap(500)

        assert count == 2
        assert mock_protocol.get_position.await_count == 2
        mock_protocol.fetch_events.assert_awaited_once_with("Borrow", 500, 1_000)
        assert store.last_block == 1_000

    @pytest.mark.asyncio
    async def test_repaid_borrowers_not_tracked(
        self, store: PositionStore, mock_protocol: AsyncMock
    ) -> None:
        mock_protocol.fetch_events.return_value = [
            EventLog("Borrow", 0, USER_A, 10),
            EventLog("Borrow", 0, USER_B, 12),
        ]
        mock_protocol.get_position.side_effect = lambda market_id, user: make_position(
            user, market_id, borrowed=0 if user == USER_B else 10
        )

        assert await store.bootstrap() == 1
        assert set(store.get_active_positions()) == {f"0-{USER_A}"}

    @pytest.mark.asyncio
    async def test_one_failed_read_does_not_abort(
        self, store: PositionStore, mock_protocol: AsyncMock
    ) -> None:
        mock_protocol.fetch_events.return_value = [
            EventLog("Borrow", 0, USER_A, 10),
            EventLog("Borrow", 0, USER_B, 12),
        ]

        def _position(market_id: int, user: str):
            if user == USER_A:
                raise RuntimeError("timeout")
            return make_position(user, market_id)

        mock_protocol.get_position.side_effect = _position

        assert await store.bootstrap() == 1
        assert set(store.get_active_positions()) == {f"0-{USER_B}"}


class TestListening:
    @pytest.mark.asyncio
    async def test_events_refresh_positions(
        self, store: PositionStore, mock_protocol: AsyncMock
    ) -> None:
        mock_protocol.subscribe.side_effect = lambda *args: asyncio.create_task(
            asyncio.sleep(3_600)
        )
        mock_protocol.get_position.return_value = make_position(USER_A)

        queue = await store.start_listening()
        await queue.put(EventLog("Borrow", 0, USER_A, 1_001))
        await queue.join()
        assert store.position_count == 1

        mock_protocol.get_position.return_value = make_position(USER_A, borrowed=0)
        await queue.put(EventLog("Liquidation", 0, USER_A, 1_002))
        await queue.join()
        assert store.position_count == 0

        await store.stop()

    @pytest.mark.asyncio
    async def test_subscription_starts_after_bootstrap_block(
        self, store: PositionStore, mock_protocol: AsyncMock
    ) -> None:
        mock_protocol.subscribe.side_effect = lambda *args: asyncio.create_task(
            asyncio.sleep(3_600)
        )
        await store.bootstrap(0)
        await store.start_listening()

        _, start_block, poll_interval = mock_protocol.subscribe.call_args.args
        assert start_block == 1_000
        assert poll_interval == 0.01

        await store.stop()

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_consumer_alive(
        self, store: PositionStore, mock_protocol: AsyncMock
    ) -> None:
        mock_protocol.subscribe.side_effect = lambda *args: asyncio.create_task(
            asyncio.sleep(3_600)
        )
        mock_protocol.get_position.side_effect = [
            RuntimeError("rate limited"),
            make_position(USER_B),
        ]

        queue = await store.start_listening()
        await queue.put(EventLog("Borrow", 0, USER_A, 1_001))
        await queue.put(EventLog("Borrow", 0, USER_B, 1_001))
        await queue.join()

        assert set(store.get_active_positions()) == {f"0-{USER_B}"}
        await store.stop()

    @pytest.mark.asyncio
    async def test_stop_cancels_tasks(
        self, store: PositionStore, mock_protocol: AsyncMock
    ) -> None:
        poller = asyncio.create_task(asyncio.sleep(3_600))
        mock_protocol.subscribe.side_effect = lambda *args: poller

        await store.start_listening()
        await store.stop()

        assert poller.cancelled()
