"""Liquidation bot orchestration — startup, scan loop and shutdown."""
from __future__ import annotations

import asyncio
import logging

from ..chains.evm import EvmClient
from ..config import BotConfig, ScanConfig
from ..fixed_point import RAY, to_units
from ..interfaces.chain import ChainGateway
from ..models import LiquidationOpportunity
from ..oracles import ChainlinkOracle
from ..protocols.lending import FlashLoanLiquidatorAdapter, LendingProtocolAdapter
from .executor import LiquidationExecutor
from .market_cache import MarketCache
from .position_store import PositionStore
from .scanner import OpportunityScanner

logger = logging.getLogger(__name__)


class LiquidationBot:
    """Wires the position store, scanner and executor into a periodic loop."""

    def __init__(
        self,
        client: ChainGateway,
        store: PositionStore,
        scanner: OpportunityScanner,
        executor: LiquidationExecutor,
        scan_config: ScanConfig,
        bootstrap_lookback_blocks: int = 50_000,
    ) -> None:
        self._client = client
        self._store = store
        self._scanner = scanner
        self._executor = executor
        self._scan = scan_config
        self._lookback = bootstrap_lookback_blocks

    @classmethod
    def from_config(cls, config: BotConfig) -> "LiquidationBot":
        client = EvmClient(
            config.chain,
            log_chunk_size=config.protocol.log_chunk_size,
            confirmation_timeout=config.executor.confirmation_timeout,
        )
        protocol = LendingProtocolAdapter(client, config.protocol.address)

        flash_loan = None
        if config.protocol.flash_loan_liquidator_address:
            flash_loan = FlashLoanLiquidatorAdapter(
                client, config.protocol.flash_loan_liquidator_address
            )

        store = PositionStore(
            protocol,
            client.block_number,
            poll_interval=config.protocol.event_poll_interval_ms / 1000,
            queue_size=config.protocol.event_queue_size,
        )
        scanner = OpportunityScanner(
            protocol,
            ChainlinkOracle(client, config.scan.max_oracle_age_seconds),
            MarketCache(protocol),
            close_factor_bps=config.scan.close_factor_bps,
        )
        executor = LiquidationExecutor(protocol, client, config.executor, flash_loan)
        return cls(
            client,
            store,
            scanner,
            executor,
            config.scan,
            bootstrap_lookback_blocks=config.protocol.bootstrap_lookback_blocks,
        )

    @property
    def store(self) -> PositionStore:
        return self._store

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, listen: bool = True) -> None:
        """Log the wallet, bootstrap recent positions and start listening."""
        logger.info("Bot wallet: %s", self._client.address)
        balance = await self._client.get_balance(self._client.address)
        logger.info("Wallet balance: %.6f (native)", to_units(balance))

        head = await self._client.block_number()
        from_block = max(0, head - self._lookback)
        await self._store.bootstrap(from_block)

        if listen:
            await self._store.start_listening()
            logger.info("Real-time monitoring active")

    async def shutdown(self) -> None:
        logger.info("Shutting down...")
        await self._store.stop()
        await self._client.close()

    # ------------------------------------------------------------------
    # Scan loop
    # ------------------------------------------------------------------

    async def _execute(self, opportunity: LiquidationOpportunity) -> bool:
        if self._executor.has_flash_loan:
            return await self._executor.execute_flash_loan_liquidation(opportunity)
        return await self._executor.execute_liquidation(opportunity)

    async def run_cycle(self, dry_run: bool = False) -> int:
        """One scan pass; returns the number of successful liquidations."""
        positions = self._store.get_active_positions()
        if not positions:
            return 0

        logger.info("Scanning %d active positions...", len(positions))
        opportunities = await self._scanner.scan_positions(positions)

        liquidated = 0
        for opp in opportunities:
            profit_usd = opp.profit_usd
            logger.info(
                "Liquidation opportunity — market %d · %s · HF %.4f · debt %.4f · profit %.6f ($%.2f)",
                opp.market_id,
                opp.borrower,
                opp.health_factor / RAY,
                to_units(opp.debt_amount),
                to_units(opp.estimated_profit),
                profit_usd,
            )

            if profit_usd < self._scan.min_profit_usd:
                logger.info(
                    "Skipping — profit $%.2f < min $%.2f",
                    profit_usd,
                    self._scan.min_profit_usd,
                )
                continue

            if dry_run:
                logger.info("Dry run, not executing")
                continue

            if await self._execute(opp):
                liquidated += 1
                logger.info(
                    "Successfully liquidated %s on market %d", opp.borrower, opp.market_id
                )
                try:
                    await self._store.refresh_position(opp.market_id, opp.borrower)
                except Exception as e:
                    logger.error("Post-liquidation refresh failed for %s: %s", opp.borrower, e)

        return liquidated

    async def run_forever(self, interval_ms: int | None = None) -> None:
        """Run a cycle now and then every interval until cancelled."""
        interval = (interval_ms or self._scan.interval_ms) / 1000
        logger.info("Starting scan loop (every %.3fs)...", interval)

        while True:
            try:
                await self.run_cycle()
            except Exception as e:
                logger.exception("Scan loop error: %s", e)
            await asyncio.sleep(interval)
