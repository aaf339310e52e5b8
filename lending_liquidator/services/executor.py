"""Liquidation executor — direct and flash-loan-assisted paths."""
from __future__ import annotations

import logging
from decimal import Decimal

from web3 import AsyncWeb3

from ..config import ExecutorConfig
from ..fixed_point import apply_gas_buffer
from ..interfaces.chain import ChainGateway
from ..interfaces.protocol_adapter import ProtocolAdapter
from ..models import ExecutionState, LiquidationOpportunity, TxReceipt
from ..protocols.lending.adapter import FlashLoanLiquidatorAdapter

logger = logging.getLogger(__name__)


class LiquidationExecutor:
    """Submits liquidation transactions and waits for confirmation.

    Every attempt ends in CONFIRMED, FAILED or SKIPPED (see ``last_state``).
    Neither path raises: errors are logged and reported as ``False``. Retrying
    is left to the next scan cycle.
    """

    def __init__(
        self,
        protocol: ProtocolAdapter,
        client: ChainGateway,
        config: ExecutorConfig,
        flash_loan: FlashLoanLiquidatorAdapter | None = None,
    ) -> None:
        self._protocol = protocol
        self._client = client
        self._config = config
        self._flash_loan = flash_loan
        self._max_gas_wei = AsyncWeb3.to_wei(
            Decimal(str(config.max_gas_price_gwei)), "gwei"
        )
        self.last_state = ExecutionState.EVALUATING

    @property
    def has_flash_loan(self) -> bool:
        return self._flash_loan is not None

    def _transition(self, state: ExecutionState) -> None:
        logger.debug("Execution state: %s → %s", self.last_state.value, state.value)
        self.last_state = state

    async def _gated_gas_price(self) -> int | None:
        """Current gas price, or None (state SKIPPED) when above the ceiling.

        The returned price is the one the transaction is signed with.
        """
        self._transition(ExecutionState.GAS_CHECK)
        gas_price = await self._client.gas_price()
        if gas_price > self._max_gas_wei:
            logger.warning(
                "Gas price too high, skipping — gasPrice: %d wei, max: %d wei",
                gas_price,
                self._max_gas_wei,
            )
            self._transition(ExecutionState.SKIPPED)
            return None
        return gas_price

    async def _confirm(self, tx_hash: str, label: str) -> bool:
        self._transition(ExecutionState.CONFIRMING)
        receipt: TxReceipt = await self._client.wait_for_receipt(tx_hash)
        if not receipt.succeeded:
            logger.error(
                "%s tx %s reverted in block %d (gasUsed: %d)",
                label,
                tx_hash,
                receipt.block_number,
                receipt.gas_used,
            )
            self._transition(ExecutionState.FAILED)
            return False

        logger.info(
            "%s confirmed in block %d — gasUsed: %d",
            label,
            receipt.block_number,
            receipt.gas_used,
        )
        self._transition(ExecutionState.CONFIRMED)
        return True

    async def execute_liquidation(self, opportunity: LiquidationOpportunity) -> bool:
        """Liquidate directly; the bot wallet must hold the supply token."""
        self.last_state = ExecutionState.EVALUATING
        try:
            logger.info(
                "Executing liquidation — market %d · borrower %s · repay %d · est. profit %d",
                opportunity.market_id,
                opportunity.borrower,
                opportunity.max_repay_amount,
                opportunity.estimated_profit,
            )

            gas_price = await self._gated_gas_price()
            if gas_price is None:
                return False

            self._transition(ExecutionState.ESTIMATING)
            gas_estimate = await self._protocol.estimate_liquidation_gas(
                opportunity.market_id,
                opportunity.borrower,
                opportunity.max_repay_amount,
            )
            gas_limit = apply_gas_buffer(gas_estimate, self._config.gas_buffer_percent)

            self._transition(ExecutionState.SUBMITTING)
            tx_hash = await self._protocol.submit_liquidation(
                opportunity.market_id,
                opportunity.borrower,
                opportunity.max_repay_amount,
                gas_limit,
                gas_price=gas_price,
            )
            logger.info("Liquidation tx submitted: %s (gasLimit %d)", tx_hash, gas_limit)

            return await self._confirm(tx_hash, "Liquidation")
        except Exception as e:
            logger.error("Liquidation failed (state %s): %s", self.last_state.value, e)
            self._transition(ExecutionState.FAILED)
            return False

    async def execute_flash_loan_liquidation(
        self, opportunity: LiquidationOpportunity
    ) -> bool:
        """Liquidate through the flash-loan liquidator with a fixed gas limit."""
        self.last_state = ExecutionState.EVALUATING
        if self._flash_loan is None:
            logger.error("Flash loan liquidation requested but no liquidator configured")
            self._transition(ExecutionState.FAILED)
            return False

        try:
            logger.info(
                "Executing flash loan liquidation — market %d · borrower %s · repay %d",
                opportunity.market_id,
                opportunity.borrower,
                opportunity.max_repay_amount,
            )

            gas_price = await self._gated_gas_price()
            if gas_price is None:
                return False

            self._transition(ExecutionState.SUBMITTING)
            tx_hash = await self._flash_loan.submit_liquidation(
                opportunity.market_id,
                opportunity.borrower,
                opportunity.max_repay_amount,
                self._config.flash_loan_gas_limit,
                gas_price=gas_price,
            )
            logger.info("Flash loan liquidation tx: %s", tx_hash)

            return await self._confirm(tx_hash, "Flash loan liquidation")
        except Exception as e:
            logger.error(
                "Flash loan liquidation failed (state %s): %s", self.last_state.value, e
            )
            self._transition(ExecutionState.FAILED)
            return False
