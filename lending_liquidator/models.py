"""Data models — all frozen (immutable).

On-chain amounts are kept as raw Python ints at the chain's 18-decimal scale.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass

from .fixed_point import to_units


@dataclass(frozen=True)
class Market:
    """Lending market parameters mirrored from ``getMarket(id)``."""

    market_id: int
    supply_token: str
    collateral_token: str
    total_supply_deposits: int
    total_borrows: int
    total_collateral_deposits: int
    collateral_factor: int
    liquidation_threshold: int
    liquidation_bonus: int
    supply_oracle: str
    collateral_oracle: str
    is_active: bool
    cumulative_borrow_index: int


@dataclass(frozen=True)
class UserPosition:
    """A borrower's position in one market."""

    user: str
    market_id: int
    supply_deposited: int = 0
    collateral_deposited: int = 0
    borrowed_amount: int = 0
    ctoken_balance: int = 0
    borrow_index: int = 0

    @property
    def key(self) -> str:
        return position_key(self.market_id, self.user)


def position_key(market_id: int, user: str) -> str:
    return f"{market_id}-{user}"


@dataclass(frozen=True)
class LiquidationOpportunity:
    """A liquidatable position with its profit estimate for one scan cycle."""

    market_id: int
    borrower: str
    health_factor: int
    debt_amount: int
    collateral_amount: int
    max_repay_amount: int
    estimated_profit: int
    collateral_price: int
    supply_price: int

    @property
    def profit_usd(self) -> float:
        """Estimated profit (collateral units) valued at the collateral price."""
        return to_units(self.estimated_profit) * to_units(self.collateral_price)


@dataclass(frozen=True)
class EventLog:
    """A decoded protocol event identifying the account it touched."""

    name: str
    market_id: int
    user: str
    block_number: int = 0
    tx_hash: str = ""


@dataclass(frozen=True)
class TxReceipt:
    tx_hash: str
    block_number: int
    gas_used: int
    status: int

    @property
    def succeeded(self) -> bool:
        return self.status == 1


class ExecutionState(enum.Enum):
    """Stages of a single liquidation attempt."""

    EVALUATING = "evaluating"
    GAS_CHECK = "gas_check"
    ESTIMATING = "estimating"
    SUBMITTING = "submitting"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    SKIPPED = "skipped"
