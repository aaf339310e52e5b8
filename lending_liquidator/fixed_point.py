"""Fixed-point helpers for ray / wad / basis-point arithmetic — no I/O.

All on-chain quantities are Python ints; floats appear only in ``to_units``.
"""
from __future__ import annotations

RAY = 10**27
WAD = 10**18
WAD_DECIMALS = 18
BASIS_POINTS = 10_000
DEFAULT_CLOSE_FACTOR_BPS = 5_000
DEFAULT_GAS_BUFFER_PERCENT = 120


def normalize_price(price: int, decimals: int) -> int:
    """Scale an oracle answer with ``decimals`` places to 18 decimals.

    Examples:
        normalize_price(2000_00000000, 8) → 2000 * 10**18
        normalize_price(10**18, 18) → 10**18
    """
    price = int(price)
    decimals = int(decimals)
    if decimals < WAD_DECIMALS:
        return price * 10 ** (WAD_DECIMALS - decimals)
    if decimals > WAD_DECIMALS:
        return price // 10 ** (decimals - WAD_DECIMALS)
    return price


def is_liquidatable(health_factor: int) -> bool:
    """A position is liquidatable strictly below a health factor of 1.0 (ray)."""
    return health_factor < RAY


def max_repay_amount(
    borrowed_amount: int, close_factor_bps: int = DEFAULT_CLOSE_FACTOR_BPS
) -> int:
    """Largest debt amount repayable in one liquidation call."""
    return borrowed_amount * close_factor_bps // BASIS_POINTS


def estimate_profit(
    repay_amount: int,
    supply_price: int,
    collateral_price: int,
    liquidation_bonus_bps: int,
) -> tuple[int, int, int]:
    """Estimate the collateral gained by repaying ``repay_amount`` of debt.

    Returns ``(repay_value_in_collateral, collateral_seized, gross_profit)``,
    all in collateral-token units. ``gross_profit`` can be negative when the
    bonus is below 100%.
    """
    if collateral_price <= 0:
        raise ValueError(f"Invalid collateral price: {collateral_price}")
    repay_value_in_collateral = repay_amount * supply_price // collateral_price
    collateral_seized = repay_value_in_collateral * liquidation_bonus_bps // BASIS_POINTS
    return (
        repay_value_in_collateral,
        collateral_seized,
        collateral_seized - repay_value_in_collateral,
    )


def apply_gas_buffer(
    gas_estimate: int, buffer_percent: int = DEFAULT_GAS_BUFFER_PERCENT
) -> int:
    return gas_estimate * buffer_percent // 100


def to_units(amount: int, decimals: int = WAD_DECIMALS) -> float:
    """Convert a raw fixed-point amount to a float, for display only."""
    return amount / 10**decimals
