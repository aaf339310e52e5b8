"""Pure parsing functions for lending protocol call results — no I/O."""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from ...models import EventLog, Market, UserPosition

_MARKET_FIELDS = (
    "supplyToken",
    "collateralToken",
    "totalSupplyDeposits",
    "totalBorrows",
    "totalCollateralDeposits",
    "collateralFactor",
    "liquidationThreshold",
    "liquidationBonus",
    "supplyOracle",
    "collateralOracle",
    "isActive",
    "cumulativeBorrowIndex",
)

_POSITION_FIELDS = (
    "supplyDeposited",
    "collateralDeposited",
    "borrowedAmount",
    "ctokenBalance",
    "borrowIndex",
)


def as_record(raw: Any, fields: Sequence[str]) -> dict[str, Any]:
    """Turn a struct return value into a dict keyed by Solidity field name.

    web3 hands back structs either as positional tuples or, with
    ``decode_tuples``, as named tuples; mappings pass through unchanged.
    """
    if isinstance(raw, Mapping):
        return {name: raw[name] for name in fields}
    if hasattr(raw, "_asdict"):
        return {name: raw._asdict()[name] for name in fields}
    if isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)):
        if len(raw) != len(fields):
            raise ValueError(
                f"Expected {len(fields)} struct fields, got {len(raw)}"
            )
        return dict(zip(fields, raw))
    raise TypeError(f"Unsupported struct value: {type(raw).__name__}")


def parse_market(market_id: int, raw: Any) -> Market:
    rec = as_record(raw, _MARKET_FIELDS)
    return Market(
        market_id=int(market_id),
        supply_token=str(rec["supplyToken"]),
        collateral_token=str(rec["collateralToken"]),
        total_supply_deposits=int(rec["totalSupplyDeposits"]),
        total_borrows=int(rec["totalBorrows"]),
        total_collateral_deposits=int(rec["totalCollateralDeposits"]),
        collateral_factor=int(rec["collateralFactor"]),
        liquidation_threshold=int(rec["liquidationThreshold"]),
        liquidation_bonus=int(rec["liquidationBonus"]),
        supply_oracle=str(rec["supplyOracle"]),
        collateral_oracle=str(rec["collateralOracle"]),
        is_active=bool(rec["isActive"]),
        cumulative_borrow_index=int(rec["cumulativeBorrowIndex"]),
    )


def parse_position(market_id: int, user: str, raw: Any) -> UserPosition:
    rec = as_record(raw, _POSITION_FIELDS)
    return UserPosition(
        user=user,
        market_id=int(market_id),
        supply_deposited=int(rec["supplyDeposited"]),
        collateral_deposited=int(rec["collateralDeposited"]),
        borrowed_amount=int(rec["borrowedAmount"]),
        ctoken_balance=int(rec["ctokenBalance"]),
        borrow_index=int(rec["borrowIndex"]),
    )


def _hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value) if value is not None else ""


def parse_event(raw_log: Mapping[str, Any]) -> EventLog:
    """Build an EventLog from a decoded web3 log entry.

    ``Liquidation`` names the affected account ``borrower``; every other
    position event calls it ``user``.
    """
    args = raw_log["args"]
    user = args["borrower"] if "borrower" in args else args["user"]
    return EventLog(
        name=str(raw_log.get("event", "")),
        market_id=int(args["marketId"]),
        user=str(user),
        block_number=int(raw_log.get("blockNumber") or 0),
        tx_hash=_hex(raw_log.get("transactionHash")),
    )
