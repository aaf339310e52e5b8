"""Minimal JSON ABIs for the lending protocol, its oracles and the flash-loan liquidator."""
from __future__ import annotations

from typing import Any


def _uint(name: str, bits: int = 256) -> dict[str, str]:
    return {"internalType": f"uint{bits}", "name": name, "type": f"uint{bits}"}


def _address(name: str) -> dict[str, str]:
    return {"internalType": "address", "name": name, "type": "address"}


def _indexed(arg: dict[str, str]) -> dict[str, Any]:
    return {**arg, "indexed": True}


def _plain(arg: dict[str, str]) -> dict[str, Any]:
    return {**arg, "indexed": False}


MARKET_COMPONENTS = [
    _address("supplyToken"),
    _address("collateralToken"),
    _uint("totalSupplyDeposits"),
    _uint("totalBorrows"),
    _uint("totalCollateralDeposits"),
    _uint("collateralFactor"),
    _uint("liquidationThreshold"),
    _uint("liquidationBonus"),
    _address("supplyOracle"),
    _address("collateralOracle"),
    {"internalType": "bool", "name": "isActive", "type": "bool"},
    _uint("cumulativeBorrowIndex"),
]

POSITION_COMPONENTS = [
    _uint("supplyDeposited"),
    _uint("collateralDeposited"),
    _uint("borrowedAmount"),
    _uint("ctokenBalance"),
    _uint("borrowIndex"),
]

LENDING_PROTOCOL_ABI: list[dict[str, Any]] = [
    {
        "inputs": [],
        "name": "marketCount",
        "outputs": [_uint("")],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [_uint("marketId")],
        "name": "getMarket",
        "outputs": [
            {
                "components": MARKET_COMPONENTS,
                "internalType": "struct Market",
                "name": "",
                "type": "tuple",
            }
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [_uint("marketId"), _address("user")],
        "name": "getPosition",
        "outputs": [
            {
                "components": POSITION_COMPONENTS,
                "internalType": "struct UserPosition",
                "name": "",
                "type": "tuple",
            }
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [_uint("marketId"), _address("user")],
        "name": "getHealthFactor",
        "outputs": [_uint("")],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [_uint("marketId"), _address("borrower"), _uint("repayAmount")],
        "name": "liquidate",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [
            _indexed(_uint("marketId")),
            _indexed(_address("user")),
            _plain(_uint("amount")),
        ],
        "name": "Borrow",
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            _indexed(_uint("marketId")),
            _indexed(_address("user")),
            _plain(_uint("amount")),
        ],
        "name": "Repay",
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            _indexed(_uint("marketId")),
            _indexed(_address("borrower")),
            _indexed(_address("liquidator")),
            _plain(_uint("debtRepaid")),
            _plain(_uint("collateralSeized")),
        ],
        "name": "Liquidation",
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            _indexed(_uint("marketId")),
            _indexed(_address("user")),
            _plain(_uint("amount")),
        ],
        "name": "CollateralWithdrawn",
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            _indexed(_uint("marketId")),
            _indexed(_address("user")),
            _plain(_uint("amount")),
        ],
        "name": "CollateralDeposited",
        "type": "event",
    },
]

ORACLE_ABI: list[dict[str, Any]] = [
    {
        "inputs": [],
        "name": "latestRoundData",
        "outputs": [
            _uint("roundId", 80),
            {"internalType": "int256", "name": "answer", "type": "int256"},
            _uint("startedAt"),
            _uint("updatedAt"),
            _uint("answeredInRound", 80),
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [_uint("", 8)],
        "stateMutability": "view",
        "type": "function",
    },
]

FLASH_LOAN_LIQUIDATOR_ABI: list[dict[str, Any]] = [
    {
        "inputs": [_uint("marketId"), _address("borrower"), _uint("repayAmount")],
        "name": "initiateLiquidation",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

POSITION_EVENTS = (
    "Borrow",
    "Repay",
    "Liquidation",
    "CollateralWithdrawn",
    "CollateralDeposited",
)
