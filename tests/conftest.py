"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from lending_liquidator.config import (
    BotConfig,
    ChainConfig,
    ExecutorConfig,
    ProtocolConfig,
    ScanConfig,
)
from lending_liquidator.fixed_point import RAY, WAD
from lending_liquidator.models import (
    LiquidationOpportunity,
    Market,
    TxReceipt,
    UserPosition,
)

USER_A = "0x00000000000000000000000000000000000000a1"
USER_B = "0x00000000000000000000000000000000000000b2"
USER_C = "0x00000000000000000000000000000000000000c3"
SUPPLY_ORACLE = "0x5000000000000000000000000000000000000005"
COLLATERAL_ORACLE = "0xc000000000000000000000000000000000000000"
TEST_PRIVATE_KEY = "0x" + "11" * 32

ENV_VARS = (
    "RPC_URL",
    "FALLBACK_RPC_URLS",
    "RPC_TIMEOUT",
    "PRIVATE_KEY",
    "LENDING_PROTOCOL_ADDRESS",
    "FLASH_LOAN_LIQUIDATOR_ADDRESS",
    "BOOTSTRAP_LOOKBACK_BLOCKS",
    "SCAN_INTERVAL_MS",
    "MIN_PROFIT_USD",
    "MAX_ORACLE_AGE_SECONDS",
    "MAX_GAS_PRICE_GWEI",
)


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove bot variables and stop .env files from leaking into the test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("lending_liquidator.config.load_dotenv", lambda *a, **k: False)
    return monkeypatch


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_chain_config() -> ChainConfig:
    return ChainConfig(
        rpc_url="https://rpc1.example.com",
        fallback_rpc_urls=("https://rpc2.example.com",),
        rpc_timeout=5,
        private_key=TEST_PRIVATE_KEY,
    )


@pytest.fixture()
def sample_executor_config() -> ExecutorConfig:
    return ExecutorConfig(
        max_gas_price_gwei=10.0,
        gas_buffer_percent=120,
        flash_loan_gas_limit=500_000,
        confirmation_timeout=30,
    )


@pytest.fixture()
def sample_bot_config(
    sample_chain_config: ChainConfig, sample_executor_config: ExecutorConfig
) -> BotConfig:
    return BotConfig(
        chain=sample_chain_config,
        protocol=ProtocolConfig(address="0x1111111111111111111111111111111111111111"),
        scan=ScanConfig(interval_ms=3_000, min_profit_usd=1.0),
        executor=sample_executor_config,
    )


SAMPLE_YAML = textwrap.dedent("""\
    chain:
      rpc_url: "https://rpc.example.com"
      fallback_rpc_urls: ["https://backup.example.com"]
      rpc_timeout: 10
      private_key: "${TEST_BOT_KEY}"
    protocol:
      address: "0x1111111111111111111111111111111111111111"
      bootstrap_lookback_blocks: 1000
      log_chunk_size: 250
    scan:
      interval_ms: 5000
      min_profit_usd: 2.5
      close_factor_bps: 4000
    executor:
      max_gas_price_gwei: 3
      gas_buffer_percent: 150
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


def make_market(market_id: int = 0, liquidation_bonus: int = 11_000) -> Market:
    return Market(
        market_id=market_id,
        supply_token="0x0000000000000000000000000000000000005001",
        collateral_token="0x000000000000000000000000000000000000c011",
        total_supply_deposits=10_000 * WAD,
        total_borrows=4_000 * WAD,
        total_collateral_deposits=20_000 * WAD,
        collateral_factor=7_500,
        liquidation_threshold=8_000,
        liquidation_bonus=liquidation_bonus,
        supply_oracle=SUPPLY_ORACLE,
        collateral_oracle=COLLATERAL_ORACLE,
        is_active=True,
        cumulative_borrow_index=RAY,
    )


def make_position(
    user: str = USER_A, market_id: int = 0, borrowed: int = 1_000 * WAD
) -> UserPosition:
    return UserPosition(
        user=user,
        market_id=market_id,
        supply_deposited=0,
        collateral_deposited=3_000 * WAD,
        borrowed_amount=borrowed,
        ctoken_balance=0,
        borrow_index=RAY,
    )


@pytest.fixture()
def sample_market() -> Market:
    return make_market()


@pytest.fixture()
def sample_position() -> UserPosition:
    return make_position()


@pytest.fixture()
def sample_opportunity() -> LiquidationOpportunity:
    return LiquidationOpportunity(
        market_id=0,
        borrower=USER_A,
        health_factor=RAY * 9 // 10,
        debt_amount=1_000 * WAD,
        collateral_amount=3_000 * WAD,
        max_repay_amount=500 * WAD,
        estimated_profit=100 * WAD,
        collateral_price=WAD // 2,
        supply_price=WAD,
    )


# ---------------------------------------------------------------------------
# Mocked collaborators
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_protocol(sample_market: Market) -> AsyncMock:
    protocol = AsyncMock()
    protocol.market_count.return_value = 1
    protocol.get_market.return_value = sample_market
    protocol.get_health_factor.return_value = RAY * 9 // 10
    protocol.estimate_liquidation_gas.return_value = 100_000
    protocol.submit_liquidation.return_value = "0xabc"
    protocol.fetch_events.return_value = []
    protocol.subscribe = MagicMock()
    return protocol


@pytest.fixture()
def mock_oracle() -> AsyncMock:
    """Collateral priced at 0.5, supply token at 1.0 (18 decimals)."""
    oracle = AsyncMock()
    prices = {COLLATERAL_ORACLE: WAD // 2, SUPPLY_ORACLE: WAD}
    oracle.get_price.side_effect = lambda address: prices[address]
    return oracle


@pytest.fixture()
def mock_client() -> AsyncMock:
    client = AsyncMock()
    client.address = "0x000000000000000000000000000000000000b07b"
    client.gas_price.return_value = 5 * 10**9
    client.block_number.return_value = 1_000
    client.get_balance.return_value = 2 * WAD
    client.wait_for_receipt.return_value = TxReceipt(
        tx_hash="0xabc", block_number=1_001, gas_used=90_000, status=1
    )
    return client

