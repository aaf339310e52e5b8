"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import copy
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChainConfig:
    rpc_url: str = ""
    fallback_rpc_urls: tuple[str, ...] = ()
    rpc_timeout: int = 30
    private_key: str = field(default="", repr=False)

    @property
    def rpc_endpoints(self) -> tuple[str, ...]:
        return tuple(u for u in (self.rpc_url, *self.fallback_rpc_urls) if u)


@dataclass(frozen=True)
class ProtocolConfig:
    address: str = ""
    flash_loan_liquidator_address: str = ""
    bootstrap_lookback_blocks: int = 50_000
    log_chunk_size: int = 5_000
    event_poll_interval_ms: int = 2_000
    event_queue_size: int = 1_000


@dataclass(frozen=True)
class ScanConfig:
    interval_ms: int = 3_000
    min_profit_usd: float = 1.0
    close_factor_bps: int = 5_000
    max_oracle_age_seconds: int = 0


@dataclass(frozen=True)
class ExecutorConfig:
    max_gas_price_gwei: float = 10.0
    gas_buffer_percent: int = 120
    flash_loan_gas_limit: int = 500_000
    confirmation_timeout: int = 120


@dataclass(frozen=True)
class BotConfig:
    chain: ChainConfig = field(default_factory=ChainConfig)
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)


# Environment-only deployments rely on this template; config.yaml values are
# merged on top of it before interpolation.
_ENV_TEMPLATE: dict[str, Any] = {
    "chain": {
        "rpc_url": "${RPC_URL}",
        "fallback_rpc_urls": "${FALLBACK_RPC_URLS:-}",
        "rpc_timeout": "${RPC_TIMEOUT:-30}",
        "private_key": "${PRIVATE_KEY}",
    },
    "protocol": {
        "address": "${LENDING_PROTOCOL_ADDRESS}",
        "flash_loan_liquidator_address": "${FLASH_LOAN_LIQUIDATOR_ADDRESS:-}",
        "bootstrap_lookback_blocks": "${BOOTSTRAP_LOOKBACK_BLOCKS:-50000}",
    },
    "scan": {
        "interval_ms": "${SCAN_INTERVAL_MS:-3000}",
        "min_profit_usd": "${MIN_PROFIT_USD:-1.0}",
        "max_oracle_age_seconds": "${MAX_ORACLE_AGE_SECONDS:-0}",
    },
    "executor": {
        "max_gas_price_gwei": "${MAX_GAS_PRICE_GWEI:-10}",
    },
}

_REQUIRED = (
    ("RPC_URL", lambda c: c.chain.rpc_url),
    ("PRIVATE_KEY", lambda c: c.chain.private_key),
    ("LENDING_PROTOCOL_ADDRESS", lambda c: c.protocol.address),
)

# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} / ${VAR:-default} references with env values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(
            lambda m: os.environ.get(m.group(1)) or (m.group(2) or ""), value
        )
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _as_tuple(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    return tuple(str(v).strip() for v in value if str(v).strip())


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    return ChainConfig(
        rpc_url=str(raw.get("rpc_url", "")).strip(),
        fallback_rpc_urls=_as_tuple(raw.get("fallback_rpc_urls")),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
        private_key=str(raw.get("private_key", "")).strip(),
    )


def _build_protocol(raw: dict[str, Any]) -> ProtocolConfig:
    return ProtocolConfig(
        address=str(raw.get("address", "")).strip(),
        flash_loan_liquidator_address=str(
            raw.get("flash_loan_liquidator_address", "")
        ).strip(),
        bootstrap_lookback_blocks=int(raw.get("bootstrap_lookback_blocks", 50_000)),
        log_chunk_size=int(raw.get("log_chunk_size", 5_000)),
        event_poll_interval_ms=int(raw.get("event_poll_interval_ms", 2_000)),
        event_queue_size=int(raw.get("event_queue_size", 1_000)),
    )


def _build_scan(raw: dict[str, Any]) -> ScanConfig:
    return ScanConfig(
        interval_ms=int(raw.get("interval_ms", 3_000)),
        min_profit_usd=float(raw.get("min_profit_usd", 1.0)),
        close_factor_bps=int(raw.get("close_factor_bps", 5_000)),
        max_oracle_age_seconds=int(raw.get("max_oracle_age_seconds", 0)),
    )


def _build_executor(raw: dict[str, Any]) -> ExecutorConfig:
    return ExecutorConfig(
        max_gas_price_gwei=float(raw.get("max_gas_price_gwei", 10.0)),
        gas_buffer_percent=int(raw.get("gas_buffer_percent", 120)),
        flash_loan_gas_limit=int(raw.get("flash_loan_gas_limit", 500_000)),
        confirmation_timeout=int(raw.get("confirmation_timeout", 120)),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> BotConfig:
    """Load and validate bot configuration from environment + optional YAML.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root when it exists; otherwise only the environment (and
            ``.env``) is consulted.
    """
    load_dotenv()

    raw: dict[str, Any] = {}
    if config_path is None:
        default_path = Path(__file__).resolve().parent.parent / "config.yaml"
        if default_path.exists():
            config_path = default_path
    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(_merge(_ENV_TEMPLATE, raw))

    cfg = BotConfig(
        chain=_build_chain(raw.get("chain", {})),
        protocol=_build_protocol(raw.get("protocol", {})),
        scan=_build_scan(raw.get("scan", {})),
        executor=_build_executor(raw.get("executor", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path or "environment")
    return cfg


def _validate(cfg: BotConfig) -> None:
    """Raise on invalid configuration."""
    missing = [name for name, getter in _REQUIRED if not getter(cfg)]
    if missing:
        raise ValueError(f"Missing required configuration: {', '.join(missing)}")

    if cfg.scan.interval_ms <= 0:
        raise ValueError("scan.interval_ms must be positive")
    if not 0 < cfg.scan.close_factor_bps <= 10_000:
        raise ValueError("scan.close_factor_bps must be within (0, 10000]")
    if cfg.executor.gas_buffer_percent < 100:
        raise ValueError("executor.gas_buffer_percent must be at least 100")
    if cfg.executor.max_gas_price_gwei <= 0:
        raise ValueError("executor.max_gas_price_gwei must be positive")
    if cfg.protocol.bootstrap_lookback_blocks < 0:
        raise ValueError("protocol.bootstrap_lookback_blocks must not be negative")
