"""Service modules"""
from .bot import LiquidationBot
from .executor import LiquidationExecutor
from .market_cache import MarketCache
from .position_store import PositionStore
from .scanner import OpportunityScanner

__all__ = [
    "LiquidationBot",
    "LiquidationExecutor",
    "MarketCache",
    "OpportunityScanner",
    "PositionStore",
]
