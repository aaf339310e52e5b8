"""EVM chain gateway."""
from .client import EvmClient
from .events import EventPoller

__all__ = ["EvmClient", "EventPoller"]
