"""Price oracle readers."""
from .chainlink import ChainlinkOracle, StalePriceError

__all__ = ["ChainlinkOracle", "StalePriceError"]
