"""Protocol interfaces for the liquidation bot."""
from .chain import ChainGateway
from .price_oracle import PriceOracle
from .protocol_adapter import ProtocolAdapter

__all__ = ["ChainGateway", "PriceOracle", "ProtocolAdapter"]
