"""Lending protocol adapter."""
from .adapter import FlashLoanLiquidatorAdapter, LendingProtocolAdapter

__all__ = ["FlashLoanLiquidatorAdapter", "LendingProtocolAdapter"]
