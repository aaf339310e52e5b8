"""Chain gateway protocol — EVM JSON-RPC abstraction."""
from typing import Any, Protocol, Sequence

from ..models import TxReceipt


class ChainGateway(Protocol):
    """Abstract interface for contract reads, transactions and event queries."""

    @property
    def address(self) -> str: ...

    async def block_number(self) -> int: ...

    async def get_balance(self, address: str) -> int: ...

    async def gas_price(self) -> int: ...

    async def call(
        self, address: str, abi: Sequence[dict[str, Any]], fn_name: str, *args: Any
    ) -> Any: ...

    async def estimate_gas(
        self, address: str, abi: Sequence[dict[str, Any]], fn_name: str, *args: Any
    ) -> int: ...

    async def send_transaction(
        self,
        address: str,
        abi: Sequence[dict[str, Any]],
        fn_name: str,
        *args: Any,
        gas_limit: int,
        gas_price: int | None = None,
    ) -> str: ...

    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt: ...

    async def get_events(
        self,
        address: str,
        abi: Sequence[dict[str, Any]],
        event_name: str,
        from_block: int,
        to_block: int,
    ) -> list[dict[str, Any]]: ...

    async def close(self) -> None: ...
