"""EVM JSON-RPC gateway with endpoint fallback."""
from __future__ import annotations

import asyncio
import logging
import ssl
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar
from urllib.parse import urlparse

import aiohttp
import certifi
from eth_account import Account
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError

from ...config import ChainConfig
from ...models import TxReceipt

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _redact(url: str) -> str:
    """Hide API keys embedded in RPC URL paths or query strings."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.hostname}" if parsed.hostname else url


class EvmClient:
    """Async web3 client with automatic endpoint fallback for reads.

    Transactions are signed locally and broadcast through the current
    endpoint only, so a submission is never duplicated across nodes.
    """

    def __init__(
        self,
        config: ChainConfig,
        log_chunk_size: int = 5_000,
        confirmation_timeout: int = 120,
    ) -> None:
        self.endpoints = list(config.rpc_endpoints)
        if not self.endpoints:
            raise ValueError("At least one RPC endpoint is required")
        self.timeout = config.rpc_timeout
        self.current_rpc_index = 0
        self.log_chunk_size = max(1, log_chunk_size)
        self.confirmation_timeout = confirmation_timeout
        self._account = Account.from_key(config.private_key)
        self._web3: dict[int, AsyncWeb3] = {}
        self._sessions: list[aiohttp.ClientSession] = []

    @property
    def address(self) -> str:
        return self._account.address

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    async def _connect(self, rpc_index: int) -> AsyncWeb3:
        """Return (creating on first use) the web3 instance for an endpoint."""
        w3 = self._web3.get(rpc_index)
        if w3 is not None:
            return w3

        rpc_url = self.endpoints[rpc_index]
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        session = aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(ssl=ssl_context)
        )
        self._sessions.append(session)

        provider = AsyncWeb3.AsyncHTTPProvider(
            rpc_url,
            request_kwargs={"timeout": aiohttp.ClientTimeout(total=self.timeout)},
        )
        await provider.cache_async_session(session)
        w3 = AsyncWeb3(provider)
        self._web3[rpc_index] = w3
        logger.debug("Connected web3 provider for %s", _redact(rpc_url))
        return w3

    async def close(self) -> None:
        for session in self._sessions:
            if not session.closed:
                await session.close()
        self._sessions.clear()
        self._web3.clear()

    async def _with_fallback(self, op: Callable[[AsyncWeb3], Awaitable[T]]) -> T:
        """Run a read against each endpoint in turn until one answers."""
        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                w3 = await self._connect(rpc_index)
                result = await asyncio.wait_for(op(w3), timeout=self.timeout)
            except ContractLogicError:
                # Reverts are answers, not endpoint failures.
                raise
            except Exception as e:
                last_error = e
                logger.warning("RPC endpoint %s failed: %s", _redact(rpc_url), e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

            if rpc_index != self.current_rpc_index:
                logger.info("Switched to RPC endpoint: %s", _redact(rpc_url))
                self.current_rpc_index = rpc_index
            return result

        raise RuntimeError(f"All RPC endpoints failed. Last error: {last_error}")

    @staticmethod
    def _contract(w3: AsyncWeb3, address: str, abi: Sequence[dict[str, Any]]) -> Any:
        return w3.eth.contract(address=AsyncWeb3.to_checksum_address(address), abi=abi)

    @staticmethod
    def _checksum_args(args: Sequence[Any]) -> tuple[Any, ...]:
        return tuple(
            AsyncWeb3.to_checksum_address(a)
            if isinstance(a, str) and AsyncWeb3.is_address(a)
            else a
            for a in args
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def block_number(self) -> int:
        return await self._with_fallback(lambda w3: w3.eth.block_number)

    async def get_balance(self, address: str) -> int:
        checksum = AsyncWeb3.to_checksum_address(address)
        return await self._with_fallback(lambda w3: w3.eth.get_balance(checksum))

    async def gas_price(self) -> int:
        return await self._with_fallback(lambda w3: w3.eth.gas_price)

    async def call(
        self, address: str, abi: Sequence[dict[str, Any]], fn_name: str, *args: Any
    ) -> Any:
        """Call a view function and return its decoded result."""
        call_args = self._checksum_args(args)
        return await self._with_fallback(
            lambda w3: getattr(self._contract(w3, address, abi).functions, fn_name)(
                *call_args
            ).call()
        )

    async def estimate_gas(
        self, address: str, abi: Sequence[dict[str, Any]], fn_name: str, *args: Any
    ) -> int:
        call_args = self._checksum_args(args)
        return await self._with_fallback(
            lambda w3: getattr(self._contract(w3, address, abi).functions, fn_name)(
                *call_args
            ).estimate_gas({"from": self.address})
        )

    async def get_events(
        self,
        address: str,
        abi: Sequence[dict[str, Any]],
        event_name: str,
        from_block: int,
        to_block: int,
    ) -> list[dict[str, Any]]:
        """Fetch decoded logs for one event type, in chunks of ``log_chunk_size`` blocks."""
        events: list[dict[str, Any]] = []
        start = max(0, from_block)

        while start <= to_block:
            end = min(start + self.log_chunk_size - 1, to_block)
            chunk = await self._with_fallback(
                lambda w3, s=start, e=end: getattr(
                    self._contract(w3, address, abi).events, event_name
                )().get_logs(from_block=s, to_block=e)
            )
            events.extend(chunk)
            start = end + 1

        return events

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def send_transaction(
        self,
        address: str,
        abi: Sequence[dict[str, Any]],
        fn_name: str,
        *args: Any,
        gas_limit: int,
        gas_price: int | None = None,
    ) -> str:
        """Build, sign and broadcast a contract call; return the tx hash.

        ``gas_price`` is signed as given; only when omitted is the node's
        current quote used.
        """
        w3 = await self._connect(self.current_rpc_index)
        fn = getattr(self._contract(w3, address, abi).functions, fn_name)(
            *self._checksum_args(args)
        )

        nonce, chain_id = await asyncio.wait_for(
            asyncio.gather(
                w3.eth.get_transaction_count(self.address, "pending"),
                w3.eth.chain_id,
            ),
            timeout=self.timeout,
        )
        if gas_price is None:
            gas_price = await asyncio.wait_for(w3.eth.gas_price, timeout=self.timeout)
        tx = await asyncio.wait_for(
            fn.build_transaction(
                {
                    "from": self.address,
                    "nonce": nonce,
                    "gas": gas_limit,
                    "gasPrice": gas_price,
                    "chainId": chain_id,
                }
            ),
            timeout=self.timeout,
        )
        signed = self._account.sign_transaction(tx)
        tx_hash = await asyncio.wait_for(
            w3.eth.send_raw_transaction(signed.raw_transaction), timeout=self.timeout
        )
        return AsyncWeb3.to_hex(tx_hash)

    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        """Block until the transaction is mined or the confirmation timeout passes."""
        w3 = await self._connect(self.current_rpc_index)
        receipt = await w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self.confirmation_timeout
        )
        return TxReceipt(
            tx_hash=tx_hash,
            block_number=int(receipt["blockNumber"]),
            gas_used=int(receipt["gasUsed"]),
            status=int(receipt["status"]),
        )
