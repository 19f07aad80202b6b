"""
Minimal JSON-RPC client for EVM networks.

Covers what quoting and execution need: balances, nonces, gas price,
``eth_call``, raw transaction submission, receipts and ERC-20 allowance.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Dict, List, Optional

import httpx
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import keccak, to_checksum_address

from ...config import settings
from ..chains import Network

logger = logging.getLogger(__name__)


def function_selector(signature: str) -> bytes:
    return keccak(text=signature)[:4]


ERC20_ALLOWANCE = function_selector("allowance(address,address)")
ERC20_BALANCE_OF = function_selector("balanceOf(address)")
ERC20_APPROVE = function_selector("approve(address,uint256)")


class RPCError(Exception):
    """Node rejected the call or could not be reached."""

    def __init__(self, message: str, *, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.code = code
        self.data = data


class ChainClient:
    """JSON-RPC access to one network."""

    def __init__(
        self,
        network: Network,
        *,
        rpc_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.network = network
        self.rpc_url = rpc_url or network.rpc_url
        self.timeout_s = timeout_s or settings.rpc_timeout_seconds
        self._transport = transport
        self._ids = itertools.count(1)

    async def _rpc_call(self, method: str, params: List[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                response = await client.post(self.rpc_url, json=payload)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as exc:
            raise RPCError(f"{method} failed on {self.network.name}: {exc}") from exc
        except ValueError as exc:
            # Gateways answer with HTML error pages under a 200
            raise RPCError(f"{method} on {self.network.name} returned a non-JSON body") from exc

        if not isinstance(body, dict):
            raise RPCError(f"{method} on {self.network.name} returned a malformed reply", data=body)
        if body.get("error"):
            error = body["error"]
            if not isinstance(error, dict):
                raise RPCError(f"RPC error from {self.network.name}: {error}")
            raise RPCError(
                f"RPC error from {self.network.name}: {error.get('message', error)}",
                code=error.get("code"),
                data=error.get("data"),
            )
        return body.get("result")

    async def _rpc_quantity(self, method: str, params: List[Any]) -> int:
        result = await self._rpc_call(method, params)
        try:
            return int(result, 16)
        except (TypeError, ValueError) as exc:
            raise RPCError(f"{method} on {self.network.name} returned {result!r}, not a hex quantity") from exc

    async def get_balance(self, address: str) -> int:
        return await self._rpc_quantity("eth_getBalance", [address, "latest"])

    async def get_nonce(self, address: str) -> int:
        return await self._rpc_quantity("eth_getTransactionCount", [address, "pending"])

    async def gas_price(self) -> int:
        return await self._rpc_quantity("eth_gasPrice", [])

    async def call(self, to: str, data: bytes | str) -> bytes:
        """``eth_call`` against the latest block; returns raw return data."""
        data_hex = data if isinstance(data, str) else "0x" + data.hex()
        result = await self._rpc_call("eth_call", [{"to": to, "data": data_hex}, "latest"])
        try:
            return bytes.fromhex((result or "0x")[2:])
        except (TypeError, ValueError) as exc:
            raise RPCError(f"eth_call on {self.network.name} returned {result!r}") from exc

    async def send_raw_transaction(self, raw_tx: bytes) -> str:
        tx_hash = await self._rpc_call("eth_sendRawTransaction", ["0x" + raw_tx.hex()])
        if not isinstance(tx_hash, str) or not tx_hash.startswith("0x"):
            raise RPCError(f"eth_sendRawTransaction on {self.network.name} returned {tx_hash!r}")
        return tx_hash

    async def get_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """Receipt dict, or None while the transaction is unmined."""
        receipt = await self._rpc_call("eth_getTransactionReceipt", [tx_hash])
        if receipt is not None and not isinstance(receipt, dict):
            raise RPCError(f"Malformed receipt for {tx_hash} on {self.network.name}", data=receipt)
        return receipt

    async def _call_uint256(self, token: str, data: bytes) -> int:
        raw = await self.call(token, data)
        try:
            (value,) = decode(["uint256"], raw)
        except DecodingError as exc:
            # Empty return data: the address holds no ERC-20 contract
            raise RPCError(f"{token} did not answer as an ERC-20 token on {self.network.name}") from exc
        return value

    async def erc20_allowance(self, token: str, owner: str, spender: str) -> int:
        data = ERC20_ALLOWANCE + encode(
            ["address", "address"],
            [to_checksum_address(owner), to_checksum_address(spender)],
        )
        return await self._call_uint256(token, data)

    async def erc20_balance(self, token: str, owner: str) -> int:
        data = ERC20_BALANCE_OF + encode(["address"], [to_checksum_address(owner)])
        return await self._call_uint256(token, data)


def encode_approve(spender: str, amount: int) -> str:
    return "0x" + (ERC20_APPROVE + encode(["address", "uint256"], [to_checksum_address(spender), amount])).hex()


class ChainClientFactory:
    """Hands out one ``ChainClient`` per network."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._transport = transport
        self._clients: Dict[int, ChainClient] = {}

    def for_network(self, network: Network) -> ChainClient:
        client = self._clients.get(network.network_id)
        if client is None:
            client = ChainClient(network, transport=self._transport)
            self._clients[network.network_id] = client
        return client
