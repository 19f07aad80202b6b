"""
Swap executor.

Turns a selected quote into a signed, submitted and (ideally) confirmed
transaction from the caller's session wallet. State-changing calls are never
retried; a confirmation that does not arrive in time is reported as pending.
"""

import asyncio
import logging
import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from eth_utils import to_checksum_address

from ...config import Settings, settings as default_settings
from ..chains import ChainRegistry, Network, get_chain_registry
from ..errors import (
    ApprovalRequiredError,
    InsufficientGasError,
    QuoteExpiredError,
    QuoteProviderError,
    SubmissionFailedError,
    UnsupportedError,
    UpstreamUnavailableError,
)
from ..swap.aggregator import QuoteAggregator
from ..swap.constants import DEFAULT_SLIPPAGE, MAX_UINT256, MIN_GAS_RESERVE_WEI, NATIVE_PLACEHOLDER
from ..swap.models import Quote, Savings, SlippageLike, TransactionRequest
from ..wallet.models import Session
from ..wallet.session_manager import SessionManager
from .models import ExecutionResult, ExecutionStatus
from .rpc import ChainClient, ChainClientFactory, RPCError, encode_approve

logger = logging.getLogger(__name__)

WEI_PER_NATIVE = Decimal(10**18)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SwapExecutor:
    """
    Executes swaps on behalf of session wallets.

    Order of checks for every swap:
    1. Session resolves and is bound to the requested network
    2. Native balance covers the gas reserve
    3. Quote is still valid
    4. Venue builds the call; ERC-20 allowance covers the sell amount
    5. Sign inside the session manager, submit, poll for the receipt
    """

    def __init__(
        self,
        sessions: SessionManager,
        aggregator: QuoteAggregator,
        *,
        chains: Optional[ChainRegistry] = None,
        clients: Optional[ChainClientFactory] = None,
        config: Optional[Settings] = None,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        config = config or default_settings
        self.sessions = sessions
        self.aggregator = aggregator
        self.chains = chains or get_chain_registry()
        self.clients = clients or ChainClientFactory()
        self.allow_venue_substitution = config.allow_venue_substitution
        self.confirmation_timeout_s = config.confirmation_timeout_seconds
        self.poll_interval_s = config.confirmation_poll_seconds
        self._clock = clock
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def execute(
        self,
        bearer_token: str,
        network_id: int,
        sell_asset: str,
        buy_asset: str,
        sell_amount: int,
        slippage: SlippageLike = DEFAULT_SLIPPAGE,
    ) -> ExecutionResult:
        """Quote across venues and execute the selected quote."""
        session = self.sessions.require_session(bearer_token)
        network = self._network_for(session, network_id)
        client = self.clients.for_network(network)
        await self._check_gas_reserve(client, network, session.wallet_address)

        result = await self.aggregator.get_best_quote(
            network_id,
            sell_asset,
            buy_asset,
            sell_amount,
            slippage,
            recipient=session.wallet_address,
        )
        return await self._execute_selected(
            session,
            network,
            client,
            result.best_quote,
            result.savings,
            alternatives=result.all_quotes,
        )

    async def execute_quote(
        self,
        bearer_token: str,
        quote: Quote,
        savings: Optional[Savings] = None,
    ) -> ExecutionResult:
        """Execute a quote the caller already holds."""
        session = self.sessions.require_session(bearer_token)
        network = self._network_for(session, quote.network_id)
        client = self.clients.for_network(network)
        await self._check_gas_reserve(client, network, session.wallet_address)
        return await self._execute_selected(session, network, client, quote, savings)

    async def approve(
        self,
        bearer_token: str,
        network_id: int,
        token: str,
        spender: str,
        amount: int = MAX_UINT256,
    ) -> ExecutionResult:
        """Submit an ERC-20 ``approve`` from the session wallet."""
        session = self.sessions.require_session(bearer_token)
        network = self._network_for(session, network_id)
        if token.lower() == NATIVE_PLACEHOLDER.lower():
            raise UnsupportedError("The native unit does not need approval", details={"token": token})
        client = self.clients.for_network(network)
        await self._check_gas_reserve(client, network, session.wallet_address)

        request = TransactionRequest(
            to=to_checksum_address(token),
            data=encode_approve(spender, amount),
            value=0,
            gas=min(network.gas_limit, 100_000),
        )
        result = await self._submit_and_confirm(session, network, client, request)
        result.extra = {"token": to_checksum_address(token), "spender": to_checksum_address(spender), "amount": str(amount)}
        return result

    async def wallet_balances(self, bearer_token: str) -> Dict[str, Any]:
        """Native and listed ERC-20 balances on each of the session wallet's networks."""
        session = self.sessions.require_session(bearer_token)
        networks = [self.chains.get_network_config(nid) for nid in session.network_ids if self.chains.has_network(nid)]
        results = await asyncio.gather(
            *(self._network_balances(n, session.wallet_address) for n in networks),
            return_exceptions=True,
        )

        balances: List[Dict[str, Any]] = []
        for network, result in zip(networks, results):
            if isinstance(result, RPCError):
                logger.warning("Balance lookup failed on %s: %s", network.name, result)
                continue
            if isinstance(result, BaseException):
                raise result
            balances.append(result)
        return {"wallet_address": session.wallet_address, "balances": balances}

    async def check_allowance(
        self,
        bearer_token: str,
        network_id: int,
        token: str,
        spender: Optional[str] = None,
        amount: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Read the session wallet's ERC-20 allowance for ``spender``.

        The spender defaults to the network's V2 router. Without ``amount``
        any zero allowance needs approval.
        """
        session = self.sessions.require_session(bearer_token)
        network = self._network_for(session, network_id)
        if token.lower() == NATIVE_PLACEHOLDER.lower():
            raise UnsupportedError("The native unit does not need approval", details={"token": token})
        spender = spender or network.v2_router
        if not spender:
            raise UnsupportedError(
                f"No default spender on {network.name}; name one explicitly",
                details={"network_id": network_id},
            )

        client = self.clients.for_network(network)
        try:
            allowance = await client.erc20_allowance(token, session.wallet_address, spender)
        except RPCError as exc:
            raise UpstreamUnavailableError(
                f"Could not read token allowance on {network.name}: {exc}",
                details={"network_id": network_id, "token": token},
            ) from exc

        needs_approval = allowance < amount if amount is not None else allowance == 0
        return {
            "network_id": network.network_id,
            "network_name": network.name,
            "token": to_checksum_address(token),
            "owner": session.wallet_address,
            "spender": to_checksum_address(spender),
            "allowance": str(allowance),
            "needs_approval": needs_approval,
        }

    async def _network_balances(self, network: Network, address: str) -> Dict[str, Any]:
        client = self.clients.for_network(network)
        native = await client.get_balance(address)

        tokens = list(network.tokens.values())
        results = await asyncio.gather(
            *(client.erc20_balance(t.address, address) for t in tokens),
            return_exceptions=True,
        )
        token_balances: List[Dict[str, Any]] = []
        for token, result in zip(tokens, results):
            if isinstance(result, RPCError):
                logger.info("%s balance lookup failed on %s: %s", token.symbol, network.name, result)
                continue
            if isinstance(result, BaseException):
                raise result
            token_balances.append(
                {
                    "symbol": token.symbol,
                    "address": token.address,
                    "decimals": token.decimals,
                    "balance_raw": str(result),
                    "balance": str(Decimal(result) / Decimal(10**token.decimals)),
                }
            )

        return {
            "network_id": network.network_id,
            "network_name": network.name,
            "native_symbol": network.native_symbol,
            "balance_wei": str(native),
            "balance": str(Decimal(native) / WEI_PER_NATIVE),
            "has_gas_reserve": native >= MIN_GAS_RESERVE_WEI,
            "tokens": token_balances,
        }

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _network_for(self, session: Session, network_id: int) -> Network:
        if network_id not in session.network_ids:
            raise UnsupportedError(
                f"Wallet is not enabled for network {network_id}",
                details={"network_id": network_id, "wallet_networks": list(session.network_ids)},
            )
        return self.chains.get_network_config(network_id)

    async def _check_gas_reserve(self, client: ChainClient, network: Network, address: str) -> None:
        try:
            balance = await client.get_balance(address)
        except RPCError as exc:
            raise SubmissionFailedError(f"Could not read balance on {network.name}: {exc}") from exc
        if balance < MIN_GAS_RESERVE_WEI:
            raise InsufficientGasError(
                f"Wallet holds {Decimal(balance) / WEI_PER_NATIVE} {network.native_symbol}; "
                f"at least {Decimal(MIN_GAS_RESERVE_WEI) / WEI_PER_NATIVE} is required for gas",
                balance_wei=balance,
                required_wei=MIN_GAS_RESERVE_WEI,
                native_symbol=network.native_symbol,
            )

    async def _check_allowance(
        self,
        client: ChainClient,
        quote: Quote,
        owner: str,
        request: TransactionRequest,
    ) -> None:
        if not request.allowance_target or quote.sell_asset.lower() == NATIVE_PLACEHOLDER.lower():
            return
        try:
            allowance = await client.erc20_allowance(quote.sell_asset, owner, request.allowance_target)
        except RPCError as exc:
            raise SubmissionFailedError(f"Could not read token allowance: {exc}") from exc
        if allowance < quote.sell_amount:
            raise ApprovalRequiredError(
                f"Allowance for {request.allowance_target} is below the sell amount",
                details={
                    "token": quote.sell_asset,
                    "spender": request.allowance_target,
                    "required": str(quote.sell_amount),
                    "current": str(allowance),
                },
            )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _execute_selected(
        self,
        session: Session,
        network: Network,
        client: ChainClient,
        quote: Quote,
        savings: Optional[Savings],
        alternatives: Sequence[Quote] = (),
    ) -> ExecutionResult:
        if quote.is_expired(self._clock()):
            raise QuoteExpiredError(
                f"Quote from {quote.venue_id} expired at {quote.valid_until.isoformat()}",
                details={"venue": quote.venue_id, "valid_until": quote.valid_until.isoformat()},
            )

        used_quote, request = await self._build_transaction(quote, session.wallet_address, alternatives)
        await self._check_allowance(client, used_quote, session.wallet_address, request)

        result = await self._submit_and_confirm(session, network, client, request)
        result.quote = used_quote
        result.savings = savings
        if used_quote is not quote:
            result.extra = {"substituted_for": quote.venue_id}
        return result

    async def _build_transaction(
        self,
        quote: Quote,
        sender: str,
        alternatives: Sequence[Quote],
    ) -> Tuple[Quote, TransactionRequest]:
        try:
            provider = self.aggregator.venues.get(quote.venue_id)
            return quote, await provider.build_swap_transaction(quote, sender)
        except QuoteProviderError as exc:
            if not self.allow_venue_substitution:
                raise SubmissionFailedError(
                    f"{quote.venue_id} could not build the swap: {exc.message}",
                    details={"venue": quote.venue_id},
                ) from exc
            first_error = exc

        now = self._clock()
        for candidate in alternatives:
            if candidate.venue_id == quote.venue_id or candidate.is_expired(now):
                continue
            try:
                provider = self.aggregator.venues.get(candidate.venue_id)
                request = await provider.build_swap_transaction(candidate, sender)
            except QuoteProviderError as exc:
                logger.info("Substitute venue %s could not build: %s", candidate.venue_id, exc.message)
                continue
            logger.warning(
                "Venue substitution: %s failed to build, executing %s quote instead",
                quote.venue_id,
                candidate.venue_id,
            )
            return candidate, request

        raise SubmissionFailedError(
            f"No venue could build the swap: {first_error.message}",
            details={"venue": quote.venue_id},
        ) from first_error

    async def _submit_and_confirm(
        self,
        session: Session,
        network: Network,
        client: ChainClient,
        request: TransactionRequest,
    ) -> ExecutionResult:
        sender = session.wallet_address
        try:
            nonce, gas_price = await asyncio.gather(client.get_nonce(sender), client.gas_price())
        except RPCError as exc:
            raise SubmissionFailedError(f"Could not prepare transaction on {network.name}: {exc}") from exc

        tx = {
            "to": to_checksum_address(request.to),
            "data": request.data,
            "value": request.value,
            "gas": request.gas or network.gas_limit,
            "gasPrice": gas_price or network.gas_price_hint_wei,
            "nonce": nonce,
            "chainId": network.network_id,
        }
        raw_tx = self.sessions.sign_transaction(session, tx)

        try:
            tx_hash = await client.send_raw_transaction(raw_tx)
        except RPCError as exc:
            logger.error("Transaction rejected on %s: %s", network.name, exc)
            raise SubmissionFailedError(
                f"Node rejected the transaction: {exc}",
                details={"network_id": network.network_id, "rpc_code": exc.code},
            ) from exc

        logger.info("Submitted %s on %s from %s", tx_hash, network.name, sender)
        return await self._wait_for_receipt(client, network, sender, tx_hash)

    async def _wait_for_receipt(
        self,
        client: ChainClient,
        network: Network,
        sender: str,
        tx_hash: str,
    ) -> ExecutionResult:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.confirmation_timeout_s
        polls = max(math.ceil(self.confirmation_timeout_s / self.poll_interval_s), 1)
        for attempt in range(polls):
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            try:
                receipt = await asyncio.wait_for(client.get_receipt(tx_hash), remaining)
            except asyncio.TimeoutError:
                logger.debug("Receipt poll %d for %s hit the confirmation deadline", attempt + 1, tx_hash)
                break
            except RPCError as exc:
                logger.debug("Receipt poll %d for %s failed: %s", attempt + 1, tx_hash, exc)
                receipt = None

            if receipt:
                if int(str(receipt.get("status", "0x0")), 16) != 1:
                    raise SubmissionFailedError(
                        f"Transaction {tx_hash} reverted",
                        tx_hash=tx_hash,
                        details={"block": _hex_to_int(receipt.get("blockNumber"))},
                    )
                logger.info("Confirmed %s in block %s", tx_hash, _hex_to_int(receipt.get("blockNumber")))
                return ExecutionResult(
                    status=ExecutionStatus.CONFIRMED,
                    tx_hash=tx_hash,
                    network_id=network.network_id,
                    wallet_address=sender,
                    confirmed_block=_hex_to_int(receipt.get("blockNumber")),
                    gas_used=_hex_to_int(receipt.get("gasUsed")),
                    explorer_url=network.explorer_tx_url(tx_hash),
                )
            await self._sleep(min(self.poll_interval_s, max(deadline - loop.time(), 0)))

        logger.warning("No receipt for %s after %.0fs; reporting pending", tx_hash, self.confirmation_timeout_s)
        return ExecutionResult(
            status=ExecutionStatus.PENDING,
            tx_hash=tx_hash,
            network_id=network.network_id,
            wallet_address=sender,
            explorer_url=network.explorer_tx_url(tx_hash),
        )


def _hex_to_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    return int(str(value), 16)
