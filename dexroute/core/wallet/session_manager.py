"""
Session manager for server-held swap wallets.

Each session owns one freshly generated keypair:
- Creation issues an HS256 bearer token bound to the session
- Resolution validates the token and refreshes the inactivity clock
- Revocation is terminal and zeroes the key
- A background reaper purges sessions idle past the inactivity ceiling

Keys never leave this module except through ``export_signing_key``, which
requires the ``wallet:export`` scope.
"""

import asyncio
import hmac
import logging
import secrets
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

import jwt
from eth_account import Account

from ...config import Settings, settings as default_settings
from ..chains import ChainRegistry, get_chain_registry
from ..errors import KeyGenerationError, UnauthorizedError
from .models import DEFAULT_SCOPES, Scope, Session, SessionStatus, SigningMaterial, WalletRecord

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
TOKEN_TYPE = "access"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Entry:
    __slots__ = ("session", "wallet")

    def __init__(self, session: Session, wallet: WalletRecord):
        self.session = session
        self.wallet = wallet


class SessionManager:
    """
    Owns the session table and the signing keys behind it.

    Usage:
        async with SessionManager() as manager:
            session = await manager.create_session([8453, 369])
            current = manager.resolve_session(session.bearer_token)
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        *,
        chains: Optional[ChainRegistry] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        config = config or default_settings
        self._chains = chains or get_chain_registry()
        self._secret = config.jwt_secret
        self._inactivity = timedelta(hours=config.session_inactivity_hours)
        self._reaper_interval = config.reaper_interval_seconds
        self._default_networks = tuple(config.default_network_ids)
        self._clock = clock

        self._sessions: Dict[str, _Entry] = {}
        self._token_index: Dict[str, str] = {}
        self._lock = asyncio.Lock()
        self._reaper_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self._reaper_task and not self._reaper_task.done():
            return
        self._reaper_task = asyncio.create_task(self._reaper_loop(), name="session-reaper")
        logger.info("Session reaper started (interval=%ss)", self._reaper_interval)

    async def stop(self) -> None:
        if not self._reaper_task:
            return
        self._reaper_task.cancel()
        try:
            await self._reaper_task
        except asyncio.CancelledError:
            pass
        self._reaper_task = None
        logger.info("Session reaper stopped")

    async def __aenter__(self) -> "SessionManager":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    @property
    def reaper_running(self) -> bool:
        return self._reaper_task is not None and not self._reaper_task.done()

    async def _reaper_loop(self) -> None:
        while True:
            await asyncio.sleep(self._reaper_interval)
            try:
                await self.purge_expired()
            except Exception as exc:  # noqa: BLE001
                logger.error("Session purge failed: %s", exc, exc_info=True)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create_session(
        self,
        network_ids: Optional[Iterable[int]] = None,
        *,
        user_id: Optional[str] = None,
        allow_export: bool = False,
    ) -> Session:
        """Generate a wallet bound to ``network_ids`` and issue its token."""
        networks = tuple(dict.fromkeys(network_ids or ())) or self._default_networks
        for network_id in networks:
            # Raises UnsupportedError before any key material exists
            self._chains.get_network_config(network_id)

        try:
            account = Account.create()
            material = SigningMaterial(bytes(account.key))
        except Exception as exc:  # noqa: BLE001
            raise KeyGenerationError(f"Could not generate signing key: {exc}") from exc

        now = self._clock()
        session_id = secrets.token_urlsafe(16)
        user_id = user_id or f"user_{secrets.token_hex(8)}"
        scopes = DEFAULT_SCOPES + ((Scope.WALLET_EXPORT.value,) if allow_export else ())
        token = jwt.encode(
            {
                "sub": user_id,
                "sid": session_id,
                "scopes": list(scopes),
                "iat": int(now.timestamp()),
                "type": TOKEN_TYPE,
            },
            self._secret,
            algorithm=JWT_ALGORITHM,
        )

        session = Session(
            session_id=session_id,
            user_id=user_id,
            wallet_address=account.address,
            network_ids=networks,
            created_at=now,
            last_active_at=now,
            bearer_token=token,
            scopes=scopes,
        )
        wallet = WalletRecord(address=account.address, network_ids=networks, signing_material=material)

        async with self._lock:
            self._sessions[session_id] = _Entry(session, wallet)
            self._token_index[token] = session_id

        logger.info(
            "Created session %s for %s (wallet %s, networks %s)",
            session_id,
            user_id,
            account.address,
            list(networks),
        )
        return replace(session)

    def _lookup(self, token: str) -> Optional[_Entry]:
        if not token:
            return None
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[JWT_ALGORITHM],
                # Liveness comes from the session table, not token timestamps
                options={"verify_iat": False, "require": ["sid", "iat"]},
            )
        except jwt.InvalidTokenError:
            return None
        if payload.get("type") != TOKEN_TYPE:
            return None

        entry = self._sessions.get(payload.get("sid", ""))
        if entry is None or entry.session.status is not SessionStatus.ACTIVE:
            return None
        if not hmac.compare_digest(entry.session.bearer_token, token):
            return None
        if entry.session.is_idle(self._clock(), self._inactivity):
            return None
        return entry

    def resolve_session(self, token: str) -> Optional[Session]:
        """Return the live session for ``token`` or None; never raises.

        A successful resolve counts as activity.
        """
        entry = self._lookup(token)
        if entry is None:
            return None
        entry.session.last_active_at = self._clock()
        return replace(entry.session)

    def require_session(self, token: str) -> Session:
        session = self.resolve_session(token)
        if session is None:
            raise UnauthorizedError("Invalid, expired or revoked session token")
        return session

    def wallet_for(self, session: Session) -> WalletRecord:
        entry = self._sessions.get(session.session_id)
        if entry is None or entry.session.status is not SessionStatus.ACTIVE:
            raise UnauthorizedError("Session is no longer active")
        return entry.wallet

    async def revoke_session(self, token: str) -> bool:
        """Revoke the session behind ``token``; False if it was not active."""
        async with self._lock:
            session_id = self._token_index.get(token)
            entry = self._sessions.get(session_id) if session_id else None
            if entry is None or entry.session.status is not SessionStatus.ACTIVE:
                return False
            if entry.session.is_idle(self._clock(), self._inactivity):
                # Expired but not yet reaped; nothing left to revoke
                self._drop(entry)
                return False
            self._drop(entry)

        logger.info("Revoked session %s for %s", entry.session.session_id, entry.session.user_id)
        return True

    def _drop(self, entry: _Entry) -> None:
        # Caller holds the lock
        entry.session.status = SessionStatus.REVOKED
        entry.wallet.signing_material.wipe()
        self._sessions.pop(entry.session.session_id, None)
        self._token_index.pop(entry.session.bearer_token, None)

    async def purge_expired(self) -> int:
        now = self._clock()
        async with self._lock:
            idle = [e for e in self._sessions.values() if e.session.is_idle(now, self._inactivity)]
            for entry in idle:
                self._drop(entry)
        if idle:
            logger.info("Purged %d idle session(s)", len(idle))
        return len(idle)

    def active_sessions(self) -> List[Session]:
        """Live sessions, most recently active first."""
        now = self._clock()
        live = [
            replace(e.session)
            for e in self._sessions.values()
            if e.session.status is SessionStatus.ACTIVE and not e.session.is_idle(now, self._inactivity)
        ]
        return sorted(live, key=lambda s: s.last_active_at, reverse=True)

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def sign_transaction(self, session: Session, tx: Dict[str, Any]) -> bytes:
        """Sign ``tx`` with the session's key; returns the raw signed bytes."""
        wallet = self.wallet_for(session)
        signed = Account.sign_transaction(tx, wallet.signing_material.reveal())
        return bytes(signed.raw_transaction)

    def export_signing_key(self, token: str) -> str:
        session = self.resolve_session(token)
        if session is None:
            raise UnauthorizedError("Invalid, expired or revoked session token")
        if not session.has_scope(Scope.WALLET_EXPORT):
            raise UnauthorizedError(
                "Session lacks the wallet:export scope",
                details={"required_scope": Scope.WALLET_EXPORT.value},
            )
        logger.warning("Signing key exported for session %s", session.session_id)
        return "0x" + self.wallet_for(session).signing_material.reveal().hex()

    def __len__(self) -> int:
        return len(self._sessions)
