"""
Server-held wallets and the sessions that grant access to them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Tuple


class Scope(str, Enum):
    """Capabilities carried by a session's bearer token."""
    QUOTE = "quote:read"
    SWAP = "swap:execute"
    WALLET_READ = "wallet:read"
    WALLET_EXPORT = "wallet:export"   # granted only on explicit request


DEFAULT_SCOPES: Tuple[str, ...] = (Scope.QUOTE.value, Scope.SWAP.value, Scope.WALLET_READ.value)


class SessionStatus(str, Enum):
    ACTIVE = "active"
    REVOKED = "revoked"


class SigningMaterial:
    """Private key bytes in a buffer that can be zeroed.

    Never rendered by ``repr``/``str`` and only equal to itself.
    """

    __slots__ = ("_key",)

    def __init__(self, key: bytes):
        self._key = bytearray(key)

    def reveal(self) -> bytes:
        if self.is_wiped:
            raise ValueError("Signing material has been wiped")
        return bytes(self._key)

    def wipe(self) -> None:
        for i in range(len(self._key)):
            self._key[i] = 0
        self._key = bytearray()

    @property
    def is_wiped(self) -> bool:
        return not self._key

    def __repr__(self) -> str:
        return "<SigningMaterial redacted>"

    __str__ = __repr__

    def __reduce__(self):
        raise TypeError("SigningMaterial cannot be serialized")


@dataclass
class WalletRecord:
    address: str
    network_ids: Tuple[int, ...]
    signing_material: SigningMaterial = field(repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"address": self.address, "network_ids": list(self.network_ids)}


@dataclass
class Session:
    """A revocable binding between a user and one server-held wallet."""
    session_id: str
    user_id: str
    wallet_address: str
    network_ids: Tuple[int, ...]
    created_at: datetime
    last_active_at: datetime
    bearer_token: str = field(repr=False)
    scopes: Tuple[str, ...] = DEFAULT_SCOPES
    status: SessionStatus = SessionStatus.ACTIVE

    def has_scope(self, scope: Scope) -> bool:
        return scope.value in self.scopes

    def is_idle(self, now: datetime, ceiling: timedelta) -> bool:
        return now - self.last_active_at > ceiling

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "wallet_address": self.wallet_address,
            "network_ids": list(self.network_ids),
            "created_at": self.created_at.isoformat(),
            "last_active_at": self.last_active_at.isoformat(),
            "scopes": list(self.scopes),
            "status": self.status.value,
        }
