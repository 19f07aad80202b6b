"""
Tests for the session manager: issue, resolve, revoke, purge, export.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import jwt
import pytest
from eth_account import Account

from dexroute.core.errors import UnauthorizedError, UnsupportedError
from dexroute.core.wallet.models import Scope, SigningMaterial
from dexroute.core.wallet.session_manager import SessionManager

from conftest import BASE, PULSE, SONIC


class FakeClock:
    def __init__(self):
        self.now = datetime.now(timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manager(test_settings, chains, clock):
    return SessionManager(test_settings, chains=chains, clock=clock)


@pytest.mark.asyncio
async def test_create_then_resolve_returns_bound_networks(manager):
    session = await manager.create_session([BASE, PULSE])
    resolved = manager.resolve_session(session.bearer_token)

    assert resolved is not None
    assert resolved.network_ids == (BASE, PULSE)
    assert manager.wallet_for(resolved).network_ids == (BASE, PULSE)
    assert resolved.wallet_address == session.wallet_address


@pytest.mark.asyncio
async def test_default_networks_when_none_given(manager):
    session = await manager.create_session()
    assert session.network_ids == (BASE, PULSE, SONIC)


@pytest.mark.asyncio
async def test_resolve_is_idempotent(manager, clock):
    session = await manager.create_session([BASE])
    first = manager.resolve_session(session.bearer_token)
    clock.advance(minutes=5)
    second = manager.resolve_session(session.bearer_token)

    assert first.session_id == second.session_id == session.session_id
    assert second.last_active_at > first.last_active_at
    assert manager.resolve_session(session.bearer_token) is not None


@pytest.mark.asyncio
async def test_revoke_twice_returns_true_then_false(manager):
    session = await manager.create_session([BASE])

    assert await manager.revoke_session(session.bearer_token) is True
    assert await manager.revoke_session(session.bearer_token) is False
    assert manager.resolve_session(session.bearer_token) is None


@pytest.mark.asyncio
async def test_revocation_wipes_signing_material(manager):
    session = await manager.create_session([BASE])
    wallet = manager.wallet_for(session)
    material = wallet.signing_material

    await manager.revoke_session(session.bearer_token)

    assert material.is_wiped
    with pytest.raises(UnauthorizedError):
        manager.wallet_for(session)


@pytest.mark.asyncio
async def test_idle_session_is_not_retrievable(manager, clock):
    session = await manager.create_session([BASE])
    clock.advance(hours=24, seconds=1)

    assert manager.resolve_session(session.bearer_token) is None


@pytest.mark.asyncio
async def test_revoking_idle_unreaped_session_drops_it(manager, clock):
    session = await manager.create_session([BASE])
    material = manager.wallet_for(session).signing_material
    clock.advance(hours=25)

    assert await manager.revoke_session(session.bearer_token) is False
    assert len(manager) == 0
    assert material.is_wiped


@pytest.mark.asyncio
async def test_unknown_network_rejected_before_key_generation(manager, monkeypatch):
    create = MagicMock(side_effect=AssertionError("key generated"))
    monkeypatch.setattr(Account, "create", create)

    with pytest.raises(UnsupportedError):
        await manager.create_session([BASE, 999999])

    create.assert_not_called()
    assert len(manager) == 0


@pytest.mark.asyncio
async def test_activity_extends_the_inactivity_window(manager, clock):
    session = await manager.create_session([BASE])
    clock.advance(hours=23)
    assert manager.resolve_session(session.bearer_token) is not None
    clock.advance(hours=23)
    assert manager.resolve_session(session.bearer_token) is not None


@pytest.mark.asyncio
async def test_purge_removes_only_idle_sessions(manager, clock):
    stale = await manager.create_session([BASE])
    clock.advance(hours=20)
    fresh = await manager.create_session([BASE])
    clock.advance(hours=5)

    assert await manager.purge_expired() == 1
    assert len(manager) == 1
    assert manager.resolve_session(fresh.bearer_token) is not None
    assert await manager.revoke_session(stale.bearer_token) is False


@pytest.mark.asyncio
@pytest.mark.parametrize("token", ["", "not-a-jwt", "a.b.c"])
async def test_malformed_tokens_resolve_to_none(manager, token):
    assert manager.resolve_session(token) is None


@pytest.mark.asyncio
async def test_token_signed_with_other_secret_is_rejected(manager):
    session = await manager.create_session([BASE])
    payload = jwt.decode(session.bearer_token, options={"verify_signature": False})
    forged = jwt.encode(payload, "another-secret-that-is-long-enough-for-hs256", algorithm="HS256")

    assert manager.resolve_session(forged) is None


@pytest.mark.asyncio
async def test_token_payload_carries_session_claims(manager, test_settings):
    session = await manager.create_session([BASE], user_id="alice")
    payload = jwt.decode(session.bearer_token, test_settings.jwt_secret, algorithms=["HS256"])

    assert payload["sub"] == "alice"
    assert payload["sid"] == session.session_id
    assert payload["type"] == "access"
    assert Scope.WALLET_EXPORT.value not in payload["scopes"]


@pytest.mark.asyncio
async def test_each_session_gets_a_distinct_wallet(manager):
    a = await manager.create_session([BASE], user_id="same-user")
    b = await manager.create_session([BASE], user_id="same-user")

    assert a.bearer_token != b.bearer_token
    assert a.wallet_address != b.wallet_address


@pytest.mark.asyncio
async def test_export_requires_scope(manager):
    plain = await manager.create_session([BASE])
    with pytest.raises(UnauthorizedError):
        manager.export_signing_key(plain.bearer_token)

    exportable = await manager.create_session([BASE], allow_export=True)
    key = manager.export_signing_key(exportable.bearer_token)
    assert Account.from_key(key).address == exportable.wallet_address


@pytest.mark.asyncio
async def test_sign_transaction_recovers_to_wallet(manager):
    session = await manager.create_session([BASE])
    tx = {
        "to": "0x1111111111111111111111111111111111111111",
        "value": 0,
        "gas": 21000,
        "gasPrice": 10**8,
        "nonce": 0,
        "chainId": BASE,
        "data": "0x",
    }
    raw = manager.sign_transaction(session, tx)

    assert Account.recover_transaction(raw) == session.wallet_address


@pytest.mark.asyncio
async def test_active_sessions_ordered_by_recent_activity(manager, clock):
    older = await manager.create_session([BASE])
    clock.advance(minutes=1)
    newer = await manager.create_session([BASE])
    clock.advance(minutes=1)
    manager.resolve_session(older.bearer_token)

    assert [s.session_id for s in manager.active_sessions()] == [older.session_id, newer.session_id]


@pytest.mark.asyncio
async def test_reaper_starts_and_stops(test_settings):
    manager = SessionManager(test_settings)
    async with manager:
        assert manager.reaper_running
    assert not manager.reaper_running


@pytest.mark.asyncio
async def test_reaper_purges_on_interval(test_settings, clock):
    manager = SessionManager(test_settings.model_copy(update={"reaper_interval_seconds": 0.01}), clock=clock)
    session = await manager.create_session([BASE])
    clock.advance(hours=25)

    await manager.start()
    await asyncio.sleep(0.05)
    await manager.stop()

    assert len(manager) == 0
    assert await manager.revoke_session(session.bearer_token) is False


def test_signing_material_never_renders_key():
    material = SigningMaterial(b"\x01" * 32)
    assert "01" not in repr(material)
    assert material != SigningMaterial(b"\x01" * 32)
    material.wipe()
    assert material.is_wiped
