import pytest
from firebase_admin import auth as firebase_auth

from app.config.database import USERS
from app.dependencies.auth import bearer_token, cache, evict_user, resolve_actor


@pytest.fixture(autouse=True)
def empty_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def tokens(monkeypatch):
    decoded = {
        "good": {"uid": "u1", "email": "Tech@X.com"},
        "admin": {"uid": "u2", "email": "boss@x.com", "role": "admin"},
        "no-email": {"uid": "u3"},
        "expired": {"uid": "u4", "email": "late@x.com", "exp": 1},
    }
    calls = []

    def verify_id_token(token):
        calls.append(token)
        if token not in decoded:
            raise ValueError("Invalid token")
        return decoded[token]

    monkeypatch.setattr(firebase_auth, "verify_id_token", verify_id_token)
    return calls


def test_bearer_token():
    assert bearer_token("Bearer abc") == "abc"
    assert bearer_token("Basic abc") is None
    assert bearer_token(None) is None


@pytest.mark.asyncio
async def test_role_from_custom_claim(gateway, tokens):
    assert await resolve_actor("admin", gateway) == {"id": "u2", "email": "boss@x.com", "role": "admin"}


@pytest.mark.asyncio
async def test_role_falls_back_to_user_row_then_technician(gateway, tokens):
    assert (await resolve_actor("good", gateway))["role"] == "technician"

    cache.clear()
    await gateway.insert(USERS, {"uid": "u1", "email": "tech@x.com", "role": "manager", "isActive": True})
    actor = await resolve_actor("good", gateway)
    assert actor == {"id": "u1", "email": "tech@x.com", "role": "manager"}


@pytest.mark.asyncio
async def test_verified_tokens_are_cached(gateway, tokens):
    await resolve_actor("good", gateway)
    await resolve_actor("good", gateway)
    assert tokens == ["good"]


@pytest.mark.asyncio
async def test_invalid_sessions_resolve_to_none(gateway, tokens):
    assert await resolve_actor(None, gateway) is None
    assert await resolve_actor("forged", gateway) is None
    assert await resolve_actor("no-email", gateway) is None

    await gateway.insert(USERS, {"uid": "u1", "email": "tech@x.com", "role": "technician", "isActive": False})
    assert await resolve_actor("good", gateway) is None


@pytest.mark.asyncio
async def test_cached_session_of_deactivated_user_is_rejected(gateway, tokens):
    row = await gateway.insert(USERS, {"uid": "u1", "email": "tech@x.com", "role": "technician", "isActive": True})
    assert await resolve_actor("good", gateway) is not None

    await gateway.update(USERS, row["id"], {"uid": "u1", "email": "tech@x.com", "role": "technician", "isActive": False})

    assert await resolve_actor("good", gateway) is None
    assert "good" not in cache


@pytest.mark.asyncio
async def test_cache_entry_does_not_outlive_token_expiry(gateway, tokens):
    await resolve_actor("expired", gateway)
    await resolve_actor("expired", gateway)
    assert tokens == ["expired", "expired"]


@pytest.mark.asyncio
async def test_evict_user_drops_only_their_sessions(gateway, tokens):
    await resolve_actor("good", gateway)
    await resolve_actor("admin", gateway)

    assert evict_user("u1") == 1
    assert "good" not in cache
    assert "admin" in cache
