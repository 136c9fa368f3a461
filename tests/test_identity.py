import pytest

from netgains.services import identity_service


@pytest.mark.asyncio
async def test_phone_match(db, alice, bob):
    assert await identity_service.resolve_account(db, phone="+15550002222") == "bob"
    assert await identity_service.resolve_account(db, phone="+15550002222", email="alice@example.com") == "bob"


@pytest.mark.asyncio
async def test_email_when_phone_misses(db, alice, bob):
    assert await identity_service.resolve_account(db, phone="+15559999999", email="alice@example.com") == "alice"
    assert await identity_service.resolve_account(db, email="bob@example.com") == "bob"


@pytest.mark.asyncio
async def test_no_match_is_none(db, alice):
    assert await identity_service.resolve_account(db, phone="+15559999999", email="nobody@example.com") is None
    assert await identity_service.resolve_account(db) is None
    assert await identity_service.resolve_account(db, phone="", email="") is None


@pytest.mark.asyncio
async def test_phone_match_is_exact(db, alice):
    assert await identity_service.resolve_account(db, phone="(555) 000-1111") is None


@pytest.mark.asyncio
async def test_shared_phone_resolves_to_one_account(db, user_factory):
    await user_factory("dup-1", phone="+15550004444", email="shared@example.com")
    await user_factory("dup-2", phone="+15550004444", email="shared@example.com")

    assert await identity_service.resolve_account(db, phone="+15550004444") == "dup-1"
    assert await identity_service.resolve_account(db, email="shared@example.com") == "dup-1"
    assert await identity_service.resolve_accounts(db, ["+15550004444", "+15550005555"]) == {
        "+15550004444": "dup-1",
        "+15550005555": None,
    }
