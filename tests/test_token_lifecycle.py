import threading
import time
from datetime import timedelta

import pytest

from conftest import FakeExchange, MemoryStore, new_token
from digikey_client.credentials import Credentials, utcnow
from digikey_client.errors import RefreshTokenInvalidError
from digikey_client.oauth2 import OAuth2AccessToken
from digikey_client.token_lifecycle import TokenLifecycleManager, is_expired


class SlowExchange(FakeExchange):
    def refresh_token(self, refresh_token):
        time.sleep(0.05)
        return super().refresh_token(refresh_token)


def test_is_expired_compares_strictly(valid_credentials):
    expires_at = valid_credentials.expires_at

    assert is_expired(valid_credentials, expires_at) is False
    assert is_expired(valid_credentials, expires_at + timedelta(microseconds=1)) is True
    assert is_expired(valid_credentials, expires_at - timedelta(seconds=1)) is False


def test_refresh_if_needed_is_noop_for_valid_token(valid_credentials):
    exchange = FakeExchange()
    store = MemoryStore()
    manager = TokenLifecycleManager(valid_credentials, exchange, store)

    manager.refresh_if_needed()

    assert exchange.calls == []
    assert store.persisted == []
    assert manager.refresh_count == 0


def test_refresh_if_needed_updates_and_persists(expired_credentials):
    exchange = FakeExchange(new_token(expires_in=1800))
    store = MemoryStore()
    manager = TokenLifecycleManager(expired_credentials, exchange, store)
    before = utcnow()

    manager.refresh_if_needed()

    creds = manager.credentials
    assert exchange.calls == ["old-refresh"]
    assert creds.access_token == "new-access"
    assert creds.refresh_token == "new-refresh"
    assert creds.expires_at >= before + timedelta(seconds=1800)
    assert not creds.is_expired()
    assert store.persisted == [creds.to_dict()]


def test_failed_refresh_leaves_credentials_untouched(expired_credentials):
    snapshot = expired_credentials.snapshot()
    exchange = FakeExchange(OAuth2AccessToken.failed("invalid_grant", "expired"))
    store = MemoryStore()
    manager = TokenLifecycleManager(expired_credentials, exchange, store)

    with pytest.raises(RefreshTokenInvalidError):
        manager.refresh_if_needed()

    assert manager.credentials.snapshot() == snapshot
    assert store.persisted == []


def test_force_refresh_ignores_expiry(valid_credentials):
    exchange = FakeExchange(new_token())
    manager = TokenLifecycleManager(valid_credentials, exchange, MemoryStore())

    manager.force_refresh()

    assert exchange.calls == ["old-refresh"]
    assert manager.credentials.access_token == "new-access"


def test_refresh_keeps_old_refresh_token_when_none_returned(expired_credentials):
    exchange = FakeExchange(new_token(refresh=""))
    manager = TokenLifecycleManager(expired_credentials, exchange, MemoryStore())

    manager.refresh_if_needed()

    assert manager.credentials.access_token == "new-access"
    assert manager.credentials.refresh_token == "old-refresh"


def test_leeway_treats_nearly_expired_token_as_expired():
    credentials = Credentials.create(
        client_id="id",
        client_secret="secret",
        access_token="a",
        refresh_token="r",
        expires_at=utcnow() + timedelta(seconds=30),
    )
    exchange = FakeExchange(new_token())
    manager = TokenLifecycleManager(credentials, exchange, expiry_leeway_seconds=60)

    manager.refresh_if_needed()

    assert exchange.calls == ["r"]


def test_concurrent_refresh_if_needed_runs_one_exchange(expired_credentials):
    exchange = SlowExchange(new_token(), new_token("second", "second"))
    manager = TokenLifecycleManager(expired_credentials, exchange, MemoryStore())
    barrier = threading.Barrier(4)

    def worker():
        barrier.wait()
        manager.refresh_if_needed()

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert exchange.calls == ["old-refresh"]
    assert manager.credentials.access_token == "new-access"
    assert manager.credentials.refresh_token == "new-refresh"


def test_concurrent_force_refresh_for_same_stale_token_collapses(valid_credentials):
    exchange = SlowExchange(new_token(), new_token("second", "second"))
    manager = TokenLifecycleManager(valid_credentials, exchange, MemoryStore())
    barrier = threading.Barrier(3)

    def worker():
        barrier.wait()
        manager.force_refresh(stale_token="old-access")

    threads = [threading.Thread(target=worker) for _ in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(exchange.calls) == 1
    assert manager.credentials.access_token == "new-access"
