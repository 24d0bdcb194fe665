"""Shared fakes for the DigiKey client tests."""

from datetime import timedelta

import pytest
import requests

from digikey_client.credentials import Credentials, utcnow
from digikey_client.executor import RequestExecutor
from digikey_client.oauth2 import OAuth2AccessToken
from digikey_client.token_lifecycle import TokenLifecycleManager

BASE_URL = "https://api.example.test"
STALE_BODY = '{"ErrorResponseVersion": "3.0.0", "StatusCode": 401, "ErrorMessage": "Bearer token  expired"}'


def make_response(status, body="", headers=None, reason=None):
    response = requests.Response()
    response.status_code = status
    response._content = body.encode("utf-8") if isinstance(body, str) else body
    response.headers.update(headers or {})
    response.reason = reason or ""
    response.encoding = "utf-8"
    return response


class FakeSession:
    """Stands in for requests.Session; replays queued responses or errors."""

    def __init__(self, *responses):
        self.queue = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        item = self.queue.pop(0)
        if isinstance(item, Exception):
            raise item
        item.url = url
        return item


class FakeExchange:
    def __init__(self, *tokens):
        self.tokens = list(tokens)
        self.calls = []

    def refresh_token(self, refresh_token):
        self.calls.append(refresh_token)
        return self.tokens.pop(0)


class MemoryStore:
    def __init__(self, data=None):
        self.data = data
        self.persisted = []

    def persist(self, credentials):
        self.persisted.append(credentials.to_dict())
        self.data = credentials.to_dict()

    def load(self):
        return self.data


def new_token(access="new-access", refresh="new-refresh", expires_in=1800):
    return OAuth2AccessToken(access_token=access, refresh_token=refresh, expires_in=expires_in)


@pytest.fixture
def valid_credentials():
    return Credentials.create(
        client_id="client-id",
        client_secret="client-secret",
        access_token="old-access",
        refresh_token="old-refresh",
        expires_at=utcnow() + timedelta(hours=1),
    )


@pytest.fixture
def expired_credentials():
    return Credentials.create(
        client_id="client-id",
        client_secret="client-secret",
        access_token="old-access",
        refresh_token="old-refresh",
        expires_at=utcnow() - timedelta(minutes=5),
    )


@pytest.fixture
def build_executor():
    def _build(credentials, session, exchange, store=None):
        lifecycle = TokenLifecycleManager(credentials, exchange, store or MemoryStore())
        executor = RequestExecutor(lifecycle, base_url=BASE_URL, session=session, timeout=5)
        return executor, lifecycle

    return _build
