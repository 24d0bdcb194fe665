"""Exception types raised by the DigiKey client."""

from __future__ import annotations

from typing import Optional


class ApiClientError(Exception):
    """Base class for every failure surfaced by the client."""

    kind = "client_error"

    def __init__(self, message: str, *, http_status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.http_status = http_status


class ConfigurationError(ApiClientError):
    kind = "configuration_error"


class NetworkError(ApiClientError):
    """Transport-level failure (connection refused, DNS, timeout)."""

    kind = "network_error"


class AuthError(ApiClientError):
    kind = "auth_error"


class RefreshTokenInvalidError(AuthError):
    """The refresh token was rejected by the token endpoint."""

    kind = "refresh_token_invalid"

    def __init__(self, message: str = "refresh token invalid or expired", **kwargs) -> None:
        super().__init__(message, **kwargs)


class StaleTokenRetryExhaustedError(AuthError):
    """A freshly refreshed token was rejected as stale on the retried call."""

    kind = "stale_token_retry_exhausted"


class ApiError(ApiClientError):
    """Non-success HTTP response. Keeps status, body and reason intact."""

    kind = "api_error"

    def __init__(self, status_code: int, body: str, reason: str = "") -> None:
        message = f"{status_code} {reason}: {body}".strip()
        super().__init__(message, http_status=status_code)
        self.status_code = status_code
        self.body = body
        self.reason = reason


class TokenPersistenceError(ApiClientError):
    """A refreshed token could not be written to its store."""

    kind = "token_persistence_error"
