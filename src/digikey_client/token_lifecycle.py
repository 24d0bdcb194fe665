"""Access-token expiry checks and serialised refresh."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Optional, Protocol

from .credentials import Credentials, utcnow
from .errors import RefreshTokenInvalidError, TokenPersistenceError
from .oauth2 import OAuth2AccessToken
from .token_storage import TokenStore

logger = logging.getLogger("digikey-client.token")


class TokenExchange(Protocol):
    def refresh_token(self, refresh_token: str) -> OAuth2AccessToken: ...


def is_expired(credentials: Credentials, now: datetime) -> bool:
    return credentials.expires_at < now


class TokenLifecycleManager:
    """Owns every mutation of a client's credentials.

    Refreshes run under a single lock. A caller that waited on the lock while
    another caller refreshed sees the new token and returns without a second
    exchange.
    """

    def __init__(
        self,
        credentials: Credentials,
        exchange: TokenExchange,
        store: Optional[TokenStore] = None,
        *,
        expiry_leeway_seconds: float = 0,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.credentials = credentials
        self._exchange = exchange
        self._store = store
        self._leeway = timedelta(seconds=expiry_leeway_seconds)
        self._lock = threading.Lock()
        self._log = log or logger
        self.refresh_count = 0

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return is_expired(self.credentials, (now or utcnow()) + self._leeway)

    def refresh_if_needed(self) -> None:
        if not self.is_expired():
            return
        with self._lock:
            if not self.is_expired():
                self._log.debug("Token already refreshed by a concurrent caller")
                return
            self._log.info("Access token expired at %s; refreshing", self.credentials.expires_at)
            self._refresh_locked()

    def force_refresh(self, stale_token: Optional[str] = None) -> None:
        """Refresh regardless of expiry.

        ``stale_token`` is the access token the server just rejected; if it has
        already been replaced the refresh is skipped.
        """

        with self._lock:
            if stale_token is not None and self.credentials.access_token != stale_token:
                self._log.debug("Stale token already replaced by a concurrent refresh")
                return
            self._refresh_locked()

    def _refresh_locked(self) -> None:
        token = self._exchange.refresh_token(self.credentials.refresh_token)
        if token.is_error:
            self._log.warning(
                "Refresh token rejected: %s %s",
                token.error,
                token.error_description or "",
                extra={"error_kind": RefreshTokenInvalidError.kind},
            )
            raise RefreshTokenInvalidError()

        now = utcnow()
        self.credentials.apply_token(
            access_token=token.access_token,
            refresh_token=token.refresh_token or None,
            expires_at=token.expires_at(now),
            refresh_token_expires_at=token.refresh_token_expires_at(now),
        )
        self.refresh_count += 1
        self._log.info("Access token refreshed; new expiry %s", self.credentials.expires_at)
        if self._store is not None:
            try:
                self._store.persist(self.credentials)
            except TokenPersistenceError as exc:
                self._log.error(
                    "Refreshed token kept in memory only: %s",
                    exc,
                    extra={"error_kind": exc.kind},
                )
                raise
