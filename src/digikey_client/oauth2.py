"""OAuth2 token exchange against the DigiKey authorization server."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests

from .credentials import utcnow
from .errors import NetworkError

logger = logging.getLogger("digikey-client.oauth2")

PRODUCTION_BASE_URL = "https://api.digikey.com"
SANDBOX_BASE_URL = "https://sandbox-api.digikey.com"
TOKEN_PATH = "/v1/oauth2/token"
AUTHORIZE_PATH = "/v1/oauth2/authorize"

STALE_TOKEN_MARKERS = (
    "bearer token expired",
    "the bearer token is invalid",
)


@dataclass(frozen=True)
class OAuth2AccessToken:
    access_token: str = ""
    refresh_token: str = ""
    expires_in: int = 0
    refresh_token_expires_in: Optional[int] = None
    token_type: str = "Bearer"
    error: Optional[str] = None
    error_description: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return bool(self.error) or not self.access_token

    def expires_at(self, now: Optional[datetime] = None) -> datetime:
        return (now or utcnow()) + timedelta(seconds=int(self.expires_in or 0))

    def refresh_token_expires_at(self, now: Optional[datetime] = None) -> Optional[datetime]:
        if not self.refresh_token_expires_in:
            return None
        return (now or utcnow()) + timedelta(seconds=int(self.refresh_token_expires_in))

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "OAuth2AccessToken":
        return cls(
            access_token=payload.get("access_token") or "",
            refresh_token=payload.get("refresh_token") or "",
            expires_in=int(payload.get("expires_in") or 0),
            refresh_token_expires_in=(
                int(payload["refresh_token_expires_in"])
                if payload.get("refresh_token_expires_in")
                else None
            ),
            token_type=payload.get("token_type") or "Bearer",
            error=payload.get("error"),
            error_description=payload.get("error_description"),
        )

    @classmethod
    def failed(cls, error: str, description: Optional[str] = None) -> "OAuth2AccessToken":
        return cls(error=error, error_description=description)


def is_token_stale(body: str) -> bool:
    """Return True when a 401 body carries the server's stale-token signal.

    DigiKey answers with either a JSON error document or a plain message; the
    check runs on the raw text so both shapes are recognised. Whitespace is
    collapsed because the server has been seen to emit "Bearer token  expired".
    """

    if not body:
        return False
    text = body
    try:
        payload = json.loads(body)
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        parts = [
            str(payload.get(key, ""))
            for key in ("ErrorMessage", "errorMessage", "message", "Message", "detail", "error_description")
        ]
        text = " ".join([body] + parts)
    normalized = re.sub(r"\s+", " ", text).lower()
    return any(marker in normalized for marker in STALE_TOKEN_MARKERS)


class OAuth2Service:
    """Exchanges authorization codes and refresh tokens for access tokens."""

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        redirect_uri: str = "",
        base_url: str = PRODUCTION_BASE_URL,
        timeout: float = 15,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def token_url(self) -> str:
        return f"{self._base_url}{TOKEN_PATH}"

    def build_auth_url(self) -> str:
        query = urlencode(
            {
                "response_type": "code",
                "client_id": self._client_id,
                "redirect_uri": self._redirect_uri,
            }
        )
        return f"{self._base_url}{AUTHORIZE_PATH}?{query}"

    def refresh_token(self, refresh_token: str) -> OAuth2AccessToken:
        if not refresh_token:
            return OAuth2AccessToken.failed("invalid_grant", "no refresh token available")
        return self._request_token(
            {
                "grant_type": "refresh_token",
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "refresh_token": refresh_token,
            }
        )

    def exchange_code(self, code: str) -> OAuth2AccessToken:
        return self._request_token(
            {
                "grant_type": "authorization_code",
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "code": code,
                "redirect_uri": self._redirect_uri,
            }
        )

    def _request_token(self, data: Dict[str, str]) -> OAuth2AccessToken:
        try:
            response = self._session.post(self.token_url, data=data, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.error("Token endpoint unreachable: %s", exc)
            raise NetworkError(f"token endpoint unreachable: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        try:
            response.raise_for_status()
        except requests.HTTPError:
            logger.error("Token request (%s) failed: %s", data["grant_type"], response.text)
            return OAuth2AccessToken.failed(
                payload.get("error") or f"http_{response.status_code}",
                payload.get("error_description") or response.text,
            )

        try:
            token = OAuth2AccessToken.from_payload(payload)
        except (TypeError, ValueError) as exc:
            logger.error("Token endpoint returned a malformed payload: %s", exc)
            return OAuth2AccessToken.failed("invalid_response", str(exc))
        if token.is_error:
            logger.error("Token endpoint returned no access_token: %s", token.error_description)
        return token
