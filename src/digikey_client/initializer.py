from __future__ import annotations

import logging
from typing import Optional

from .client import build_token_store
from .config_loader import ClientSettings, load_settings
from .credentials import Credentials, utcnow
from .errors import AuthError
from .oauth2 import OAuth2Service
from .token_storage import TokenStore

logger = logging.getLogger("digikey-client.init")


def bootstrap_tokens(
    *,
    auth_code: Optional[str] = None,
    settings: Optional[ClientSettings] = None,
    store: Optional[TokenStore] = None,
    oauth: Optional[OAuth2Service] = None,
) -> Credentials:
    """Interactive (or provided code) bootstrap for first token acquisition."""

    settings = settings or load_settings()
    store = store or build_token_store(settings)
    oauth = oauth or OAuth2Service(
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        redirect_uri=settings.redirect_uri,
        base_url=settings.api_base_url,
        timeout=settings.oauth_timeout_seconds,
    )

    if not auth_code:
        print("\n=== DigiKey OAuth Bootstrap ===")
        print("1) Open this URL and authorize the application:")
        print(f"\n{oauth.build_auth_url()}\n")
        auth_code = input("2) Paste the 'code' parameter from the redirect: ").strip()

    if not auth_code:
        raise AuthError("No auth code provided; cannot bootstrap tokens.")

    logger.info("Exchanging authorization code for tokens")
    token = oauth.exchange_code(auth_code)
    if token.is_error:
        raise AuthError(
            f"Failed to exchange authorization code: {token.error} {token.error_description or ''}".strip()
        )

    now = utcnow()
    credentials = Credentials.create(
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        access_token=token.access_token,
        refresh_token=token.refresh_token,
        expires_at=token.expires_at(now),
        refresh_token_expires_at=token.refresh_token_expires_at(now),
    )
    store.persist(credentials)
    logger.info("Tokens stored; access token valid until %s", credentials.expires_at)
    return credentials
