"""Settings for the DigiKey client, read from ``DIGIKEY_*`` environment variables.

``load_settings`` builds a fresh instance on every call so that a changed
``.env`` file or environment is picked up without restarting.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError
from .oauth2 import PRODUCTION_BASE_URL, SANDBOX_BASE_URL

DEFAULT_ENV_FILE = ".env"


class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DIGIKEY_",
        env_file=DEFAULT_ENV_FILE,
        case_sensitive=False,
        extra="ignore",
    )

    client_id: str
    client_secret: str
    redirect_uri: str = "https://localhost:8139/digikey_callback"
    sandbox: bool = False
    base_url: Optional[str] = None

    # Bootstrap tokens, used only when no token store holds a token set yet.
    access_token: str = ""
    refresh_token: str = ""
    expires_at: Optional[datetime] = None

    token_file: str = "tokens.json"
    gcp_project_id: Optional[str] = None
    tokens_secret_name: Optional[str] = None

    request_timeout_seconds: float = 30
    oauth_timeout_seconds: float = 15
    expiry_leeway_seconds: float = 0

    locale_site: Optional[str] = None
    locale_language: Optional[str] = None
    locale_currency: Optional[str] = None

    log_level: str = "INFO"
    log_format: str = "text"

    @property
    def api_base_url(self) -> str:
        if self.base_url:
            return self.base_url.rstrip("/")
        return SANDBOX_BASE_URL if self.sandbox else PRODUCTION_BASE_URL

    def locale_headers(self) -> Dict[str, str]:
        headers = {
            "X-DIGIKEY-Locale-Site": self.locale_site,
            "X-DIGIKEY-Locale-Language": self.locale_language,
            "X-DIGIKEY-Locale-Currency": self.locale_currency,
        }
        return {name: value for name, value in headers.items() if value}


def load_settings(*, env_file: Optional[str] = DEFAULT_ENV_FILE, **overrides) -> ClientSettings:
    """Build a new ClientSettings instance, raising ConfigurationError on gaps."""

    try:
        return ClientSettings(_env_file=env_file, **overrides)
    except ValidationError as exc:
        missing = ", ".join(
            "DIGIKEY_" + str(err["loc"][0]).upper() for err in exc.errors() if err.get("loc")
        )
        raise ConfigurationError(f"Invalid or missing settings: {missing}") from exc
