"""DigiKey product-search API client with OAuth2 token lifecycle handling."""

from .client import ApiClientService
from .config_loader import ClientSettings, load_settings
from .credentials import Credentials
from .errors import (
    ApiClientError,
    ApiError,
    AuthError,
    ConfigurationError,
    NetworkError,
    RefreshTokenInvalidError,
    StaleTokenRetryExhaustedError,
    TokenPersistenceError,
)
from .executor import RequestContext, RequestExecutor
from .initializer import bootstrap_tokens
from .oauth2 import OAuth2AccessToken, OAuth2Service, is_token_stale
from .outcome import ApiOutcome, Failure, Success, unwrap
from .token_lifecycle import TokenLifecycleManager
from .token_storage import CompositeTokenStore, FileTokenStore, GCPSecretTokenStore
from .translator import translate

__all__ = [
    "ApiClientService",
    "ClientSettings",
    "load_settings",
    "Credentials",
    "ApiClientError",
    "ApiError",
    "AuthError",
    "ConfigurationError",
    "NetworkError",
    "RefreshTokenInvalidError",
    "StaleTokenRetryExhaustedError",
    "TokenPersistenceError",
    "RequestContext",
    "RequestExecutor",
    "bootstrap_tokens",
    "OAuth2AccessToken",
    "OAuth2Service",
    "is_token_stale",
    "ApiOutcome",
    "Failure",
    "Success",
    "unwrap",
    "TokenLifecycleManager",
    "CompositeTokenStore",
    "FileTokenStore",
    "GCPSecretTokenStore",
    "translate",
]
