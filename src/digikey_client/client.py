"""High-level DigiKey product-search operations."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional, Sequence
from urllib.parse import quote

import requests

from .config_loader import ClientSettings
from .credentials import Credentials
from .executor import RequestContext, RequestExecutor
from .oauth2 import OAuth2Service
from .outcome import ApiOutcome, Success, unwrap
from .token_lifecycle import TokenLifecycleManager
from .token_storage import CompositeTokenStore, FileTokenStore, GCPSecretTokenStore, TokenStore

logger = logging.getLogger("digikey-client")

PRODUCT_DETAILS_PATH = "/Search/v3/Products/{part_number}"
KEYWORD_SEARCH_PATH = "/Search/v3/Products/Keyword"
BATCH_PRODUCT_DETAILS_PATH = "/BatchSearch/v3/ProductDetails"
DEFAULT_RECORD_COUNT = 25


def build_token_store(settings: ClientSettings) -> TokenStore:
    stores = [FileTokenStore(settings.token_file)]
    if settings.gcp_project_id and settings.tokens_secret_name:
        stores.append(GCPSecretTokenStore(settings.gcp_project_id, settings.tokens_secret_name))
    if len(stores) == 1:
        return stores[0]
    return CompositeTokenStore(*stores)


class ApiClientService:
    """DigiKey Search API client bound to one set of credentials."""

    def __init__(self, executor: RequestExecutor, lifecycle: TokenLifecycleManager) -> None:
        self._executor = executor
        self._lifecycle = lifecycle
        self.last_rate_limit_remaining: Optional[int] = None

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        *,
        store: Optional[TokenStore] = None,
        session: Optional[requests.Session] = None,
    ) -> "ApiClientService":
        store = store or build_token_store(settings)
        saved = store.load()
        if saved:
            credentials = Credentials.from_dict(settings.client_id, settings.client_secret, saved)
        else:
            logger.info("No stored tokens found; using tokens from settings")
            credentials = Credentials.create(
                client_id=settings.client_id,
                client_secret=settings.client_secret,
                access_token=settings.access_token,
                refresh_token=settings.refresh_token,
                expires_at=settings.expires_at,
            )

        session = session or requests.Session()
        oauth = OAuth2Service(
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            redirect_uri=settings.redirect_uri,
            base_url=settings.api_base_url,
            timeout=settings.oauth_timeout_seconds,
            session=session,
        )
        lifecycle = TokenLifecycleManager(
            credentials,
            oauth,
            store,
            expiry_leeway_seconds=settings.expiry_leeway_seconds,
        )
        executor = RequestExecutor(
            lifecycle,
            base_url=settings.api_base_url,
            session=session,
            timeout=settings.request_timeout_seconds,
            extra_headers=settings.locale_headers(),
        )
        return cls(executor, lifecycle)

    @property
    def credentials(self) -> Credentials:
        return self._lifecycle.credentials

    def refresh(self) -> None:
        """Refresh the access token now, whatever its expiry."""

        self._lifecycle.force_refresh()

    def execute(self, context: RequestContext) -> ApiOutcome:
        outcome = self._executor.execute(context)
        if isinstance(outcome, Success):
            self.last_rate_limit_remaining = outcome.rate_limit_remaining
            if outcome.rate_limit_remaining is not None:
                logger.debug("Rate limit remaining: %s", outcome.rate_limit_remaining)
        return outcome

    def product_details(self, part_number: str, includes: Optional[Iterable[str]] = None) -> str:
        params: Dict[str, Any] = {}
        if includes:
            params["includes"] = ",".join(includes)
        context = RequestContext(
            resource_path=PRODUCT_DETAILS_PATH.format(part_number=quote(part_number, safe="")),
            http_method="GET",
            params=params or None,
        )
        return unwrap(self.execute(context))

    def keyword_search(self, keywords: str, record_count: int = DEFAULT_RECORD_COUNT) -> str:
        context = RequestContext(
            resource_path=KEYWORD_SEARCH_PATH,
            http_method="POST",
            body={"Keywords": keywords, "RecordCount": record_count},
        )
        return unwrap(self.execute(context))

    def batch_product_details(
        self, parts: Sequence[str], exclude_marketplace: bool = True
    ) -> str:
        context = RequestContext(
            resource_path=BATCH_PRODUCT_DETAILS_PATH,
            http_method="POST",
            body={"Products": list(parts)},
            params={"excludeMarketPlaceProducts": str(exclude_marketplace).lower()},
        )
        return unwrap(self.execute(context))
