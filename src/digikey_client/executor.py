"""Authenticated request pipeline with single stale-token recovery."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

import requests

from .errors import (
    ApiClientError,
    NetworkError,
    StaleTokenRetryExhaustedError,
)
from .oauth2 import is_token_stale
from .outcome import ApiOutcome, Failure
from .token_lifecycle import TokenLifecycleManager
from .translator import translate

logger = logging.getLogger("digikey-client.executor")

CLIENT_ID_HEADER = "X-DIGIKEY-Client-Id"
RETRY_HEADER = "Api-StaleTokenRetry"
DEFAULT_TIMEOUT = 30


@dataclass(frozen=True)
class RequestContext:
    resource_path: str
    http_method: str = "GET"
    body: Any = None
    params: Optional[Dict[str, Any]] = None
    is_retry_attempt: bool = False

    def as_retry(self) -> "RequestContext":
        if self.is_retry_attempt:
            raise ValueError("a logical call may only be retried once")
        return replace(self, is_retry_attempt=True)


class RequestExecutor:
    """Sends one logical API call, keeping the access token usable.

    Before the first attempt the token is refreshed when expired. A 401 whose
    body carries the stale-token signal triggers one forced refresh and one
    retry; a second stale rejection ends the call. Headers are built per
    request, so concurrent calls never see each other's retry state.
    """

    def __init__(
        self,
        lifecycle: TokenLifecycleManager,
        *,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        extra_headers: Optional[Dict[str, str]] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self._lifecycle = lifecycle
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout
        self._extra_headers = dict(extra_headers or {})
        self._log = log or logger

    def build_headers(
        self, context: RequestContext, access_token: Optional[str] = None
    ) -> Dict[str, str]:
        credentials = self._lifecycle.credentials
        if access_token is None:
            access_token = credentials.access_token
        headers = {
            "Authorization": f"Bearer {access_token}",
            CLIENT_ID_HEADER: credentials.client_id,
            "Accept": "application/json",
        }
        headers.update(self._extra_headers)
        if context.is_retry_attempt:
            headers[RETRY_HEADER] = RETRY_HEADER
        return headers

    def execute(self, context: RequestContext) -> ApiOutcome:
        extra = {
            "method": context.http_method,
            "path": context.resource_path,
            "retry": context.is_retry_attempt,
        }

        if not context.is_retry_attempt:
            try:
                self._lifecycle.refresh_if_needed()
            except ApiClientError as exc:
                self._log.error(
                    "Aborting %s %s before sending: %s",
                    context.http_method,
                    context.resource_path,
                    exc,
                    extra={**extra, "error_kind": exc.kind},
                )
                return Failure(exc)

        # The rejected token must be the one that was sent, not a later read.
        sent_token = self._lifecycle.credentials.snapshot().access_token
        headers = self.build_headers(context, sent_token)
        try:
            response = self._send(context, headers)
        except NetworkError as exc:
            self._log.error(
                "Transport failure: %s", exc, extra={**extra, "error_kind": exc.kind}
            )
            return Failure(exc)

        if response.status_code == requests.codes.unauthorized and is_token_stale(response.text):
            return self._recover_stale_token(context, sent_token, extra)

        outcome = translate(response)
        if isinstance(outcome, Failure):
            self._log.warning(
                "%s %s failed with HTTP %s",
                context.http_method,
                context.resource_path,
                outcome.http_status,
                extra={**extra, "status": outcome.http_status, "error_kind": outcome.kind},
            )
        return outcome

    def _recover_stale_token(
        self, context: RequestContext, sent_token: str, extra: Dict[str, Any]
    ) -> ApiOutcome:
        if context.is_retry_attempt:
            error = StaleTokenRetryExhaustedError(
                f"{context.http_method} {context.resource_path} was rejected as stale "
                "again right after the access token was refreshed",
                http_status=requests.codes.unauthorized,
            )
            self._log.error("%s", error, extra={**extra, "error_kind": error.kind})
            return Failure(error)

        self._log.info(
            "Stale access token on %s %s; forcing refresh",
            context.http_method,
            context.resource_path,
            extra=extra,
        )
        try:
            self._lifecycle.force_refresh(stale_token=sent_token)
        except ApiClientError as exc:
            self._log.error(
                "Forced refresh failed: %s", exc, extra={**extra, "error_kind": exc.kind}
            )
            return Failure(exc)
        return self.execute(context.as_retry())

    def _send(self, context: RequestContext, headers: Dict[str, str]) -> requests.Response:
        method = context.http_method.upper()
        url = f"{self._base_url}/{context.resource_path.lstrip('/')}"
        headers = dict(headers)
        kwargs: Dict[str, Any] = {"params": context.params, "timeout": self._timeout}
        if method != "GET" and context.body is not None:
            if isinstance(context.body, (str, bytes)):
                headers["Content-Type"] = "application/json"
                kwargs["data"] = context.body
            else:
                kwargs["json"] = context.body
        extra = {"method": method, "path": context.resource_path, "retry": context.is_retry_attempt}

        self._log.debug("> %s %s", method, url, extra=extra)
        try:
            response = self._session.request(method, url, headers=headers, **kwargs)
        except requests.RequestException as exc:
            raise NetworkError(f"{method} {url} failed: {exc}") from exc
        self._log.debug(
            "< %s %s %s", method, url, response.status_code,
            extra={**extra, "status": response.status_code},
        )
        return response
