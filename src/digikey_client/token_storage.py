"""Durable storage for refreshed credentials (local file and/or GCP)."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

from google.api_core import exceptions as gcp_exceptions
from google.cloud import secretmanager

from .credentials import Credentials
from .errors import TokenPersistenceError

logger = logging.getLogger("digikey-client.storage")


class TokenStore(Protocol):
    def persist(self, credentials: Credentials) -> None: ...

    def load(self) -> Optional[Dict[str, Any]]: ...


class FileTokenStore:
    """Keeps the token set as a JSON document on local disk."""

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path).expanduser().resolve()

    @property
    def path(self) -> Path:
        return self._path

    def persist(self, credentials: Credentials) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(credentials.to_dict(), indent=2))
        except OSError as exc:
            raise TokenPersistenceError(f"could not write tokens to {self._path}: {exc}") from exc

    def load(self) -> Optional[Dict[str, Any]]:
        if not self._path.exists():
            return None
        try:
            return json.loads(self._path.read_text())
        except json.JSONDecodeError as exc:
            logger.warning("Failed to read tokens from %s: %s", self._path, exc)
            return None


class GCPSecretTokenStore:
    """Stores the token set as the latest version of a Secret Manager secret.

    Every write adds a version and disables the older ones so that readers of
    ``versions/latest`` never pick up a superseded token.
    """

    def __init__(self, project_id: str, secret_name: str, client: Any = None) -> None:
        if not project_id:
            raise ValueError("project_id is required to talk to Secret Manager")
        if client is None:
            client = secretmanager.SecretManagerServiceClient()
        self._project_id = project_id
        self._secret_name = secret_name
        self._client = client

    def _secret_path(self) -> str:
        return self._client.secret_path(self._project_id, self._secret_name)

    def _ensure_secret(self) -> None:
        try:
            self._client.get_secret(name=self._secret_path())
        except gcp_exceptions.NotFound:
            logger.info("Creating secret %s in project %s", self._secret_name, self._project_id)
            self._client.create_secret(
                parent=f"projects/{self._project_id}",
                secret_id=self._secret_name,
                secret=secretmanager.Secret(
                    replication=secretmanager.Replication(
                        automatic=secretmanager.Replication.Automatic()
                    )
                ),
            )

    def persist(self, credentials: Credentials) -> None:
        payload = json.dumps(credentials.to_dict(), indent=2).encode("utf-8")
        try:
            self._ensure_secret()
            response = self._client.add_secret_version(
                parent=self._secret_path(),
                payload=secretmanager.SecretPayload(data=payload),
            )
        except gcp_exceptions.GoogleAPICallError as exc:
            raise TokenPersistenceError(
                f"could not store tokens in secret {self._secret_name}: {exc}"
            ) from exc
        self._disable_prior_versions(keep_version=response.name)

    def _disable_prior_versions(self, keep_version: str) -> None:
        try:
            versions = self._client.list_secret_versions(request={"parent": self._secret_path()})
        except gcp_exceptions.GoogleAPICallError as exc:
            logger.warning("Could not list versions of %s: %s", self._secret_name, exc)
            return

        for version in versions:
            if version.name == keep_version:
                continue
            if version.state == secretmanager.SecretVersion.State.ENABLED:
                try:
                    self._client.disable_secret_version(name=version.name)
                except gcp_exceptions.GoogleAPICallError as exc:
                    logger.warning("Could not disable %s: %s", version.name, exc)

    def load(self) -> Optional[Dict[str, Any]]:
        try:
            response = self._client.access_secret_version(
                name=f"{self._secret_path()}/versions/latest"
            )
        except gcp_exceptions.NotFound:
            return None
        try:
            return json.loads(response.payload.data.decode("utf-8"))
        except json.JSONDecodeError as exc:
            logger.error("Secret %s exists but is not valid JSON: %s", self._secret_name, exc)
            return None


class CompositeTokenStore:
    """Writes to every store; reads from the first one holding a token set."""

    def __init__(self, *stores: TokenStore) -> None:
        self._stores = stores

    def persist(self, credentials: Credentials) -> None:
        for store in self._stores:
            store.persist(credentials)

    def load(self) -> Optional[Dict[str, Any]]:
        for store in self._stores:
            data = store.load()
            if data:
                return data
        return None
