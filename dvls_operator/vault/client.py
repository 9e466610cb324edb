"""
HTTP client for the Devolutions Server (DVLS) API.

Wraps httpx.Client. Authenticates with an application key/secret; the
session token is sent as the ``tokenId`` header and refreshed once when the
server answers 401.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from dvls_operator.config import OperatorConfig
from dvls_operator.errors import VaultAuthError, VaultFetchError
from dvls_operator.vault.models import VaultEntry, parse_entry

logger = logging.getLogger(__name__)

TOKEN_HEADER = "tokenId"


class DvlsClient:
    """Synchronous client for DVLS credential entries."""

    def __init__(
        self,
        base_url: str,
        app_key: str,
        app_secret: str,
        *,
        timeout: float = 10.0,
        verify: bool = True,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._app_key = app_key
        self._app_secret = app_secret
        self._token: str | None = None
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            verify=verify,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @classmethod
    def from_config(cls, cfg: OperatorConfig) -> DvlsClient:
        return cls(
            cfg.dvls_base_uri,
            cfg.dvls_app_key,
            cfg.dvls_app_secret,
            timeout=cfg.request_timeout,
            verify=cfg.verify_tls,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> DvlsClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def login(self) -> str:
        """POST /api/v1/login: exchange the app credentials for a session token."""
        try:
            resp = self._client.post(
                "/api/v1/login",
                json={"appKey": self._app_key, "appSecret": self._app_secret},
            )
        except httpx.HTTPError as e:
            raise VaultFetchError(f"DVLS login request failed: {e}") from e

        if resp.status_code in (401, 403):
            raise VaultAuthError(f"DVLS rejected the application credentials (HTTP {resp.status_code})")
        if resp.is_error:
            raise VaultFetchError(f"DVLS login failed: HTTP {resp.status_code}")

        token = _json(resp).get("tokenId")
        if not token:
            raise VaultAuthError("DVLS login response did not contain a token")
        self._token = str(token)
        logger.debug("Authenticated to DVLS at %s", self.base_url)
        return self._token

    def get_entry(self, vault_id: str, entry_id: str) -> VaultEntry:
        """GET /api/v1/vault/{vault_id}/entry/{entry_id}: fetch one credential entry."""
        path = f"/api/v1/vault/{vault_id}/entry/{entry_id}"
        resp = self._authed_get(path)

        if resp.status_code == 404:
            raise VaultFetchError(f"entry {entry_id} not found in vault {vault_id}")
        if resp.is_error:
            raise VaultFetchError(
                f"fetching entry {entry_id} from vault {vault_id} failed: HTTP {resp.status_code}"
            )
        return parse_entry(_json(resp), vault_id=vault_id)

    def _authed_get(self, path: str) -> httpx.Response:
        if self._token is None:
            self.login()
        resp = self._get(path)
        if resp.status_code == 401:
            logger.info("DVLS session expired, re-authenticating")
            self.login()
            resp = self._get(path)
        return resp

    def _get(self, path: str) -> httpx.Response:
        try:
            return self._client.get(path, headers={TOKEN_HEADER: self._token or ""})
        except httpx.HTTPError as e:
            raise VaultFetchError(f"DVLS request {path} failed: {e}") from e


def _json(resp: httpx.Response) -> dict[str, Any]:
    try:
        data = resp.json()
    except ValueError as e:
        raise VaultFetchError(f"DVLS returned a non-JSON body (HTTP {resp.status_code})") from e
    if not isinstance(data, dict):
        raise VaultFetchError("DVLS returned an unexpected JSON document")
    return data
