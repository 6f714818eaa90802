import logging
from dataclasses import dataclass
from typing import Any, Sequence

import httpx

from sync_relay.redaction import redact_sensitive_data, redact_sensitive_headers
from sync_relay.settings import RelaySettings

logger = logging.getLogger("sync_relay.provider")


class ProviderError(RuntimeError):
    """The provider could not be reached or answered with an unusable body."""


@dataclass
class ProviderResponse:
    status_code: int
    payload: Any


class ProviderClient:
    """
    Thin async client for the provider's token and resource APIs.

    Resource responses are returned as-is (status and decoded JSON body); the
    only body this client looks inside is the token exchange result.
    """

    def __init__(self, settings: RelaySettings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._http = http_client
        self._base_url = settings.provider_api_base_url.rstrip("/")

    @classmethod
    def create_http_client(
        cls, settings: RelaySettings, transport: httpx.AsyncBaseTransport | None = None
    ) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=settings.provider_timeout_seconds,
            transport=transport,
        )

    def _auth_headers(self, provider_token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {provider_token}",
            self._settings.provider_app_id_header: self._settings.provider_app_token,
        }

    async def exchange_code(self, code: str, redirect_uri: str) -> dict[str, Any]:
        body = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self._settings.provider_app_token,
            "client_secret": self._settings.provider_app_secret,
            "redirect_uri": redirect_uri,
        }
        logger.debug("Exchanging code: %s", redact_sensitive_data(body))
        try:
            response = await self._http.post(
                self._settings.provider_token_url,
                json=body,
                headers={"Content-Type": "application/json"},
            )
            result = response.json()
        except httpx.HTTPError as e:
            raise ProviderError(f"Token exchange request failed: {e}") from e
        except ValueError as e:
            raise ProviderError("Token exchange returned a non-JSON body") from e

        if not isinstance(result, dict):
            raise ProviderError("Token exchange returned an unexpected JSON shape")
        logger.info(
            "Token exchange answered %s: %s",
            response.status_code,
            redact_sensitive_data(result),
        )
        return result

    async def revoke_token(self, provider_token: str) -> ProviderResponse:
        return await self._send("DELETE", "/token", provider_token)

    async def list_accounts(self, provider_token: str) -> ProviderResponse:
        return await self._send("GET", "/accounts", provider_token)

    async def list_transactions(
        self, provider_token: str, query_items: Sequence[tuple[str, str]] = ()
    ) -> ProviderResponse:
        return await self._send("GET", "/transactions", provider_token, params=list(query_items))

    async def _send(
        self,
        method: str,
        path: str,
        provider_token: str,
        params: list[tuple[str, str]] | None = None,
    ) -> ProviderResponse:
        headers = self._auth_headers(provider_token)
        logger.debug(
            "%s %s headers=%s",
            method,
            path,
            redact_sensitive_headers(
                headers, extra_names={self._settings.provider_app_id_header}
            ),
        )
        try:
            response = await self._http.request(
                method,
                f"{self._base_url}{path}",
                headers=headers,
                params=params or None,
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"{method} {path} failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            logger.warning(
                "%s %s returned a non-JSON body (status %s)",
                method,
                path,
                response.status_code,
            )
            payload = None

        logger.info("%s %s -> %s", method, path, response.status_code)
        return ProviderResponse(status_code=response.status_code, payload=payload)
