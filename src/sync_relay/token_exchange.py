import base64
import logging
import secrets
from dataclasses import dataclass
from typing import Iterable
from urllib.parse import urlencode

from sync_relay.credential_store import CredentialStore
from sync_relay.provider_client import ProviderClient
from sync_relay.redaction import fingerprint
from sync_relay.settings import RelaySettings

logger = logging.getLogger("sync_relay.exchange")

LOCAL_CREDENTIAL_BYTES = 120

ERROR_UNABLE_TO_EXCHANGE = "unable_to_exchange_code"
ERROR_UNKNOWN = "unknown_error"
ERROR_DESCRIPTIONS = {
    ERROR_UNABLE_TO_EXCHANGE: "Unable to exchange code for access token",
    ERROR_UNKNOWN: "An unknown error occurred. Please try again",
}


def generate_local_credential(num_bytes: int = LOCAL_CREDENTIAL_BYTES) -> str:
    return base64.b64encode(secrets.token_bytes(num_bytes)).decode("ascii")


def build_callback_url(
    callback_url: str, params: dict[str, str | None] | Iterable[tuple[str, str | None]]
) -> str:
    items = params.items() if isinstance(params, dict) else params
    query = urlencode([(key, value) for key, value in items if value is not None])
    return f"{callback_url}?{query}"


@dataclass
class ExchangeResult:
    state: str | None
    token: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.token is not None

    def to_query(self) -> dict[str, str | None]:
        if self.ok:
            return {"token": self.token, "state": self.state}
        return {
            "error": self.error,
            "error_description": ERROR_DESCRIPTIONS.get(self.error or ""),
            "state": self.state,
        }


class TokenExchangeService:
    def __init__(
        self,
        settings: RelaySettings,
        provider: ProviderClient,
        store: CredentialStore,
    ):
        self._settings = settings
        self._provider = provider
        self._store = store

    async def exchange(self, code: str, state: str | None) -> ExchangeResult:
        """Trade an authorization code for a provider token and pair it with a new local one.

        Never raises; every failure is reported through ``ExchangeResult.error``.
        """
        try:
            result = await self._provider.exchange_code(
                code, self._settings.relay_public_auth_url
            )
            access_token = result.get("access_token")
            if not result.get("success") or not isinstance(access_token, str) or not access_token:
                logger.warning("Provider refused code exchange")
                return ExchangeResult(state=state, error=ERROR_UNABLE_TO_EXCHANGE)

            local_credential = generate_local_credential()
            await self._store.create_pairing(local_credential, access_token)
        except Exception:
            logger.exception("Code exchange failed unexpectedly")
            return ExchangeResult(state=state, error=ERROR_UNKNOWN)

        logger.info("Issued local credential %s", fingerprint(local_credential))
        return ExchangeResult(state=state, token=local_credential)

    def redirect_url(self, result: ExchangeResult) -> str:
        return build_callback_url(self._settings.oauth_callback_url, result.to_query())

    def passthrough_url(self, query_items: Iterable[tuple[str, str]]) -> str:
        return build_callback_url(self._settings.oauth_callback_url, query_items)
