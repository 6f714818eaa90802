import logging

from sync_relay.auth import AuthenticatedSession
from sync_relay.credential_store import CredentialStore
from sync_relay.provider_client import ProviderClient, ProviderResponse
from sync_relay.redaction import fingerprint

logger = logging.getLogger("sync_relay.revocation")


class SessionRevocationService:
    def __init__(self, provider: ProviderClient, store: CredentialStore):
        self._provider = provider
        self._store = store

    async def revoke(self, session: AuthenticatedSession) -> ProviderResponse:
        """Revoke the provider token upstream, then drop both sides of the pairing.

        The pairing is deleted whatever the provider answers, so a local
        credential never outlives a provider token that may already be dead.
        """
        try:
            response = await self._provider.revoke_token(session.provider_credential)
        finally:
            await self._store.delete_pairing(
                session.local_credential, session.provider_credential
            )

        logger.info(
            "Revoked session %s (provider answered %s)",
            fingerprint(session.local_credential),
            response.status_code,
        )
        return response
