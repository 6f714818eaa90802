from fastapi import Depends, Request

from sync_relay.auth import get_credential_store
from sync_relay.credential_store import CredentialStore
from sync_relay.provider_client import ProviderClient
from sync_relay.revocation import SessionRevocationService
from sync_relay.settings import RelaySettings
from sync_relay.token_exchange import TokenExchangeService


def get_settings(request: Request) -> RelaySettings:
    return request.app.state.settings


def get_provider_client(request: Request) -> ProviderClient:
    """Dependency to get the shared provider client from the app state."""
    return request.app.state.provider_client


def get_exchange_service(
    settings: RelaySettings = Depends(get_settings),
    provider: ProviderClient = Depends(get_provider_client),
    store: CredentialStore = Depends(get_credential_store),
) -> TokenExchangeService:
    return TokenExchangeService(settings, provider, store)


def get_revocation_service(
    provider: ProviderClient = Depends(get_provider_client),
    store: CredentialStore = Depends(get_credential_store),
) -> SessionRevocationService:
    return SessionRevocationService(provider, store)
