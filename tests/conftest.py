import sys
from pathlib import Path

import pytest
import pytest_asyncio

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from sync_relay.credential_store import CredentialStore
from sync_relay.db import init_db_runtime
from sync_relay.provider_client import ProviderResponse
from sync_relay.settings import RelaySettings

CALLBACK_URL = "https://callback.example.test/usercallback"


class FakeProviderClient:
    """Stands in for ProviderClient so route tests never touch the network."""

    def __init__(self):
        self.exchange_result: dict = {"success": True, "access_token": "PT1"}
        self.exchange_error: Exception | None = None
        self.revoke_response = ProviderResponse(200, {"success": True})
        self.revoke_error: Exception | None = None
        self.accounts_response = ProviderResponse(
            200, {"success": True, "items": [{"_id": "acc_1"}]}
        )
        self.transactions_response = ProviderResponse(
            200, {"success": True, "items": [], "cursor": {"next": None}}
        )
        self.resource_error: Exception | None = None
        self.calls: list[tuple] = []

    async def exchange_code(self, code: str, redirect_uri: str) -> dict:
        self.calls.append(("exchange_code", code, redirect_uri))
        if self.exchange_error:
            raise self.exchange_error
        return self.exchange_result

    async def revoke_token(self, provider_token: str) -> ProviderResponse:
        self.calls.append(("revoke_token", provider_token))
        if self.revoke_error:
            raise self.revoke_error
        return self.revoke_response

    async def list_accounts(self, provider_token: str) -> ProviderResponse:
        self.calls.append(("list_accounts", provider_token))
        if self.resource_error:
            raise self.resource_error
        return self.accounts_response

    async def list_transactions(self, provider_token: str, query_items=()) -> ProviderResponse:
        self.calls.append(("list_transactions", provider_token, list(query_items)))
        return self.transactions_response


@pytest.fixture
def settings(tmp_path) -> RelaySettings:
    return RelaySettings(
        provider_app_token="app_token_test",
        provider_app_secret="app-secret-test",
        oauth_callback_url=CALLBACK_URL,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'relay.db'}",
    )


@pytest.fixture
def fake_provider() -> FakeProviderClient:
    return FakeProviderClient()


@pytest_asyncio.fixture
async def store(settings: RelaySettings) -> CredentialStore:
    engine, session_maker = await init_db_runtime(settings)
    try:
        yield CredentialStore(session_maker)
    finally:
        await engine.dispose()
