import base64
from urllib.parse import parse_qsl, urlsplit

import pytest

from sync_relay.credential_store import PairingConsistencyError
from sync_relay.token_exchange import (
    ERROR_UNABLE_TO_EXCHANGE,
    ERROR_UNKNOWN,
    TokenExchangeService,
    build_callback_url,
    generate_local_credential,
)


def _query(url: str) -> dict[str, str]:
    return dict(parse_qsl(urlsplit(url).query))


def test_local_credential_is_base64_of_random_bytes() -> None:
    first = generate_local_credential()
    second = generate_local_credential()

    assert first != second
    assert len(first) == 160
    assert len(base64.b64decode(first)) == 120


def test_build_callback_url_omits_absent_values(settings) -> None:
    url = build_callback_url(settings.oauth_callback_url, {"token": "a+b/c=", "state": None})

    assert url.startswith(settings.oauth_callback_url + "?")
    assert _query(url) == {"token": "a+b/c="}


@pytest.mark.asyncio
async def test_successful_exchange_creates_pairing(settings, fake_provider, store) -> None:
    service = TokenExchangeService(settings, fake_provider, store)

    result = await service.exchange("ABC", "xyz")

    assert result.ok
    assert result.state == "xyz"
    assert fake_provider.calls == [
        ("exchange_code", "ABC", settings.relay_public_auth_url)
    ]
    assert await store.get_provider_credential(result.token) == "PT1"
    assert await store.get_local_credential("PT1") == result.token
    assert _query(service.redirect_url(result)) == {"token": result.token, "state": "xyz"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exchange_result",
    [
        {"success": False},
        {"success": True},
        {"success": False, "access_token": "PT1"},
        {"success": True, "access_token": ""},
    ],
)
async def test_refused_exchange_is_reported(settings, fake_provider, store, exchange_result) -> None:
    fake_provider.exchange_result = exchange_result
    service = TokenExchangeService(settings, fake_provider, store)

    result = await service.exchange("BAD", "xyz")

    assert not result.ok
    assert result.error == ERROR_UNABLE_TO_EXCHANGE
    assert _query(service.redirect_url(result)) == {
        "error": ERROR_UNABLE_TO_EXCHANGE,
        "error_description": "Unable to exchange code for access token",
        "state": "xyz",
    }
    assert await store.get_local_credential("PT1") is None


@pytest.mark.asyncio
async def test_provider_failure_becomes_unknown_error(settings, fake_provider, store) -> None:
    fake_provider.exchange_error = RuntimeError("connection reset")
    service = TokenExchangeService(settings, fake_provider, store)

    result = await service.exchange("ABC", None)

    assert result.error == ERROR_UNKNOWN
    assert _query(service.redirect_url(result)) == {
        "error": ERROR_UNKNOWN,
        "error_description": "An unknown error occurred. Please try again",
    }


@pytest.mark.asyncio
async def test_store_failure_becomes_unknown_error(
    settings, fake_provider, store, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def broken_create(local_credential: str, provider_credential: str):
        raise PairingConsistencyError("create", {"local_to_provider": RuntimeError("boom")})

    monkeypatch.setattr(store, "create_pairing", broken_create)
    service = TokenExchangeService(settings, fake_provider, store)

    result = await service.exchange("ABC", "xyz")

    assert result.error == ERROR_UNKNOWN
    assert result.state == "xyz"
