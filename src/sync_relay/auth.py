import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader

from sync_relay.credential_store import CredentialStore
from sync_relay.redaction import fingerprint

logger = logging.getLogger("sync_relay.auth")

INVALID_TOKEN_MESSAGE = "Invalid authentication token"

api_key_header = APIKeyHeader(name="Authorization", auto_error=False)


@dataclass
class AuthenticatedSession:
    local_credential: str
    provider_credential: str


def parse_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    value = authorization.strip()
    if not value:
        return None
    parts = value.split(" ", 1)
    if len(parts) != 2:
        return None
    scheme, token = parts
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=INVALID_TOKEN_MESSAGE,
    )


async def resolve_session(
    store: CredentialStore, authorization: str | None
) -> AuthenticatedSession:
    """Resolve an ``Authorization`` header to the paired provider credential.

    A missing, malformed, or unknown credential all raise the same 401.
    """
    local_credential = parse_bearer_token(authorization)
    if not local_credential:
        raise _unauthorized()

    provider_credential = await store.get_provider_credential(local_credential)
    if not provider_credential:
        logger.info("Rejected unknown credential %s", fingerprint(local_credential))
        raise _unauthorized()

    return AuthenticatedSession(
        local_credential=local_credential,
        provider_credential=provider_credential,
    )


def get_credential_store(request: Request) -> CredentialStore:
    return request.app.state.credential_store


async def require_session(
    store: CredentialStore = Depends(get_credential_store),
    authorization: str | None = Depends(api_key_header),
) -> AuthenticatedSession:
    return await resolve_session(store, authorization)
