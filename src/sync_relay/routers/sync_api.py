from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from sync_relay.auth import AuthenticatedSession, require_session
from sync_relay.deps import get_provider_client
from sync_relay.provider_client import ProviderClient, ProviderResponse

router = APIRouter(prefix="/sync", tags=["sync"])

# The provider signals the last page with a literal "null" cursor.
END_OF_PAGES_CURSOR = "null"


def _relay(response: ProviderResponse) -> JSONResponse:
    return JSONResponse(content=response.payload, status_code=response.status_code)


@router.get("/accounts")
async def list_accounts(
    session: AuthenticatedSession = Depends(require_session),
    provider: ProviderClient = Depends(get_provider_client),
) -> JSONResponse:
    return _relay(await provider.list_accounts(session.provider_credential))


@router.get("/transactions")
async def list_transactions(
    request: Request,
    session: AuthenticatedSession = Depends(require_session),
    provider: ProviderClient = Depends(get_provider_client),
) -> JSONResponse:
    if request.query_params.getlist("cursor")[:1] == [END_OF_PAGES_CURSOR]:
        return JSONResponse({"success": False, "message": "No more results"})

    response = await provider.list_transactions(
        session.provider_credential, request.query_params.multi_items()
    )
    return _relay(response)
