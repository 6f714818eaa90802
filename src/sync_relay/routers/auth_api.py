import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse

from sync_relay.auth import AuthenticatedSession, require_session
from sync_relay.deps import get_exchange_service, get_revocation_service
from sync_relay.revocation import SessionRevocationService
from sync_relay.token_exchange import TokenExchangeService

logger = logging.getLogger("sync_relay.routes.auth")

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("")
async def oauth_callback(
    request: Request,
    service: TokenExchangeService = Depends(get_exchange_service),
) -> RedirectResponse:
    """
    OAuth redirect target. Every outcome, including failure, is a redirect to
    the external callback so the browser can continue its redirect chain.
    """
    code = request.query_params.get("code")
    if not code:
        logger.info("OAuth callback without code, passing query through")
        return RedirectResponse(
            service.passthrough_url(request.query_params.multi_items()),
            status_code=302,
        )

    result = await service.exchange(code, request.query_params.get("state"))
    return RedirectResponse(service.redirect_url(result), status_code=302)


@router.delete("")
async def revoke_session(
    session: AuthenticatedSession = Depends(require_session),
    service: SessionRevocationService = Depends(get_revocation_service),
) -> JSONResponse:
    response = await service.revoke(session)
    return JSONResponse(content=response.payload, status_code=response.status_code)
