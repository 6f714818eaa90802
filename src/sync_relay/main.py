import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException

from sync_relay.credential_store import CredentialStore
from sync_relay.db import init_db_runtime
from sync_relay.provider_client import ProviderClient
from sync_relay.responses import (
    NO_CACHE_HEADERS,
    error_response,
    internal_error_response,
    not_found_response,
)
from sync_relay.routers import auth_router, sync_router
from sync_relay.settings import RelaySettings, load_settings, validate_settings

logger = logging.getLogger("sync_relay")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(settings: RelaySettings | None = None) -> FastAPI:
    if settings is None:
        load_dotenv()
        settings = load_settings(Path.cwd())
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the credential store and provider client for the app's lifetime."""
        validate_settings(settings)
        engine, session_maker = await init_db_runtime(settings)
        http_client = ProviderClient.create_http_client(settings)
        app.state.settings = settings
        app.state.credential_store = CredentialStore(session_maker)
        app.state.provider_client = ProviderClient(settings, http_client)
        logger.info("Relay started, routes under '%s'", settings.base_path or "/")
        try:
            yield
        finally:
            await http_client.aclose()
            await engine.dispose()
            logger.info("Relay stopped")

    app = FastAPI(title="sync-relay", lifespan=lifespan)

    @app.middleware("http")
    async def no_cache_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.update(NO_CACHE_HEADERS)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return not_found_response()
        return error_response(status_code=exc.status_code, message=str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return internal_error_response()

    @app.get(f"{settings.base_path}/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(auth_router, prefix=settings.base_path)
    app.include_router(sync_router, prefix=settings.base_path)
    return app


def main() -> None:
    import uvicorn

    uvicorn.run(
        "sync_relay.main:create_app",
        factory=True,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
