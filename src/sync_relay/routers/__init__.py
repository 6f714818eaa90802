from sync_relay.routers.auth_api import router as auth_router
from sync_relay.routers.sync_api import router as sync_router

__all__ = ["auth_router", "sync_router"]
