import logging
import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_PROVIDER_API_BASE_URL = "https://api.akahu.io/v1"
DEFAULT_PROVIDER_APP_ID_HEADER = "X-Akahu-ID"
DEFAULT_RELAY_PUBLIC_AUTH_URL = "https://api.cent.nz/v1/auth"
DEFAULT_OAUTH_CALLBACK_URL = (
    "https://script.google.com/macros/d/"
    "1TEAUaM4gf2zl-bnxWVI3mPF32ErRs_00kFP18JvwpIgU0Rxb3ncm34Lp/usercallback"
)
DEFAULT_BASE_PATH = "/v1"
DEFAULT_PROVIDER_TIMEOUT_SECONDS = 30.0
DEFAULT_SQLITE_BUSY_TIMEOUT_MS = 5000


class SettingsValidationError(RuntimeError):
    pass


def _get_str_env(name: str, default: str) -> str:
    return (os.getenv(name) or "").strip() or default


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _get_sqlite_busy_timeout_ms() -> int:
    raw = os.getenv("SQLITE_BUSY_TIMEOUT_MS", str(DEFAULT_SQLITE_BUSY_TIMEOUT_MS))
    try:
        timeout = int(raw)
    except ValueError:
        timeout = DEFAULT_SQLITE_BUSY_TIMEOUT_MS
    return max(1000, timeout)


def get_app_env() -> str:
    value = (os.getenv("APP_ENV") or "dev").strip().lower()
    if value in {"prod", "production"}:
        return "prod"
    return "dev"


def _normalize_base_path(value: str) -> str:
    value = value.strip().rstrip("/")
    if value and not value.startswith("/"):
        value = "/" + value
    return value


def get_default_database_url(root_dir: Path) -> str:
    db_dir = root_dir / "data"
    db_dir.mkdir(parents=True, exist_ok=True)
    return f"sqlite+aiosqlite:///{db_dir / 'relay.db'}"


@dataclass(frozen=True)
class RelaySettings:
    """Process-wide configuration, built once at startup and handed to each component."""

    provider_app_token: str
    provider_app_secret: str
    provider_api_base_url: str = DEFAULT_PROVIDER_API_BASE_URL
    provider_app_id_header: str = DEFAULT_PROVIDER_APP_ID_HEADER
    relay_public_auth_url: str = DEFAULT_RELAY_PUBLIC_AUTH_URL
    oauth_callback_url: str = DEFAULT_OAUTH_CALLBACK_URL
    base_path: str = DEFAULT_BASE_PATH
    database_url: str = ""
    sqlite_busy_timeout_ms: int = DEFAULT_SQLITE_BUSY_TIMEOUT_MS
    provider_timeout_seconds: float = DEFAULT_PROVIDER_TIMEOUT_SECONDS
    log_level: str = "INFO"
    app_env: str = "dev"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def provider_token_url(self) -> str:
        return f"{self.provider_api_base_url.rstrip('/')}/token"


def load_settings(root_dir: Path | None = None) -> RelaySettings:
    root = root_dir or Path.cwd()
    database_url = (os.getenv("DATABASE_URL") or "").strip()
    if not database_url:
        database_url = get_default_database_url(root)

    return RelaySettings(
        provider_app_token=(os.getenv("PROVIDER_APP_TOKEN") or "").strip(),
        provider_app_secret=(os.getenv("PROVIDER_APP_SECRET") or "").strip(),
        provider_api_base_url=_get_str_env(
            "PROVIDER_API_BASE_URL", DEFAULT_PROVIDER_API_BASE_URL
        ).rstrip("/"),
        provider_app_id_header=_get_str_env(
            "PROVIDER_APP_ID_HEADER", DEFAULT_PROVIDER_APP_ID_HEADER
        ),
        relay_public_auth_url=_get_str_env(
            "RELAY_PUBLIC_AUTH_URL", DEFAULT_RELAY_PUBLIC_AUTH_URL
        ),
        oauth_callback_url=_get_str_env("OAUTH_CALLBACK_URL", DEFAULT_OAUTH_CALLBACK_URL),
        base_path=_normalize_base_path(
            os.getenv("RELAY_BASE_PATH", DEFAULT_BASE_PATH)
        ),
        database_url=database_url,
        sqlite_busy_timeout_ms=_get_sqlite_busy_timeout_ms(),
        provider_timeout_seconds=_get_float_env(
            "PROVIDER_TIMEOUT_SECONDS", DEFAULT_PROVIDER_TIMEOUT_SECONDS
        ),
        log_level=_get_str_env("LOG_LEVEL", "INFO").upper(),
        app_env=get_app_env(),
    )


def validate_settings(settings: RelaySettings) -> None:
    missing: list[str] = []
    if not settings.provider_app_token:
        missing.append("PROVIDER_APP_TOKEN")
    if not settings.provider_app_secret:
        missing.append("PROVIDER_APP_SECRET")
    if missing:
        raise SettingsValidationError(
            "Refusing startup: " + ", ".join(missing) + " must be set."
        )

    insecure = [
        name
        for name, url in (
            ("PROVIDER_API_BASE_URL", settings.provider_api_base_url),
            ("RELAY_PUBLIC_AUTH_URL", settings.relay_public_auth_url),
            ("OAUTH_CALLBACK_URL", settings.oauth_callback_url),
        )
        if not url.lower().startswith("https://")
    ]
    if not insecure:
        return

    if settings.is_prod:
        raise SettingsValidationError(
            "Refusing startup due to non-https URLs: "
            + ", ".join(insecure)
            + ". Use https in production."
        )
    for name in insecure:
        logging.warning(
            "SECURITY WARNING: %s is not an https URL. "
            "This is only acceptable for local usage.",
            name,
        )
