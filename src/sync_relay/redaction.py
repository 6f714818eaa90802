import hashlib
from typing import Any

REDACTED = "[REDACTED]"
# Keys of the exchange body/result and outbound headers that carry credentials.
_SENSITIVE_KEYS = {
    "authorization",
    "access_token",
    "client_secret",
    "code",
}


def fingerprint(value: str | None) -> str:
    """Short stable digest so a credential can be correlated in logs without exposing it."""
    if not value:
        return "<none>"
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:12]


def redact_sensitive_data(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: REDACTED if str(key).lower() in _SENSITIVE_KEYS else redact_sensitive_data(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [redact_sensitive_data(item) for item in value]
    return value


def redact_sensitive_headers(
    headers: dict[str, str], *, extra_names: set[str] | None = None
) -> dict[str, str]:
    sensitive = _SENSITIVE_KEYS | {name.lower() for name in extra_names or ()}
    return {
        key: REDACTED if key.lower() in sensitive else value
        for key, value in headers.items()
    }
