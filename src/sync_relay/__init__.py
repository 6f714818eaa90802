from sync_relay.credential_store import CredentialStore, PairingConsistencyError
from sync_relay.main import create_app
from sync_relay.settings import RelaySettings

__all__ = ["CredentialStore", "PairingConsistencyError", "RelaySettings", "create_app"]
