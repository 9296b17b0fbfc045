from dataclasses import dataclass
from typing import Optional

from filegate.auth import AuthorizationGate, CredentialStore, load_credentials
from filegate.errors import ConfigError
from filegate.schemas import AppConfig
from filegate.storage import FileStorage


@dataclass
class AppContext:
    """Everything a request handler needs, built once at startup."""

    gate: AuthorizationGate
    storage: FileStorage
    config: Optional[AppConfig] = None

    @property
    def store(self) -> CredentialStore:
        return self.gate.store


def build_context(config: AppConfig) -> AppContext:
    """Load credentials and prepare the storage root. Raises ConfigError on failure."""
    store = load_credentials(config.user_file)
    storage = FileStorage(config.file_dir)
    try:
        storage.ensure_root()
    except OSError as exc:
        raise ConfigError(f"Failed to create files directory {config.file_dir}: {exc}") from exc
    return AppContext(gate=AuthorizationGate(store), storage=storage, config=config)
