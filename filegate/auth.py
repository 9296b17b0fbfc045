"""
Authentication module for filegate.

Credentials live in a JSON file loaded once at startup. The session cookie
carries the submitted `username:password` pair itself, so there is no
server-side session state: every protected request re-validates the pair
against the credential store.
"""

import logging
import secrets
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from pydantic import ValidationError

from filegate.errors import ConfigError, MalformedToken, Unauthorized
from filegate.schemas import CredentialFile, CredentialRecord
from filegate.utils.rwlock import ReadWriteLock

logger = logging.getLogger(__name__)

COOKIE_NAME: str = "auth"  # exported so main.py can import it
TOKEN_SEPARATOR: str = ":"


# ── Credential store ──
class CredentialStore:
    """Ordered, read-mostly list of credential records."""

    def __init__(self):
        self._lock = ReadWriteLock()
        self._records: List[CredentialRecord] = []

    @classmethod
    def from_records(cls, records: Iterable[CredentialRecord]) -> "CredentialStore":
        store = cls()
        with store._lock.write_locked():
            store._records = list(records)
        return store

    def load(self, source: Union[bytes, str]) -> None:
        """Replace the records with those parsed from a JSON credential file body."""
        try:
            parsed = CredentialFile.model_validate_json(source)
        except ValidationError as exc:
            raise ConfigError(f"Failed to parse user file: {exc}") from exc

        with self._lock.write_locked():
            self._records = list(parsed.users)

    def validate(self, username: str, password: str) -> bool:
        """Constant-time compare per record; True on the first exact match."""
        user_b = username.encode("utf-8")
        pass_b = password.encode("utf-8")
        with self._lock.read_locked():
            for record in self._records:
                username_ok = secrets.compare_digest(record.username.encode("utf-8"), user_b)
                password_ok = secrets.compare_digest(record.password.encode("utf-8"), pass_b)
                if username_ok and password_ok:
                    return True
        return False

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._records)


def load_credentials(path: Union[str, Path]) -> CredentialStore:
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ConfigError(f"Failed to open user file {path}: {exc}") from exc

    store = CredentialStore()
    store.load(raw)
    logger.info("Loaded %d user(s) from %s", len(store), path)
    return store


# ── Session token codec ──
class PlaintextSessionCodec:
    """Token is the literal `username:password` pair, no escaping."""

    def encode(self, username: str, password: str) -> str:
        return f"{username}{TOKEN_SEPARATOR}{password}"

    def decode(self, token: str) -> Tuple[str, str]:
        parts = token.split(TOKEN_SEPARATOR)
        if len(parts) != 2:
            raise MalformedToken(f"expected 2 fields, got {len(parts)}")
        return parts[0], parts[1]


# ── Authorization gate ──
class AuthorizationGate:
    def __init__(self, store: CredentialStore, codec: Optional[PlaintextSessionCodec] = None):
        self.store = store
        self.codec = codec or PlaintextSessionCodec()

    def authorize(self, token: Optional[str]) -> CredentialRecord:
        """Return the matching record or raise Unauthorized / MalformedToken."""
        if not token:
            raise Unauthorized("no session cookie")
        username, password = self.codec.decode(token)
        if not self.store.validate(username, password):
            raise Unauthorized("invalid credentials")
        return CredentialRecord(username=username, password=password)

    def is_authorized(self, token: Optional[str]) -> bool:
        try:
            self.authorize(token)
        except Unauthorized:
            return False
        return True

    def issue(self, username: str, password: str) -> Optional[str]:
        """Token for a login attempt, or None if the pair is not recognised."""
        if not self.store.validate(username, password):
            return None
        return self.codec.encode(username, password)
