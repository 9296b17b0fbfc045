import logging
import shutil
from pathlib import Path
from typing import BinaryIO, List, Union

from filegate.errors import (
    InvalidFilename,
    NotFound,
    StorageDeleteError,
    StorageReadError,
    StorageWriteError,
)

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
_FORBIDDEN_CHARS = ("/", "\\", "\x00")


class FileStorage:
    """Flat file store: every file is a direct child of `root`."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info("Storage root ready at %s", self.root)

    def resolve(self, filename: str) -> Path:
        """Join `filename` as a single path segment under the root."""
        if not filename or filename in (".", "..") or any(c in filename for c in _FORBIDDEN_CHARS):
            raise InvalidFilename(f"rejected filename {filename!r}")
        path = self.root / filename
        if path.parent != self.root:
            raise InvalidFilename(f"rejected filename {filename!r}")
        return path

    def list(self) -> List[str]:
        try:
            return sorted(entry.name for entry in self.root.iterdir())
        except OSError as exc:
            logger.exception("Failed to list %s", self.root)
            raise StorageReadError(str(exc)) from exc

    def upload(self, filename: str, stream: BinaryIO) -> int:
        """Create or overwrite `filename` with the contents of `stream`. Returns bytes written."""
        path = self.resolve(filename)
        try:
            with path.open("wb") as out:
                shutil.copyfileobj(stream, out, CHUNK_SIZE)
                size = out.tell()
        except OSError as exc:
            logger.exception("Failed to save %s", path)
            raise StorageWriteError(str(exc)) from exc
        logger.info("Uploaded %s (%d bytes)", filename, size)
        return size

    def download(self, filename: str) -> Path:
        """Path of an existing, readable file; the caller streams it."""
        path = self.resolve(filename)
        try:
            with path.open("rb"):
                pass
        except (FileNotFoundError, IsADirectoryError) as exc:
            raise NotFound(filename) from exc
        except OSError as exc:
            logger.exception("Failed to open %s", path)
            raise StorageReadError(str(exc)) from exc
        return path

    def delete(self, filename: str) -> None:
        path = self.resolve(filename)
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise NotFound(filename) from exc
        except OSError as exc:
            logger.exception("Failed to delete %s", path)
            raise StorageDeleteError(str(exc)) from exc
        logger.info("Deleted %s", filename)
