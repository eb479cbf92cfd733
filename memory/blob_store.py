"""Out-of-band storage for uploaded file bytes."""

import logging
import re
from pathlib import Path

import requests

from errors import PersistenceError

logger = logging.getLogger(__name__)

BLOB_SCHEME = "blob://"

_UNSAFE = re.compile(r"[^\w.\-]")


def _safe(part: str) -> str:
    return _UNSAFE.sub("_", part or "") or "_"


class FileBlobStore:
    """Stores file payloads on disk and hands out blob:// references."""

    def __init__(self, root: str = "data/blobs", timeout: int = 10):
        """
        Initialize blob store.

        Args:
            root: Directory holding blobs
            timeout: Request timeout for http(s) references
        """
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.timeout = timeout

    def _path(self, ref: str) -> Path:
        relative = ref[len(BLOB_SCHEME):]
        path = (self.root / relative).resolve()
        if self.root.resolve() not in path.parents:
            raise PersistenceError(f"Blob reference escapes store: {ref}")
        return path

    def put(self, token: str, item_id: str, file_name: str, data: bytes) -> str:
        """Write bytes and return their reference."""
        ref = f"{BLOB_SCHEME}{_safe(token)}/{_safe(item_id)}/{_safe(file_name or 'file')}"
        path = self._path(ref)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise PersistenceError(f"Could not write blob {ref}: {e}") from e
        return ref

    def get(self, ref: str) -> bytes:
        """
        Read bytes for a reference.

        blob:// references are read from disk, http(s) urls are downloaded.

        Raises:
            PersistenceError: If the payload cannot be read
        """
        if ref.startswith(BLOB_SCHEME):
            try:
                return self._path(ref).read_bytes()
            except OSError as e:
                raise PersistenceError(f"Could not read blob {ref}: {e}") from e

        if ref.startswith(("http://", "https://")):
            try:
                response = requests.get(ref, timeout=self.timeout)
                response.raise_for_status()
                return response.content
            except requests.exceptions.RequestException as e:
                raise PersistenceError(f"Could not download blob {ref}: {e}") from e

        raise PersistenceError(f"Unsupported blob reference: {ref}")

    def delete(self, ref: str):
        if not ref.startswith(BLOB_SCHEME):
            return
        try:
            self._path(ref).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not delete blob {ref}: {e}")
