"""Document Store - durable key-to-JSON-document storage.

Each key maps to one JSON file under the data directory. Writes go to a
temporary file in the same directory and are swapped into place with
``os.replace``, so a reader only ever sees the previous document or the new
one, never a partial write.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from .errors import (
    CorruptDocument,
    EncodeFailure,
    ReadFailure,
    StoreUnavailable,
    WriteFailure,
)

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9_.-]*$")


def _reject_constant(value: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {value}")


def validate_key(key: str) -> str:
    """Return ``key`` unchanged if it is a plain file-safe document name.

    Raises:
        ValueError: If the key is empty, starts with a dot or contains
            characters outside letters, digits, underscore, dot and dash
    """
    if not isinstance(key, str) or not _KEY_PATTERN.match(key):
        raise ValueError(f"Invalid document key: {key!r}")
    return key


def encode_document(document: Any) -> bytes:
    """Serialize a document the way it is persisted on disk.

    Raises:
        TypeError, ValueError: If the document is not JSON-serializable
        RecursionError: If the document is nested too deeply to encode
    """
    text = json.dumps(document, ensure_ascii=False, indent=2, allow_nan=False)
    return text.encode("utf-8")


def decode_document(raw: bytes | str) -> Any:
    """Parse strict JSON (NaN and Infinity are rejected).

    Raises:
        ValueError: If the input is not valid JSON
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    return json.loads(raw, parse_constant=_reject_constant)


class DocumentStore:
    """Filesystem-backed store of named JSON documents.

    Provides:
    - Existence checks per key
    - Reads that distinguish absent from corrupt documents
    - Atomic replace on write (temp file + rename)
    - Per-key locks for callers that need read-modify-write

    Example:
        store = DocumentStore("data")

        store.write("survey_schema", {"pages": []})
        schema = store.read("survey_schema")

        with store.lock("survey_results"):
            entries = store.read("survey_results") or []
            entries.append({"timestamp": "...", "results": {...}})
            store.write("survey_results", entries)
    """

    def __init__(self, data_dir: str | Path | None = None) -> None:
        """Initialize the store.

        The directory is not created here; the first write creates it.

        Args:
            data_dir: Directory holding the documents. Defaults to ./data
        """
        if data_dir is None:
            data_dir = Path.cwd() / "data"
        self._data_dir = Path(data_dir)
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @property
    def data_dir(self) -> Path:
        """Get the data directory."""
        return self._data_dir

    def path_for(self, key: str) -> Path:
        """Return the file path backing ``key``.

        Raises:
            ValueError: If the key is not a plain file-safe name
        """
        return self._data_dir / f"{validate_key(key)}.json"

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        """Hold the mutex for ``key``.

        The lock is re-entrant, so ``write`` may be called while holding it.
        """
        self.path_for(key)
        with self._locks_guard:
            key_lock = self._locks.setdefault(key, threading.RLock())
        with key_lock:
            yield

    def exists(self, key: str) -> bool:
        """Check whether a document has been written for ``key``."""
        return self.path_for(key).is_file()

    def read(self, key: str) -> Any | None:
        """Read and parse the document stored under ``key``.

        Returns:
            The parsed document, or None if nothing has been written

        Raises:
            CorruptDocument: If the stored bytes are not valid JSON
            ReadFailure: If the file exists but cannot be read
        """
        path = self.path_for(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(f"Failed to read document {key} at {path}: {e}")
            raise ReadFailure(key, e.strerror or str(e)) from e

        try:
            return decode_document(raw)
        except ValueError as e:
            # UnicodeDecodeError and JSONDecodeError are both ValueErrors
            logger.error(f"Corrupt document {key} at {path}: {e}")
            raise CorruptDocument(key, str(e)) from e
        except RecursionError as e:
            logger.error(f"Corrupt document {key} at {path}: nesting too deep")
            raise CorruptDocument(key, "nesting too deep") from e

    def write(self, key: str, document: Any) -> int:
        """Atomically replace the document stored under ``key``.

        Args:
            key: Document key
            document: JSON-serializable value

        Returns:
            Number of bytes persisted

        Raises:
            EncodeFailure: If the document cannot be serialized
            StoreUnavailable: If the data directory cannot be created
            WriteFailure: If the file cannot be written or swapped into place
        """
        path = self.path_for(key)

        try:
            payload = encode_document(document)
        except (TypeError, ValueError) as e:
            raise EncodeFailure(key, str(e)) from e
        except RecursionError as e:
            raise EncodeFailure(key, "nesting too deep") from e

        self._ensure_data_dir()

        with self.lock(key):
            self._replace(key, path, payload)

        logger.debug(f"Document written: {key} ({len(payload)} bytes)")
        return len(payload)

    def _ensure_data_dir(self) -> None:
        """Create the data directory if needed."""
        if self._data_dir.is_dir():
            return
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create data directory {self._data_dir}: {e}")
            raise StoreUnavailable(e.strerror or str(e)) from e
        logger.info(f"Created data directory {self._data_dir}")

    def _replace(self, key: str, path: Path, payload: bytes) -> None:
        """Write ``payload`` to a temp file and rename it over ``path``."""
        tmp_name: str | None = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=self._data_dir, prefix=f".{key}.", suffix=".tmp"
            )
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            logger.error(f"Failed to write document {key} at {path}: {e}")
            raise WriteFailure(key, e.strerror or str(e)) from e
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

        self._sync_dir()

    def _sync_dir(self) -> None:
        """Flush the directory entry so the rename survives a crash."""
        if not hasattr(os, "O_DIRECTORY"):
            return
        try:
            dir_fd = os.open(self._data_dir, os.O_RDONLY | os.O_DIRECTORY)
            try:
                os.fsync(dir_fd)
            finally:
                os.close(dir_fd)
        except OSError as e:
            # The new document is already in place; only durability is degraded
            logger.warning(f"Failed to sync data directory {self._data_dir}: {e}")


__all__ = ["DocumentStore", "encode_document", "decode_document", "validate_key"]
