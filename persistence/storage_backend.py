"""
Storage capabilities used by the local record store.

A backend holds one named blob. Quota detection happens here and nowhere else:
`write_all` reports `WriteStatus.QUOTA_EXCEEDED` for every flavour of
"out of space" and raises `StorageBackendError` for anything else.
"""

from __future__ import annotations

import errno
import logging
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol

from .errors import StorageBackendError

logger = logging.getLogger(__name__)

DEFAULT_BLOB_NAME = "dispute_consultation_db_v1"
_PROBE_NAME = "__storage_test__"
_QUOTA_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


class WriteStatus(Enum):
    OK = "ok"
    QUOTA_EXCEEDED = "quota_exceeded"


class StorageBackend(Protocol):
    def probe(self) -> bool: ...

    def read_all(self) -> Optional[bytes]: ...

    def write_all(self, payload: bytes) -> WriteStatus: ...


class MemoryStorageBackend:
    """In-process backend with an optional byte quota."""

    def __init__(self, *, max_bytes: Optional[int] = None, available: bool = True) -> None:
        self.max_bytes = max_bytes
        self.available = available
        self.blob: Optional[bytes] = None
        self.write_attempts = 0

    def probe(self) -> bool:
        return self.available

    def read_all(self) -> Optional[bytes]:
        return self.blob

    def write_all(self, payload: bytes) -> WriteStatus:
        self.write_attempts += 1
        if not self.available:
            raise StorageBackendError("Memory storage is disabled.")
        if self.max_bytes is not None and len(payload) > self.max_bytes:
            return WriteStatus.QUOTA_EXCEEDED
        self.blob = bytes(payload)
        return WriteStatus.OK


class FileStorageBackend:
    """Stores the blob as a file inside `directory`, replaced atomically on write."""

    def __init__(
        self,
        directory: Path | str,
        *,
        blob_name: str = DEFAULT_BLOB_NAME,
        max_bytes: Optional[int] = None,
    ) -> None:
        self._directory = Path(directory)
        self._path = self._directory / f"{blob_name}.json"
        self._max_bytes = max_bytes

    @classmethod
    def from_env(cls) -> "FileStorageBackend":
        directory = os.getenv("RECORD_STORE_DIR", ".consultations")
        max_bytes = os.getenv("RECORD_STORE_MAX_BYTES")
        return cls(directory, max_bytes=int(max_bytes) if max_bytes else None)

    @property
    def path(self) -> Path:
        return self._path

    def probe(self) -> bool:
        probe_path = self._directory / _PROBE_NAME
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            probe_path.write_text(_PROBE_NAME, encoding="utf-8")
            probe_path.unlink()
        except OSError as exc:
            logger.warning("Storage probe failed in %s: %s", self._directory, exc)
            return False
        return True

    def read_all(self) -> Optional[bytes]:
        try:
            return self._path.read_bytes()
        except FileNotFoundError:
            return None

    def write_all(self, payload: bytes) -> WriteStatus:
        if self._max_bytes is not None and len(payload) > self._max_bytes:
            logger.debug("Payload of %d bytes exceeds quota of %d bytes", len(payload), self._max_bytes)
            return WriteStatus.QUOTA_EXCEEDED

        tmp_path: Optional[Path] = None
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", suffix=".tmp", dir=str(self._directory))
            tmp_path = Path(tmp_name)
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self._path)
            tmp_path = None
        except OSError as exc:
            if exc.errno in _QUOTA_ERRNOS:
                return WriteStatus.QUOTA_EXCEEDED
            raise StorageBackendError(exc.errno, f"Failed to write {self._path}: {exc.strerror or exc}") from exc
        finally:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
        return WriteStatus.OK
