"""
===============================================================================
  Ledger storage backends
===============================================================================
  A backend stores one opaque text blob under a fixed key.  The tracker
  never talks to the filesystem directly; it is handed a backend, which
  keeps the engine testable and lets callers swap persistence.

    JsonFileStorage — one file on disk, atomic temp-file + rename writes
    MemoryStorage   — in-process blob with an optional byte quota

  Backends raise StorageError on failure.  Absorbing those errors is the
  job of the store (tracking/store.py), not of the backend.
===============================================================================
"""

from __future__ import annotations

import errno
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol

# EDQUOT is POSIX-only
_NO_SPACE_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


class StorageError(Exception):
    """A backend could not read, write or remove its blob."""


class StorageFullError(StorageError):
    """A write was rejected for lack of capacity."""


class StorageBackend(Protocol):
    def load(self) -> Optional[str]: ...
    def save(self, blob: str) -> None: ...
    def remove(self) -> None: ...


class JsonFileStorage:
    """File-backed blob; survives restarts."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> Optional[str]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"cannot read {self.path}: {e}") from e

    def save(self, blob: str) -> None:
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Atomic write: temp file in the same directory, then rename
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(blob)
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            if e.errno in _NO_SPACE_ERRNOS:
                raise StorageFullError(f"no space left for {self.path}") from e
            raise StorageError(f"cannot write {self.path}: {e}") from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)

    def remove(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"cannot remove {self.path}: {e}") from e


class MemoryStorage:
    """
    In-process blob.  ``max_bytes`` emulates a quota: saves larger than it
    raise StorageFullError and leave the previous blob untouched.
    """

    def __init__(self, blob: Optional[str] = None, max_bytes: Optional[int] = None):
        self.blob = blob
        self.max_bytes = max_bytes
        self.saves = 0

    def load(self) -> Optional[str]:
        return self.blob

    def save(self, blob: str) -> None:
        size = len(blob.encode("utf-8"))
        if self.max_bytes is not None and size > self.max_bytes:
            raise StorageFullError(f"blob of {size} bytes exceeds quota of {self.max_bytes}")
        self.blob = blob
        self.saves += 1

    def remove(self) -> None:
        self.blob = None
