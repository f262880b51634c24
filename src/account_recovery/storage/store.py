"""Durable key/value storage that outlives a single process.

The recovery flow spans several page loads (or CLI invocations).  The only
state that survives between them is what goes through a
:class:`DurableStore`.  :class:`FileDurableStore` is the bundled
implementation: one JSON file per key, written atomically (write-to-temp +
rename) so a crash mid-write never leaves a truncated value behind.

Typical usage::

    store = FileDurableStore("/path/to/.account-recovery")
    store.set("email", "a@b.com")
    store.get("email")      # "a@b.com"
    store.remove("email")

    # Expire the token ten minutes after it is written.
    store = FileDurableStore(path, expiry={"token": 600})
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

# Default directory name for durable storage, placed at the project root.
DEFAULT_STORAGE_DIR = ".account-recovery"

# Subdirectory holding one file per key.
KEYS_SUBDIR = "keys"

KEY_FILE_EXTENSION = ".json"

# Keys used by the recovery coordinator.
EMAIL_KEY = "email"
TOKEN_KEY = "token"


@runtime_checkable
class DurableStore(Protocol):
    """Storage capability consumed by the coordinator.

    Reads and writes are synchronous.  Implementations must keep values
    across a full restart of the process.
    """

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class FileDurableStore:
    """File-backed :class:`DurableStore`.

    Each key is persisted as ``<storage_path>/keys/<key>.json`` containing
    the value and the UTC time it was written.

    Parameters
    ----------
    storage_path:
        Absolute or relative path to the storage directory.  When *None*,
        defaults to ``<cwd>/.account-recovery/``.
    expiry:
        Optional mapping of key -> lifetime in seconds.  An entry older than
        its lifetime reads as absent and is deleted on access.
    """

    def __init__(
        self,
        storage_path: Optional[str] = None,
        expiry: Optional[dict[str, int]] = None,
    ) -> None:
        if storage_path is not None:
            self._root = Path(storage_path).resolve()
        else:
            self._root = Path.cwd() / DEFAULT_STORAGE_DIR

        self._keys_dir = self._root / KEYS_SUBDIR
        self._expiry = dict(expiry or {})
        self._keys_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # DurableStore API
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[str]:
        """Return the stored value for *key*, or *None*.

        Missing, corrupt and expired entries all read as *None*.
        """
        file_path = self._key_path(key)
        data = self._safe_read_json(file_path)
        if data is None:
            return None

        value = data.get("value")
        if not isinstance(value, str):
            logger.warning("Entry %s has no string value. Ignoring.", file_path)
            return None

        if self._is_expired(key, data.get("written_at")):
            logger.info("Entry '%s' has expired. Removing it.", key)
            self.remove(key)
            return None

        return value

    def set(self, key: str, value: str) -> None:
        """Persist *value* under *key*, replacing any previous value."""
        file_path = self._key_path(key)
        self._atomic_write(
            file_path,
            {
                "key": key,
                "value": value,
                "written_at": datetime.now(timezone.utc).isoformat(),
            },
        )
        logger.debug("Stored key '%s' in %s", key, file_path)

    def remove(self, key: str) -> None:
        """Delete *key*.  Removing an absent key is a no-op."""
        file_path = self._key_path(key)
        try:
            file_path.unlink()
            logger.debug("Removed key '%s'", key)
        except FileNotFoundError:
            pass

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def keys(self) -> list[str]:
        """Return a sorted list of keys currently on disk."""
        if not self._keys_dir.is_dir():
            return []
        return sorted(
            entry.name[: -len(KEY_FILE_EXTENSION)]
            for entry in self._keys_dir.iterdir()
            if entry.is_file() and entry.name.endswith(KEY_FILE_EXTENSION)
            and not entry.name.startswith(".")
        )

    @property
    def storage_root(self) -> Path:
        """The resolved root directory used for storage."""
        return self._root

    @property
    def keys_directory(self) -> Path:
        return self._keys_dir

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _key_path(self, key: str) -> Path:
        return self._keys_dir / f"{self._sanitise_filename(key)}{KEY_FILE_EXTENSION}"

    @staticmethod
    def _sanitise_filename(key: str) -> str:
        """Replace characters that are unsafe in file names with hyphens."""
        sanitised = key.strip()
        if not sanitised:
            raise ValueError("Store keys must not be empty.")
        for ch in r'/\:*?"<>|':
            sanitised = sanitised.replace(ch, "-")
        return sanitised

    def _is_expired(self, key: str, written_at: Optional[str]) -> bool:
        ttl = self._expiry.get(key)
        if ttl is None:
            return False
        if not written_at:
            return True
        try:
            written = datetime.fromisoformat(written_at)
        except ValueError:
            return True
        return datetime.now(timezone.utc) - written > timedelta(seconds=ttl)

    def _atomic_write(self, target: Path, data: dict) -> None:
        """Write *data* as JSON to *target* via a temp file and ``os.replace``.

        The temp file lives in the target's directory so the rename stays on
        one filesystem.  On failure the temp file is removed and the previous
        target (if any) is left untouched.
        """
        target.parent.mkdir(parents=True, exist_ok=True)

        fd = None
        tmp_path: Optional[str] = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=str(target.parent),
                prefix=".tmp_",
                suffix=KEY_FILE_EXTENSION,
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                fd = None  # os.fdopen takes ownership of the fd
                json.dump(data, fp, indent=2, ensure_ascii=False)
                fp.write("\n")
                fp.flush()
                os.fsync(fp.fileno())

            os.replace(tmp_path, str(target))
            tmp_path = None

        except BaseException:
            if fd is not None:
                os.close(fd)
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass
            raise

    def _safe_read_json(self, path: Path) -> Optional[dict]:
        """Read and parse a JSON object, returning *None* on any failure."""
        if not path.is_file():
            return None
        try:
            with open(path, "r", encoding="utf-8") as fp:
                data = json.load(fp)
        except json.JSONDecodeError:
            logger.warning(
                "Corrupt JSON in %s. The entry will be ignored.",
                path,
                exc_info=True,
            )
            return None
        except OSError:
            logger.warning("Could not read %s.", path, exc_info=True)
            return None
        if not isinstance(data, dict):
            logger.warning("Entry %s is not a JSON object. Ignoring.", path)
            return None
        return data
