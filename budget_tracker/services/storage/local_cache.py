"""
Local File Cache

The device copy of the Store: one JSON file at a fixed path.

GUARANTEES:
- read() never raises; a missing, empty or corrupt file is an empty Store
- write() never raises; failures are logged and the caller carries on
- a write either fully replaces the file or leaves the old one in place
  (temp file + atomic rename), so a crash mid-write never truncates it
"""

import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import structlog

from budget_tracker.config import get_settings
from budget_tracker.models.ledger import Store
from budget_tracker.services.storage.interface import CacheError, LocalCacheInterface


logger = structlog.get_logger(__name__)


class JsonFileCache(LocalCacheInterface):
    """Stores the whole Store as a single JSON blob on disk."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self._path = Path(path) if path is not None else get_settings().cache.path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Store:
        """
        Strict read.

        Returns an empty Store when no cache exists yet.

        Raises:
            CacheError: If the file exists but cannot be read or parsed
        """
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return Store()
        except (OSError, UnicodeDecodeError) as e:
            raise CacheError(f"Failed to read cache {self._path}: {e}")

        if not text.strip():
            return Store()

        try:
            return Store.from_json(text)
        except ValueError as e:
            raise CacheError(f"Cache {self._path} is not valid JSON: {e}")

    def read(self) -> Store:
        try:
            return self.load()
        except CacheError as e:
            logger.warning("cache_read_failed", path=str(self._path), error=str(e))
            return Store()

    def write(self, store: Store) -> None:
        try:
            payload = store.to_json()
        except (TypeError, ValueError) as e:
            logger.warning("cache_serialize_failed", path=str(self._path), error=str(e))
            return

        tmp_name = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as e:
            logger.warning("cache_write_failed", path=str(self._path), error=str(e))
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass

    def clear(self) -> None:
        try:
            self._path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("cache_clear_failed", path=str(self._path), error=str(e))
