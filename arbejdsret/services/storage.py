"""Key/value blob storage used to persist the chat sessions.

The store only ever needs three primitives – get, set and remove a named
string blob – so every backend implements exactly those.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from google.cloud import firestore
from google.cloud.firestore import SERVER_TIMESTAMP

from arbejdsret.config import Settings

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"[^A-Za-z0-9._-]")


class KeyValueStorage(ABC):
    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the blob stored under *key*, or ``None``."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete *key*; removing a missing key is not an error."""


class MemoryStorage(KeyValueStorage):
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class FileStorage(KeyValueStorage):
    """One UTF-8 file per key inside *directory*."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        logger.info("FileStorage initialized in '%s'", self.directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{_SAFE_KEY.sub('_', key)}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        data = path.read_bytes()
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("utf-8 decode failed for '%s', falling back to latin-1", path)
            return data.decode("latin-1")

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        # write-then-rename so a reader never sees a half-written file
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class FirestoreStorage(KeyValueStorage):
    """One document per key; the blob lives in the ``value`` field."""

    def __init__(self, project_id: str, collection: str = "local_storage", db_name: str = "(default)") -> None:
        self.db = firestore.Client(project=project_id, database=db_name)
        self._coll = self.db.collection(collection)
        logger.info(
            "FirestoreStorage initialized for project '%s', collection '%s'", project_id, collection
        )

    def get(self, key: str) -> Optional[str]:
        snapshot = self._coll.document(key).get()
        if not snapshot.exists:
            return None
        return (snapshot.to_dict() or {}).get("value")

    def set(self, key: str, value: str) -> None:
        self._coll.document(key).set({"value": value, "updatedAt": SERVER_TIMESTAMP})

    def remove(self, key: str) -> None:
        self._coll.document(key).delete()


def build_storage(settings: Settings) -> KeyValueStorage:
    """Instantiate the backend selected by ``STORAGE_BACKEND``."""
    if settings.storage_backend == "memory":
        return MemoryStorage()
    if settings.storage_backend == "firestore":
        return FirestoreStorage(settings.firestore_project, collection=settings.firestore_collection)
    return FileStorage(settings.storage_dir)
