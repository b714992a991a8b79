import json
import logging
import os
import tempfile
import threading
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ....application.ports.metadata_repo import Collection, MetadataRepository
from ....exceptions import StorageError
from ....schemas.images.image import ImageRecord

logger = logging.getLogger(__name__)

# One lock per document path, shared by every repository instance in the process
_locks: Dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def _lock_for(path: str) -> threading.Lock:
    key = os.path.abspath(path)
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _locks[key] = lock
        return lock


class JsonFileMetadataRepository(MetadataRepository):
    """Image metadata kept in a single JSON document.

    The document holds one array per collection::

        {"images": [...], "compressedImages": [...]}

    Every append re-reads the whole document, adds the record and writes the
    whole document back. Appends from the same process are serialized by a
    per-file lock; writers in other processes can still overwrite each other.
    """

    def __init__(self, db_file: str) -> None:
        self.db_file = db_file
        self._lock = _lock_for(db_file)

    def append(self, collection: Collection, record: ImageRecord) -> None:
        with self._lock:
            state = self._read()
            state[collection.value].append(record.model_dump())
            self._write(state)
        logger.debug(f"Appended {record.id} to {collection.value}")

    def find_by_id(self, collection: Collection, image_id: str) -> Optional[ImageRecord]:
        for record in self.list_all(collection):
            if record.id == image_id:
                return record
        return None

    def list_all(self, collection: Collection) -> List[ImageRecord]:
        with self._lock:
            rows = self._read()[collection.value]
        try:
            return [ImageRecord.model_validate(row) for row in rows]
        except PydanticValidationError as e:
            raise StorageError(f"Corrupt record in {self.db_file}", cause=e) from e

    def _empty(self) -> Dict[str, List[Dict[str, Any]]]:
        return {c.value: [] for c in Collection}

    def _read(self) -> Dict[str, List[Dict[str, Any]]]:
        if not os.path.exists(self.db_file):
            return self._empty()
        try:
            with open(self.db_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read metadata file {self.db_file}: {e}")
            raise StorageError(f"Failed to read metadata file {self.db_file}", cause=e) from e
        if not isinstance(data, dict):
            raise StorageError(f"Metadata file {self.db_file} is not a JSON object")
        state = self._empty()
        for c in Collection:
            rows = data.get(c.value) or []
            if not isinstance(rows, list):
                raise StorageError(f"Collection {c.value} in {self.db_file} is not a list")
            state[c.value] = rows
        return state

    def _write(self, state: Dict[str, List[Dict[str, Any]]]) -> None:
        directory = os.path.dirname(os.path.abspath(self.db_file))
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".db-", suffix=".json", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state, f, indent=2)
            os.replace(tmp_path, self.db_file)
        except OSError as e:
            logger.error(f"Failed to write metadata file {self.db_file}: {e}")
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StorageError(f"Failed to write metadata file {self.db_file}", cause=e) from e
