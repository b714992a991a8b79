import os
import shutil
import logging

from ...application.ports.blob_storage import BlobStorage
from ...exceptions import BlobNotFoundError, StorageError

logger = logging.getLogger(__name__)


class LocalStorageRepository(BlobStorage):
    """Blobs stored as plain files under a root directory.

    Keys are relative paths such as ``uploads/<id>.jpg``; parent directories
    are created on first write.
    """

    def __init__(self, root: str) -> None:
        self.root = root

    def _path(self, key: str) -> str:
        root = os.path.abspath(self.root)
        path = os.path.abspath(os.path.join(root, key.lstrip("/")))
        if os.path.commonpath([root, path]) != root:
            raise StorageError(f"Key {key!r} escapes storage root")
        return path

    def put(self, key: str, data: bytes) -> None:
        path = self._path(key)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            logger.error(f"Error saving blob {key}: {e}")
            raise StorageError(f"Failed to save blob {key}", cause=e) from e

    def get(self, key: str) -> bytes:
        path = self._path(key)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError as e:
            raise BlobNotFoundError(f"Blob {key} not found", cause=e) from e
        except OSError as e:
            logger.error(f"Error reading blob {key}: {e}")
            raise StorageError(f"Failed to read blob {key}", cause=e) from e

    def copy(self, src_key: str, dst_key: str) -> int:
        src = self._path(src_key)
        dst = self._path(dst_key)
        try:
            os.makedirs(os.path.dirname(dst), exist_ok=True)
            shutil.copyfile(src, dst)
            return os.path.getsize(dst)
        except FileNotFoundError as e:
            raise BlobNotFoundError(f"Blob {src_key} not found", cause=e) from e
        except OSError as e:
            logger.error(f"Error copying blob {src_key} -> {dst_key}: {e}")
            raise StorageError(f"Failed to copy blob {src_key}", cause=e) from e
