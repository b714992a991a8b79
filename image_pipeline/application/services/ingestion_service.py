import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from ..ports.audit_logger import PipelineAuditLogger
from ..ports.blob_storage import BlobStorage
from ..ports.metadata_repo import Collection, MetadataRepository
from ...exceptions import StorageError, ValidationError
from ...media_utils import file_extension, key_to_url, original_key
from ...schemas.images.image import ImageRecord, utc_now_iso

logger = logging.getLogger(__name__)

MAX_UPLOAD_SIZE = 10 * 1024 * 1024


@dataclass
class IngestionService:
    metadata_repo: MetadataRepository
    blob_storage: BlobStorage
    audit_logger: Optional[PipelineAuditLogger] = None
    max_file_size: int = MAX_UPLOAD_SIZE
    upload_subdir: str = "uploads"
    default_extension: str = "jpg"

    def validate(self, mime_type: Optional[str], size_bytes: Optional[int], content: Optional[bytes]) -> None:
        """Reject bad uploads; the first failing check wins."""
        if content is None:
            raise ValidationError("No image file provided")
        if not (mime_type or "").startswith("image/"):
            raise ValidationError("File must be an image")
        size = size_bytes if size_bytes is not None else len(content)
        if size > self.max_file_size or len(content) > self.max_file_size:
            raise ValidationError(f"Image size must be less than {self.max_file_size // (1024 * 1024)}MB")

    async def upload(self, filename: Optional[str], mime_type: Optional[str], size_bytes: Optional[int], content: Optional[bytes]) -> ImageRecord:
        try:
            self.validate(mime_type, size_bytes, content)
        except ValidationError as e:
            self._audit("upload", None, False, details={"filename": filename, "error": e.message})
            raise

        image_id = str(uuid.uuid4())
        ext = file_extension(filename, self.default_extension)
        key = original_key(image_id, ext, self.upload_subdir)
        name = filename or f"{image_id}.{ext}"

        try:
            self.blob_storage.put(key, content)
            record = ImageRecord(
                id=image_id,
                name=name,
                url=key_to_url(key),
                size=len(content),
                format=mime_type,
                width=0,
                height=0,
                createdAt=utc_now_iso(),
            )
            self.metadata_repo.append(Collection.IMAGES, record)
        except StorageError as e:
            e.image_id = image_id
            logger.error(f"Upload of {name} failed while persisting {image_id}: {e.message}")
            self._audit("upload", image_id, False, details={"filename": name, "error": e.message})
            raise

        logger.info(f"Stored upload {name} as {image_id} ({record.size} bytes, {record.format})")
        self._audit("upload", image_id, True, details={"filename": name, "size": record.size})
        return record

    def list_originals(self):
        return self.metadata_repo.list_all(Collection.IMAGES)

    def _audit(self, operation: str, image_id: Optional[str], success: bool, details: dict) -> None:
        if self.audit_logger is not None:
            self.audit_logger.log(operation, image_id, success=success, details=details)
