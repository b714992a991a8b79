import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from ..ports.audit_logger import PipelineAuditLogger
from ..ports.blob_storage import BlobStorage
from ..ports.compression_gateway import CompressionGateway, CompressedResult
from ..ports.metadata_repo import Collection, MetadataRepository
from ...exceptions import GatewayError, NotFoundError, StorageError
from ...media_utils import (
    compressed_id,
    compressed_key,
    file_extension,
    key_to_url,
    replace_extension,
    url_to_key,
)
from ...schemas.images.image import ImageRecord, utc_now_iso

logger = logging.getLogger(__name__)

MODE_COMPRESSED = "compressed"
MODE_FALLBACK = "fallback"


@dataclass
class CompressionService:
    """Produces the compressed derivative of a stored original.

    When the gateway fails for any reason the original bytes are copied
    unchanged and a derived record with unknown dimensions is still written.
    Calling ``compress`` twice for the same original appends a second record
    with the same derived id; earlier records are left in place.
    """

    metadata_repo: MetadataRepository
    blob_storage: BlobStorage
    gateway: CompressionGateway
    audit_logger: Optional[PipelineAuditLogger] = None
    compressed_subdir: str = "compressed"
    default_extension: str = "jpg"

    async def compress(self, original_id: str) -> ImageRecord:
        original = self.metadata_repo.find_by_id(Collection.IMAGES, original_id)
        if original is None:
            logger.warning(f"Compress requested for unknown image {original_id}")
            raise NotFoundError("Image not found", image_id=original_id)

        source_key = url_to_key(original.url)
        ext = file_extension(source_key, self.default_extension)
        target_key = compressed_key(original.id, ext, self.compressed_subdir)

        try:
            data = self.blob_storage.get(source_key)
            outcome = await self._attempt(data)
            if isinstance(outcome, GatewayError):
                logger.warning(f"Compression unavailable for {original.id}, copying original: {outcome.message}")
                record = self._fallback(original, source_key, target_key)
                mode = MODE_FALLBACK
            else:
                record = self._store_compressed(original, outcome, target_key, ext)
                mode = MODE_COMPRESSED
            self.metadata_repo.append(Collection.COMPRESSED, record)
        except StorageError as e:
            e.image_id = original.id
            logger.error(f"Compression of {original.id} failed: {e.message}")
            self._audit(original.id, False, None, {"error": e.message})
            raise

        logger.info(f"Compressed {original.id} ({mode}): {original.size} -> {record.size} bytes")
        self._audit(original.id, True, mode, {"original_size": original.size, "size": record.size})
        return record

    async def _attempt(self, data: bytes) -> Union[CompressedResult, GatewayError]:
        try:
            return await self.gateway.compress(data)
        except GatewayError as e:
            return e

    def _store_compressed(self, original: ImageRecord, result: CompressedResult, target_key: str, ext: str) -> ImageRecord:
        self.blob_storage.put(target_key, result.data)
        return ImageRecord(
            id=compressed_id(original.id),
            name=replace_extension(original.name, ext),
            url=key_to_url(target_key),
            size=len(result.data),
            format=original.format,
            width=result.width or 0,
            height=result.height or 0,
            createdAt=utc_now_iso(),
        )

    def _fallback(self, original: ImageRecord, source_key: str, target_key: str) -> ImageRecord:
        size = self.blob_storage.copy(source_key, target_key)
        return ImageRecord(
            id=compressed_id(original.id),
            name=original.name,
            url=key_to_url(target_key),
            size=size,
            format=original.format,
            width=0,
            height=0,
            createdAt=utc_now_iso(),
        )

    def list_compressed(self) -> List[ImageRecord]:
        return self.metadata_repo.list_all(Collection.COMPRESSED)

    def _audit(self, image_id: str, success: bool, mode: Optional[str], details: dict) -> None:
        if self.audit_logger is not None:
            self.audit_logger.log("compress", image_id, success=success, mode=mode, details=details)
