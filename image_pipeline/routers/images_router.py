from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, File, UploadFile

from ..application.services.compression_service import CompressionService
from ..application.services.ingestion_service import IngestionService
from ..dependencies import get_compression_service, get_ingestion_service
from ..schemas.images.image import CompressRequest, ImageRecord

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Images"])


@router.post("/upload", response_model=ImageRecord)
async def upload_image(
    image: Optional[UploadFile] = File(None),
    service: IngestionService = Depends(get_ingestion_service),
):
    """
    Store an uploaded image and record its metadata.

    - **image**: multipart file field, must have an image/* content type and be at most 10MB
    """
    content = await image.read() if image is not None else None
    filename = image.filename if image is not None else None
    content_type = image.content_type if image is not None else None
    size = getattr(image, "size", None) if image is not None else None
    logger.info(f"Upload received: {filename} ({content_type})")
    return await service.upload(filename, content_type, size, content)


@router.post("/compress", response_model=ImageRecord)
async def compress_image(
    payload: CompressRequest,
    service: CompressionService = Depends(get_compression_service),
):
    """
    Create the compressed derivative of a previously uploaded image.

    Falls back to an unmodified copy when the compression service is unavailable.
    """
    return await service.compress(payload.id)


@router.get("/images", response_model=List[ImageRecord])
def list_images(service: IngestionService = Depends(get_ingestion_service)):
    return service.list_originals()


@router.get("/images/compressed", response_model=List[ImageRecord])
def list_compressed_images(service: CompressionService = Depends(get_compression_service)):
    return service.list_compressed()
