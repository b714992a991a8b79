from functools import lru_cache

from .config import settings
from .application.services.ingestion_service import IngestionService
from .application.services.compression_service import CompressionService
from .infrastructure.audit.std_logger import StdPipelineAuditLogger
from .infrastructure.compression.tinify_gateway import TinifyGateway
from .infrastructure.persistence.json_file.metadata_repository_json import JsonFileMetadataRepository
from .infrastructure.storage.local_storage import LocalStorageRepository


@lru_cache()
def get_metadata_repo() -> JsonFileMetadataRepository:
    return JsonFileMetadataRepository(settings.DB_FILE)


@lru_cache()
def get_blob_storage() -> LocalStorageRepository:
    return LocalStorageRepository(settings.STORAGE_ROOT)


def get_gateway() -> TinifyGateway:
    return TinifyGateway(
        api_key=settings.TINYPNG_API_KEY,
        base_url=settings.TINIFY_API_URL,
        timeout=settings.GATEWAY_TIMEOUT_SECONDS,
    )


def get_ingestion_service() -> IngestionService:
    return IngestionService(
        metadata_repo=get_metadata_repo(),
        blob_storage=get_blob_storage(),
        audit_logger=StdPipelineAuditLogger(),
        max_file_size=settings.MAX_FILE_SIZE,
        upload_subdir=settings.UPLOAD_SUBDIR,
        default_extension=settings.DEFAULT_EXTENSION,
    )


def get_compression_service() -> CompressionService:
    return CompressionService(
        metadata_repo=get_metadata_repo(),
        blob_storage=get_blob_storage(),
        gateway=get_gateway(),
        audit_logger=StdPipelineAuditLogger(),
        compressed_subdir=settings.COMPRESSED_SUBDIR,
        default_extension=settings.DEFAULT_EXTENSION,
    )
