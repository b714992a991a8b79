import os
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from dotenv import load_dotenv
from datetime import datetime, timezone
import logging

# Load environment variables as early as possible
load_dotenv()

from .config import settings
from .exceptions import PipelineError, pipeline_exception_handler, request_validation_exception_handler
from .middleware import LoggingMiddleware, ErrorHandlingMiddleware
from .routers import images_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)

# Static mounts need their directories to exist at import time
os.makedirs(settings.upload_dir, exist_ok=True)
os.makedirs(settings.compressed_dir, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME} (storage root: {settings.STORAGE_ROOT}, metadata: {settings.DB_FILE})")
    if not settings.gateway_configured:
        logger.warning("TINYPNG_API_KEY is not set; compression will fall back to copying originals")
    yield
    logger.info(f"Shutting down {settings.APP_NAME}...")

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    docs_url=("/docs" if settings.DOCS_ENABLED else None),
    redoc_url=("/redoc" if settings.DOCS_ENABLED else None),
    openapi_url=("/openapi.json" if settings.DOCS_ENABLED else None)
)

app.add_exception_handler(PipelineError, pipeline_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

# Add middleware
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(LoggingMiddleware)

# GZip compression
app.add_middleware(GZipMiddleware, minimum_size=settings.GZIP_MIN_SIZE)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Serve stored blobs at the urls recorded in ImageRecord.url
app.mount(f"/{settings.UPLOAD_SUBDIR}", StaticFiles(directory=settings.upload_dir), name="uploads")
app.mount(f"/{settings.COMPRESSED_SUBDIR}", StaticFiles(directory=settings.compressed_dir), name="compressed")

app.include_router(images_router.router)

# Health check endpoint
@app.get("/health")
def health_check():
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "compression_gateway": "configured" if settings.gateway_configured else "fallback-only",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "image_pipeline.main:app",
        host=settings.HOST,
        port=settings.PORT,
        workers=1,  # metadata appends are serialized per process
        log_level=settings.LOG_LEVEL.lower()
    )
