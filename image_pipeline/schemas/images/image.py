# image_pipeline/schemas/images/image.py
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field


def utc_now_iso() -> str:
    """ISO 8601 timestamp with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


class ImageRecord(BaseModel):
    """Metadata for a stored original or its compressed derivative."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    url: str
    size: int = Field(ge=0, description="Byte length of the persisted blob")
    format: str = Field(description="MIME type, e.g. image/jpeg")
    width: int = Field(default=0, ge=0, description="0 when unknown")
    height: int = Field(default=0, ge=0, description="0 when unknown")
    createdAt: str = Field(default_factory=utc_now_iso)


class CompressRequest(BaseModel):
    id: str = Field(min_length=1)
