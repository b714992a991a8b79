from enum import Enum
from typing import List, Optional, Protocol

from ...schemas.images.image import ImageRecord


class Collection(str, Enum):
    IMAGES = "images"
    COMPRESSED = "compressedImages"


class MetadataRepository(Protocol):
    def append(self, collection: Collection, record: ImageRecord) -> None:
        ...

    def find_by_id(self, collection: Collection, image_id: str) -> Optional[ImageRecord]:
        ...

    def list_all(self, collection: Collection) -> List[ImageRecord]:
        ...
