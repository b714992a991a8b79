from typing import Protocol


class BlobStorage(Protocol):
    def put(self, key: str, data: bytes) -> None:
        ...

    def get(self, key: str) -> bytes:
        ...

    def copy(self, src_key: str, dst_key: str) -> int:
        ...
