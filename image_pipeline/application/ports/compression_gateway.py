from dataclasses import dataclass
from typing import Protocol


@dataclass
class CompressedResult:
    data: bytes
    width: int = 0
    height: int = 0


class CompressionGateway(Protocol):
    async def compress(self, data: bytes) -> CompressedResult:
        ...
