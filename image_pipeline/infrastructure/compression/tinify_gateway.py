import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from ...application.ports.compression_gateway import CompressionGateway, CompressedResult
from ...exceptions import GatewayError

logger = logging.getLogger(__name__)


class TinifyGateway(CompressionGateway):
    """Client for the TinyPNG / Tinify shrink API.

    One compression is two round trips: ``POST /shrink`` with the raw image
    as the body, then ``GET`` of the output URL from the JSON reply. Both
    use HTTP basic auth with the user ``api`` and the API key as password.
    Every failure is reported as :class:`GatewayError`; nothing is retried.
    """

    def __init__(self, api_key: Optional[str], base_url: str = "https://api.tinify.com", timeout: Optional[float] = None) -> None:
        self.api_key = (api_key or "").strip()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def shrink_url(self) -> str:
        return f"{self.base_url}/shrink"

    async def compress(self, data: bytes) -> CompressedResult:
        if not self.api_key:
            raise GatewayError("TinyPNG API key is not configured")

        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                output = await self._shrink(session, data)
                compressed = await self._download(session, output["url"])
        except GatewayError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Tinify transport failure: {e!r}")
            raise GatewayError("Compression service unreachable", cause=e) from e

        return CompressedResult(
            data=compressed,
            width=_dimension(output.get("width")),
            height=_dimension(output.get("height")),
        )

    @property
    def _auth_header(self) -> Dict[str, str]:
        return {"Authorization": aiohttp.BasicAuth("api", self.api_key).encode()}

    async def _shrink(self, session: aiohttp.ClientSession, data: bytes) -> Dict[str, Any]:
        headers = {"Content-Type": "application/octet-stream", **self._auth_header}
        async with session.post(self.shrink_url, data=data, headers=headers) as response:
            if not 200 <= response.status < 300:
                body = await response.text()
                logger.warning(f"Tinify shrink returned {response.status}: {body[:200]}")
                raise GatewayError(f"TinyPNG API error: {response.status} {response.reason}")
            try:
                payload = await response.json(content_type=None)
            except ValueError as e:
                raise GatewayError("TinyPNG API returned invalid JSON", cause=e) from e

        output = payload.get("output") if isinstance(payload, dict) else None
        if not isinstance(output, dict) or not isinstance(output.get("url"), str) or not output["url"]:
            raise GatewayError("TinyPNG API response has no output url")
        return output

    async def _download(self, session: aiohttp.ClientSession, url: str) -> bytes:
        async with session.get(url, headers=self._auth_header) as response:
            if not 200 <= response.status < 300:
                raise GatewayError(f"Failed to download compressed image: {response.status}")
            return await response.read()


def _dimension(value: Any) -> int:
    # the service may omit dimensions; 0 means unknown
    if isinstance(value, bool):
        return 0
    try:
        number = int(value)
    except (TypeError, ValueError):
        return 0
    return number if number > 0 else 0
