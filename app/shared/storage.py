import logging
from typing import Dict, Optional

import httpx

from app.core.config import settings
from app.shared.errors import StorageError, UpstreamTimeoutError

logger = logging.getLogger(__name__)


class ObjectStorage:
    """
    Bucket storage over the Supabase storage REST API.

    Objects are addressed by key inside one bucket; uploads are public-read.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        service_key: Optional[str] = None,
        bucket: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.storage_url).rstrip("/")
        self.service_key = service_key if service_key is not None else settings.storage_service_key
        self.bucket = bucket or settings.storage_bucket
        self.timeout = timeout or settings.storage_timeout

    def _auth_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
        }

    def _object_url(self, key: str) -> str:
        return f"{self.base_url}/storage/v1/object/{self.bucket}/{key}"

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{key}"

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.request(method, url, **kwargs)
                resp.raise_for_status()
                return resp
        except httpx.TimeoutException as e:
            logger.error("Storage %s %s timed out", method, url)
            raise UpstreamTimeoutError("Object storage timed out") from e
        except httpx.HTTPError as e:
            logger.error("Storage %s %s failed: %s", method, url, e)
            raise StorageError(f"Object storage request failed: {e}") from e

    async def upload(self, key: str, data: bytes, content_type: str = "image/png") -> str:
        """Store ``data`` under ``key`` and return its public URL."""
        headers = {
            **self._auth_headers(),
            "Content-Type": content_type,
            "x-upsert": "false",
        }
        await self._send("POST", self._object_url(key), headers=headers, content=data)
        return self.public_url(key)

    async def delete(self, key: str) -> None:
        url = f"{self.base_url}/storage/v1/object/{self.bucket}"
        await self._send(
            "DELETE", url, headers=self._auth_headers(), json={"prefixes": [key]}
        )


def get_storage() -> ObjectStorage:
    return ObjectStorage()
