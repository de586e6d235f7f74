"""Blob storage for uploaded fact-finder PDFs, backed by Supabase Storage."""

import logging
from typing import Protocol

import httpx

from ..config import Settings
from ..exceptions import StorageError

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    """Path-addressed object storage used by the upload pipeline."""

    async def put(
        self,
        path: str,
        data: bytes,
        content_type: str,
        overwrite: bool = False,
    ) -> None:
        """Store ``data`` at ``path``; must fail rather than clobber when ``overwrite`` is False."""
        ...

    async def remove(self, path: str) -> None:
        """Delete the object at ``path``."""
        ...


class SupabaseStorage:
    """Service for managing files in a Supabase storage bucket."""

    def __init__(
        self,
        base_url: str,
        service_role_key: str,
        bucket: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_api_url = f"{base_url.rstrip('/')}/storage/v1"
        self.bucket = bucket
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {service_role_key}",
            "apikey": service_role_key,
        }
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseStorage":
        return cls(
            base_url=settings.supabase_url,
            service_role_key=settings.supabase_service_role_key,
            bucket=settings.storage_bucket,
            timeout=settings.storage_timeout_seconds,
        )

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(method, url, timeout=self.timeout, **kwargs)
        async with httpx.AsyncClient() as client:
            return await client.request(method, url, timeout=self.timeout, **kwargs)

    async def put(
        self,
        path: str,
        data: bytes,
        content_type: str,
        overwrite: bool = False,
    ) -> None:
        """
        Upload an object to the bucket.

        Args:
            path: Target path within the bucket.
            data: Raw object bytes.
            content_type: MIME type stored with the object.
            overwrite: Replace an existing object instead of failing.

        Raises:
            StorageError: If the upload fails or the path is already taken.
        """
        url = f"{self.base_api_url}/object/{self.bucket}/{path}"
        headers = {
            **self.headers,
            "Content-Type": content_type,
            "x-upsert": "true" if overwrite else "false",
        }
        try:
            response = await self._send("POST", url, headers=headers, content=data)
        except httpx.HTTPError as e:
            logger.error("Storage upload to %s failed: %s", path, e)
            raise StorageError(f"Storage upload error: {e}") from e

        if response.status_code != 200:
            logger.error(
                "Failed to upload %s to bucket %s: HTTP %d %s",
                path,
                self.bucket,
                response.status_code,
                response.text,
            )
            raise StorageError(f"Upload failed with status {response.status_code}")

        logger.info("Stored %s (%d bytes) in bucket %s", path, len(data), self.bucket)

    async def remove(self, path: str) -> None:
        """
        Delete an object from the bucket.

        Raises:
            StorageError: If the delete request fails.
        """
        url = f"{self.base_api_url}/object/{self.bucket}"
        try:
            response = await self._send(
                "DELETE",
                url,
                headers=self.headers,
                json={"prefixes": [path]},
            )
        except httpx.HTTPError as e:
            raise StorageError(f"Storage remove error: {e}") from e

        if response.status_code != 200:
            raise StorageError(f"Remove failed with status {response.status_code}")

        logger.info("Removed %s from bucket %s", path, self.bucket)
