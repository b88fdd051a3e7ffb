"""Storage service for downloading documents from Supabase storage."""

from typing import Dict, Optional

import httpx

from trajectplan.core.config import settings
from trajectplan.core.exceptions import StorageError
from trajectplan.utils.logging import get_logger

LOGGER = get_logger(__name__)


class StorageService:
    """Blob store backed by the Supabase Storage REST API."""

    def __init__(
        self,
        url: Optional[str] = None,
        service_role_key: Optional[str] = None,
        bucket: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        self.url = url if url is not None else settings.supabase.url
        self.service_role_key = (
            service_role_key if service_role_key is not None else settings.supabase.service_role_key
        )
        self.bucket = bucket or settings.storage_bucket
        self.timeout = timeout or settings.http_timeout
        self.base_api_url = f"{self.url}/storage/v1"
        self.headers: Dict[str, str] = {
            "Authorization": f"Bearer {self.service_role_key}",
            "apikey": self.service_role_key,
        }

    async def download(self, key: str) -> Optional[bytes]:
        """Download an object from the configured bucket.

        Args:
            key: Bucket-relative object key.

        Returns:
            The object bytes, or None when the object does not exist.

        Raises:
            StorageError: If the storage API fails for any other reason.
        """
        download_url = f"{self.base_api_url}/object/{self.bucket}/{key}"

        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    download_url,
                    headers=self.headers,
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            LOGGER.error(
                f"Error downloading file from Supabase: {str(e)}",
                exc_info=True,
                extra={"bucket": self.bucket, "path": key},
            )
            raise StorageError(f"Storage download error: {str(e)}", key=key, original_error=e)

        if response.status_code == 404 or (
            response.status_code == 400 and "not found" in response.text.lower()
        ):
            LOGGER.warning(
                "Object not found in storage",
                extra={"bucket": self.bucket, "path": key},
            )
            return None

        if response.status_code != 200:
            LOGGER.error(
                f"Failed to download file from Supabase: {response.text}",
                extra={"bucket": self.bucket, "path": key, "status_code": response.status_code},
            )
            raise StorageError(f"Download failed with status {response.status_code}", key=key)

        LOGGER.debug(
            "Downloaded file from storage",
            extra={"bucket": self.bucket, "path": key, "size_bytes": len(response.content)},
        )
        return response.content
