from pathlib import Path
from abc import ABC, abstractmethod

import aiofiles
import aiohttp
from loguru import logger

from karetek.config import Settings

class StorageError(Exception):
    """Object storage rejected or failed an operation"""

class StorageClient(ABC):
    @abstractmethod
    async def upload(self, path: str, content: bytes, content_type: str) -> None:
        pass

    @abstractmethod
    def public_url(self, path: str) -> str:
        pass

class LocalStorageClient(StorageClient):
    """Writes objects under a local directory served at ``/media``"""

    def __init__(self, storage_path: str, public_base_url: str):
        self.storage_path = Path(storage_path)
        self.storage_path.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        target = (self.storage_path / path).resolve()
        if self.storage_path.resolve() not in target.parents:
            raise StorageError(f"Path escapes storage root: {path}")
        return target

    async def upload(self, path: str, content: bytes, content_type: str) -> None:
        target = self._resolve(path)
        if target.exists():
            raise StorageError(f"Object already exists: {path}")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(target, 'wb') as f:
                await f.write(content)
        except OSError as e:
            logger.error(f"Failed to store {path}: {e}")
            raise StorageError(str(e)) from e

        logger.info(f"Stored object: {path} ({len(content)} bytes)")

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/media/{path}"

class SupabaseStorageClient(StorageClient):
    """Supabase Storage REST API for one public bucket"""

    def __init__(self, supabase_url: str, service_key: str, bucket: str):
        self.base_url = f"{supabase_url.rstrip('/')}/storage/v1"
        self.service_key = service_key
        self.bucket = bucket

    async def upload(self, path: str, content: bytes, content_type: str) -> None:
        url = f"{self.base_url}/object/{self.bucket}/{path}"
        headers = {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
            "Content-Type": content_type,
            "Cache-Control": "max-age=3600",
            "x-upsert": "false"
        }

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(url, headers=headers, data=content) as response:
                    if response.status not in (200, 201):
                        error_text = await response.text()
                        logger.error(f"Supabase upload error {response.status}: {error_text}")
                        raise StorageError(f"Supabase upload error: {error_text}")
        except aiohttp.ClientError as e:
            logger.error(f"Supabase storage client error: {e}")
            raise StorageError(str(e)) from e

        logger.info(f"Uploaded object to bucket {self.bucket}: {path}")

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/object/public/{self.bucket}/{path}"

class StorageClientFactory:
    @staticmethod
    def create_client(settings: Settings) -> StorageClient:
        provider = settings.storage_provider.lower()

        if provider == "supabase":
            if settings.supabase_url and settings.supabase_service_key:
                logger.info("Using Supabase storage client")
                return SupabaseStorageClient(
                    supabase_url=settings.supabase_url,
                    service_key=settings.supabase_service_key,
                    bucket=settings.storage_bucket
                )
            else:
                logger.warning("Supabase credentials not configured, falling back to local storage")

        # Default to local storage
        logger.info("Using local storage client")
        return LocalStorageClient(settings.storage_path, settings.public_base_url)
