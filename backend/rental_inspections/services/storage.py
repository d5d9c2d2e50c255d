"""Attachment storage with provider interface (GCS/S3)."""

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from rental_inspections.core.config import StorageProvider, get_settings
from rental_inspections.core.errors import InspectionValidationError, UploadFailure
from rental_inspections.schemas.condition import PhotoUpload

logger = logging.getLogger(__name__)


class StorageProviderInterface(ABC):
    """Abstract interface for storage providers."""

    @abstractmethod
    async def put_object(self, object_path: str, content: bytes, mime_type: str) -> None:
        """Write an object to the bucket."""
        pass

    @abstractmethod
    async def delete_object(self, object_path: str) -> bool:
        """Delete an object from storage."""
        pass

    @abstractmethod
    def public_url(self, object_path: str) -> str:
        """Stable URL under which the object is served."""
        pass


class GCSStorageProvider(StorageProviderInterface):
    """Google Cloud Storage provider."""

    def __init__(self, bucket_name: str, project_id: Optional[str] = None, base_url: Optional[str] = None):
        self.bucket_name = bucket_name
        self.project_id = project_id
        self.base_url = base_url or f"https://storage.googleapis.com/{bucket_name}"
        self._client = None

    @property
    def client(self):
        if self._client is None:
            from google.cloud import storage
            self._client = storage.Client(project=self.project_id)
        return self._client

    @property
    def bucket(self):
        return self.client.bucket(self.bucket_name)

    async def put_object(self, object_path: str, content: bytes, mime_type: str) -> None:
        blob = self.bucket.blob(object_path)
        await asyncio.to_thread(blob.upload_from_string, content, content_type=mime_type)

    async def delete_object(self, object_path: str) -> bool:
        blob = self.bucket.blob(object_path)
        if await asyncio.to_thread(blob.exists):
            await asyncio.to_thread(blob.delete)
            return True
        return False

    def public_url(self, object_path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{object_path}"


class S3StorageProvider(StorageProviderInterface):
    """AWS S3 storage provider."""

    def __init__(
        self,
        bucket_name: str,
        region: str,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        self.bucket_name = bucket_name
        self.region = region
        self._client = None
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.base_url = base_url or f"https://{bucket_name}.s3.{region}.amazonaws.com"

    @property
    def client(self):
        if self._client is None:
            import boto3
            self._client = boto3.client(
                "s3",
                region_name=self.region,
                aws_access_key_id=self.access_key_id,
                aws_secret_access_key=self.secret_access_key,
            )
        return self._client

    async def put_object(self, object_path: str, content: bytes, mime_type: str) -> None:
        await asyncio.to_thread(
            self.client.put_object,
            Bucket=self.bucket_name,
            Key=object_path,
            Body=content,
            ContentType=mime_type,
        )

    async def delete_object(self, object_path: str) -> bool:
        await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket_name, Key=object_path)
        return True

    def public_url(self, object_path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{object_path}"


class AttachmentStore(ABC):
    """Photo store contract used by the workflow orchestrator."""

    @abstractmethod
    async def upload(self, photo: PhotoUpload, inspection_id: UUID, category: str) -> str:
        """Persist a photo and return its stable reference URL."""
        pass

    @abstractmethod
    async def delete(self, url: str) -> None:
        """Remove a previously uploaded photo."""
        pass


class AttachmentService(AttachmentStore):
    """Image-only attachment store on top of a bucket provider."""

    ALLOWED_MIME_TYPES = {
        "image/jpeg",
        "image/png",
        "image/webp",
        "image/heic",
    }

    def __init__(self, provider: StorageProviderInterface, max_upload_size_mb: int = 10):
        self.provider = provider
        self.max_upload_size_mb = max_upload_size_mb

    def generate_object_path(self, inspection_id: UUID, category: str, file_name: str) -> str:
        """Generate a unique object path for a photo."""
        file_uuid = uuid.uuid4()
        ext = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else "jpg"
        return f"inspections/{inspection_id}/{category}/{file_uuid}.{ext}"

    def validate(self, photo: PhotoUpload) -> None:
        if photo.mime_type not in self.ALLOWED_MIME_TYPES:
            raise InspectionValidationError(f"Unsupported mime type: {photo.mime_type}", field="photos")
        max_size = self.max_upload_size_mb * 1024 * 1024
        if photo.size_bytes > max_size:
            raise InspectionValidationError(
                f"File size exceeds maximum of {self.max_upload_size_mb}MB",
                field="photos",
            )

    async def upload(self, photo: PhotoUpload, inspection_id: UUID, category: str) -> str:
        self.validate(photo)
        object_path = self.generate_object_path(inspection_id, category, photo.file_name)
        try:
            await self.provider.put_object(object_path, photo.content, photo.mime_type)
        except Exception as e:
            logger.error(f"[STORAGE] Upload failed for {object_path}: {e}")
            raise UploadFailure(f"Could not store {photo.file_name}", field="photos") from e
        logger.info(f"[STORAGE] Stored {object_path}")
        return self.provider.public_url(object_path)

    async def delete(self, url: str) -> None:
        prefix = self.provider.public_url("")
        object_path = url[len(prefix):] if url.startswith(prefix) else url
        try:
            await self.provider.delete_object(object_path)
        except Exception as e:
            logger.warning(f"[STORAGE] Could not delete {object_path}: {e}")


def get_attachment_service() -> AttachmentService:
    """Factory function to get attachment service based on config."""
    settings = get_settings()
    if settings.storage_provider == StorageProvider.GCS:
        provider = GCSStorageProvider(
            bucket_name=settings.bucket_name,
            project_id=settings.gcs_project_id,
            base_url=settings.media_base_url,
        )
    else:
        provider = S3StorageProvider(
            bucket_name=settings.bucket_name,
            region=settings.aws_region or "us-east-1",
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
            base_url=settings.media_base_url,
        )

    return AttachmentService(provider, max_upload_size_mb=settings.max_upload_size_mb)
