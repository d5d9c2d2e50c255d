"""Application configuration using Pydantic Settings."""

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageProvider(str, Enum):
    GCS = "gcs"
    S3 = "s3"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # App
    app_name: str = "Rental Inspections"
    debug: bool = False
    api_v1_prefix: str = "/v1"
    allowed_origins: str = "http://localhost:5173"

    # Database
    database_url: str = "postgresql+asyncpg://localhost/rental_inspections"
    auto_create_tables: bool = False

    # Firebase Auth
    firebase_project_id: Optional[str] = None
    google_application_credentials: Optional[str] = None

    # Storage
    storage_provider: StorageProvider = StorageProvider.GCS
    media_base_url: Optional[str] = None

    # GCS Config
    gcs_bucket_name: Optional[str] = None
    gcs_project_id: Optional[str] = None

    # S3 Config
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: Optional[str] = "us-east-1"
    s3_bucket_name: Optional[str] = None

    max_upload_size_mb: int = 10

    # Upstream services
    bookings_api_url: str = "http://localhost:3000/api/v1"
    payments_api_url: str = "http://localhost:3000/api/v1"
    notifications_api_url: str = "http://localhost:3000/api/v1"
    upstream_timeout_seconds: float = 10.0
    notification_timeout_seconds: float = 5.0

    # Workflow policy
    min_return_photos: int = 2
    max_return_photos: int = 20
    max_pre_inspection_photos: int = 20
    max_dispute_photos: int = 8
    third_party_requires_payment: bool = True

    @property
    def bucket_name(self) -> str:
        """Get the appropriate bucket name based on storage provider."""
        if self.storage_provider == StorageProvider.GCS:
            if not self.gcs_bucket_name:
                raise ValueError("GCS_BUCKET_NAME required when STORAGE_PROVIDER=gcs")
            return self.gcs_bucket_name
        else:
            if not self.s3_bucket_name:
                raise ValueError("S3_BUCKET_NAME required when STORAGE_PROVIDER=s3")
            return self.s3_bucket_name

    def workflow_policy(self) -> "WorkflowPolicy":
        """Snapshot the workflow limits into an explicit policy object."""
        return WorkflowPolicy(
            min_return_photos=self.min_return_photos,
            max_return_photos=self.max_return_photos,
            max_pre_inspection_photos=self.max_pre_inspection_photos,
            max_dispute_photos=self.max_dispute_photos,
            third_party_requires_payment=self.third_party_requires_payment,
            notification_timeout_seconds=self.notification_timeout_seconds,
        )


@dataclass(frozen=True)
class WorkflowPolicy:
    """Limits applied by the inspection workflow.

    Passed into the orchestrator explicitly so the workflow core never reads
    global settings.
    """

    min_return_photos: int = 2
    max_return_photos: int = 20
    max_pre_inspection_photos: int = 20
    max_dispute_photos: int = 8
    third_party_requires_payment: bool = True
    notification_timeout_seconds: float = 5.0


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
