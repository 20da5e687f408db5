"""Pydantic settings models for application configuration."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.domain.models.processing import RECOVERY_TARGETS, ProcessingState


class AppSettings(BaseModel):
    """Application-level settings."""

    name: str = "video-workflow-engine"
    version: str = "0.1.0"
    environment: Literal["dev", "staging", "prod"] = "dev"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


class BucketSettings(BaseModel):
    """Bucket name configuration."""

    uploads: str = "video-uploads"
    renditions: str = "video-renditions"
    thumbnails: str = "video-thumbnails"


class BlobStorageSettings(BaseModel):
    """Object store settings (MinIO/S3)."""

    provider: Literal["minio", "s3"] = "minio"
    endpoint: str = "localhost:9000"
    access_key: str = ""
    secret_key: str = ""
    use_ssl: bool = False
    region: str = "us-east-1"
    buckets: BucketSettings = Field(default_factory=BucketSettings)


class DocumentCollectionSettings(BaseModel):
    """Document DB collection names."""

    processing_states: str = "video_processing_states"
    videos: str = "videos"


class DocumentDBSettings(BaseModel):
    """Document database settings (MongoDB)."""

    provider: Literal["mongodb", "memory"] = "mongodb"
    host: str = "localhost"
    port: int = 27017
    username: str = ""
    password: str = ""
    database: str = "video_workflow"
    auth_source: str = "admin"
    timeout_ms: int = Field(default=5000, ge=100)
    collections: DocumentCollectionSettings = Field(
        default_factory=DocumentCollectionSettings
    )


class WorkflowSettings(BaseModel):
    """Workflow engine and recovery settings."""

    max_retries: int = Field(default=3, ge=0)
    recovery_target_state: ProcessingState = ProcessingState.UPLOADED
    max_conflict_retries: int = Field(default=5, ge=1, le=50)
    store_timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("recovery_target_state")
    @classmethod
    def validate_recovery_target(cls, v: ProcessingState) -> ProcessingState:
        """Recovery can only send a video back to a pipeline step."""
        if v not in RECOVERY_TARGETS:
            msg = (
                f"Invalid recovery target: '{v.value}'. "
                "Must be a non-terminal processing state."
            )
            raise ValueError(msg)
        return v


class NotificationSettings(BaseModel):
    """Settings for terminal-state notifications."""

    provider: Literal["logging", "webhook"] = "logging"
    webhook_url: str | None = None
    timeout_seconds: float = Field(default=5.0, gt=0)


class TelemetrySettings(BaseModel):
    """Logging settings."""

    log_format: Literal["json", "text"] = "json"
    log_level: str = "INFO"


class Settings(BaseSettings):
    """Root settings container with environment loading."""

    app: AppSettings = Field(default_factory=AppSettings)
    blob_storage: BlobStorageSettings = Field(default_factory=BlobStorageSettings)
    document_db: DocumentDBSettings = Field(default_factory=DocumentDBSettings)
    workflow: WorkflowSettings = Field(default_factory=WorkflowSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="VIDEO_WORKFLOW__",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )
