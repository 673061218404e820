"""Shared configuration management for the document service.

Based on Pydantic Settings v2 best practices:
https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from typing import Literal

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with the prefix 'APP_'.
    Example: APP_LOG_LEVEL=debug
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )
    service_name: str = Field(
        default="findoc-service",
        description="Service identifier for metrics and logs",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Service version",
    )

    # Upload validation
    max_upload_bytes: int = Field(
        default=20 * 1024 * 1024,
        description="Maximum accepted upload size in bytes (20 MiB)",
    )
    max_pdf_pages: int = Field(
        default=100,
        description="Maximum number of pages accepted in a PDF",
    )
    encryption_scan_bytes: int = Field(
        default=8192,
        description="Number of trailing bytes scanned for an /Encrypt marker",
    )
    allow_encrypted_pdfs: bool = Field(
        default=True,
        description="Accept encrypted PDFs when the client supplies a password",
    )

    # Timeouts
    ingestion_timeout_seconds: float = Field(
        default=3.0,
        description="Budget for validation + storage upload + record creation",
    )
    analysis_timeout_seconds: float = Field(
        default=300.0,
        description="Transport guard for a single analysis provider call",
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./findoc.db",
        description="SQLAlchemy async database URL",
    )
    database_echo: bool = Field(
        default=False,
        description="Log SQL statements",
    )

    # Storage configuration (S3-compatible object storage)
    storage_endpoint: str = Field(
        default="localhost:9000",
        description="S3-compatible storage endpoint (host:port)",
    )
    storage_access_key: str = Field(
        default="",
        description="Storage access key (use env var APP_STORAGE_ACCESS_KEY)",
    )
    storage_secret_key: str = Field(
        default="",
        description="Storage secret key (use env var APP_STORAGE_SECRET_KEY)",
    )
    storage_bucket: str = Field(
        default="documents",
        description="Bucket holding uploaded documents and analysis results",
    )
    storage_secure: bool = Field(
        default=False,
        description="Use HTTPS for storage connections",
    )
    storage_public_url: str | None = Field(
        default=None,
        description="Base URL used to build file URLs (defaults to the endpoint)",
    )

    # Analysis provider
    analysis_provider: Literal["azure"] = Field(
        default="azure",
        description="Document analysis provider",
    )
    azure_endpoint: str = Field(
        default="",
        description="Azure Document Intelligence endpoint",
    )
    azure_key: str = Field(
        default="",
        description="Azure Document Intelligence key (use env var APP_AZURE_KEY)",
    )
    invoice_model_id: str = Field(
        default="prebuilt-invoice",
        description="Model used to analyze invoices",
    )
    purchase_order_model_id: str = Field(
        default="prebuilt-invoice",
        description="Model used to analyze purchase orders",
    )

    # Analysis dispatch / queue
    analysis_dispatch: Literal["inline", "queue"] = Field(
        default="inline",
        description="inline: asyncio task in the API process, queue: arq worker",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis URL for the arq queue",
    )
    queue_max_jobs: int = Field(
        default=10,
        description="Maximum concurrent jobs per worker",
    )
    queue_job_timeout: int = Field(
        default=600,
        description="Job timeout in seconds",
    )

    # Deletion
    allow_permanent_delete: bool = Field(
        default=False,
        description="Allow clients to request hard deletion of documents",
    )

    @field_validator("queue_job_timeout")
    @classmethod
    def validate_queue_job_timeout(cls, v: int, info: ValidationInfo) -> int:
        """The job timeout must leave room for the provider call to time out first."""
        analysis_timeout = info.data.get("analysis_timeout_seconds")
        if analysis_timeout is not None and v <= analysis_timeout:
            raise ValueError(
                f"queue_job_timeout ({v}s) must be greater than analysis_timeout_seconds ({analysis_timeout}s)"
            )
        return v


def get_settings() -> Settings:
    """Factory function to get settings instance.

    Returns:
        Configured Settings instance
    """
    return Settings()
