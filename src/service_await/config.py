"""Configuration and environment for the Service awaiter."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Awaiter settings loaded from environment and .env."""

    model_config = SettingsConfigDict(
        env_prefix="SERVICE_AWAIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Kubernetes
    kubeconfig: Path | None = Field(
        default=None,
        description="Path to kubeconfig; uses KUBECONFIG env or default location if unset",
    )
    context: str | None = Field(default=None, description="Kubernetes context to use")
    namespace: str = Field(default="default", description="Namespace of the Service")

    # Error enrichment
    warning_event_limit: int = Field(
        default=3,
        ge=0,
        le=20,
        description="Number of recent Warning events attached to a readiness error",
    )


def get_settings() -> Settings:
    """Return validated settings instance."""
    return Settings()
