"""Application settings using Pydantic Settings.

Centralized configuration for the benefits navigation platform. Every
value can be overridden from the environment (or a ``.env`` file) using
the prefix of the settings class it belongs to.
"""

import logging
from functools import lru_cache
from typing import Dict, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class CacheSettings(BaseSettings):
    """In-memory cache configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        extra="ignore",
    )

    # Default TTLs per named cache (seconds)
    embedding_ttl: int = Field(default=86400, description="Embedding cache TTL (24 hours)")
    rag_ttl: int = Field(default=900, description="RAG query cache TTL (15 minutes)")
    document_ttl: int = Field(default=3600, description="Document analysis cache TTL (1 hour)")
    policy_engine_ttl: int = Field(default=3600, description="PolicyEngine calculation TTL (1 hour)")

    # Memory pressure thresholds (MB)
    embedding_max_memory_mb: float = Field(default=100.0, description="Embedding cache memory ceiling")
    rag_max_memory_mb: float = Field(default=50.0, description="RAG cache memory ceiling")
    document_max_memory_mb: float = Field(default=200.0, description="Document cache memory ceiling")
    policy_engine_max_memory_mb: float = Field(default=100.0, description="PolicyEngine cache memory ceiling")

    response_time_window: int = Field(
        default=1000,
        description="Number of operation timings kept for the running average",
    )
    target_hit_rate: float = Field(default=70.0, description="Hit rate (percent) considered performant")

    def ttl_for(self, name: str) -> int:
        """Get default TTL for a named cache."""
        return getattr(self, f"{name}_ttl", 300)

    def max_memory_for(self, name: str) -> float:
        """Get memory ceiling for a named cache."""
        return getattr(self, f"{name}_max_memory_mb", 100.0)


class PreviewSettings(BaseSettings):
    """Tax estimate preview configuration."""

    model_config = SettingsConfigDict(
        env_prefix="PREVIEW_",
        extra="ignore",
    )

    debounce_ms: int = Field(default=500, ge=0, description="Debounce interval in milliseconds")
    required_fields: List[str] = Field(
        default=["marital_status_dec31"],
        description="Input fields that must be present before an estimate is computed",
    )
    tax_year: int = Field(default=2024, description="Tax year used for previews")
    default_county: str = Field(default="baltimore_city", description="Maryland county when unknown")

    @field_validator("required_fields")
    @classmethod
    def validate_required_fields(cls, v: List[str]) -> List[str]:
        """Accept intake field names (snake_case or camelCase) and normalize to snake_case."""
        from preview.models import TrackedInputSet

        by_alias = {
            (info.alias or name): name
            for name, info in TrackedInputSet.model_fields.items()
        }
        normalized = []
        for field in v:
            if field in TrackedInputSet.model_fields:
                normalized.append(field)
            elif field in by_alias:
                normalized.append(by_alias[field])
            else:
                raise ValueError(f"Unknown intake field: {field}")
        return normalized

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0


class CalculationServiceSettings(BaseSettings):
    """Calculation service (HTTP collaborator) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CALC_SERVICE_",
        extra="ignore",
    )

    base_url: str = Field(default="http://localhost:8000", description="Calculation service base URL")
    endpoint: str = Field(default="/api/vita-intake/calculate-tax", description="Tax calculation path")
    timeout_seconds: float = Field(default=10.0, gt=0, description="Request timeout in seconds")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application info
    name: str = Field(default="Maryland Benefits Navigator", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="development", description="Environment name")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=False, description="Emit JSON formatted logs")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return level

    # Nested settings (loaded separately)
    @property
    def cache(self) -> CacheSettings:
        return CacheSettings()

    @property
    def preview(self) -> PreviewSettings:
        return PreviewSettings()

    @property
    def calculation_service(self) -> CalculationServiceSettings:
        return CalculationServiceSettings()

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment in ("production", "prod", "staging")

    def summary(self) -> Dict[str, object]:
        """Non-sensitive settings snapshot for startup logs."""
        return {
            "name": self.name,
            "version": self.version,
            "environment": self.environment,
            "debug": self.debug,
            "log_level": self.log_level,
        }


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings instance.

    Returns:
        Settings: Cached settings loaded from environment.
    """
    return Settings()
