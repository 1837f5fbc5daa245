"""Integration step settings.

Values shared by every integration step (upstream API versions, gateway URLs,
per-request timeout). Loaded with pydantic-settings so they can come from the
environment or a local .env file.

Environment variables:
  SHOPIFY_API_VERSION: Shopify Admin REST API version (default: 2024-01)
  AI_GATEWAY_URL     : OpenAI-compatible AI gateway base URL
  IMAGE_MODEL        : default model for the Generate Image step
  IMAGE_SIZE         : generated image size, "WIDTHxHEIGHT"
  STEP_HTTP_TIMEOUT  : per-request timeout in seconds for step HTTP calls
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class IntegrationSettings(BaseSettings):
    """Settings consumed by integration steps. Instantiate directly or via get_settings()."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    shopify_api_version: str = Field(default="2024-01", validation_alias="SHOPIFY_API_VERSION")
    ai_gateway_url: str = Field(
        default="https://ai-gateway.vercel.sh/v1",
        validation_alias="AI_GATEWAY_URL",
    )
    image_model: str = Field(default="bfl/flux-2-pro", validation_alias="IMAGE_MODEL")
    image_size: str = Field(default="1024x1024", validation_alias="IMAGE_SIZE")
    http_timeout: float = Field(default=30.0, validation_alias="STEP_HTTP_TIMEOUT")

    @field_validator("ai_gateway_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("http_timeout")
    @classmethod
    def positive_timeout(cls, v: float) -> float:
        return v if v > 0 else 30.0

    @classmethod
    def from_env(cls) -> IntegrationSettings:
        return cls()


@lru_cache(maxsize=1)
def get_settings() -> IntegrationSettings:
    """Process-wide settings, read once."""
    return IntegrationSettings()
