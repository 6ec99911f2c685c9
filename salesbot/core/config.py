"""
core/config.py
----------------

Application configuration module.

Defines strongly-typed settings loaded from the environment using
``pydantic-settings``. Besides HTTP timeouts and retry counts, the
settings carry the credentials for the two external systems this
service talks to: the ERP sales API (HTTP Basic) and the Evolution
WhatsApp gateway (``apikey`` header).

Credentials are optional at the settings level so the application can
boot without them. The required-field check happens once, when a
:class:`SalesApiConfig` or :class:`WhatsAppConfig` is first built from the
settings by :func:`get_sales_api_config` or :func:`get_whatsapp_config`;
the cached object is then handed to every client that needs it.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(RuntimeError):
    """Raised when a required setting (usually a secret) is missing."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Variables are prefixed with ``APP_``. For example, the sales API
    password is read from ``APP_SALES_API_PASSWORD`` and the page size
    can be lowered with ``APP_SALES_PAGE_SIZE=500``.
    """

    # HTTP client settings
    http_timeout: float = Field(30.0, description="Hard timeout for HTTP requests in seconds.")
    http_max_retries: int = Field(2, ge=0, description="Maximum number of retries for idempotent operations (GET).")
    http_backoff_factor: float = Field(0.5, description="Backoff factor for exponential retry delays.")

    # Sales API
    sales_api_url: str = Field(
        "https://int.torrescabral.com.br/shx-integracao-servicos/notas",
        description="Endpoint that returns paginated sales notes.",
    )
    sales_api_username: str = Field("MOISES", description="Service account used for HTTP Basic auth.")
    sales_api_password: Optional[SecretStr] = Field(None, description="Password of the service account.")

    # Pagination guards
    sales_page_size: int = Field(1000, ge=1, description="Records requested per page.")
    sales_max_pages: int = Field(100, ge=1, description="Safety ceiling on the number of pages per fetch.")

    # WhatsApp gateway (Evolution API)
    evolution_api_url: Optional[str] = Field(None, description="Base URL of the Evolution API.")
    evolution_api_key: Optional[SecretStr] = Field(None, description="Evolution API key.")
    evolution_instance_name: str = Field("vendas", description="Paired WhatsApp instance name.")
    whatsapp_max_workers: int = Field(8, ge=1, description="Concurrent sends per notification.")

    # Scheduling
    timezone: str = Field("America/Sao_Paulo", description="Timezone used to decide 'today' and due schedules.")

    model_config = SettingsConfigDict(env_prefix="APP_", env_file=None, case_sensitive=False, frozen=True)


@lru_cache()
def get_settings() -> Settings:
    """Return a cached instance of the application settings."""
    return Settings()


@dataclass(frozen=True)
class SalesApiConfig:
    """Validated connection parameters for the sales API."""

    url: str
    username: str
    password: str
    page_size: int = 1000
    max_pages: int = 100

    @classmethod
    def from_settings(cls, settings: Settings) -> "SalesApiConfig":
        if settings.sales_api_password is None or not settings.sales_api_password.get_secret_value():
            raise ConfigurationError("APP_SALES_API_PASSWORD não configurada")
        return cls(
            url=settings.sales_api_url,
            username=settings.sales_api_username,
            password=settings.sales_api_password.get_secret_value(),
            page_size=settings.sales_page_size,
            max_pages=settings.sales_max_pages,
        )


@dataclass(frozen=True)
class WhatsAppConfig:
    """Validated connection parameters for the Evolution API."""

    base_url: str
    api_key: str
    instance_name: str = "vendas"
    max_workers: int = 8

    @classmethod
    def from_settings(cls, settings: Settings) -> "WhatsAppConfig":
        if not settings.evolution_api_url or settings.evolution_api_key is None \
                or not settings.evolution_api_key.get_secret_value():
            raise ConfigurationError("Evolution API credentials not configured")
        return cls(
            base_url=settings.evolution_api_url.rstrip("/"),
            api_key=settings.evolution_api_key.get_secret_value(),
            instance_name=settings.evolution_instance_name,
            max_workers=settings.whatsapp_max_workers,
        )


@lru_cache()
def get_sales_api_config(settings: Settings) -> SalesApiConfig:
    """Validated sales API config, built once per settings object.

    A failed check is not cached, so a route keeps answering with the
    :class:`ConfigurationError` until the secret is provided.
    """
    return SalesApiConfig.from_settings(settings)


@lru_cache()
def get_whatsapp_config(settings: Settings) -> WhatsAppConfig:
    """Validated Evolution API config, built once per settings object."""
    return WhatsAppConfig.from_settings(settings)
