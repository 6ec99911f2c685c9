"""
core/dependencies.py
---------------------

FastAPI dependency providers. The shared :class:`HTTPClient` lives on
``app.state`` (created in the lifespan). The sales fetcher and the
WhatsApp client are built per request around configuration that is
validated once per process and then cached. A missing secret surfaces
as a :class:`ConfigurationError` on the call that needs it instead of
preventing the app from starting.
"""

from __future__ import annotations

from fastapi import Depends, Request

from salesbot.clients.http_client import HTTPClient
from salesbot.clients.whatsapp_client import WhatsAppClient
from salesbot.core.config import Settings, get_sales_api_config, get_settings, get_whatsapp_config
from salesbot.services.sales_service import SalesFetcher


def get_http_client(request: Request) -> HTTPClient:
    """Dependency to retrieve the shared HTTP client from the application state."""
    return request.app.state.http_client


def get_sales_fetcher(
    http_client: HTTPClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> SalesFetcher:
    return SalesFetcher(http_client, get_sales_api_config(settings))


def get_whatsapp_client(
    http_client: HTTPClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> WhatsAppClient:
    return WhatsAppClient(http_client, get_whatsapp_config(settings))
