from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from salesbot.clients.http_client import HTTPClient
from salesbot.clients.whatsapp_client import WhatsAppClient
from salesbot.core import store
from salesbot.core.config import SalesApiConfig, Settings, WhatsAppConfig
from salesbot.services.sales_service import SalesFetcher

SALES_URL = "https://erp.test/notas"
EVOLUTION_URL = "https://evo.test"


def make_record(code: int = 1, sale_date: str = "15/03/2024 10:00:00", products_value: Any = 100,
                products: Optional[List[Dict[str, Any]]] = None, record_date: Optional[str] = None,
                name: str = "TORRES CABRAL LTDA") -> Dict[str, Any]:
    """A sales note in the API's wire shape."""
    return {
        "empresaOrigem": {"codigo": code, "nome": name, "cnpj": "00.000.000/0001-00"},
        "valorProdutos": products_value,
        "valorFrete": 12.5,
        "data": record_date or sale_date,
        "dataVenda": sale_date,
        "produtos": products if products is not None else [{"tipo": "CALCADO", "valorLiquido": products_value}],
    }


class SalesApiStub:
    """Serves a scripted list of pages; each entry is a payload dict, an int status or an exception."""

    def __init__(self, pages: List[Any]) -> None:
        self.pages = pages
        self.requests: List[httpx.Request] = []

    @property
    def bodies(self) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        page = json.loads(request.content)["paginacao"]
        if page > len(self.pages):
            return httpx.Response(200, json={"content": [], "lastPage": True})
        entry = self.pages[page - 1]
        if isinstance(entry, Exception):
            raise entry
        if isinstance(entry, int):
            return httpx.Response(entry, text="erro interno")
        return httpx.Response(200, json=entry)


class EvolutionStub:
    """Fake Evolution API; numbers in ``failing`` get a 500 on sendText."""

    def __init__(self, failing: Optional[set] = None) -> None:
        self.failing = failing or set()
        self.sent: List[Dict[str, Any]] = []
        self.paths: List[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.paths.append(request.url.path)
        if request.headers.get("apikey") != "evo-key":
            return httpx.Response(401, text="unauthorized")
        path = request.url.path
        if path == "/message/sendText":
            body = json.loads(request.content)
            if body["number"] in self.failing:
                return httpx.Response(500, text="send failed")
            self.sent.append(body)
            return httpx.Response(201, json={"key": {"id": "ABC"}})
        if path == "/instance/create":
            return httpx.Response(201, json={"instance": {"instanceName": "vendas"}})
        if path.startswith("/instance/connect/"):
            return httpx.Response(200, json={"code": "2@qr-data", "pairingCode": None})
        if path.startswith("/instance/connectionState/"):
            return httpx.Response(200, json={"instance": {"state": "open"}})
        return httpx.Response(404)


def route_by_host(sales: Callable, evolution: Callable) -> Callable:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "evo.test":
            return evolution(request)
        return sales(request)
    return handler


@pytest.fixture
def settings() -> Settings:
    return Settings(
        sales_api_url=SALES_URL,
        sales_api_password="secret",
        evolution_api_url=EVOLUTION_URL,
        evolution_api_key="evo-key",
        http_max_retries=0,
        http_backoff_factor=0,
        sales_page_size=1000,
        sales_max_pages=100,
    )


@pytest.fixture
def make_http_client(settings):
    clients: List[HTTPClient] = []

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> HTTPClient:
        client = HTTPClient(settings, transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()


@pytest.fixture
def make_fetcher(settings, make_http_client):
    def _make(stub: Callable) -> SalesFetcher:
        return SalesFetcher(make_http_client(stub), SalesApiConfig.from_settings(settings))
    return _make


@pytest.fixture
def make_whatsapp(settings, make_http_client):
    def _make(stub: Callable) -> WhatsAppClient:
        return WhatsAppClient(make_http_client(stub), WhatsAppConfig.from_settings(settings))
    return _make


@pytest.fixture(autouse=True)
def clean_store():
    store.clear()
    yield
    store.clear()
