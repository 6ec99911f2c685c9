import httpx
import pytest
from fastapi.testclient import TestClient

from salesbot.clients.http_client import HTTPClient
from salesbot.core.config import Settings, get_settings
from salesbot.main import create_app

from tests.conftest import EvolutionStub, SalesApiStub, make_record, route_by_host


@pytest.fixture
def build_client(settings):
    created = []

    def _build(sales_stub=None, evolution_stub=None, app_settings=None):
        app = create_app()
        app_settings = app_settings or settings
        handler = route_by_host(sales_stub or SalesApiStub([]), evolution_stub or EvolutionStub())
        app.state.http_client = HTTPClient(app_settings, transport=httpx.MockTransport(handler))
        app.dependency_overrides[get_settings] = lambda: app_settings
        client = TestClient(app)
        created.append(app.state.http_client)
        return client

    yield _build
    for http_client in created:
        http_client.close()


def test_process_insights_returns_aggregate(build_client):
    sales = SalesApiStub([{"content": [
        make_record(code=5, sale_date="01/03/2024", products_value=100),
        make_record(code=5, sale_date="28/03/2024 12:00:00", products_value=250),
        make_record(code=5, sale_date="01/04/2024", products_value=999),
    ], "lastPage": True}])
    client = build_client(sales)

    resp = client.post("/process-insights", json={
        "dataInicial": "2024-03-01",
        "dataFinal": "2024-03-31",
        "reportType": "monthly_sales",
        "empresasOrigem": ["5"],
    })

    assert resp.status_code == 200
    assert resp.json() == {"type": "monthly_sales", "data": {"LOJA-05": {"03/2024": 350.0}}, "total": 350.0}
    assert sales.bodies[0]["empresasOrigem"] == [5]


def test_process_insights_rejects_unknown_report_kind(build_client):
    resp = build_client().post("/process-insights", json={
        "dataInicial": "20240301", "dataFinal": "20240331", "reportType": "weekly",
    })
    assert resp.status_code == 422


def test_fetch_sales_data_surfaces_first_page_failure(build_client):
    client = build_client(SalesApiStub([401]))
    resp = client.post("/fetch-sales-data", json={"dataInicial": "20240315", "dataFinal": "20240315"})
    assert resp.status_code == 502
    assert "401" in resp.json()["detail"]


def test_fetch_sales_data_returns_wire_shape(build_client):
    client = build_client(SalesApiStub([{"content": [make_record(code=2)], "lastPage": True}]))
    resp = client.post("/fetch-sales-data", json={"dataInicial": "20240315", "dataFinal": "20240315"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 1
    assert body["content"][0]["empresaOrigem"]["codigo"] == 2
    assert body["content"][0]["dataVenda"] == "15/03/2024 10:00:00"


def test_missing_sales_password_is_reported(build_client, settings):
    client = build_client(app_settings=settings.model_copy(update={"sales_api_password": None}))
    resp = client.post("/fetch-sales-data", json={})
    assert resp.status_code == 500
    assert resp.json() == {"detail": "APP_SALES_API_PASSWORD não configurada"}


def test_schedule_crud_and_history(build_client):
    client = build_client()
    created = client.post("/schedules", json={
        "name": "Diário",
        "report_type": "daily_sales",
        "schedule_time": "08:00",
        "schedule_days": [1, 2, 3, 4, 5],
        "phone_numbers": "5511900000001, 5511900000002",
    })
    assert created.status_code == 201
    schedule_id = created.json()["id"]
    assert created.json()["phone_numbers"] == ["5511900000001", "5511900000002"]

    assert [s["id"] for s in client.get("/schedules").json()] == [schedule_id]
    assert client.patch(f"/schedules/{schedule_id}/toggle").json()["active"] is False
    assert client.delete(f"/schedules/{schedule_id}").status_code == 200
    assert client.delete(f"/schedules/{schedule_id}").status_code == 404
    assert client.get("/notifications/history").json() == []


def test_run_schedule_now_reports_counts(build_client):
    sales = SalesApiStub([{"content": [], "lastPage": True}])
    evolution = EvolutionStub(failing={"2"})
    client = build_client(sales, evolution)
    schedule_id = client.post("/schedules", json={
        "name": "Agora",
        "report_type": "sales_by_type",
        "schedule_time": "23:59",
        "schedule_days": [0],
        "phone_numbers": ["1", "2", "3"],
    }).json()["id"]

    resp = client.post(f"/schedules/{schedule_id}/run")

    assert resp.status_code == 200
    assert (resp.json()["successful"], resp.json()["failed"], resp.json()["total"]) == (2, 1, 3)
    statuses = sorted(h["status"] for h in client.get("/notifications/history").json())
    assert statuses == ["failed", "sent", "sent"]


def test_send_whatsapp_notification(build_client):
    evolution = EvolutionStub()
    client = build_client(evolution_stub=evolution)
    resp = client.post("/send-whatsapp-notification", json={"phoneNumbers": ["1"], "message": "oi"})
    assert resp.json()["successful"] == 1
    assert evolution.sent == [{"number": "1", "text": "oi"}]


def test_send_test_notification_uses_preview_message(build_client):
    sales = SalesApiStub([{"content": [make_record(code=1, products_value=10)], "lastPage": True}])
    evolution = EvolutionStub()
    client = build_client(sales, evolution)
    resp = client.post("/send-test-notification", json={
        "dataInicial": "20240315",
        "dataFinal": "20240315",
        "reportType": "daily_sales",
        "testPhoneNumbers": ["1"],
    })
    assert resp.status_code == 200
    assert "Período: 15/03/2024 a 15/03/2024" in evolution.sent[0]["text"]
    assert "R$ 10,00" in evolution.sent[0]["text"]


def test_evolution_routes(build_client):
    client = build_client()
    assert client.post("/evolution/status", json={}).json()["connected"] is True
    assert client.post("/evolution/qrcode", json={"instanceName": "x"}).json()["qrcode"] == "2@qr-data"
    assert client.post("/evolution/webhook", json={"event": "qrcode.updated"}).json() == {
        "success": True, "event": "qrcode.updated"}


def test_missing_gateway_credentials_is_reported(build_client):
    client = build_client(app_settings=Settings(sales_api_password="x", evolution_api_url=None))
    resp = client.post("/evolution/status", json={})
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Evolution API credentials not configured"}
