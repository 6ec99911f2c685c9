from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest
from fastapi import HTTPException

from salesbot.core import store
from salesbot.schemas.notifications import ScheduleCreate
from salesbot.schemas.sales import ReportKind
from salesbot.services.schedule_service import (
    create_schedule,
    evaluate_due_schedules,
    is_due,
    js_weekday,
    monthly_sent_count,
    remove_schedule,
    toggle_schedule,
)

from tests.conftest import EvolutionStub, SalesApiStub, make_record, route_by_host

TZ = "America/Sao_Paulo"
# Friday 15/03/2024 08:00 in São Paulo
FRIDAY_8AM = datetime(2024, 3, 15, 11, 0, tzinfo=timezone.utc)


def schedule(**overrides):
    data = {
        "name": "Vendas do dia",
        "report_type": ReportKind.DAILY_SALES,
        "schedule_time": "08:00",
        "schedule_days": [5],
        "phone_numbers": ["5511900000001", "5511900000002"],
    }
    data.update(overrides)
    return create_schedule(ScheduleCreate(**data))


@pytest.fixture
def clients(settings, make_http_client):
    from salesbot.clients.whatsapp_client import WhatsAppClient
    from salesbot.core.config import SalesApiConfig, WhatsAppConfig
    from salesbot.services.sales_service import SalesFetcher

    def _make(sales_stub, evolution_stub):
        http_client = make_http_client(route_by_host(sales_stub, evolution_stub))
        return (
            SalesFetcher(http_client, SalesApiConfig.from_settings(settings)),
            WhatsAppClient(http_client, WhatsAppConfig.from_settings(settings)),
        )
    return _make


def test_js_weekday_starts_on_sunday():
    assert js_weekday(datetime(2024, 3, 17)) == 0  # Sunday
    assert js_weekday(datetime(2024, 3, 15)) == 5  # Friday


def test_schedule_time_and_days_are_normalised():
    s = schedule(schedule_time="8:00:00", schedule_days=[5, 1, 5])
    assert s.schedule_time == "08:00"
    assert s.schedule_days == [1, 5]


def test_invalid_schedule_is_rejected():
    with pytest.raises(ValueError):
        ScheduleCreate(name="x", report_type="daily_sales", schedule_time="25:00",
                       schedule_days=[1], phone_numbers=["1"])
    with pytest.raises(ValueError):
        ScheduleCreate(name="x", report_type="daily_sales", schedule_time="08:00",
                       schedule_days=[7], phone_numbers=["1"])


def test_is_due_checks_time_day_and_active():
    local = FRIDAY_8AM.astimezone(ZoneInfo(TZ))
    assert is_due(schedule(), local)
    assert not is_due(schedule(schedule_time="08:01"), local)
    assert not is_due(schedule(schedule_days=[1, 2]), local)
    assert not is_due(schedule(active=False), local)


def test_evaluate_runs_due_schedule_and_records_history(clients):
    schedule(empresas_origem="1, 2")
    schedule(name="Outro horário", schedule_time="09:00")
    sales = SalesApiStub([{"content": [make_record(code=1, products_value=100)], "lastPage": True}])
    evolution = EvolutionStub(failing={"5511900000002"})
    fetcher, client = clients(sales, evolution)

    result = evaluate_due_schedules(fetcher, client, TZ, now=FRIDAY_8AM)

    assert result == {"processed": 1, "errors": 0, "currentTime": "08:00", "currentDay": 5}
    assert sales.bodies[0]["dataVendaInicial"] == "2024/03/15"
    assert sales.bodies[0]["empresasOrigem"] == [1, 2]
    assert len(evolution.sent) == 1
    assert "LOJA-01" in evolution.sent[0]["text"]
    rows = {h.phone_number: h for h in store.history}
    assert rows["5511900000001"].status == "sent"
    assert rows["5511900000001"].report_data["total"] == 100
    assert rows["5511900000002"].status == "failed"


def test_evaluate_counts_fetch_failure_as_error(clients):
    schedule()
    fetcher, client = clients(SalesApiStub([500]), EvolutionStub())

    result = evaluate_due_schedules(fetcher, client, TZ, now=FRIDAY_8AM)

    assert (result["processed"], result["errors"]) == (0, 1)
    assert [h.status for h in store.history] == ["failed", "failed"]
    assert "500" in store.history[0].error_message


def test_evaluate_with_nothing_due_does_no_work(clients):
    schedule(schedule_time="10:00")
    sales = SalesApiStub([])
    fetcher, client = clients(sales, EvolutionStub())
    result = evaluate_due_schedules(fetcher, client, TZ, now=FRIDAY_8AM)
    assert (result["processed"], result["errors"]) == (0, 0)
    assert sales.requests == []


def test_toggle_and_remove():
    s = schedule()
    assert toggle_schedule(s.id).active is False
    assert toggle_schedule(s.id).active is True
    assert remove_schedule(s.id) == {"status": "ok", "id": s.id}
    with pytest.raises(HTTPException):
        remove_schedule(s.id)


def test_monthly_sent_count_only_counts_sent_rows_this_month(clients):
    schedule()
    fetcher, client = clients(
        SalesApiStub([{"content": [], "lastPage": True}]),
        EvolutionStub(failing={"5511900000002"}),
    )
    evaluate_due_schedules(fetcher, client, TZ, now=FRIDAY_8AM)
    now = store.history[0].sent_at
    assert monthly_sent_count(TZ, now=now)["sent"] == 1
