from decimal import Decimal

from salesbot.schemas.sales import AggregateResult, ReportKind
from salesbot.services.message_service import format_currency, format_preview_message, format_report_message


def test_format_currency_uses_brazilian_separators():
    assert format_currency(Decimal("1234.5")) == "R$ 1.234,50"
    assert format_currency(Decimal("0")) == "R$ 0,00"
    assert format_currency(Decimal("1234567.891")) == "R$ 1.234.567,89"
    assert format_currency(Decimal("-10")) == "-R$ 10,00"


def test_daily_report_lists_store_totals_and_grand_total():
    result = AggregateResult(
        kind=ReportKind.DAILY_SALES,
        data={"LOJA-02": {"15/03/2024": Decimal("50")}, "LOJA-01": {"15/03/2024": Decimal("1500")}},
        total=Decimal("1550"),
    )
    message = format_report_message("Vendas do dia", result, "20240315")
    assert message.startswith("📊 *Relatório: Vendas do dia*")
    assert "*Vendas Diárias* (15/03/2024)" in message
    assert message.index("LOJA-01") < message.index("LOJA-02")
    assert "💰 Total: R$ 1.500,00" in message
    assert message.endswith("💰 *Total Geral: R$ 1.550,00*")


def test_sales_by_type_report_lists_each_type():
    result = AggregateResult(
        kind=ReportKind.SALES_BY_TYPE,
        data={"LOJA-01": {"A": Decimal("40"), "SEM TIPO": Decimal("10")}},
        total=Decimal("50"),
    )
    message = format_report_message("Tipos", result, "20240315")
    assert "*Vendas por Tipo de Produto*" in message
    assert "  📦 A: R$ 40,00" in message
    assert "  📦 SEM TIPO: R$ 10,00" in message


def test_empty_report_says_so():
    result = AggregateResult(kind=ReportKind.MONTHLY_SALES)
    message = format_report_message("Mensal", result, "20240315")
    assert "Nenhuma venda registrada" in message
    assert "R$ 0,00" in message


def test_preview_message_lists_every_bucket():
    result = AggregateResult(
        kind=ReportKind.MONTHLY_SALES,
        data={"LOJA-05": {"03/2024": Decimal("350")}},
        total=Decimal("350"),
    )
    message = format_preview_message(result, "20240301", "20240331")
    assert "Período: 01/03/2024 a 31/03/2024" in message
    assert "   03/2024: R$ 350,00" in message
