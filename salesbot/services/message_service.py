"""
services/message_service.py
----------------------------

Renders an :class:`AggregateResult` into WhatsApp text. WhatsApp uses
``*bold*`` markers; amounts are shown in Brazilian reais.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import List

from salesbot.schemas.sales import AggregateResult, ReportKind
from salesbot.services.insights_service import store_totals
from salesbot.utils.dates import compact_to_display

HEADERS = {
    ReportKind.DAILY_SALES: "📅 *Vendas Diárias* ({day})",
    ReportKind.MONTHLY_SALES: "📅 *Vendas Mensais*",
    ReportKind.SALES_BY_TYPE: "📅 *Vendas por Tipo de Produto*",
}


def format_currency(value: Decimal) -> str:
    """Format ``value`` as ``R$ 1.234,56``."""
    quantized = Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if quantized < 0 else ""
    grouped = f"{abs(quantized):,.2f}"  # 1,234.56
    grouped = grouped.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {grouped}"


def format_report_message(schedule_name: str, result: AggregateResult, reference_day: str) -> str:
    """Message sent by a schedule. ``reference_day`` is the compact report day."""
    lines: List[str] = [f"📊 *Relatório: {schedule_name}*", ""]
    lines.append(HEADERS[result.kind].format(day=compact_to_display(reference_day)))
    lines.append("")
    if not result.data:
        lines.append("Nenhuma venda registrada no período.")
        lines.append("")
    if result.kind == ReportKind.SALES_BY_TYPE:
        for store, types in sorted(result.data.items()):
            lines.append(f"🏪 *{store}*")
            for type_label, amount in sorted(types.items()):
                lines.append(f"  📦 {type_label}: {format_currency(amount)}")
            lines.append("")
    else:
        for store, amount in store_totals(result).items():
            lines.append(f"🏪 *{store}*")
            lines.append(f"💰 Total: {format_currency(amount)}")
            lines.append("")
    lines.append(f"💰 *Total Geral: {format_currency(result.total)}*")
    return "\n".join(lines)


def format_preview_message(result: AggregateResult, start: str, end: str) -> str:
    """Message used by the preview screen's test send: every bucket is listed."""
    lines: List[str] = ["📊 *Relatório de Vendas*", ""]
    lines.append(f"📅 Período: {compact_to_display(start)} a {compact_to_display(end)}")
    lines.append("")
    for store, buckets in sorted(result.data.items()):
        lines.append(f"🏪 *{store}*")
        for key, amount in buckets.items():
            lines.append(f"   {key}: {format_currency(amount)}")
        lines.append("")
    lines.append(f"💰 *Total Geral: {format_currency(result.total)}*")
    return "\n".join(lines)
