"""
services/insights_service.py
-----------------------------

Aggregation of sales notes into the three supported reports:

* ``daily_sales``: ``valorProdutos`` per store and sale day, restricted to
  the reference day;
* ``monthly_sales``: ``valorProdutos`` per store and ``MM/YYYY``;
* ``sales_by_type``: ``valorLiquido`` of each product line per store and
  product type.

Stores are labelled ``LOJA-NN`` from the company code; the registered
company name is not used. Notes whose sale date cannot be parsed are
left out of both date-bucketed reports. The grand total is always the
flat sum of every bucket, whatever the report kind.
"""

from __future__ import annotations

import json
from collections import defaultdict
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, Sequence

from salesbot.logging_config import log_call, logger
from salesbot.schemas.sales import AggregateResult, ProcessInsightsRequest, ReportKind, SaleRecord, parse_store_codes
from salesbot.services.sales_service import SalesFetcher, build_window
from salesbot.utils.dates import EMPTY, compact_to_display, to_compact

NO_TYPE_LABEL = "SEM TIPO"

Buckets = Dict[str, Dict[str, Decimal]]


def store_label(code: int) -> str:
    return f"LOJA-{code:02d}"


def _new_buckets() -> Buckets:
    return defaultdict(lambda: defaultdict(Decimal))


def _daily_sales(records: Iterable[SaleRecord], window_start: str) -> Buckets:
    buckets = _new_buckets()
    for sale in records:
        if to_compact(sale.sale_date) != window_start:
            continue
        buckets[store_label(sale.origin_company.code)][compact_to_display(window_start)] += sale.products_value
    return buckets


def _monthly_sales(records: Iterable[SaleRecord], window_start: str) -> Buckets:
    buckets = _new_buckets()
    for sale in records:
        compact = to_compact(sale.sale_date)
        if compact == EMPTY:
            continue
        month = f"{compact[4:6]}/{compact[:4]}"
        buckets[store_label(sale.origin_company.code)][month] += sale.products_value
    return buckets


def _sales_by_type(records: Iterable[SaleRecord], window_start: str) -> Buckets:
    buckets = _new_buckets()
    for sale in records:
        store = store_label(sale.origin_company.code)
        for product in sale.products:
            buckets[store][product.type or NO_TYPE_LABEL] += product.net_value
    return buckets


STRATEGIES: Dict[ReportKind, Callable[[Iterable[SaleRecord], str], Buckets]] = {
    ReportKind.DAILY_SALES: _daily_sales,
    ReportKind.MONTHLY_SALES: _monthly_sales,
    ReportKind.SALES_BY_TYPE: _sales_by_type,
}


@log_call
def aggregate(records: Sequence[SaleRecord], kind: ReportKind, window_start: str) -> AggregateResult:
    """Aggregate ``records`` for ``kind``. ``window_start`` is the compact reference day."""
    buckets = STRATEGIES[ReportKind(kind)](records, window_start)
    data = {store: dict(values) for store, values in buckets.items()}
    total = sum((value for values in data.values() for value in values.values()), Decimal(0))
    return AggregateResult(kind=kind, data=data, total=total)


def store_totals(result: AggregateResult) -> Dict[str, Decimal]:
    """Sum of every bucket per store, in store-label order."""
    return {store: sum(values.values(), Decimal(0)) for store, values in sorted(result.data.items())}


@log_call
def process_insights(data: ProcessInsightsRequest, fetcher: SalesFetcher, tz: str) -> Dict[str, Any]:
    """Fetch the requested window and aggregate it into the requested report."""
    window = build_window(data.data_inicial, data.data_final, tz)
    records = fetcher.fetch(window, parse_store_codes(data.empresas_origem))
    result = aggregate(records, data.report_type, window.start)
    logger.info(json.dumps({
        "event": "insights_processed",
        "reportType": data.report_type.value,
        "records": len(records),
        "stores": len(result.data),
    }))
    return result.model_dump(mode="json", by_alias=True)
