"""
services/sales_service.py
--------------------------

Retrieval of sales notes from the ERP sales API.

The API is paginated (``paginacao``/``quantidade``) and is queried by
sale date with slashed ``YYYY/MM/DD`` bounds. It has been observed to
return notes outside the requested bounds, so every page is filtered
again locally on the record's sale date before it is accumulated.

Failure policy: if the first page cannot be fetched the whole request
fails, since there is nothing to report. A failure on any later page
is logged and treated as the end of the data, so a long fetch still
returns what it collected.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional, Set

import httpx
from fastapi import HTTPException
from pydantic import ValidationError

from salesbot.clients.http_client import HTTPClient
from salesbot.core.config import SalesApiConfig
from salesbot.logging_config import log_call, logger
from salesbot.schemas.sales import DateWindow, FetchSalesRequest, SaleRecord, SalesPage, parse_store_codes
from salesbot.utils.dates import in_window, normalize_compact, to_compact, to_slashed, today_compact
from salesbot.utils.pagination import paginate


class SalesFetcher:
    """Paginated reader of the sales API for one date window."""

    def __init__(self, http_client: HTTPClient, config: SalesApiConfig) -> None:
        self.http_client = http_client
        self.config = config
        self._auth = httpx.BasicAuth(config.username, config.password)

    def _request_body(self, window: DateWindow, store_codes: Optional[Set[int]]) -> Dict[str, Any]:
        start = to_slashed(window.start)
        end = to_slashed(window.end)
        body: Dict[str, Any] = {
            "quantidade": self.config.page_size,
            "dataInicial": start,
            "dataFinal": end,
            "dataVendaInicial": start,
            "dataVendaFinal": end,
            "incluirCanceladas": "NAO",
            "mostraRentabilidade": "NAO",
            "mostraQuestionario": "N",
        }
        if store_codes:
            body["empresasOrigem"] = sorted(int(code) for code in store_codes)
        return body

    def _fetch_page(self, page: int, base_body: Dict[str, Any]) -> SalesPage:
        body = dict(base_body)
        body["paginacao"] = page
        try:
            resp = self.http_client.request(
                "POST",
                self.config.url,
                json=body,
                headers={"Content-Type": "application/json"},
                auth=self._auth,
            )
        except Exception as exc:
            logger.error(json.dumps({
                "event": "sales_api_transport_error",
                "page": page,
                "detail": str(exc),
            }))
            raise HTTPException(status_code=502, detail=f"Falha ao consultar a API de vendas: {exc}") from exc
        if not resp.is_success:
            logger.error(json.dumps({
                "event": "sales_api_error",
                "page": page,
                "status_code": resp.status_code,
                "detail": resp.text,
            }))
            raise HTTPException(status_code=502, detail=f"API returned {resp.status_code}: {resp.text}")
        try:
            sales_page = SalesPage.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise HTTPException(status_code=502, detail=f"Resposta inesperada da API de vendas: {exc}") from exc
        logger.info(json.dumps({
            "event": "sales_page_fetched",
            "page": page,
            "records": len(sales_page.content),
            "lastPage": sales_page.last_page,
            "total": sales_page.total,
        }))
        return sales_page

    def _keep_in_window(self, raw_records: Iterable[Dict[str, Any]], window: DateWindow) -> List[SaleRecord]:
        kept: List[SaleRecord] = []
        for raw in raw_records:
            try:
                record = SaleRecord.model_validate(raw)
            except ValidationError as exc:
                logger.warning(json.dumps({
                    "event": "sales_record_rejected",
                    "detail": str(exc.errors(include_url=False)[:1]),
                }))
                continue
            if in_window(to_compact(record.sale_date), window.start, window.end):
                kept.append(record)
        return kept

    @log_call
    def fetch(self, window: DateWindow, store_codes: Optional[Set[int]] = None) -> List[SaleRecord]:
        """Return every sale in ``window`` (inclusive), optionally limited to some stores.

        :raises HTTPException: if the first page fails
        """
        base_body = self._request_body(window, store_codes)
        records: List[SaleRecord] = paginate(
            lambda page: self._fetch_page(page, base_body),
            lambda sales_page: (sales_page.content, sales_page.last_page),
            max_pages=self.config.max_pages,
            on_page=lambda raw: self._keep_in_window(raw, window),
        )
        logger.info(json.dumps({
            "event": "sales_fetch_done",
            "start": window.start,
            "end": window.end,
            "stores": sorted(store_codes) if store_codes else None,
            "records": len(records),
        }))
        return records


def build_window(start: Optional[str], end: Optional[str], tz: str) -> DateWindow:
    """Build a window from request dates; missing bounds default to today in ``tz``."""
    today = today_compact(tz)
    try:
        return DateWindow(
            start=normalize_compact(start) if start else today,
            end=normalize_compact(end) if end else today,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.errors(include_url=False)[0]["msg"]) from exc


@log_call
def fetch_sales_data(data: FetchSalesRequest, fetcher: SalesFetcher, tz: str) -> Dict[str, Any]:
    """Fetch the raw sales notes for the requested window, in the API's own shape."""
    window = build_window(data.data_inicial, data.data_final, tz)
    records = fetcher.fetch(window, parse_store_codes(data.empresas_origem))
    return {
        "content": [r.model_dump(mode="json", by_alias=True) for r in records],
        "total": len(records),
    }
