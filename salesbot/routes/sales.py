"""
routes/sales.py
----------------

API routes for raw sales retrieval and the aggregated report preview.
Each route delegates to its service function and logs request,
response and error events.
"""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends

from salesbot.core.config import Settings, get_settings
from salesbot.core.dependencies import get_sales_fetcher
from salesbot.logging_config import logger
from salesbot.schemas.sales import FetchSalesRequest, ProcessInsightsRequest
from salesbot.services.insights_service import process_insights
from salesbot.services.sales_service import SalesFetcher, fetch_sales_data

router = APIRouter(tags=["Vendas"])


@router.post("/fetch-sales-data")
def post_fetch_sales_data(
    data: FetchSalesRequest,
    fetcher: SalesFetcher = Depends(get_sales_fetcher),
    settings: Settings = Depends(get_settings),
):
    """Devolve as notas de venda da janela pedida (padrão: hoje em São Paulo)."""
    logger.info(json.dumps({
        "event": "fetch_sales_data_request",
        "dataInicial": data.data_inicial,
        "dataFinal": data.data_final,
        "empresasOrigem": data.empresas_origem,
    }))
    try:
        resp = fetch_sales_data(data, fetcher, settings.timezone)
        logger.info(json.dumps({"event": "fetch_sales_data_response", "total": resp["total"]}))
        return resp
    except Exception as e:
        logger.error(json.dumps({
            "event": "fetch_sales_data_error",
            "detalhe": getattr(e, "detail", None) or str(e),
        }), exc_info=True)
        raise


@router.post("/process-insights")
def post_process_insights(
    data: ProcessInsightsRequest,
    fetcher: SalesFetcher = Depends(get_sales_fetcher),
    settings: Settings = Depends(get_settings),
):
    """Busca as vendas e devolve o relatório agregado (preview)."""
    logger.info(json.dumps({
        "event": "process_insights_request",
        "dataInicial": data.data_inicial,
        "dataFinal": data.data_final,
        "reportType": data.report_type.value,
    }))
    try:
        resp = process_insights(data, fetcher, settings.timezone)
        logger.info(json.dumps({
            "event": "process_insights_response",
            "stores": len(resp.get("data", {})),
            "total": resp.get("total"),
        }))
        return resp
    except Exception as e:
        logger.error(json.dumps({
            "event": "process_insights_error",
            "detalhe": getattr(e, "detail", None) or str(e),
        }), exc_info=True)
        raise
