"""
routes/notifications.py
------------------------

API routes for notification schedules, the periodic evaluation entry
point, manual sends and the notification history.

``POST /process-scheduled-notifications`` is meant to be called by an
external timer once per minute.
"""

from __future__ import annotations

import json
from typing import List

from fastapi import APIRouter, Depends, Query

from salesbot.clients.whatsapp_client import WhatsAppClient
from salesbot.core import store
from salesbot.core.config import Settings, get_settings
from salesbot.core.dependencies import get_sales_fetcher, get_whatsapp_client
from salesbot.logging_config import logger
from salesbot.schemas.notifications import (
    NotificationHistoryEntry,
    NotificationSchedule,
    PreviewSendRequest,
    ScheduleCreate,
    SendNotificationRequest,
    SendResult,
)
from salesbot.services.sales_service import SalesFetcher
from salesbot.services.schedule_service import (
    create_schedule,
    evaluate_due_schedules,
    list_schedules,
    monthly_sent_count,
    remove_schedule,
    run_schedule_now,
    toggle_schedule,
)
from salesbot.services.whatsapp_service import send_notification, send_preview_notification

router = APIRouter(tags=["Notificações"])


@router.get("/schedules", response_model=List[NotificationSchedule])
def get_schedules():
    return list_schedules()


@router.post("/schedules", response_model=NotificationSchedule, status_code=201)
def post_schedule(data: ScheduleCreate):
    logger.info(json.dumps({
        "event": "create_schedule_request",
        "name": data.name,
        "report_type": data.report_type.value,
        "schedule_time": data.schedule_time,
    }))
    return create_schedule(data)


@router.patch("/schedules/{schedule_id}/toggle", response_model=NotificationSchedule)
def patch_toggle_schedule(schedule_id: str):
    return toggle_schedule(schedule_id)


@router.delete("/schedules/{schedule_id}")
def delete_schedule(schedule_id: str):
    return remove_schedule(schedule_id)


@router.post("/schedules/{schedule_id}/run", response_model=SendResult)
def post_run_schedule(
    schedule_id: str,
    fetcher: SalesFetcher = Depends(get_sales_fetcher),
    client: WhatsAppClient = Depends(get_whatsapp_client),
    settings: Settings = Depends(get_settings),
):
    """Executa um agendamento imediatamente."""
    logger.info(json.dumps({"event": "run_schedule_request", "id": schedule_id}))
    try:
        resp = run_schedule_now(schedule_id, fetcher, client, settings.timezone)
        logger.info(json.dumps({
            "event": "run_schedule_response",
            "id": schedule_id,
            "successful": resp.successful,
            "failed": resp.failed,
        }))
        return resp
    except Exception as e:
        logger.error(json.dumps({
            "event": "run_schedule_error",
            "id": schedule_id,
            "detalhe": getattr(e, "detail", None) or str(e),
        }), exc_info=True)
        raise


@router.post("/process-scheduled-notifications")
def post_process_scheduled_notifications(
    fetcher: SalesFetcher = Depends(get_sales_fetcher),
    client: WhatsAppClient = Depends(get_whatsapp_client),
    settings: Settings = Depends(get_settings),
):
    """Avalia os agendamentos ativos e envia os que vencem neste minuto."""
    return evaluate_due_schedules(fetcher, client, settings.timezone)


@router.post("/send-whatsapp-notification", response_model=SendResult)
def post_send_whatsapp_notification(
    data: SendNotificationRequest,
    client: WhatsAppClient = Depends(get_whatsapp_client),
):
    logger.info(json.dumps({
        "event": "send_whatsapp_notification_request",
        "recipients": len(data.phone_numbers),
    }))
    return send_notification(data.phone_numbers, data.message, client)


@router.post("/send-test-notification", response_model=SendResult)
def post_send_test_notification(
    data: PreviewSendRequest,
    fetcher: SalesFetcher = Depends(get_sales_fetcher),
    client: WhatsAppClient = Depends(get_whatsapp_client),
    settings: Settings = Depends(get_settings),
):
    """Gera o preview e envia para os números de teste."""
    logger.info(json.dumps({
        "event": "send_test_notification_request",
        "reportType": data.report_type.value,
        "recipients": len(data.test_phone_numbers),
    }))
    return send_preview_notification(data, fetcher, client, settings.timezone)


@router.get("/notifications/history", response_model=List[NotificationHistoryEntry])
def get_history(limit: int = Query(50, ge=1, le=500)):
    return store.list_history(limit)


@router.get("/notifications/monthly-count")
def get_monthly_count(settings: Settings = Depends(get_settings)):
    return monthly_sent_count(settings.timezone)
