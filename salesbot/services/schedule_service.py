"""
services/schedule_service.py
-----------------------------

Notification schedules and their evaluation.

An external timer calls :func:`evaluate_due_schedules` once per minute.
A schedule is due when it is active, its ``schedule_time`` equals the
current ``HH:MM`` and the current weekday (0 = Sunday) is one of its
``schedule_days``. Each due schedule fetches today's sales, aggregates
them into its report, formats the message and sends it to all of its
phone numbers. One history row is written per phone number.

Due schedules run concurrently; they share no state other than the
history store. A schedule that fails is counted as an error and gets a
``failed`` row for each of its numbers; it never stops the others.
Nothing prevents the same minute from being evaluated twice.
"""

from __future__ import annotations

import json
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from fastapi import HTTPException

from salesbot.clients.whatsapp_client import WhatsAppClient
from salesbot.core import store
from salesbot.logging_config import log_call, logger
from salesbot.schemas.notifications import NotificationHistoryEntry, NotificationSchedule, ScheduleCreate, SendResult
from salesbot.schemas.sales import DateWindow, parse_store_codes
from salesbot.services.insights_service import aggregate
from salesbot.services.message_service import format_report_message
from salesbot.services.sales_service import SalesFetcher
from salesbot.services.whatsapp_service import send_notification


def js_weekday(moment: datetime) -> int:
    """Weekday with Sunday as 0, the numbering stored in ``schedule_days``."""
    return (moment.weekday() + 1) % 7


def is_due(schedule: NotificationSchedule, local_now: datetime) -> bool:
    return (
        schedule.active
        and schedule.schedule_time[:5] == local_now.strftime("%H:%M")
        and js_weekday(local_now) in schedule.schedule_days
    )


def _history_row(schedule: NotificationSchedule, phone_number: str, status: str,
                 report_data: Optional[Dict[str, Any]] = None,
                 error_message: Optional[str] = None) -> NotificationHistoryEntry:
    return NotificationHistoryEntry(
        id=str(uuid.uuid4()),
        schedule_id=schedule.id,
        phone_number=phone_number,
        report_type=schedule.report_type,
        report_data=report_data,
        status=status,
        error_message=error_message,
        sent_at=datetime.now(timezone.utc),
    )


def run_schedule(schedule: NotificationSchedule, fetcher: SalesFetcher, client: WhatsAppClient,
                 local_now: datetime) -> SendResult:
    """Fetch, aggregate, format and send one schedule's report for ``local_now``'s day.

    Raises whatever the fetch raises; per-number send failures are
    recorded in the history and reported in the returned tally.
    """
    today = local_now.strftime("%Y%m%d")
    window = DateWindow(start=today, end=today)
    records = fetcher.fetch(window, parse_store_codes(schedule.empresas_origem))
    result = aggregate(records, schedule.report_type, window.start)
    message = format_report_message(schedule.name, result, today)
    sent = send_notification(schedule.phone_numbers, message, client)
    report_data = result.model_dump(mode="json", by_alias=True)
    for outcome in sent.results:
        store.record_history(_history_row(
            schedule,
            outcome.phone_number,
            "sent" if outcome.success else "failed",
            report_data=report_data,
            error_message=outcome.error,
        ))
    logger.info(json.dumps({
        "event": "schedule_sent",
        "schedule": schedule.name,
        "successful": sent.successful,
        "failed": sent.failed,
    }))
    return sent


def _run_safely(schedule: NotificationSchedule, fetcher: SalesFetcher, client: WhatsAppClient,
                local_now: datetime) -> bool:
    try:
        run_schedule(schedule, fetcher, client, local_now)
        return True
    except Exception as e:
        detail = getattr(e, "detail", None) or str(e)
        logger.error(json.dumps({
            "event": "schedule_error",
            "schedule": schedule.name,
            "detail": detail,
        }), exc_info=True)
        for phone_number in schedule.phone_numbers:
            store.record_history(_history_row(schedule, phone_number, "failed", error_message=str(detail)))
        return False


@log_call
def evaluate_due_schedules(fetcher: SalesFetcher, client: WhatsAppClient, tz: str,
                           now: Optional[datetime] = None, max_workers: int = 4) -> Dict[str, Any]:
    """Run every schedule due at ``now`` (default: current time) in ``tz``."""
    local_now = (now or datetime.now(timezone.utc)).astimezone(ZoneInfo(tz))
    current_time = local_now.strftime("%H:%M")
    current_day = js_weekday(local_now)
    active = store.list_schedules(active_only=True)
    due = [s for s in active if is_due(s, local_now)]
    logger.info(json.dumps({
        "event": "schedules_check",
        "currentTime": current_time,
        "currentDay": current_day,
        "active": len(active),
        "due": len(due),
    }))
    processed = errors = 0
    if due:
        with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(due)))) as executor:
            futures = [executor.submit(_run_safely, s, fetcher, client, local_now) for s in due]
            for fut in as_completed(futures):
                if fut.result():
                    processed += 1
                else:
                    errors += 1
    logger.info(json.dumps({"event": "schedules_done", "processed": processed, "errors": errors}))
    return {
        "processed": processed,
        "errors": errors,
        "currentTime": current_time,
        "currentDay": current_day,
    }


@log_call
def run_schedule_now(schedule_id: str, fetcher: SalesFetcher, client: WhatsAppClient, tz: str) -> SendResult:
    """Manual "run now" of one schedule, regardless of its time and days."""
    schedule = store.get_schedule(schedule_id)
    if schedule is None:
        raise HTTPException(status_code=404, detail="Agendamento não encontrado")
    return run_schedule(schedule, fetcher, client, datetime.now(ZoneInfo(tz)))


# --------------------------
# CRUD
# --------------------------
@log_call
def create_schedule(data: ScheduleCreate) -> NotificationSchedule:
    schedule = store.add_schedule(data)
    logger.info(json.dumps({
        "event": "schedule_created",
        "id": schedule.id,
        "name": schedule.name,
        "report_type": schedule.report_type.value,
    }))
    return schedule


def list_schedules() -> List[NotificationSchedule]:
    return store.list_schedules()


@log_call
def toggle_schedule(schedule_id: str) -> NotificationSchedule:
    schedule = store.get_schedule(schedule_id)
    if schedule is None:
        raise HTTPException(status_code=404, detail="Agendamento não encontrado")
    return store.set_active(schedule_id, not schedule.active)


@log_call
def remove_schedule(schedule_id: str) -> Dict[str, Any]:
    if not store.delete_schedule(schedule_id):
        raise HTTPException(status_code=404, detail="Agendamento não encontrado")
    return {"status": "ok", "id": schedule_id}


def monthly_sent_count(tz: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Number of ``sent`` history rows in the current month (dashboard card)."""
    local_now = (now or datetime.now(timezone.utc)).astimezone(ZoneInfo(tz))
    count = 0
    for entry in store.history:
        sent_local = entry.sent_at.astimezone(ZoneInfo(tz))
        if entry.status == "sent" and (sent_local.year, sent_local.month) == (local_now.year, local_now.month):
            count += 1
    return {"month": local_now.strftime("%m/%Y"), "sent": count}
