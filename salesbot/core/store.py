"""
core/store.py
--------------

In-memory storage for notification schedules and the notification
history. Schedules are keyed by id; history entries are appended in
send order. The store lives in process memory, so in a multi-worker
deployment each worker has its own copy and nothing survives a
restart.

Several due schedules can run at once, each appending its own history
rows, so writes go through a lock.
"""

from __future__ import annotations

import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from salesbot.schemas.notifications import NotificationHistoryEntry, NotificationSchedule, ScheduleCreate

schedules: Dict[str, NotificationSchedule] = {}
history: List[NotificationHistoryEntry] = []
_lock = threading.Lock()


def add_schedule(data: ScheduleCreate) -> NotificationSchedule:
    schedule = NotificationSchedule(
        id=str(uuid.uuid4()),
        created_at=datetime.now(timezone.utc),
        **data.model_dump(),
    )
    with _lock:
        schedules[schedule.id] = schedule
    return schedule


def get_schedule(schedule_id: str) -> Optional[NotificationSchedule]:
    return schedules.get(schedule_id)


def list_schedules(active_only: bool = False) -> List[NotificationSchedule]:
    items = sorted(schedules.values(), key=lambda s: s.created_at, reverse=True)
    if active_only:
        return [s for s in items if s.active]
    return items


def set_active(schedule_id: str, active: bool) -> Optional[NotificationSchedule]:
    with _lock:
        current = schedules.get(schedule_id)
        if current is None:
            return None
        updated = current.model_copy(update={"active": active})
        schedules[schedule_id] = updated
    return updated


def delete_schedule(schedule_id: str) -> bool:
    with _lock:
        return schedules.pop(schedule_id, None) is not None


def record_history(entry: NotificationHistoryEntry) -> None:
    with _lock:
        history.append(entry)


def list_history(limit: int = 50) -> List[NotificationHistoryEntry]:
    """Most recent entries first."""
    return sorted(history, key=lambda h: h.sent_at, reverse=True)[:limit]


def clear() -> None:
    """Remove every schedule and history entry."""
    with _lock:
        schedules.clear()
        history.clear()
