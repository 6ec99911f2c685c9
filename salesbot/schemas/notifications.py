"""
schemas/notifications.py
-------------------------

Models for notification schedules, the notification history and the
WhatsApp gateway endpoints. Field names follow the columns of the
schedule table the dashboard was built around (``schedule_time``,
``phone_numbers``, ``empresas_origem``...), while the gateway bodies
use the camelCase names the front end sends.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from salesbot.schemas.sales import ProcessInsightsRequest, ReportKind


class ScheduleCreate(BaseModel):
    name: str = Field(min_length=1)
    report_type: ReportKind
    schedule_time: str = Field(description="Hora de envio no formato HH:MM")
    schedule_days: List[int] = Field(description="0 = domingo ... 6 = sábado")
    phone_numbers: List[str] = Field(min_length=1)
    empresas_origem: Optional[List[str]] = None
    active: bool = True

    @field_validator("schedule_time")
    @classmethod
    def _hh_mm(cls, value: str) -> str:
        parts = value.strip()[:5].split(":")
        if len(parts) != 2 or not all(p.isdigit() for p in parts):
            raise ValueError("schedule_time deve estar no formato HH:MM")
        hour, minute = int(parts[0]), int(parts[1])
        if not (0 <= hour < 24 and 0 <= minute < 60):
            raise ValueError("schedule_time fora do intervalo")
        return f"{hour:02d}:{minute:02d}"

    @field_validator("schedule_days")
    @classmethod
    def _weekdays(cls, value: List[int]) -> List[int]:
        if any(d < 0 or d > 6 for d in value):
            raise ValueError("schedule_days aceita apenas valores de 0 a 6")
        return sorted(set(value))

    @field_validator("phone_numbers", "empresas_origem", mode="before")
    @classmethod
    def _split_csv(cls, value):
        # the form sends "1, 2, 3" as a single string
        if isinstance(value, str):
            return [v.strip() for v in value.split(",") if v.strip()]
        if isinstance(value, list):
            return [str(v).strip() for v in value if str(v).strip()]
        return value

    @field_validator("empresas_origem")
    @classmethod
    def _numeric_codes(cls, value):
        if value and not all(code.isdigit() for code in value):
            raise ValueError("códigos de loja devem ser numéricos")
        return value or None


class NotificationSchedule(ScheduleCreate):
    id: str
    created_at: datetime


class NotificationHistoryEntry(BaseModel):
    id: str
    schedule_id: Optional[str] = None
    phone_number: str
    report_type: ReportKind
    report_data: Optional[Dict[str, Any]] = None
    status: Literal["sent", "failed"]
    error_message: Optional[str] = None
    sent_at: datetime


class SendNotificationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone_numbers: List[str] = Field(alias="phoneNumbers", min_length=1)
    message: str = Field(min_length=1)


class RecipientResult(BaseModel):
    phone_number: str
    success: bool
    error: Optional[str] = None


class SendResult(BaseModel):
    successful: int
    failed: int
    total: int
    results: List[RecipientResult] = Field(default_factory=list)


class PreviewSendRequest(ProcessInsightsRequest):
    """Preview screen's "send test": same fields as the preview plus the numbers."""

    test_phone_numbers: List[str] = Field(alias="testPhoneNumbers", min_length=1)


class InstanceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    instance_name: Optional[str] = Field(None, alias="instanceName")
