"""
routes/evolution.py
--------------------

API routes for pairing the WhatsApp device through the Evolution API
(QR code and connection state) and for its webhook.
"""

from __future__ import annotations

import json
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from salesbot.clients.whatsapp_client import WhatsAppClient
from salesbot.core.dependencies import get_whatsapp_client
from salesbot.logging_config import logger
from salesbot.schemas.notifications import InstanceRequest
from salesbot.services.whatsapp_service import check_status, get_qrcode, handle_webhook

router = APIRouter(prefix="/evolution", tags=["WhatsApp"])


@router.post("/qrcode")
def post_qrcode(data: InstanceRequest, client: WhatsAppClient = Depends(get_whatsapp_client)):
    logger.info(json.dumps({"event": "evolution_qrcode_request", "instanceName": data.instance_name}))
    return get_qrcode(client, data.instance_name)


@router.post("/status")
def post_status(data: InstanceRequest, client: WhatsAppClient = Depends(get_whatsapp_client)):
    return check_status(client, data.instance_name)


@router.post("/webhook")
def post_webhook(body: Dict[str, Any] = Body(...)):
    return handle_webhook(body)
