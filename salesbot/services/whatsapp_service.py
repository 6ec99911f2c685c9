"""
services/whatsapp_service.py
-----------------------------

WhatsApp side of the dashboard: pairing a device through the Evolution
API (QR code and connection state), receiving its webhook events, sending
a message to a list of phone numbers and sending the report preview to
test numbers.

A message is sent to every number independently and concurrently. One
number failing does not stop the others; the caller gets a tally of
successful and failed sends plus the per-number outcome.
"""

from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Optional

from salesbot.clients.whatsapp_client import WhatsAppClient
from salesbot.logging_config import log_call, logger
from salesbot.schemas.notifications import PreviewSendRequest, RecipientResult, SendResult
from salesbot.schemas.sales import parse_store_codes
from salesbot.services.insights_service import aggregate
from salesbot.services.message_service import format_preview_message
from salesbot.services.sales_service import SalesFetcher, build_window


@log_call
def send_notification(phone_numbers: List[str], message: str, client: WhatsAppClient) -> SendResult:
    """Send ``message`` to each number and tally the outcome."""
    logger.info(json.dumps({"event": "whatsapp_send_start", "recipients": len(phone_numbers)}))

    def _send(number: str) -> RecipientResult:
        try:
            client.send_text(number, message)
            return RecipientResult(phone_number=number, success=True)
        except Exception as e:
            logger.warning(json.dumps({
                "event": "whatsapp_send_failed",
                "phone_number": number,
                "detail": getattr(e, "detail", None) or str(e),
            }))
            return RecipientResult(phone_number=number, success=False, error=getattr(e, "detail", None) or str(e))

    results: List[RecipientResult] = []
    if phone_numbers:
        workers = max(1, min(client.config.max_workers, len(phone_numbers)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(_send, number) for number in phone_numbers]
            for fut in as_completed(futures):
                results.append(fut.result())
    # keep the caller's order in the report
    order = {number: i for i, number in enumerate(phone_numbers)}
    results.sort(key=lambda r: order.get(r.phone_number, 0))
    successful = sum(1 for r in results if r.success)
    logger.info(json.dumps({
        "event": "whatsapp_send_done",
        "successful": successful,
        "failed": len(results) - successful,
    }))
    return SendResult(
        successful=successful,
        failed=len(results) - successful,
        total=len(phone_numbers),
        results=results,
    )


@log_call
def send_preview_notification(data: PreviewSendRequest, fetcher: SalesFetcher, client: WhatsAppClient,
                              tz: str) -> SendResult:
    """Build the preview report for the requested window and send it to the test numbers."""
    window = build_window(data.data_inicial, data.data_final, tz)
    records = fetcher.fetch(window, parse_store_codes(data.empresas_origem))
    result = aggregate(records, data.report_type, window.start)
    message = format_preview_message(result, window.start, window.end)
    return send_notification(data.test_phone_numbers, message, client)


@log_call
def get_qrcode(client: WhatsAppClient, instance_name: Optional[str] = None) -> Dict[str, Any]:
    """Create (or reconnect) the instance and return the QR code to pair it."""
    name = instance_name or client.config.instance_name
    client.create_instance(name)
    logger.info(json.dumps({"event": "whatsapp_instance_created", "instanceName": name}))
    qr = client.connect(name)
    return {
        "qrcode": (qr.get("qrcode") or {}).get("code") or qr.get("code"),
        "status": qr.get("status") or "pending",
        "instanceName": name,
    }


@log_call
def check_status(client: WhatsAppClient, instance_name: Optional[str] = None) -> Dict[str, Any]:
    name = instance_name or client.config.instance_name
    data = client.connection_state(name)
    state = data.get("state") or (data.get("instance") or {}).get("state") or "disconnected"
    return {"status": state, "connected": state == "open", "instanceName": name}


def handle_webhook(body: Dict[str, Any]) -> Dict[str, Any]:
    """Log an Evolution webhook event. Nothing is persisted."""
    event_type = body.get("event")
    data = body.get("data") or {}
    if event_type == "connection.update":
        logger.info(json.dumps({"event": "whatsapp_connection_update", "state": data.get("state")}))
    elif event_type == "messages.upsert":
        logger.info(json.dumps({"event": "whatsapp_message_received", "remoteJid": (data.get("key") or {}).get("remoteJid")}))
    elif event_type == "qrcode.updated":
        logger.info(json.dumps({"event": "whatsapp_qrcode_updated"}))
    else:
        logger.info(json.dumps({"event": "whatsapp_webhook_unknown", "type": event_type}))
    return {"success": True, "event": event_type}
