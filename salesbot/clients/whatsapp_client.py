"""
clients/whatsapp_client.py
---------------------------

Client for the Evolution API, the WhatsApp gateway the reports are sent
through. Every call carries the ``apikey`` header and goes through the
shared :class:`HTTPClient`. A non-2xx answer becomes an
``HTTPException(502)`` whose detail names the operation, so a failed
send can be reported per phone number.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import HTTPException

from salesbot.clients.http_client import HTTPClient
from salesbot.core.config import WhatsAppConfig


class WhatsAppClient:
    """Thin wrapper over the Evolution API endpoints used by the dashboard."""

    def __init__(self, http_client: HTTPClient, config: WhatsAppConfig):
        self.http_client = http_client
        self.config = config
        self.base_url = config.base_url
        self.headers = {"Content-Type": "application/json", "apikey": config.api_key}

    def _check(self, resp, what: str) -> Dict[str, Any]:
        if not resp.is_success:
            raise HTTPException(status_code=502, detail=f"Evolution API returned {resp.status_code} ({what}): {resp.text}")
        return resp.json() if resp.content else {}

    # --------------------------
    # PAREAMENTO
    # --------------------------
    def create_instance(self, instance_name: str) -> Dict[str, Any]:
        resp = self.http_client.request(
            "POST",
            f"{self.base_url}/instance/create",
            headers=self.headers,
            json={"instanceName": instance_name, "qrcode": True, "integration": "WHATSAPP-BAILEYS"},
        )
        return self._check(resp, "create")

    def connect(self, instance_name: str) -> Dict[str, Any]:
        """GET /instance/connect/{instance} -> QR code payload."""
        resp = self.http_client.request("GET", f"{self.base_url}/instance/connect/{instance_name}", headers=self.headers)
        return self._check(resp, "qr")

    def connection_state(self, instance_name: str) -> Dict[str, Any]:
        resp = self.http_client.request(
            "GET", f"{self.base_url}/instance/connectionState/{instance_name}", headers=self.headers
        )
        return self._check(resp, "status")

    # --------------------------
    # ENVIO
    # --------------------------
    def send_text(self, number: str, text: str) -> Dict[str, Any]:
        resp = self.http_client.request(
            "POST",
            f"{self.base_url}/message/sendText",
            headers=self.headers,
            json={"number": number, "text": text},
        )
        return self._check(resp, f"send {number}")
