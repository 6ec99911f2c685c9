"""
logging_config.py
------------------

Logging setup for the sales notifier.

Everything goes through the ``salesbot`` logger as one JSON object per
message, so container logs can be filtered by ``event``. Two kinds of
data must never be written out: credentials (the sales API password,
the Evolution ``apikey``) and full WhatsApp message bodies, which carry
each store's revenue. :func:`redact` handles both before a payload is
logged.

The level comes from ``APP_LOG_LEVEL`` (default ``INFO``).
``log_call`` and ``log_http_request`` only produce output at DEBUG.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from functools import wraps
from typing import Any, Callable, Dict, Optional

logging.basicConfig(
    level=os.getenv("APP_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger("salesbot")

CREDENTIAL_MARKERS = ("password", "secret", "token", "apikey", "authorization")
# keys whose value is free text sent to a phone
MESSAGE_KEYS = {"text", "message"}
MAX_TEXT = 60


def redact(value: Any) -> Any:
    """Return a JSON-serialisable copy of ``value`` that is safe to log.

    Credential-looking keys are dropped, message bodies are cut to
    ``MAX_TEXT`` characters and pydantic models are logged through
    ``model_dump``. Anything else that is not JSON is logged by ``str``.
    """
    if isinstance(value, dict):
        out: Dict[str, Any] = {}
        for key, item in value.items():
            lowered = str(key).lower()
            if any(marker in lowered for marker in CREDENTIAL_MARKERS):
                continue
            if lowered in MESSAGE_KEYS and isinstance(item, str) and len(item) > MAX_TEXT:
                out[key] = f"{item[:MAX_TEXT]}... ({len(item)} chars)"
                continue
            out[key] = redact(item)
        return out
    if isinstance(value, (list, tuple, set)):
        return [redact(item) for item in value]
    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    dump = getattr(value, "model_dump", None)
    if callable(dump):
        return redact(dump(mode="json"))
    return str(value)


def _summary(value: Any) -> Any:
    # lists of sale records can hold thousands of entries
    if isinstance(value, list):
        return {"items": len(value)}
    return redact(value)


def log_call(func: Callable[..., Any]) -> Callable[..., Any]:
    """Log ``call_start``/``call_end`` events around a service function at DEBUG.

    Exceptions are not logged here; the routes log them with context.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        debug = logger.isEnabledFor(logging.DEBUG)
        if debug:
            logger.debug(json.dumps({
                "event": "call_start",
                "function": func.__qualname__,
                "args": redact(args),
                "kwargs": redact(kwargs),
            }, default=str))
        result = func(*args, **kwargs)
        if debug:
            logger.debug(json.dumps({
                "event": "call_end",
                "function": func.__qualname__,
                "result": _summary(result),
            }, default=str))
        return result

    return wrapper


def log_http_request(method: str, url: str, *, headers: Optional[Dict[str, Any]] = None,
                     params: Optional[Dict[str, Any]] = None, json_body: Any = None,
                     status: Optional[int] = None, duration_ms: Optional[float] = None) -> None:
    """Log one outbound call once its outcome is known.

    ``status`` is ``None`` when the transport failed before a response
    arrived.
    """
    if not logger.isEnabledFor(logging.DEBUG):
        return
    entry: Dict[str, Any] = {"event": "http_request", "method": method, "url": url, "status": status}
    if headers:
        entry["headers"] = redact(headers)
    if params:
        entry["params"] = redact(params)
    if json_body is not None:
        entry["json"] = redact(json_body)
    if duration_ms is not None:
        entry["duration_ms"] = round(duration_ms, 2)
    logger.debug(json.dumps(entry, default=str))
