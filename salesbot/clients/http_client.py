"""
clients/http_client.py
----------------------

Outbound HTTP for the two external systems the notifier talks to: the
ERP sales API and the Evolution WhatsApp gateway. A single
:class:`HTTPClient` is created in the FastAPI lifespan and shared, so
both systems reuse one ``httpx`` connection pool.

Only GET calls (gateway pairing and connection state) are retried.
The sales query and ``sendText`` are POSTs: resending a message could
deliver it twice, so they go out once and the caller decides what a
failure means (fatal on the first sales page, recoverable for one
recipient).

Concurrent sends share the client, so the per-host breaker keeps its
counters behind a lock.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Dict, Optional

import httpx

from salesbot.core.config import Settings, get_settings
from salesbot.logging_config import log_http_request

RETRYABLE_STATUS = {502, 503, 504}


class CircuitOpenError(RuntimeError):
    """Raised instead of calling a host whose breaker is open."""

    def __init__(self, host: str) -> None:
        super().__init__(f"Circuit breaker open for host {host}")
        self.host = host


class CircuitBreaker:
    """Per-host breaker: opens after ``failure_threshold`` consecutive
    failures and lets traffic through again once ``reset_timeout``
    seconds have passed."""

    def __init__(self, failure_threshold: int = 5, reset_timeout: float = 60.0) -> None:
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._consecutive: Dict[str, int] = {}
        self._open_until: Dict[str, float] = {}
        self._lock = threading.Lock()

    def allow(self, host: str) -> bool:
        with self._lock:
            deadline = self._open_until.get(host)
            if deadline is None:
                return True
            if time.monotonic() < deadline:
                return False
            # half-open: the next outcome decides
            del self._open_until[host]
            self._consecutive[host] = self.failure_threshold - 1
            return True

    def failure(self, host: str) -> None:
        with self._lock:
            count = self._consecutive.get(host, 0) + 1
            self._consecutive[host] = count
            if count >= self.failure_threshold:
                self._open_until[host] = time.monotonic() + self.reset_timeout

    def success(self, host: str) -> None:
        with self._lock:
            self._consecutive.pop(host, None)
            self._open_until.pop(host, None)


class HTTPClient:
    """Shared ``httpx`` client with GET retries and a circuit breaker.

    ``transport`` is forwarded to :class:`httpx.Client`; tests pass an
    :class:`httpx.MockTransport` here to fake the external APIs.
    """

    def __init__(self, settings: Optional[Settings] = None,
                 transport: Optional[httpx.BaseTransport] = None,
                 breaker: Optional[CircuitBreaker] = None) -> None:
        settings = settings or get_settings()
        self._client = httpx.Client(timeout=settings.http_timeout, transport=transport)
        self._breaker = breaker or CircuitBreaker()
        self.max_retries = settings.http_max_retries
        self.backoff_factor = settings.http_backoff_factor

    def close(self) -> None:
        self._client.close()

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        host = httpx.URL(url).host
        if not self._breaker.allow(host):
            raise CircuitOpenError(host)
        started = time.perf_counter()
        status: Optional[int] = None
        try:
            response = self._client.request(method, url, **kwargs)
            status = response.status_code
        except httpx.HTTPError:
            self._breaker.failure(host)
            raise
        finally:
            log_http_request(method, url, headers=kwargs.get("headers"), params=kwargs.get("params"),
                             json_body=kwargs.get("json"), status=status,
                             duration_ms=(time.perf_counter() - started) * 1000)
        # a 4xx means the host answered
        if response.status_code >= 500:
            self._breaker.failure(host)
        else:
            self._breaker.success(host)
        return response

    def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """GET with exponential backoff on transport errors and 502/503/504.

        The last response is returned as is once retries run out; the
        last transport error is re-raised.
        """
        attempt = 0
        while True:
            try:
                response = self._send("GET", url, **kwargs)
            except httpx.HTTPError:
                if attempt >= self.max_retries:
                    raise
            else:
                if response.status_code not in RETRYABLE_STATUS or attempt >= self.max_retries:
                    return response
            time.sleep(self.backoff_factor * (2 ** attempt))
            attempt += 1

    def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send ``method`` to ``url``. Only GET goes through :meth:`get` retries."""
        method = method.upper()
        if method == "GET":
            return self.get(url, **kwargs)
        return self._send(method, url, **kwargs)
