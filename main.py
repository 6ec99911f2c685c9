"""
Root application entry point for the sales notifier
===================================================

Exposes the FastAPI application instance defined in
``salesbot/main.py`` so that deployment tools like Uvicorn can import
``main:app``. Application setup and router registration stay in
``salesbot.main``.

Usage
-----

.. code-block:: bash

    APP_SALES_API_PASSWORD=... APP_EVOLUTION_API_URL=... APP_EVOLUTION_API_KEY=... \
        uvicorn main:app --host 0.0.0.0 --port 8000

An external timer should ``POST /process-scheduled-notifications`` once
per minute.
"""

from salesbot.main import app  # noqa: F401 re-export for Uvicorn

__all__ = ["app"]
