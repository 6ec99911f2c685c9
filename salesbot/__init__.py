"""
salesbot package
----------------

FastAPI service that fetches sales notes from the ERP sales API,
aggregates them into reports and sends them over WhatsApp on a
schedule. Importing ``salesbot`` loads :mod:`salesbot.main` and exposes
the ``app`` instance for ASGI servers.
"""

from .main import app  # noqa: F401
