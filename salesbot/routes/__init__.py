"""
Route package for the sales notifier.

Each module defines an ``APIRouter`` for one functional area (sales
retrieval and preview, schedules and notifications, WhatsApp pairing).
``salesbot.main`` imports them and includes them in the application.
"""

__all__ = [
    "sales",
    "notifications",
    "evolution",
]
