"""
utils/dates.py
---------------

Conversions between the three date encodings used around the sales
API:

* ``YYYYMMDD`` ("compact"), the canonical key for request windows;
* ``YYYY/MM/DD``, the wire format of ``dataVendaInicial``/``dataVendaFinal``;
* ``DD/MM/YYYY[ HH:MM:SS]``, the format embedded in each sales record.

None of these helpers raise on malformed input. A record whose date
cannot be parsed gets the empty string, which never falls inside a
window and never equals a real bucket key.

Compact dates are compared as plain strings. This is only valid
because the encoding is fixed width and zero padded, so ``to_compact``
always pads day and month to two digits and the year to four.
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

EMPTY = ""


def date_only(value: str | None) -> str:
    """Return the first whitespace-delimited token (drops the time)."""
    if not value:
        return EMPTY
    parts = value.split()
    return parts[0] if parts else EMPTY


def to_compact(value: str | None) -> str:
    """Convert ``DD/MM/YYYY[ HH:MM:SS]`` into ``YYYYMMDD``.

    Returns :data:`EMPTY` when the date portion does not have exactly
    three ``/``-separated numeric parts, or when a part is out of range
    (day 1-31, month 1-12, year 0-9999), so the result is always either
    empty or exactly 8 characters.
    """
    parts = date_only(value).split("/")
    if len(parts) != 3:
        return EMPTY
    try:
        day, month, year = (int(p) for p in parts)
    except ValueError:
        return EMPTY
    if not (1 <= day <= 31 and 1 <= month <= 12 and 0 <= year <= 9999):
        return EMPTY
    return f"{year:04d}{month:02d}{day:02d}"


def to_slashed(compact: str) -> str:
    """Convert ``YYYYMMDD`` into ``YYYY/MM/DD``.

    Anything that is not 8 characters long is returned unchanged.
    """
    if len(compact) != 8:
        return compact
    return f"{compact[:4]}/{compact[4:6]}/{compact[6:]}"


def compact_to_display(compact: str) -> str:
    """Convert ``YYYYMMDD`` into ``DD/MM/YYYY`` (passthrough if not 8 chars)."""
    if len(compact) != 8:
        return compact
    return f"{compact[6:]}/{compact[4:6]}/{compact[:4]}"


def in_window(compact: str, start: str, end: str) -> bool:
    """Inclusive membership test on compact dates; the empty sentinel never matches."""
    if not compact:
        return False
    return start <= compact <= end


def normalize_compact(value: str) -> str:
    """Accept ``YYYYMMDD`` or ``YYYY-MM-DD`` and return ``YYYYMMDD``."""
    return value.strip().replace("-", "")


def today_compact(tz: str = "America/Sao_Paulo", now: datetime | None = None) -> str:
    """Return today's date in ``tz`` as ``YYYYMMDD``."""
    current = now.astimezone(ZoneInfo(tz)) if now else datetime.now(ZoneInfo(tz))
    return current.strftime("%Y%m%d")
