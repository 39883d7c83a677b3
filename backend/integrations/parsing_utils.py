"""Shared parsing and coercion utilities for upstream catalog records.

Centralises the value-shape handling the Magento API needs: flags that
arrive as booleans, integers or strings, numbers encoded as strings,
date-times without timezone, and the slug rules shared by categories and
products.
"""

import json
import re
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation

_TRUE_STRINGS = frozenset({"1", "true", "yes"})
_FALSE_STRINGS = frozenset({"0", "false", "no", ""})

_SLUG_INVALID_RE = re.compile(r"[^a-z0-9]+")

UPSTREAM_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def coerce_bool(value, default: bool | None = None) -> bool | None:
    """Coerce a tri-state upstream flag to a bool.

    Accepts ``True``/``False``, the integers ``1``/``0`` and their string
    forms. ``None`` (absent) and unrecognised values return ``default``.

    Args:
        value: Raw flag value from the upstream JSON.
        default: Value returned when the flag is absent or unrecognised.

    Returns:
        The coerced bool, or ``default``.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return default


def parse_decimal(value) -> Decimal | None:
    """Parse a numeric value (int, float or numeric string) to Decimal.

    Returns ``None`` for missing or unparseable values.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def parse_int(value, default: int | None = None) -> int | None:
    """Parse an integer that may arrive as a string. Falls back to ``default``."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def parse_iso_datetime(value) -> datetime | None:
    """Parse an ISO 8601 / Magento date-time string to a UTC-aware datetime.

    Handles:
    - Magento's space-separated format ("2024-01-15 10:30:00")
    - Z suffix ("2024-01-15T10:30:00Z")
    - Date-only strings ("2024-06-28")
    - datetime/date objects passed through with UTC normalisation

    Args:
        value: A string, date, datetime, or None.

    Returns:
        A timezone-aware UTC datetime, or None if the value cannot be parsed.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    value_str = str(value).strip()
    if value_str.endswith("Z"):
        value_str = value_str[:-1] + "+00:00"

    try:
        return ensure_utc(datetime.fromisoformat(value_str))
    except (ValueError, TypeError):
        return None


def ensure_utc(dt: datetime) -> datetime:
    """Ensure a datetime is timezone-aware (UTC).

    If the datetime is naive, attach UTC; otherwise convert to UTC.
    SQLite hands back naive datetimes, which are stored as UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_upstream_datetime(dt: datetime) -> str:
    """Render a datetime in the upstream filter format.

    Space-separated, second precision, UTC, no timezone suffix:
    ``2024-01-15 10:30:00``.
    """
    return ensure_utc(dt).strftime(UPSTREAM_DATETIME_FORMAT)


def slugify(text: str | None) -> str:
    """Generate a URL slug: lowercase, runs of non ``[a-z0-9]`` become ``-``."""
    if not text:
        return ""
    return _SLUG_INVALID_RE.sub("-", text.lower()).strip("-")


def parse_supplier_skus(value) -> str | None:
    """Flatten the supplier article list into a comma-separated string.

    The upstream attribute holds either a JSON-encoded list of
    ``{"article_number": ...}`` objects, an already-decoded list, or a plain
    string. ``-`` placeholders and empty entries are dropped.
    """
    if not value:
        return None

    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except ValueError:
            return value
        if not isinstance(decoded, list):
            return value
        value = decoded

    if isinstance(value, list):
        numbers = [
            str(item.get("article_number"))
            for item in value
            if isinstance(item, dict)
            and item.get("article_number")
            and item.get("article_number") != "-"
        ]
        return ", ".join(numbers)

    return None
