"""Date and text filters applied to in-memory record lists."""

from datetime import date
from typing import Any, Dict, Iterable, Optional


def parse_date(value: Any) -> Optional[date]:
    """Date part of an ISO date or datetime string, or None."""
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or len(value) < 10:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def in_date_range(value: Any, date_from: Optional[date] = None, date_to: Optional[date] = None) -> bool:
    """Inclusive range check. Without bounds, or without a date, the record matches."""
    if date_from is None and date_to is None:
        return True
    parsed = parse_date(value)
    if parsed is None:
        return True
    if date_from and parsed < date_from:
        return False
    if date_to and parsed > date_to:
        return False
    return True


def matches_month_year(
    value: Any,
    month: Optional[int] = None,
    year: Optional[int] = None,
    keep_undated: bool = False,
) -> bool:
    if month is None and year is None:
        return True
    parsed = parse_date(value)
    if parsed is None:
        return keep_undated
    if month is not None and parsed.month != month:
        return False
    if year is not None and parsed.year != year:
        return False
    return True


def matches_search(record: Dict[str, Any], search: Optional[str], fields: Iterable[str]) -> bool:
    """Case-insensitive substring match over the given fields."""
    if not search:
        return True
    needle = search.lower()
    return any(needle in str(record.get(f) or "").lower() for f in fields)
