"""Field normalization for dates, times and free-text cells"""
import re
import unicodedata
from typing import Optional


ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$", re.ASCII)
US_SLASH_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$", re.ASCII)
US_DASH_DATE = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$", re.ASCII)

TIME_24H = re.compile(r"^(\d{1,2}):(\d{2})$", re.ASCII)
TIME_WITH_SECONDS = re.compile(r"^(\d{2}):(\d{2}):\d{2}$", re.ASCII)
TIME_12H = re.compile(r"^(\d{1,2}):(\d{2})\s*(am|pm)$", re.IGNORECASE | re.ASCII)


def normalize_to_halfwidth(text: str) -> str:
    return unicodedata.normalize("NFKC", text)


def normalize_text(text: str) -> str:
    return normalize_to_halfwidth(text).strip()


def normalize_email(email: str) -> str:
    return normalize_to_halfwidth(email).strip().lower()


def normalize_date(raw: str) -> Optional[str]:
    """Rewrite a date to YYYY-MM-DD, or return None.

    Accepts YYYY-MM-DD and the US month-first forms M/D/YYYY and M-D-YYYY.
    Only the shape is checked here, not whether the day exists.
    """
    value = normalize_text(raw)
    if ISO_DATE.match(value):
        return value

    match = US_SLASH_DATE.match(value) or US_DASH_DATE.match(value)
    if match:
        month, day, year = match.groups()
        return f"{year}-{int(month):02d}-{int(day):02d}"

    return None


def _format_time(hours: int, minutes: int) -> Optional[str]:
    if 0 <= hours <= 23 and 0 <= minutes <= 59:
        return f"{hours:02d}:{minutes:02d}"
    return None


def normalize_time(raw: str) -> Optional[str]:
    """Rewrite a time of day to 24-hour HH:MM, or return None."""
    value = normalize_text(raw)

    match = TIME_24H.match(value) or TIME_WITH_SECONDS.match(value)
    if match:
        return _format_time(int(match.group(1)), int(match.group(2)))

    match = TIME_12H.match(value)
    if match:
        hours = int(match.group(1))
        minutes = int(match.group(2))
        if not 1 <= hours <= 12:
            return None
        period = match.group(3).upper()
        if period == "PM" and hours != 12:
            hours += 12
        if period == "AM" and hours == 12:
            hours = 0
        return _format_time(hours, minutes)

    return None
