"""
Date handling for raw daily submissions.

Submissions usually start with a short "<month>.<day>" line such as "5.9"
(always month first). The extractor tends to mangle these (e.g. reading
"5.9" as October 5th), so the token is annotated before extraction and
used afterwards to repair whatever date the extractor returned.

All dates are plain "YYYY-MM-DD" strings.
"""
from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

SHORT_DATE_RE = re.compile(r"^\s*(\d{1,2})\.(\d{1,2})\s*$")
ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def _today(today: Optional[date]) -> date:
    return today or date.today()


def _first_line(raw_text: str) -> str:
    return (raw_text or "").split("\n", 1)[0]


def _plausible(month: int, day: int) -> bool:
    return 1 <= month <= 12 and 1 <= day <= 31


def format_date(year: int, month: int, day: int) -> str:
    return f"{year:04d}-{month:02d}-{day:02d}"


def parse_short_date(raw_text: str) -> Optional[Tuple[int, int]]:
    """Return (month, day) from a "M.D" first line, or None."""
    m = SHORT_DATE_RE.match(_first_line(raw_text))
    if not m:
        return None
    return int(m.group(1)), int(m.group(2))


def preprocess_raw_text(raw_text: str, today: Optional[date] = None) -> str:
    """
    Replace a bare "M.D" first line with an annotated line that spells out
    the month, day and year, so the extractor cannot swap them.
    """
    token = parse_short_date(raw_text)
    if token is None:
        return raw_text

    month, day = token
    year = _today(today).year
    raw_token = _first_line(raw_text).strip()
    if _plausible(month, day):
        annotated = (
            f"{raw_token} (date: month {month} = {MONTH_NAMES[month - 1]}, day {day}, "
            f"year {year} => {format_date(year, month, day)})"
        )
    else:
        # out of range; no month name or canonical date to offer
        annotated = f"{raw_token} (date: month {month}, day {day}, year {year})"
    rest = raw_text.split("\n", 1)
    return annotated if len(rest) == 1 else f"{annotated}\n{rest[1]}"


def normalize_date(candidate: Optional[str], raw_text: str, today: Optional[date] = None) -> str:
    """Reconcile the extractor's date with the raw text's "M.D" token."""
    now = _today(today)
    current_year = now.year
    token = parse_short_date(raw_text)

    if not candidate:
        logger.info("extractor returned no date, using today")
        return now.isoformat()

    candidate = str(candidate).strip()
    iso = ISO_DATE_RE.match(candidate)
    if iso:
        year, month, day = (int(g) for g in iso.groups())

        if token is not None:
            raw_month, raw_day = token
            if raw_month != month and raw_day != day and _plausible(raw_month, raw_day):
                fixed = format_date(current_year, raw_month, raw_day)
                logger.info("date %s disagrees with raw token %d.%d, using %s", candidate, raw_month, raw_day, fixed)
                return fixed

        if year != current_year:
            fixed = format_date(current_year, month, day)
            logger.info("date %s has stale year, using %s", candidate, fixed)
            return fixed
        return candidate

    if token is not None and _plausible(*token):
        month, day = token
        return format_date(current_year, month, day)

    logger.warning("unparseable date %r and no usable raw token, using today", candidate)
    return now.isoformat()


def apply_date_override(raw_text: str, override: date) -> str:
    """Put an explicitly chosen date on the first line as a "M.D" token."""
    token = f"{override.month}.{override.day}"
    text = (raw_text or "").strip()
    lines = text.split("\n")
    if SHORT_DATE_RE.match(lines[0]):
        lines[0] = token
        return "\n".join(lines)
    return f"{token}\n{text}"


def previous_calendar_day(value: str) -> Optional[str]:
    """The calendar day before `value`, or None when `value` is not a real date."""
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        return None
    return (parsed - timedelta(days=1)).isoformat()
