"""
Date helpers

Statement dates come as DD/MM/YYYY, DD-MM-YY, YYYY-MM-DD or DD Mon YYYY.
Day-first is assumed for the numeric forms.
"""
import re
from datetime import date, datetime
from typing import Optional

MONTHS = {
    'JAN': 1, 'FEB': 2, 'MAR': 3, 'APR': 4, 'MAY': 5, 'JUN': 6,
    'JUL': 7, 'AUG': 8, 'SEP': 9, 'SEPT': 9, 'OCT': 10, 'NOV': 11, 'DEC': 12
}

# Ordered: ISO first so "2024-01-02" is never read as day-first
DATE_PATTERNS = [
    ('ymd', re.compile(r"\b(\d{4})[/\-.](\d{1,2})[/\-.](\d{1,2})\b")),
    ('dmy', re.compile(r"\b(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4}|\d{2})\b")),
    ('dmony', re.compile(r"\b(\d{1,2})[\s\-/]([A-Za-z]{3,4})[A-Za-z]*[,\s\-/]+(\d{4}|\d{2})\b")),
]


def _expand_year(year_s: str) -> int:
    year = int(year_s)
    if len(year_s) == 2:
        year = 1900 + year if year > 50 else 2000 + year
    return year


def _build(kind: str, groups) -> Optional[date]:
    try:
        if kind == 'ymd':
            y, m, d = groups
            return date(int(y), int(m), int(d))
        if kind == 'dmy':
            d, m, y = groups
            return date(_expand_year(y), int(m), int(d))
        d, mon, y = groups
        month = MONTHS.get(mon.upper()[:4]) or MONTHS.get(mon.upper()[:3])
        if not month:
            return None
        return date(_expand_year(y), month, int(d))
    except ValueError:
        return None


def find_date(text: str):
    """
    Locate the first date inside a line of text.

    Returns:
        (date, match) or (None, None)
    """
    best = None
    for kind, pattern in DATE_PATTERNS:
        for m in pattern.finditer(text):
            dt = _build(kind, m.groups())
            if dt is None:
                continue
            if best is None or m.start() < best[1].start():
                best = (dt, m)
            break
    if best is None:
        return None, None
    return best


def parse_date(value) -> Optional[date]:
    """Parse a cell value into a date, or None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text or text.lower() in ('nan', 'nat', 'none'):
        return None

    dt, _ = find_date(text)
    return dt
