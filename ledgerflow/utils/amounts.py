"""
Amount helpers

Parses the heterogeneous currency strings found in bank statements
("₹1,23,456.00", "(1,200.00)", "1,200.00 Dr", "-45.5") into Decimals.
"""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Tuple

CENT = Decimal("0.01")

_CURRENCY_CHARS = re.compile(r"[₹$€£,\s]|INR|Rs\.?", re.IGNORECASE)
_DRCR_SUFFIX = re.compile(r"\s*\b(DR|CR)\.?\s*$", re.IGNORECASE)


def quantize(value: Decimal) -> Decimal:
    """Round to cent precision (half-up, the way statements print)."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def split_drcr(text: str) -> Tuple[str, Optional[str]]:
    """
    Strip a trailing Dr/Cr marker.

    Returns:
        (remaining_text, 'debit' | 'credit' | None)
    """
    m = _DRCR_SUFFIX.search(text)
    if not m:
        return text, None
    marker = 'debit' if m.group(1).upper() == 'DR' else 'credit'
    return text[:m.start()], marker


def parse_amount(value) -> Optional[Decimal]:
    """
    Parse an amount cell/substring into a signed Decimal.

    Parentheses and a trailing 'Dr' mean negative. Returns None for blanks
    and anything that is not a number.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        amount = Decimal(str(value))
        # NaN from pandas, inf from stray cells
        return amount if amount.is_finite() else None

    text = str(value).strip()
    if not text or text.lower() in ('nan', 'none', '-', '--'):
        return None

    text, marker = split_drcr(text)
    negative = False
    if text.startswith('(') and text.endswith(')'):
        negative = True
        text = text[1:-1]

    cleaned = _CURRENCY_CHARS.sub('', text)
    if cleaned.endswith('-'):
        # "1,200.00-" style trailing minus
        negative = True
        cleaned = cleaned[:-1]
    if not cleaned or cleaned in ('-', '+', '.'):
        return None

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None

    if negative or marker == 'debit':
        amount = -abs(amount)
    elif marker == 'credit':
        amount = abs(amount)
    return amount
