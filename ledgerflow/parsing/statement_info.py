"""
Statement header information: account holder, account number, IFSC code,
bank, statement period and opening/closing balances.

Key-value pairs from the analysis pass are consulted first, then regexes
over the document text.
"""
import re
from dataclasses import dataclass, asdict
from datetime import date
from decimal import Decimal
from typing import List, Optional

from ledgerflow.utils.amounts import parse_amount
from ledgerflow.utils.dates import parse_date
from .base import ExtractedDocument, KeyValue

KNOWN_BANKS = [
    'State Bank of India', 'HDFC Bank', 'ICICI Bank', 'Axis Bank', 'Punjab National Bank',
    'Bank of Baroda', 'Canara Bank', 'Union Bank', 'Kotak Mahindra Bank', 'IndusInd Bank',
    'Yes Bank', 'IDFC First Bank', 'Federal Bank', 'RBL Bank', 'Karnataka Bank',
    'South Indian Bank', 'City Union Bank',
]

HEADER_LINES = 25

_HOLDER = re.compile(r"(?:Account Holder|Customer Name|Name)\s*[:\-]\s*([A-Z][A-Za-z .]+)", re.IGNORECASE)
_ACCOUNT = re.compile(r"(?:Account|A/C|Acct)(?:\s*(?:Number|No\.?|#))?\s*[:\-]?\s*(\d{9,18})\b", re.IGNORECASE)
_BARE_ACCOUNT = re.compile(r"\b(\d{9,18})\b")
_IFSC = re.compile(r"\b([A-Z]{4}0[A-Z0-9]{6})\b", re.IGNORECASE)
_BANK = re.compile(r"([A-Z][A-Za-z ]+Bank)\b")
_PERIOD = [
    re.compile(r"(?:From|Period)[:\s]+(\S+)\s+to\s+(\S+)", re.IGNORECASE),
    re.compile(r"(\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4})\s+to\s+(\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4})", re.IGNORECASE),
]
_OPENING = re.compile(r"Opening Balance[:\s]+(?:₹|Rs\.?|INR)?\s*([\d,]+\.?\d*)", re.IGNORECASE)
_CLOSING = re.compile(r"Closing Balance[:\s]+(?:₹|Rs\.?|INR)?\s*([\d,]+\.?\d*)", re.IGNORECASE)


@dataclass
class StatementInfo:
    account_holder: Optional[str] = None
    account_number: Optional[str] = None
    ifsc_code: Optional[str] = None
    bank_name: Optional[str] = None
    period_from: Optional[date] = None
    period_to: Optional[date] = None
    opening_balance: Optional[Decimal] = None
    closing_balance: Optional[Decimal] = None

    def to_dict(self):
        data = asdict(self)
        for key in ('period_from', 'period_to'):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        for key in ('opening_balance', 'closing_balance'):
            if data[key] is not None:
                data[key] = float(data[key])
        return data


def _find_kv(pairs: List[KeyValue], *needles) -> Optional[KeyValue]:
    for kv in pairs:
        key = kv.key.lower()
        if any(n in key for n in needles):
            return kv
    return None


def extract_statement_info(document: ExtractedDocument) -> StatementInfo:
    pairs = document.key_values
    lines = document.lines()
    text = '\n'.join(lines)
    header_text = '\n'.join(lines[:HEADER_LINES])
    info = StatementInfo()

    kv = _find_kv(pairs, 'account holder', 'customer name', 'holder name')
    if kv is None:
        kv = next((p for p in pairs if p.key.strip().lower() == 'name'), None)
    if kv:
        info.account_holder = kv.value.strip()
    else:
        m = _HOLDER.search(header_text)
        if m and len(m.group(1).strip()) > 3:
            info.account_holder = m.group(1).strip()

    kv = _find_kv(pairs, 'account number', 'account no', 'a/c no', 'acct no')
    if kv and re.sub(r"\s+", '', kv.value):
        info.account_number = re.sub(r"\s+", '', kv.value)
    else:
        m = _ACCOUNT.search(header_text) or _BARE_ACCOUNT.search(header_text)
        if m:
            info.account_number = m.group(1)

    kv = _find_kv(pairs, 'ifsc')
    m = _IFSC.search(kv.value if kv else header_text)
    if m:
        info.ifsc_code = m.group(1).upper()

    lowered = text.lower()
    info.bank_name = next((bank for bank in KNOWN_BANKS if bank.lower() in lowered), None)
    if info.bank_name is None:
        m = _BANK.search(' '.join(lines[:5]))
        if m:
            info.bank_name = m.group(1).strip()

    start = _find_kv(pairs, 'from', 'start')
    if start and parse_date(start.value):
        info.period_from = parse_date(start.value)
        for p in pairs:
            words = set(re.findall(r"[a-z]+", p.key.lower()))
            if p is not start and words & {'to', 'end'} and parse_date(p.value):
                info.period_to = parse_date(p.value)
                break
    else:
        for pattern in _PERIOD:
            m = pattern.search(text)
            if m and parse_date(m.group(1)):
                info.period_from = parse_date(m.group(1))
                info.period_to = parse_date(m.group(2))
                break

    kv = _find_kv(pairs, 'opening balance')
    info.opening_balance = parse_amount(kv.value) if kv else None
    if info.opening_balance is None:
        m = _OPENING.search(text)
        info.opening_balance = parse_amount(m.group(1)) if m else None

    kv = _find_kv(pairs, 'closing balance')
    info.closing_balance = parse_amount(kv.value) if kv else None
    if info.closing_balance is None:
        m = _CLOSING.search(text)
        info.closing_balance = parse_amount(m.group(1)) if m else None

    return info
