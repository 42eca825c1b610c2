"""
Transaction Line Parser

Regex recognition of transactions in free text lines, used when no usable
table was found. A line needs both a date and an amount with two decimals;
missing a real transaction is preferred to inventing one.
"""
import re
from decimal import Decimal
from typing import List, Optional, Iterable

from ledgerflow.common.logging_config import get_logger
from ledgerflow.common.models import PartialTransaction, Transaction
from ledgerflow.utils.dates import find_date
from .config.columns import ColumnMapping

logger = get_logger(__name__)

AMOUNT_PATTERN = re.compile(
    r"(?<![\w/.,])"
    r"(?P<neg>-)?(?P<open>\()?"
    r"(?:₹|Rs\.?|INR|\$|€|£)?\s?"
    r"(?P<neg2>-)?"
    r"(?P<num>\d{1,3}(?:,\d{2,3})+\.\d{2}|\d+\.\d{2})"
    r"(?P<close>\))?"
    r"(?:\s*(?P<drcr>Dr|Cr)\b\.?)?"
    r"(?![\d.,])",
    re.IGNORECASE,
)

_LEADING_TOTAL = re.compile(r"^\W*(grand\s+)?totals?\b", re.IGNORECASE)
_SEPARATORS = re.compile(r"^[\s|:;,\-]+|[\s|:;,\-]+$")


class AmountMatch:
    def __init__(self, match):
        self.match = match
        self.value = Decimal(match.group('num').replace(',', ''))
        drcr = (match.group('drcr') or '').lower()
        self.marker = 'debit' if drcr == 'dr' else 'credit' if drcr == 'cr' else None
        self.negative = bool(match.group('neg') or match.group('neg2')) or bool(
            match.group('open') and match.group('close'))

    @property
    def signed(self) -> Decimal:
        if self.marker == 'debit' or self.negative:
            return -self.value
        return self.value


class TransactionLineParser:
    def __init__(self, mapping: Optional[ColumnMapping] = None):
        self.mapping = mapping or ColumnMapping()

    def is_summary_line(self, text: str) -> bool:
        lowered = ' '.join(text.lower().split())
        if any(marker in lowered for marker in self.mapping.summary_markers):
            return True
        return bool(_LEADING_TOTAL.match(lowered))

    def parse_line(self, text: str) -> Optional[PartialTransaction]:
        """
        Recognize one line.

        Returns:
            PartialTransaction, or None when the line has no date or no amount
            or is a summary line.
        """
        if not text or self.is_summary_line(text):
            return None

        txn_date, date_match = find_date(text)
        if txn_date is None:
            return None

        # Blank the date so its digits are never read as an amount
        masked = text[:date_match.start()] + ' ' * (date_match.end() - date_match.start()) + text[date_match.end():]
        amounts = [AmountMatch(m) for m in AMOUNT_PATTERN.finditer(masked)]
        if not amounts:
            return None

        first = amounts[0]
        balance = amounts[-1].signed if len(amounts) >= 2 else None

        description = masked
        for a in reversed(amounts):
            description = description[:a.match.start()] + ' ' + description[a.match.end():]
        description = _SEPARATORS.sub('', ' '.join(description.split()))

        return PartialTransaction(
            date=txn_date,
            description=description,
            amount=first.signed,
            type='debit' if first.signed < 0 else 'credit',
            balance=balance,
        )

    def parse_lines(self, lines: Iterable, source_file: Optional[str] = None) -> List[Transaction]:
        """
        Parse text lines (str or TextLine) into valid transactions.
        """
        transactions = []
        for line in lines:
            text = getattr(line, 'text', line)
            partial = self.parse_line(text)
            txn = partial.to_transaction(source_file) if partial else None
            if txn is not None:
                transactions.append(txn)
        logger.debug("Text lines parsed", tx_count=len(transactions))
        return transactions


def parse_lines(lines: Iterable, source_file: Optional[str] = None) -> List[Transaction]:
    return TransactionLineParser().parse_lines(lines, source_file)
