"""
Column / Field Normalizer

Turns table rows with bank-specific headers into canonical transactions,
driven entirely by the ColumnMapping synonym table.
"""
import re
from typing import Dict, List, Optional

from ledgerflow.common.logging_config import get_logger
from ledgerflow.common.models import PartialTransaction, Transaction
from ledgerflow.utils.amounts import parse_amount
from ledgerflow.utils.dates import parse_date
from .base import Table
from .config.columns import ColumnMapping

logger = get_logger(__name__)

HEADER_SCAN_ROWS = 15
# "Total", "Total Debits", "Total of 12 transactions"; not "TOTAL MALL purchase"
_TOTAL_ROW = re.compile(
    r"^(grand\s+)?totals?\b"
    r"(?:[\s:]*$|.*\btransactions?\b|\s+(?:of|dr|cr|debits?|credits?|withdrawals?|deposits?|amount)\b)"
)


class ColumnNormalizer:
    """
    Normalizes rows keyed by header into PartialTransactions.
    """

    def __init__(self, mapping: Optional[ColumnMapping] = None):
        self.mapping = mapping or ColumnMapping()

    def is_summary_text(self, text: str) -> bool:
        text = ' '.join(text.lower().split())
        return any(marker in text for marker in self.mapping.summary_markers)

    @staticmethod
    def is_total_label(description: Optional[str]) -> bool:
        return bool(description) and bool(_TOTAL_ROW.match(' '.join(description.lower().split())))

    def normalize(self, row: Dict[str, str]) -> Optional[PartialTransaction]:
        """
        Map one row to a PartialTransaction.

        Returns:
            None for summary rows and repeated header rows; otherwise a
            PartialTransaction that may still be invalid.
        """
        cells = [str(v).strip() for v in row.values() if v is not None and str(v).strip()]
        if not cells:
            return None
        if self.is_summary_text(' '.join(cells)) or self.mapping.is_header_row(cells):
            return None

        resolved = self.mapping.resolve(list(row.keys()))

        def get(name):
            header = resolved.get(name)
            value = row.get(header) if header is not None else None
            return str(value).strip() if value is not None else None

        description = get('description')
        if self.is_total_label(description):
            return None

        amount = None
        txn_type = None
        if 'debit' in resolved or 'credit' in resolved:
            debit = parse_amount(get('debit'))
            credit = parse_amount(get('credit'))
            if debit:
                amount, txn_type = -abs(debit), 'debit'
            elif credit:
                amount, txn_type = abs(credit), 'credit'
        if amount is None and 'amount' in resolved:
            amount = parse_amount(get('amount'))

        declared = (get('type') or '').lower()
        if declared in ('dr', 'debit', 'd', 'withdrawal'):
            txn_type = 'debit'
        elif declared in ('cr', 'credit', 'c', 'deposit'):
            txn_type = 'credit'

        return PartialTransaction(
            date=parse_date(get('date')),
            description=description,
            amount=amount,
            type=txn_type,
            balance=parse_amount(get('balance')),
            reference=get('reference'),
        )

    def find_header(self, table: Table) -> Optional[int]:
        for i, cells in enumerate(table.rows[:HEADER_SCAN_ROWS]):
            if self.mapping.is_header_row(cells):
                return i
        return None

    def normalize_table(self, table: Table, source_file: Optional[str] = None,
                        header: Optional[List[str]] = None) -> List[Transaction]:
        """
        Normalize every data row of a table.

        Args:
            table: Raw table (header somewhere in the first rows)
            source_file: Recorded on each transaction
            header: Header to use when the table has none (page continuation)

        Returns:
            Valid transactions; tables that do not look like transaction
            tables yield an empty list.
        """
        idx = self.find_header(table)
        if idx is not None:
            header = table.rows[idx]
            body = table.rows[idx + 1:]
        elif header is not None:
            body = table.rows
        else:
            logger.debug("Table skipped, no transaction header", page=table.page, rows=len(table.rows))
            return []

        keys = _unique_keys(header)
        transactions = []
        filtered = 0
        for cells in body:
            cells = list(cells) + [''] * (len(keys) - len(cells))
            partial = self.normalize(dict(zip(keys, cells)))
            txn = partial.to_transaction(source_file) if partial else None
            if txn is None:
                filtered += 1
                continue
            transactions.append(txn)

        logger.debug("Table normalized", page=table.page, tx_count=len(transactions), filtered=filtered)
        return transactions

    def normalize_tables(self, tables: List[Table], source_file: Optional[str] = None) -> List[Transaction]:
        """
        Normalize tables in order. A headerless table with the same width as
        the previous transaction table is treated as its continuation.
        """
        transactions = []
        last_header = None
        for table in tables:
            idx = self.find_header(table)
            if idx is not None:
                last_header = table.rows[idx]
                transactions.extend(self.normalize_table(table, source_file))
            elif last_header is not None and table.rows and len(table.rows[0]) == len(last_header):
                transactions.extend(self.normalize_table(table, source_file, header=last_header))
        return transactions


def _unique_keys(header: List[str]) -> List[str]:
    keys = []
    seen = set()
    for i, h in enumerate(header):
        key = str(h).strip() if h is not None and str(h).strip() else f"column_{i}"
        while key in seen:
            key = f"{key}_{i}"
        seen.add(key)
        keys.append(key)
    return keys
