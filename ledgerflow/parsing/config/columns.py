"""
Column Mapping Configuration

Declarative synonym table: canonical field -> accepted header strings.
Supporting a new bank export is a data change (YAML), not a code change.
"""
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import yaml

DEFAULT_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    'date': ('date', 'transaction date', 'txn date', 'tran date', 'posted date', 'value date',
             'trans date', 'posting date'),
    'description': ('description', 'particulars', 'narration', 'details', 'memo', 'remarks',
                    'transaction details', 'transaction remarks'),
    'amount': ('amount', 'transaction amount', 'txn amount'),
    'debit': ('debit', 'debit amount', 'withdrawal', 'withdrawals', 'withdrawal amt', 'dr', 'outgoing',
              'debits'),
    'credit': ('credit', 'credit amount', 'deposit', 'deposits', 'deposit amt', 'cr', 'incoming',
               'credits'),
    'balance': ('balance', 'running balance', 'available balance', 'closing balance', 'balance amt'),
    'reference': ('reference', 'ref no', 'ref no./cheque no', 'ref no./cheque no.', 'transaction id',
                  'txn id', 'cheque no', 'chq no', 'chq./ref.no', 'utr'),
    'type': ('type', 'dr/cr', 'cr/dr', 'transaction type', 'txn type'),
}

# Substrings marking a total/balance row rather than a transaction
DEFAULT_SUMMARY_MARKERS: Tuple[str, ...] = (
    'total dr/cr',
    'opening balance',
    'closing balance',
    'balance b/f',
    'balance c/f',
    'balance brought forward',
    'balance carried forward',
    'grand total',
)

_CURRENCY_SUFFIX = re.compile(r"\((?:inr|rs\.?|₹|usd|\$|eur|€|gbp|£)\)$")


def normalize_header(header) -> str:
    """'Withdrawal Amt.(INR) ' -> 'withdrawal amt'"""
    text = ' '.join(str(header or '').lower().split())
    text = _CURRENCY_SUFFIX.sub('', text).strip()
    return text.rstrip('.:').strip()


@dataclass
class ColumnMapping:
    """
    Attributes:
        synonyms: canonical field -> accepted headers, in priority order
        summary_markers: lowercase substrings identifying summary rows
    """
    synonyms: Dict[str, Tuple[str, ...]] = field(default_factory=lambda: dict(DEFAULT_SYNONYMS))
    summary_markers: Tuple[str, ...] = DEFAULT_SUMMARY_MARKERS

    def __post_init__(self):
        self._lookup = {
            name: [normalize_header(s) for s in accepted]
            for name, accepted in self.synonyms.items()
        }

    def field_for(self, header) -> Optional[str]:
        """Canonical field a single header maps to, or None."""
        key = normalize_header(header)
        for name, accepted in self._lookup.items():
            if key in accepted:
                return name
        return None

    def resolve(self, headers: List[str]) -> Dict[str, str]:
        """
        Map canonical fields to the actual headers present.

        When several headers match the same field, the one whose synonym
        comes first wins ('date' beats 'value date').
        """
        normalized = {normalize_header(h): h for h in reversed(list(headers)) if normalize_header(h)}
        resolved = {}
        for name, accepted in self._lookup.items():
            for synonym in accepted:
                if synonym in normalized:
                    resolved[name] = normalized[synonym]
                    break
        return resolved

    def is_header_row(self, cells: List[str]) -> bool:
        """A row naming a date column plus at least one amount-like column."""
        fields_found = {self.field_for(c) for c in cells if c}
        return 'date' in fields_found and bool(fields_found & {'amount', 'debit', 'credit', 'balance'})

    @classmethod
    def from_dict(cls, data: dict) -> 'ColumnMapping':
        synonyms = dict(DEFAULT_SYNONYMS)
        for name, accepted in (data.get('synonyms') or {}).items():
            synonyms[name] = tuple(accepted)
        markers = tuple(data.get('summary_markers') or DEFAULT_SUMMARY_MARKERS)
        return cls(synonyms=synonyms, summary_markers=markers)

    @classmethod
    def from_yaml(cls, path: str) -> 'ColumnMapping':
        """Load overrides from YAML; unlisted fields keep the defaults."""
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)
