"""
LedgerFlow

Bank statement ingestion and automated bookkeeping:
- Document decryption and extraction (PDF, CSV, Excel, text)
- Transaction categorization with learned per-user rules
- P&L aggregation and double-entry journal generation
"""
from .common.config import Settings
from .common.models import Transaction, Category, CategoryType, CategoryRule, JournalEntry
from .facade import BookkeepingFacade, CategorizationResult
from .parsing.pipeline import ProcessingResult
from .core.journal import JournalResult

__version__ = '1.0.0'

_default_facade = None


def _facade() -> BookkeepingFacade:
    global _default_facade
    if _default_facade is None:
        _default_facade = BookkeepingFacade(Settings.load())
    return _default_facade


def process_document(buffer, mime_type, filename=None, password=None) -> ProcessingResult:
    return _facade().process_document(buffer, mime_type, filename, password)


def categorize_and_aggregate(transactions, user_id=None) -> CategorizationResult:
    return _facade().categorize_and_aggregate(transactions, user_id)


def build_journal(categorized_transactions, chart_of_accounts=None) -> JournalResult:
    return _facade().build_journal(categorized_transactions, chart_of_accounts)


__all__ = [
    'Settings',
    'Transaction',
    'Category',
    'CategoryType',
    'CategoryRule',
    'JournalEntry',
    'BookkeepingFacade',
    'CategorizationResult',
    'ProcessingResult',
    'JournalResult',
    'process_document',
    'categorize_and_aggregate',
    'build_journal',
]
