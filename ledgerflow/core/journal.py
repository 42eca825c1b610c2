"""
Journal Entry Generator

One balanced double-entry record per categorized transaction:
revenue debits Cash and credits the revenue account, expense debits the
expense account and credits Cash.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from ledgerflow.common.logging_config import get_logger
from ledgerflow.common.models import (
    Category, CategoryType, JournalEntry, JournalLine, ReviewStatus, Transaction
)
from ledgerflow.parsing.exceptions import JournalImbalance
from ledgerflow.utils.amounts import quantize
from .accounts import ChartOfAccounts, default_chart_of_accounts
from .patterns import DEFAULT_REVENUE_CATEGORY, DEFAULT_EXPENSE_CATEGORY

logger = get_logger(__name__)

ZERO = Decimal('0')


@dataclass
class JournalResult:
    entries: List[JournalEntry] = field(default_factory=list)
    errors: List[dict] = field(default_factory=list)
    summary: dict = field(default_factory=dict)
    chart: Optional[ChartOfAccounts] = None

    def to_dict(self):
        return {
            'entries': [e.to_dict() for e in self.entries],
            'errors': self.errors,
            'summary': self.summary,
            'chart_of_accounts': self.chart.to_dict() if self.chart else None,
        }


class JournalGenerator:
    """
    Args:
        review_threshold: Entries above this amount are flagged for review
        balance_tolerance: Largest debit/credit difference still balanced
    """

    def __init__(self, review_threshold: Decimal = Decimal('10000'), balance_tolerance: Decimal = Decimal('0.01')):
        self.review_threshold = Decimal(str(review_threshold))
        self.balance_tolerance = Decimal(str(balance_tolerance))

    def build_entry(self, index: int, txn: Transaction, chart: ChartOfAccounts) -> JournalEntry:
        if txn.date is None:
            raise ValueError("Transaction has no date")
        if txn.amount is None or txn.amount == 0:
            raise ValueError("Transaction has no amount")

        category = txn.category
        if category is None:
            category = (Category(CategoryType.REVENUE, DEFAULT_REVENUE_CATEGORY) if txn.amount > 0
                        else Category(CategoryType.EXPENSE, DEFAULT_EXPENSE_CATEGORY))

        amount = quantize(abs(txn.amount))
        cash = chart.cash_account()
        counter = chart.account_for(category)
        description = txn.description or f"Transaction {index}"

        if category.type == CategoryType.REVENUE:
            debits = [JournalLine(cash.code, cash.name, amount, description)]
            credits = [JournalLine(counter.code, counter.name, amount, description)]
            transaction_type = 'Income'
        else:
            debits = [JournalLine(counter.code, counter.name, amount, description)]
            credits = [JournalLine(cash.code, cash.name, amount, description)]
            transaction_type = 'Expense'

        total_debits = sum((line.amount for line in debits), ZERO)
        total_credits = sum((line.amount for line in credits), ZERO)
        entry = JournalEntry(
            entry_id=f"JE{index:03d}",
            date=txn.date,
            description=description,
            reference=txn.reference or f"REF-{index}",
            debits=debits,
            credits=credits,
            total_debits=total_debits,
            total_credits=total_credits,
            is_balanced=abs(total_debits - total_credits) < self.balance_tolerance,
            category=category.category,
            transaction_type=transaction_type,
            fiscal_period=txn.date.strftime('%Y-%m'),
        )

        if not entry.is_balanced:
            imbalance = JournalImbalance(entry.entry_id, total_debits, total_credits)
            logger.error(f"Unbalanced journal entry: {imbalance}", entry_id=entry.entry_id)
            entry.requires_review = True
            entry.review_status = ReviewStatus.FLAGGED
        elif amount > self.review_threshold:
            entry.requires_review = True
            entry.review_status = ReviewStatus.FLAGGED
        return entry

    def generate(self, transactions: List[Transaction], chart: Optional[ChartOfAccounts] = None) -> JournalResult:
        """
        Build journal entries for a batch.

        A transaction that cannot be posted is recorded in `errors` and the
        batch continues.

        Returns:
            JournalResult with entries, errors, summary and the (possibly extended) chart
        """
        chart = chart if chart is not None else default_chart_of_accounts()
        result = JournalResult(chart=chart)

        for index, txn in enumerate(transactions, start=1):
            try:
                result.entries.append(self.build_entry(index, txn, chart))
            except Exception as e:
                logger.warning(
                    f"Journal entry failed: {e}",
                    index=index,
                    description=getattr(txn, 'description', None),
                    exc_info=True,
                )
                result.errors.append({
                    'index': index,
                    'description': getattr(txn, 'description', None),
                    'error': str(e),
                })

        result.summary = self.summarize(result.entries, len(result.errors))
        logger.info(
            "Journal generated",
            entries=len(result.entries),
            errors=len(result.errors),
            flagged=result.summary['flagged_count'],
        )
        return result

    @staticmethod
    def summarize(entries: List[JournalEntry], error_count: int = 0) -> dict:
        total_debits = sum((e.total_debits for e in entries), ZERO)
        total_credits = sum((e.total_credits for e in entries), ZERO)
        revenue = sum((e.total_credits for e in entries if e.transaction_type == 'Income'), ZERO)
        expenses = sum((e.total_debits for e in entries if e.transaction_type == 'Expense'), ZERO)
        return {
            'total_entries': len(entries),
            'total_debits': float(total_debits),
            'total_credits': float(total_credits),
            'is_balanced': all(e.is_balanced for e in entries),
            'categories': {'revenue': float(revenue), 'expenses': float(expenses)},
            'flagged_count': sum(1 for e in entries if e.requires_review),
            'error_count': error_count,
        }
