from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from ledgerflow.utils.amounts import parse_amount, quantize
from ledgerflow.utils.dates import parse_date


def _text(value) -> Optional[str]:
    """Loose payload field as a string (AI output may send numeric references)."""
    return None if value is None else str(value)


class TransactionType(str, Enum):
    DEBIT = 'debit'
    CREDIT = 'credit'


class CategoryType(str, Enum):
    REVENUE = 'revenue'
    EXPENSE = 'expense'

    @classmethod
    def parse(cls, value) -> 'CategoryType':
        """Accepts 'revenue', 'expense' and the plural 'expenses'."""
        if isinstance(value, CategoryType):
            return value
        text = str(value).strip().lower()
        if text in ('expense', 'expenses'):
            return cls.EXPENSE
        return cls(text)


class ReviewStatus(str, Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    FLAGGED = 'flagged'


@dataclass(frozen=True)
class Category:
    """Classification assigned by the categorizer."""
    type: CategoryType
    category: str

    def to_dict(self):
        return {'type': self.type.value, 'category': self.category}


@dataclass
class Transaction:
    """
    Canonical representation of a bank transaction.
    Used between the extraction pipeline, the categorizer, the P&L
    aggregator and the journal generator.

    Amounts are signed: negative = money out, positive = money in.
    """
    date: date
    description: str
    amount: Decimal
    type: TransactionType
    balance: Optional[Decimal] = None  # Running balance as printed, never recomputed
    reference: Optional[str] = None  # Cheque / UTR / transaction id
    category: Optional[Category] = None
    category_source: Optional[str] = None  # 'user_rule', 'pattern', 'default'
    source_file: Optional[str] = None

    @property
    def is_credit(self) -> bool:
        return self.amount > 0

    def with_category(self, category: Category, source: str) -> 'Transaction':
        return replace(self, category=category, category_source=source)

    def to_dict(self):
        return {
            'date': self.date.isoformat(),
            'description': self.description,
            'amount': float(self.amount),
            'type': self.type.value,
            'balance': float(self.balance) if self.balance is not None else None,
            'reference': self.reference,
            'category': self.category.to_dict() if self.category else None,
            'category_source': self.category_source,
            'source_file': self.source_file,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Optional['Transaction']:
        """
        Build a Transaction from a loose dict (API payloads, AI output).
        Returns None when the record is not a valid transaction.
        """
        partial = PartialTransaction(
            date=parse_date(data.get('date')),
            description=_text(data.get('description')),
            amount=parse_amount(data.get('amount')),
            type=_text(data.get('type')),
            balance=parse_amount(data.get('balance')),
            reference=_text(data.get('reference')),
        )
        txn = partial.to_transaction(source_file=data.get('source_file'))
        if txn is None:
            return None

        category = data.get('category')
        if isinstance(category, dict) and category.get('category'):
            txn = txn.with_category(
                Category(CategoryType.parse(category.get('type', 'expense')), category['category']),
                data.get('category_source') or 'pattern',
            )
        return txn


@dataclass
class PartialTransaction:
    """
    A transaction as read from a table row or a text line, before validation.
    Every field may still be missing.
    """
    date: Optional[date] = None
    description: Optional[str] = None
    amount: Optional[Decimal] = None
    type: Optional[str] = None
    balance: Optional[Decimal] = None
    reference: Optional[str] = None

    def to_transaction(self, source_file: Optional[str] = None) -> Optional[Transaction]:
        """
        Validate and convert. Invalid records (no date, blank description,
        zero/missing amount) return None; they are filtered, not errors.
        """
        if self.date is None:
            return None
        description = ' '.join((self.description or '').split())
        if not description:
            return None
        if self.amount is None or self.amount == 0:
            return None

        amount = quantize(self.amount)
        if amount == 0:
            return None

        declared = (self.type or '').strip().lower()
        if declared in ('debit', 'dr', 'd'):
            amount = -abs(amount)
        elif declared in ('credit', 'cr', 'c'):
            amount = abs(amount)
        txn_type = TransactionType.DEBIT if amount < 0 else TransactionType.CREDIT

        reference = (self.reference or '').strip() or None
        return Transaction(
            date=self.date,
            description=description,
            amount=amount,
            type=txn_type,
            balance=quantize(self.balance) if self.balance is not None else None,
            reference=reference,
            source_file=source_file,
        )


@dataclass
class CategoryRule:
    """
    Per-user learned override: descriptions containing
    `entity_name_normalized` get `category`.
    Unique on (user_id, entity_name_normalized).
    """
    user_id: str
    entity_name: str
    entity_name_normalized: str
    category: str
    type: CategoryType
    times_applied: int = 1
    source_description: Optional[str] = None
    source_amount: Optional[float] = None
    source_date: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def key(self):
        return (self.user_id, self.entity_name_normalized)

    def as_category(self) -> Category:
        return Category(self.type, self.category)

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'entity_name': self.entity_name,
            'entity_name_normalized': self.entity_name_normalized,
            'category': self.category,
            'type': self.type.value,
            'times_applied': self.times_applied,
            'source_description': self.source_description,
            'source_amount': self.source_amount,
            'source_date': self.source_date,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'CategoryRule':
        return cls(
            user_id=data['user_id'],
            entity_name=data.get('entity_name', data['entity_name_normalized']),
            entity_name_normalized=data['entity_name_normalized'],
            category=data['category'],
            type=CategoryType.parse(data['type']),
            times_applied=int(data.get('times_applied', 1)),
            source_description=data.get('source_description'),
            source_amount=data.get('source_amount'),
            source_date=data.get('source_date'),
            created_at=datetime.fromisoformat(data['created_at']) if data.get('created_at') else datetime.now(),
            updated_at=datetime.fromisoformat(data['updated_at']) if data.get('updated_at') else datetime.now(),
        )


@dataclass
class JournalLine:
    account_code: str
    account_name: str
    amount: Decimal
    description: Optional[str] = None

    def to_dict(self):
        return {
            'account_code': self.account_code,
            'account_name': self.account_name,
            'amount': float(self.amount),
            'description': self.description,
        }


@dataclass
class JournalEntry:
    """
    Double-entry record. Immutable once generated apart from the
    review status (see set_review_status).
    """
    entry_id: str
    date: date
    description: str
    reference: str
    debits: List[JournalLine]
    credits: List[JournalLine]
    total_debits: Decimal
    total_credits: Decimal
    is_balanced: bool
    requires_review: bool = False
    review_status: ReviewStatus = ReviewStatus.PENDING
    category: Optional[str] = None
    transaction_type: Optional[str] = None  # 'Income' / 'Expense'
    fiscal_period: Optional[str] = None  # e.g. "2025-01"

    def set_review_status(self, status: ReviewStatus) -> None:
        if status == ReviewStatus.APPROVED and not self.is_balanced:
            raise ValueError(f"Entry {self.entry_id} is not balanced and cannot be approved")
        self.review_status = ReviewStatus(status)

    def to_dict(self):
        return {
            'entry_id': self.entry_id,
            'date': self.date.isoformat(),
            'description': self.description,
            'reference': self.reference,
            'debits': [d.to_dict() for d in self.debits],
            'credits': [c.to_dict() for c in self.credits],
            'total_debits': float(self.total_debits),
            'total_credits': float(self.total_credits),
            'is_balanced': self.is_balanced,
            'requires_review': self.requires_review,
            'review_status': self.review_status.value,
            'category': self.category,
            'transaction_type': self.transaction_type,
            'fiscal_period': self.fiscal_period,
        }
