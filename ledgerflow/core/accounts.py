"""
Chart of Accounts

Five ordered buckets of accounts. The chart only grows: a category with
no mapped account gets a new account appended to its bucket.
"""
import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from ledgerflow.common.logging_config import get_logger
from ledgerflow.common.models import Category, CategoryType

logger = get_logger(__name__)

BUCKETS = ('assets', 'liabilities', 'equity', 'revenue', 'expenses')
BUCKET_BASE_CODES = {'assets': 1000, 'liabilities': 2000, 'equity': 3000, 'revenue': 4000, 'expenses': 5000}
CODE_STEP = 10

CASH_ACCOUNT_CODE = '1000'

# Category name -> account code in the default chart
DEFAULT_CATEGORY_ACCOUNTS: Dict[str, str] = {
    'Sales Revenue': '4100',
    'Service Income': '4000',
    'Other Income': '4900',
    'General Expenses': '5000',
    'Rent & Lease': '5100',
    'Utilities': '5200',
    'Internet & Telecom': '5200',
    'Software & Subscriptions': '5300',
    'Marketing & Advertising': '5400',
    'Professional Services': '5900',
    'Loan & EMI': '2500',
}


@dataclass
class Account:
    code: str
    name: str
    type: str
    balance: Decimal = Decimal('0')

    def to_dict(self):
        return {'code': self.code, 'name': self.name, 'type': self.type, 'balance': float(self.balance)}

    @classmethod
    def from_dict(cls, data: dict) -> 'Account':
        return cls(
            code=str(data['code']),
            name=data['name'],
            type=data.get('type', ''),
            balance=Decimal(str(data.get('balance', 0))),
        )


@dataclass
class ChartOfAccounts:
    assets: List[Account] = field(default_factory=list)
    liabilities: List[Account] = field(default_factory=list)
    equity: List[Account] = field(default_factory=list)
    revenue: List[Account] = field(default_factory=list)
    expenses: List[Account] = field(default_factory=list)
    category_accounts: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_CATEGORY_ACCOUNTS))

    def all_accounts(self) -> List[Account]:
        return [a for bucket in BUCKETS for a in getattr(self, bucket)]

    def find_by_code(self, code: str) -> Optional[Account]:
        return next((a for a in self.all_accounts() if a.code == str(code)), None)

    def find_by_name(self, name: str, bucket: Optional[str] = None) -> Optional[Account]:
        accounts = getattr(self, bucket) if bucket else self.all_accounts()
        key = name.strip().lower()
        return next((a for a in accounts if a.name.strip().lower() == key), None)

    def cash_account(self) -> Account:
        account = self.find_by_code(CASH_ACCOUNT_CODE)
        if account is None:
            account = self.add_account('assets', 'Cash - Operating', 'Current Asset', code=CASH_ACCOUNT_CODE)
        return account

    def next_code(self, bucket: str) -> str:
        base = BUCKET_BASE_CODES[bucket]
        used = {int(a.code) for a in self.all_accounts() if a.code.isdigit()}
        in_range = [c for c in used if base <= c < base + 1000]
        candidate = max(in_range) + CODE_STEP if in_range else base
        while candidate in used or candidate >= base + 1000:
            candidate = candidate + 1 if candidate < base + 1000 else base
        return str(candidate)

    def add_account(self, bucket: str, name: str, type: str, code: Optional[str] = None) -> Account:
        """Append an account; existing accounts are never modified or removed."""
        if bucket not in BUCKETS:
            raise ValueError(f"Unknown account bucket: {bucket}")
        if code is not None and self.find_by_code(code) is not None:
            raise ValueError(f"Account code {code} already exists")
        account = Account(code=code or self.next_code(bucket), name=name, type=type)
        getattr(self, bucket).append(account)
        logger.info("Account added to chart", code=account.code, account_name=name, bucket=bucket)
        return account

    def account_for(self, category: Category) -> Account:
        """
        Counter-account for a category: the mapped code, then an account
        named after the category, then a new account in the revenue or
        expense bucket.
        """
        code = self.category_accounts.get(category.category)
        if code is not None:
            account = self.find_by_code(code)
            if account is not None:
                return account

        bucket = 'revenue' if category.type == CategoryType.REVENUE else 'expenses'
        account = self.find_by_name(category.category, bucket)
        if account is None:
            type = 'Operating Revenue' if bucket == 'revenue' else 'Operating Expense'
            account = self.add_account(bucket, category.category, type)
        self.category_accounts[category.category] = account.code
        return account

    def to_dict(self):
        data = {bucket: [a.to_dict() for a in getattr(self, bucket)] for bucket in BUCKETS}
        data['category_accounts'] = dict(self.category_accounts)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'ChartOfAccounts':
        chart = cls(**{bucket: [Account.from_dict(a) for a in data.get(bucket, [])] for bucket in BUCKETS})
        chart.category_accounts.update(data.get('category_accounts') or {})
        return chart

    @classmethod
    def from_json(cls, path: str) -> 'ChartOfAccounts':
        with open(path, 'r', encoding='utf-8') as f:
            return cls.from_dict(json.load(f))


def default_chart_of_accounts() -> ChartOfAccounts:
    return ChartOfAccounts(
        assets=[
            Account('1000', 'Cash - Operating', 'Current Asset'),
            Account('1100', 'Accounts Receivable', 'Current Asset'),
            Account('1500', 'Equipment', 'Fixed Asset'),
        ],
        liabilities=[
            Account('2000', 'Accounts Payable', 'Current Liability'),
            Account('2100', 'Credit Cards', 'Current Liability'),
            Account('2500', 'Loans Payable', 'Long-term Liability'),
        ],
        equity=[
            Account('3000', "Owner's Equity", "Owner's Equity"),
            Account('3100', 'Retained Earnings', 'Retained Earnings'),
        ],
        revenue=[
            Account('4000', 'Service Revenue', 'Operating Revenue'),
            Account('4100', 'Product Sales', 'Operating Revenue'),
            Account('4900', 'Other Income', 'Other Revenue'),
        ],
        expenses=[
            Account('5000', 'Operating Expenses', 'Operating Expense'),
            Account('5100', 'Rent Expense', 'Operating Expense'),
            Account('5200', 'Utilities Expense', 'Operating Expense'),
            Account('5300', 'Software Expense', 'Operating Expense'),
            Account('5400', 'Marketing Expense', 'Operating Expense'),
            Account('5900', 'Professional Fees', 'Operating Expense'),
        ],
    )
