"""
Category Pattern Tables

Ordered category -> regex tables for revenue (money in) and expense
(money out). Tables are immutable and injected into the categorizer so an
alternate taxonomy can be swapped in without touching code.
"""
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple, Pattern

import yaml

from ledgerflow.common.models import Category, CategoryType

DEFAULT_REVENUE_CATEGORY = 'Other Income'
DEFAULT_EXPENSE_CATEGORY = 'General Expenses'

DEFAULT_REVENUE_PATTERNS = (
    ('Sales Revenue', (
        r"payment.*received", r"razorpay", r"stripe", r"paytm.*merchant", r"phonepe.*merchant",
        r"gpay.*merchant", r"\bsales?\b", r"invoice", r"customer.*payment", r"collection",
        r"receipt", r"inward",
    )),
    ('Service Income', (
        r"consulting", r"service.*fee", r"professional.*fee", r"retainer", r"commission", r"brokerage",
    )),
    ('Interest Income', (
        r"interest.*credit", r"\bint\.?\s*cr", r"interest.*received", r"fd.*interest",
        r"savings.*interest", r"interest earned",
    )),
    ('Refunds Received', (
        r"refund", r"reversal.*credit", r"cashback", r"return.*credit",
    )),
    ('Investment Returns', (
        r"dividend", r"mutual.*fund.*credit", r"\bmf\b.*credit", r"investment.*return",
    )),
    ('Rental Income', (
        r"rent.*received", r"rental.*income", r"lease.*payment.*received",
    )),
    (DEFAULT_REVENUE_CATEGORY, ()),
)

DEFAULT_EXPENSE_PATTERNS = (
    ('Inventory/Stock Purchase', (
        r"purchase", r"\bstock\b", r"inventory", r"raw.*material", r"\bgoods\b", r"supplier",
        r"vendor.*payment", r"wholesale",
    )),
    ('Salary & Wages', (
        r"salary", r"payroll", r"\bwages?\b", r"employee", r"staff.*payment", r"contractor.*payment",
        r"freelancer",
    )),
    ('Rent & Lease', (
        r"\brent\b", r"\blease\b", r"office.*space", r"property", r"premises",
    )),
    ('Utilities', (
        r"electricity", r"electric.*bill", r"\bpower\b", r"water.*bill", r"gas.*bill", r"utility",
        r"bescom", r"kseb", r"tangedco",
    )),
    ('Internet & Telecom', (
        r"internet", r"wifi", r"broadband", r"airtel", r"\bjio\b", r"bsnl", r"vodafone", r"\bvi\b",
        r"mobile.*recharge", r"telecom", r"phone.*bill",
    )),
    ('Software & Subscriptions', (
        r"software", r"subscription", r"\bsaas\b", r"\baws\b", r"google.*cloud", r"azure", r"zoho",
        r"slack", r"notion", r"figma", r"adobe", r"netflix", r"spotify", r"microsoft", r"github",
        r"dropbox", r"canva", r"mailchimp", r"hubspot", r"salesforce", r"heygen", r"ecom pur",
    )),
    ('Marketing & Advertising', (
        r"marketing", r"advertising", r"\bad.*spend", r"facebook.*ads", r"google.*ads", r"meta.*ads",
        r"instagram", r"campaign", r"promotion", r"\bseo\b",
    )),
    ('Professional Services', (
        r"legal", r"lawyer", r"advocate", r"\bca\b", r"chartered.*accountant", r"\baudit", r"consultant",
        r"advisor", r"compliance",
    )),
    ('Insurance', (
        r"insurance", r"policy.*premium", r"\blic\b",
    )),
    ('Travel & Conveyance', (
        r"travel", r"\buber\b", r"\bola\b", r"rapido", r"\bcab\b", r"taxi", r"petrol", r"diesel",
        r"\bfuel\b", r"\btoll\b", r"flight", r"airline", r"railway", r"irctc", r"bus.*ticket",
        r"makemytrip", r"goibibo",
    )),
    ('Office Expenses', (
        r"stationery", r"office.*supplies", r"furniture", r"equipment", r"maintenance", r"repair",
        r"cleaning", r"housekeeping",
    )),
    ('Food & Entertainment', (
        r"zomato", r"swiggy", r"restaurant", r"\bfood\b", r"\bcafe\b", r"coffee", r"dining", r"hotel",
        r"entertainment", r"\bparty\b",
    )),
    ('Bank Charges', (
        r"bank.*charge", r"transaction.*fee", r"service.*charge", r"gst.*charge", r"processing.*fee",
        r"\bemi\b.*charge", r"late.*fee", r"penalty", r"annual.*fee", r"card.*fee",
    )),
    ('Taxes Paid', (
        r"gst.*payment", r"income.*tax", r"\btds\b", r"advance.*tax", r"professional.*tax", r"tax.*payment",
    )),
    ('Loan & EMI', (
        r"\bemi\b", r"loan.*payment", r"instal?ment", r"credit.*card.*payment", r"principal", r"repayment",
    )),
    ('Interest Paid', (
        r"interest.*debit", r"\bint\.?\s*dr\b", r"interest.*paid", r"loan.*interest", r"\bod\b.*interest",
    )),
    ('Transfers Out', (
        r"upi/p2a", r"upi/p2m", r"imps/p2a", r"\bimps\b", r"\bneft\b", r"\brtgs\b", r"transfer",
    )),
    (DEFAULT_EXPENSE_CATEGORY, (
        r"\bpos/", r"\batm\b", r"withdrawal",
    )),
)


@dataclass(frozen=True)
class CategoryPattern:
    """One category and its case-insensitive regexes, tried in order."""
    category: str
    type: CategoryType
    patterns: Tuple[Pattern, ...]

    @classmethod
    def build(cls, category: str, type: CategoryType, patterns) -> 'CategoryPattern':
        return cls(category, type, tuple(re.compile(p, re.IGNORECASE) for p in patterns))

    def matches(self, description: str) -> bool:
        return any(p.search(description) for p in self.patterns)


@dataclass(frozen=True)
class CategoryTable:
    """
    Immutable revenue and expense tables plus the defaults used when no
    pattern matches. Positive amounts are looked up in `revenue`, negative
    ones in `expense`; the first matching category wins.
    """
    revenue: Tuple[CategoryPattern, ...]
    expense: Tuple[CategoryPattern, ...]
    default_revenue: str = DEFAULT_REVENUE_CATEGORY
    default_expense: str = DEFAULT_EXPENSE_CATEGORY

    def match(self, description: str, amount: Decimal) -> Optional[Category]:
        table = self.revenue if amount > 0 else self.expense
        for pattern in table:
            if pattern.matches(description):
                return Category(pattern.type, pattern.category)
        return None

    def default_for(self, amount: Decimal) -> Category:
        if amount > 0:
            return Category(CategoryType.REVENUE, self.default_revenue)
        return Category(CategoryType.EXPENSE, self.default_expense)

    def categories(self, type: CategoryType) -> Tuple[str, ...]:
        table = self.revenue if type == CategoryType.REVENUE else self.expense
        return tuple(p.category for p in table)

    @classmethod
    def from_dict(cls, data: dict) -> 'CategoryTable':
        """
        Build from a mapping:

            revenue: {Category Name: [regex, ...], ...}
            expense: {Category Name: [regex, ...], ...}
            defaults: {revenue: Other Income, expense: General Expenses}
        """
        defaults = data.get('defaults') or {}
        revenue = tuple(
            CategoryPattern.build(name, CategoryType.REVENUE, patterns or ())
            for name, patterns in (data.get('revenue') or {}).items()
        )
        expense = tuple(
            CategoryPattern.build(name, CategoryType.EXPENSE, patterns or ())
            for name, patterns in (data.get('expense') or data.get('expenses') or {}).items()
        )
        return cls(
            revenue=revenue,
            expense=expense,
            default_revenue=defaults.get('revenue', DEFAULT_REVENUE_CATEGORY),
            default_expense=defaults.get('expense', DEFAULT_EXPENSE_CATEGORY),
        )

    @classmethod
    def from_yaml(cls, path: str) -> 'CategoryTable':
        with open(path, 'r', encoding='utf-8') as f:
            return cls.from_dict(yaml.safe_load(f) or {})


def default_category_table() -> CategoryTable:
    return CategoryTable(
        revenue=tuple(CategoryPattern.build(n, CategoryType.REVENUE, p) for n, p in DEFAULT_REVENUE_PATTERNS),
        expense=tuple(CategoryPattern.build(n, CategoryType.EXPENSE, p) for n, p in DEFAULT_EXPENSE_PATTERNS),
    )
