"""
P&L Aggregator

Groups categorized transactions into revenue streams and expense
categories and derives profitability figures. Sums are kept exact in
Decimal; rounding happens once, on the final figures.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List

from ledgerflow.common.logging_config import get_logger
from ledgerflow.common.models import CategoryType, Transaction
from ledgerflow.utils.amounts import quantize
from .patterns import DEFAULT_REVENUE_CATEGORY, DEFAULT_EXPENSE_CATEGORY

logger = get_logger(__name__)

ZERO = Decimal('0')
HUNDRED = Decimal('100')
ONE_DECIMAL = Decimal('0.1')
COST_OF_GOODS_CATEGORY = 'Inventory/Stock Purchase'
CONCENTRATION_THRESHOLD = 70


def _pct(part: Decimal, whole: Decimal) -> Decimal:
    if whole == 0:
        return ZERO.quantize(ONE_DECIMAL)
    return (part / whole * HUNDRED).quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)


def _money(value: Decimal) -> str:
    return f"{value:,.2f}"


@dataclass
class CategoryAmount:
    name: str
    type: CategoryType
    amount: Decimal
    percentage: Decimal
    transaction_count: int

    def to_dict(self):
        return {
            'name': self.name,
            'type': self.type.value,
            'amount': float(self.amount),
            'percentage': float(self.percentage),
            'transaction_count': self.transaction_count,
        }


@dataclass
class PLSummary:
    total_revenue: Decimal
    total_expenses: Decimal
    net_income: Decimal
    net_profit_margin: Decimal
    gross_profit: Decimal
    gross_profit_margin: Decimal
    revenue_streams: List[CategoryAmount] = field(default_factory=list)
    expense_categories: List[CategoryAmount] = field(default_factory=list)
    insights: List[dict] = field(default_factory=list)
    summary: dict = field(default_factory=dict)

    def to_dict(self):
        return {
            'revenue': {
                'total_revenue': float(self.total_revenue),
                'revenue_streams': [c.to_dict() for c in self.revenue_streams],
            },
            'expenses': {
                'total_expenses': float(self.total_expenses),
                'expense_categories': [c.to_dict() for c in self.expense_categories],
            },
            'profitability': {
                'gross_profit': float(self.gross_profit),
                'gross_profit_margin': float(self.gross_profit_margin),
                'net_income': float(self.net_income),
                'net_profit_margin': float(self.net_profit_margin),
            },
            'insights': self.insights,
            'summary': self.summary,
        }


def summarize_transactions(transactions: List[Transaction]) -> dict:
    """Count, inflow/outflow totals, net change and date range of a list."""
    credits = sum((t.amount for t in transactions if t.amount > 0), ZERO)
    debits = sum((-t.amount for t in transactions if t.amount < 0), ZERO)
    dates = [t.date for t in transactions]
    return {
        'transaction_count': len(transactions),
        'total_credits': float(quantize(credits)),
        'total_debits': float(quantize(debits)),
        'net_change': float(quantize(credits - debits)),
        'date_range': {
            'from': min(dates).isoformat() if dates else None,
            'to': max(dates).isoformat() if dates else None,
        },
    }


def _group(groups: Dict[str, list], type: CategoryType, total: Decimal) -> List[CategoryAmount]:
    rows = [
        CategoryAmount(name, type, quantize(sum_), _pct(sum_, total), count)
        for name, (sum_, count) in groups.items()
    ]
    rows.sort(key=lambda c: (-c.amount, c.name))
    return rows


def _insights(pl: PLSummary, tx_count: int) -> List[dict]:
    insights = []
    if pl.net_income > 0:
        insights.append({'type': 'positive', 'title': 'Profitable Period',
                         'description': f"Net profit of {_money(pl.net_income)} this period."})
    elif pl.net_income < 0:
        insights.append({'type': 'warning', 'title': 'Loss Alert',
                         'description': f"Net loss of {_money(-pl.net_income)}. Review expenses to reduce outflows."})

    if pl.revenue_streams and pl.revenue_streams[0].percentage > CONCENTRATION_THRESHOLD:
        top = pl.revenue_streams[0]
        insights.append({'type': 'info', 'title': 'Revenue Concentration',
                         'description': f"{top.percentage}% of revenue comes from \"{top.name}\". "
                                        f"Consider diversifying income sources."})

    if pl.expense_categories:
        top = pl.expense_categories[0]
        insights.append({'type': 'info', 'title': 'Largest Expense Category',
                         'description': f"\"{top.name}\" is the biggest expense at {_money(top.amount)} "
                                        f"({top.percentage}% of total expenses)."})

    margin = pl.net_profit_margin
    if margin < 0:
        insights.append({'type': 'warning', 'title': 'Negative Profit Margin',
                         'description': f"Expenses exceed revenue by {abs(margin)}%."})
    elif 0 < margin < 10:
        insights.append({'type': 'warning', 'title': 'Low Profit Margin',
                         'description': f"Profit margin is {margin}%. Healthy businesses typically aim for 15-20%+."})
    elif margin >= 20:
        insights.append({'type': 'positive', 'title': 'Healthy Profit Margin',
                         'description': f"A {margin}% profit margin indicates strong business health."})

    insights.append({'type': 'info', 'title': 'Transaction Summary',
                     'description': f"Analyzed {tx_count} transactions with {_money(pl.total_revenue)} inflows "
                                    f"and {_money(pl.total_expenses)} outflows."})
    return insights


def aggregate(transactions: List[Transaction]) -> PLSummary:
    """
    Build the P&L for categorized transactions.

    Uncategorized transactions are counted under the default category for
    their sign.
    """
    revenue: Dict[str, list] = {}
    expenses: Dict[str, list] = {}
    total_revenue = ZERO
    total_expenses = ZERO

    for txn in transactions:
        amount = abs(txn.amount)
        if txn.category is not None:
            type, name = txn.category.type, txn.category.category
        elif txn.amount > 0:
            type, name = CategoryType.REVENUE, DEFAULT_REVENUE_CATEGORY
        else:
            type, name = CategoryType.EXPENSE, DEFAULT_EXPENSE_CATEGORY

        groups = revenue if type == CategoryType.REVENUE else expenses
        entry = groups.setdefault(name, [ZERO, 0])
        entry[0] += amount
        entry[1] += 1
        if type == CategoryType.REVENUE:
            total_revenue += amount
        else:
            total_expenses += amount

    net_income = total_revenue - total_expenses
    cost_of_goods = expenses.get(COST_OF_GOODS_CATEGORY, [ZERO, 0])[0]
    gross_profit = total_revenue - cost_of_goods

    pl = PLSummary(
        total_revenue=quantize(total_revenue),
        total_expenses=quantize(total_expenses),
        net_income=quantize(net_income),
        net_profit_margin=_pct(net_income, total_revenue),
        gross_profit=quantize(gross_profit),
        gross_profit_margin=_pct(gross_profit, total_revenue),
        revenue_streams=_group(revenue, CategoryType.REVENUE, total_revenue),
        expense_categories=_group(expenses, CategoryType.EXPENSE, total_expenses),
        summary=summarize_transactions(transactions),
    )
    pl.insights = _insights(pl, len(transactions))

    logger.info(
        "P&L aggregated",
        tx_count=len(transactions),
        total_revenue=pl.total_revenue,
        total_expenses=pl.total_expenses,
        net_income=pl.net_income,
    )
    return pl
