"""
Request models shared by the endpoints.
"""
from typing import List, Optional, Dict, Any

from pydantic import BaseModel

from ledgerflow.common.models import Transaction


class CategoryIn(BaseModel):
    type: str
    category: str


class TransactionIn(BaseModel):
    """Transaction as sent by clients (ISO date, signed amount)."""
    date: str
    description: str
    amount: float
    type: Optional[str] = None
    balance: Optional[float] = None
    reference: Optional[str] = None
    category: Optional[CategoryIn] = None
    category_source: Optional[str] = None
    source_file: Optional[str] = None


class CategorizeRequest(BaseModel):
    transactions: List[TransactionIn]
    user_id: Optional[str] = None


class JournalRequest(BaseModel):
    transactions: List[TransactionIn]
    chart_of_accounts: Optional[Dict[str, Any]] = None


class UpdateCategoryRequest(BaseModel):
    user_id: str
    description: str
    category: str
    type: str
    amount: Optional[float] = None
    date: Optional[str] = None


def to_transactions(items: List[TransactionIn]):
    """
    Convert request items, splitting out the ones that are not valid
    transactions (no date, blank description, zero amount).

    Returns:
        (transactions, rejected) where rejected is a list of {index, description, error}
    """
    transactions = []
    rejected = []
    for index, item in enumerate(items, start=1):
        try:
            txn = Transaction.from_dict(item.model_dump())
        except ValueError as e:
            rejected.append({'index': index, 'description': item.description, 'error': str(e)})
            continue
        if txn is None:
            rejected.append({'index': index, 'description': item.description, 'error': 'invalid transaction'})
            continue
        transactions.append(txn)
    return transactions, rejected
