"""
Builders shared by the test modules.
"""
import io
from datetime import date
from decimal import Decimal

from pypdf import PdfWriter

from ledgerflow.common.models import Category, Transaction, TransactionType


def build_pdf(user_password=None, owner_password=None, pages=1) -> bytes:
    """Blank PDF, optionally encrypted."""
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=200, height=200)
    if user_password is not None:
        writer.encrypt(user_password=user_password, owner_password=owner_password)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


def txn(day, description, amount, category=None, type=None):
    amount = Decimal(str(amount))
    return Transaction(
        date=date(2025, 1, day),
        description=description,
        amount=amount,
        type=TransactionType.CREDIT if amount > 0 else TransactionType.DEBIT,
        category=Category(type, category) if category else None,
    )
