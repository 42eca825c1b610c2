"""
Shared fixtures: sample transactions, in-memory PDFs and CSV statements.
"""
import pytest

from ledgerflow.common.config import Settings
from ledgerflow.common.models import CategoryType
from ledgerflow.core.rules import InMemoryCategoryRuleStore

from helpers import build_pdf, txn


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def settings():
    return Settings(min_text_lines=5, analysis_timeout_seconds=5.0, analysis_retries=1)


@pytest.fixture
def plain_pdf():
    return build_pdf()


@pytest.fixture
def encrypted_pdf():
    """User-password protected PDF (password: 'secret')."""
    return build_pdf(user_password='secret', owner_password='owner-secret')


@pytest.fixture
def owner_only_pdf():
    """Restrictions only: empty user password."""
    return build_pdf(user_password='', owner_password='owner-secret')


@pytest.fixture
def statement_csv():
    return (
        b"date,description,amount\n"
        b"2025-01-05,UPI/P2M/123/Acme Traders/Sale,5000.00\n"
        b"2025-01-06,Office Rent,-1200.00\n"
    )


@pytest.fixture
def sample_transactions():
    return [
        txn(5, 'UPI/P2M/123/Acme Traders/Sale', '5000.00'),
        txn(6, 'Office Rent', '-1200.00'),
    ]


@pytest.fixture
def categorized_transactions():
    return [
        txn(5, 'UPI/P2M/123/Acme Traders/Sale', '5000.00', 'Sales Revenue', CategoryType.REVENUE),
        txn(6, 'Office Rent', '-1200.00', 'Rent & Lease', CategoryType.EXPENSE),
    ]


@pytest.fixture
def rule_store():
    return InMemoryCategoryRuleStore()
