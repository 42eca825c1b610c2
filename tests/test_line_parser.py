"""
Unit tests for free-text transaction line recognition.
"""
from datetime import date
from decimal import Decimal

import pytest

from ledgerflow.parsing.base import TextLine
from ledgerflow.parsing.line_parser import TransactionLineParser, parse_lines


@pytest.fixture
def parser():
    return TransactionLineParser()


class TestParseLine:

    def test_amount_and_balance(self, parser):
        partial = parser.parse_line("05/01/2025 UPI/P2M/123/Acme Traders/Sale 5,000.00 15,000.00")

        assert partial.date == date(2025, 1, 5)
        assert partial.description == "UPI/P2M/123/Acme Traders/Sale"
        assert partial.amount == Decimal("5000.00")
        assert partial.balance == Decimal("15000.00")
        assert partial.type == 'credit'

    def test_dr_marker_makes_debit(self, parser):
        partial = parser.parse_line("06/01/2025 Office Rent 1,200.00 Dr 13,800.00 Cr")

        assert partial.amount == Decimal("-1200.00")
        assert partial.balance == Decimal("13800.00")
        assert partial.description == "Office Rent"

    @pytest.mark.parametrize("line,expected", [
        ("07/01/2025 ATM withdrawal (500.00) 13,300.00", Decimal("-500.00")),
        ("2025-01-08 | Card fee | -25.00 | 13,275.00", Decimal("-25.00")),
        ("09 Jan 2025 Interest credit ₹12.50", Decimal("12.50")),
    ])
    def test_signed_amounts(self, parser, line, expected):
        assert parser.parse_line(line).amount == expected

    def test_single_amount_has_no_balance(self, parser):
        partial = parser.parse_line("10/01/2025 Salary 45,000.00")
        assert partial.balance is None

    @pytest.mark.parametrize("line", [
        "",
        "Opening Balance 10,000.00",
        "Total 31/01/2025 6,200.00",
        "Closing balance as on 31/01/2025 13,300.00",
        "05/01/2025 Cheque 100",
        "Sale 5,000.00",
        "05/01/2025 statement generated",
    ])
    def test_lines_without_transaction(self, parser, line):
        assert parser.parse_line(line) is None


class TestParseLines:

    def test_only_valid_transactions_are_returned(self):
        lines = [
            "HDFC Bank Statement",
            TextLine(text="05/01/2025 Sale 5,000.00 15,000.00", page=1, line_number=2),
            "06/01/2025 Office Rent 1,200.00 Dr 13,800.00",
            "Total Dr/Cr 6,200.00",
        ]

        transactions = parse_lines(lines, "jan.txt")

        assert [t.description for t in transactions] == ["Sale", "Office Rent"]
        assert transactions[1].amount == Decimal("-1200.00")
        assert transactions[0].source_file == "jan.txt"
