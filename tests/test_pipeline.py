"""
Unit tests for the ExtractionOrchestrator state machine.

The PDF analysis service and the AI fallback are mocked; PDFs themselves are
real (blank) documents so decryption runs for real.
"""
from unittest.mock import Mock

import pytest

from ledgerflow.common.config import Settings
from ledgerflow.common.logging_config import get_document
from ledgerflow.parsing.base import ExtractedDocument, Table, split_text_lines
from ledgerflow.parsing.exceptions import IncorrectPassword, UnsupportedDocument, DocumentTooLarge
from ledgerflow.parsing.extractors import PdfPlumberAnalysisService
from ledgerflow.parsing.pipeline import (
    ExtractionOrchestrator, ExtractionState, StageOutcome, is_sufficient, normalize_mime_type,
    SOURCE_TABLE, SOURCE_TEXT_PATTERN, SOURCE_AI, SOURCE_NONE,
)

PDF = 'application/pdf'

TRANSACTION_TABLE = Table(rows=[
    ['Date', 'Description', 'Amount', 'Balance'],
    ['05/01/2025', 'UPI/P2M/123/Acme Traders/Sale', '5,000.00', '15,000.00'],
    ['06/01/2025', 'Office Rent', '-1,200.00', '13,800.00'],
])

AI_RECORDS = [
    {'date': '2025-01-05', 'description': 'Sale', 'amount': 5000.0},
    {'date': '2025-01-06', 'description': 'Office Rent', 'amount': -1200.0},
    {'date': '2025-01-07', 'description': 'Coffee', 'amount': -4.5},
]


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def analysis():
    service = Mock(spec=PdfPlumberAnalysisService)
    service.analyze.return_value = ExtractedDocument(source='mock')
    return service


@pytest.fixture
def ai():
    return Mock(return_value=AI_RECORDS)


@pytest.fixture
def orchestrator(settings, analysis, ai):
    return ExtractionOrchestrator(settings, analysis_service=analysis, ai_fallback=ai)


def _text_document(*lines):
    return ExtractedDocument(text_lines=split_text_lines('\n'.join(lines)), source='mock')


# ============================================================================
# TEST: SUFFICIENCY PREDICATE
# ============================================================================

class TestIsSufficient:

    def test_empty_outcome_is_never_sufficient(self):
        assert not is_sufficient(StageOutcome(stage=ExtractionState.AI_FALLBACK))

    def test_text_tier_needs_enough_lines(self, sample_transactions):
        outcome = StageOutcome(
            stage=ExtractionState.TEXT_PATTERN_FALLBACK,
            transactions=sample_transactions, text_lines=10, required_lines=50,
        )
        assert not is_sufficient(outcome)
        outcome.text_lines = 50
        assert is_sufficient(outcome)

    def test_table_tier_needs_rows(self, sample_transactions):
        outcome = StageOutcome(stage=ExtractionState.TABLE_EXTRACTION, transactions=sample_transactions)
        assert not is_sufficient(outcome)
        outcome.tables_with_rows = 1
        assert is_sufficient(outcome)


def test_normalize_mime_type():
    assert normalize_mime_type('Text/CSV; charset=utf-8') == 'text/csv'
    assert normalize_mime_type(None) == ''


# ============================================================================
# TEST: ESCALATION
# ============================================================================

class TestEscalation:

    def test_table_tier_sufficient_stops_early(self, orchestrator, analysis, ai, plain_pdf):
        analysis.analyze.return_value = ExtractedDocument(tables=[TRANSACTION_TABLE], source='mock')

        result = orchestrator.orchestrate(plain_pdf, PDF, "jan.pdf")

        assert result.source == SOURCE_TABLE
        assert len(result.transactions) == 2
        assert result.transactions[1].balance is not None
        assert result.reason is None
        ai.assert_not_called()

    def test_text_tier_used_when_no_table(self, orchestrator, analysis, ai, plain_pdf):
        analysis.analyze.return_value = _text_document(
            "HDFC Bank",
            "Statement Period: 01/01/2025 to 31/01/2025",
            "05/01/2025 Sale 5,000.00 15,000.00",
            "06/01/2025 Office Rent 1,200.00 Dr 13,800.00",
            "Page 1 of 1",
        )

        result = orchestrator.orchestrate(plain_pdf, PDF, "jan.pdf")

        assert result.source == SOURCE_TEXT_PATTERN
        assert [t.description for t in result.transactions] == ["Sale", "Office Rent"]
        assert result.statement_info.bank_name == "HDFC Bank"
        ai.assert_not_called()

    def test_too_few_lines_escalates_to_ai(self, orchestrator, analysis, ai, plain_pdf):
        analysis.analyze.return_value = _text_document("05/01/2025 Sale 5,000.00 15,000.00")

        result = orchestrator.orchestrate(plain_pdf, PDF, "scan.pdf")

        assert result.source == SOURCE_AI
        assert len(result.transactions) == 3
        assert result.transactions[0].source_file == "scan.pdf"
        ai.assert_called_once()
        assert ai.call_args[0][1] == PDF

    def test_partial_result_kept_when_ai_finds_fewer(self, orchestrator, analysis, ai, plain_pdf):
        analysis.analyze.return_value = _text_document(
            "05/01/2025 Sale 5,000.00", "06/01/2025 Office Rent 1,200.00 Dr",
        )
        ai.return_value = AI_RECORDS[:1]

        result = orchestrator.orchestrate(plain_pdf, PDF)

        assert result.source == SOURCE_TEXT_PATTERN
        assert len(result.transactions) == 2

    def test_best_effort_without_ai(self, settings, analysis, plain_pdf):
        analysis.analyze.return_value = _text_document("05/01/2025 Sale 5,000.00")
        orchestrator = ExtractionOrchestrator(settings, analysis_service=analysis)

        result = orchestrator.orchestrate(plain_pdf, PDF)

        assert result.source == SOURCE_TEXT_PATTERN
        assert result.reason == "best effort from text_pattern"
        assert len(result.transactions) == 1

    def test_all_tiers_fail(self, orchestrator, ai, plain_pdf):
        ai.return_value = None

        result = orchestrator.orchestrate(plain_pdf, PDF, "empty.pdf")

        assert result.transactions == []
        assert result.source == SOURCE_NONE
        assert result.reason == "no transactions found by any extraction tier"
        assert [s['stage'] for s in result.stages] == ['table_extraction', 'text_pattern_fallback', 'ai_fallback']

    def test_invalid_ai_records_are_dropped(self, orchestrator, ai, plain_pdf):
        ai.return_value = [
            {'date': 'unknown', 'description': 'x', 'amount': 1},
            {'date': '2025-01-05', 'description': '', 'amount': 1},
            {'date': '2025-01-05', 'description': 'Zero', 'amount': 0},
            {'date': '2025-01-05', 'description': 'Kept', 'amount': '12.00'},
        ]

        result = orchestrator.orchestrate(plain_pdf, PDF)

        assert [t.description for t in result.transactions] == ['Kept']

    def test_malformed_ai_records_do_not_abort(self, orchestrator, ai, plain_pdf):
        ai.return_value = [
            {'date': '2025-01-05', 'description': 'Sale', 'amount': 5000.0, 'reference': 123456},
            {'date': '2025-01-06', 'description': 4521, 'amount': -20.0},
            {'date': '2025-01-07', 'description': 'Overflow', 'amount': 'Infinity'},
            "not a record",
            None,
        ]

        result = orchestrator.orchestrate(plain_pdf, PDF)

        assert result.source == SOURCE_AI
        assert [t.description for t in result.transactions] == ['Sale', '4521']
        assert result.transactions[0].reference == '123456'

    def test_ai_failure_is_retried_then_treated_as_insufficient(self, settings, analysis, plain_pdf):
        ai = Mock(side_effect=RuntimeError("model unavailable"))
        orchestrator = ExtractionOrchestrator(settings, analysis_service=analysis, ai_fallback=ai)

        result = orchestrator.orchestrate(plain_pdf, PDF)

        assert result.transactions == []
        assert ai.call_count == 2
        assert "model unavailable" in result.stages[-1]['error']

    def test_analysis_failure_escalates(self, settings, analysis, ai, plain_pdf):
        analysis.analyze.side_effect = RuntimeError("service down")
        orchestrator = ExtractionOrchestrator(settings, analysis_service=analysis, ai_fallback=ai)

        result = orchestrator.orchestrate(plain_pdf, PDF)

        assert analysis.analyze.call_count == 2
        assert result.stages[0]['stage'] == 'document_analysis'
        assert result.source == SOURCE_AI

    def test_analysis_runs_under_document_log_context(self, orchestrator, analysis, plain_pdf):
        seen = []

        def analyze(*args, **kwargs):
            seen.append(get_document())
            return ExtractedDocument(source='mock')
        analysis.analyze.side_effect = analyze

        orchestrator.orchestrate(plain_pdf, PDF, "jan.pdf")

        assert seen == ["jan.pdf"]
        assert get_document() is None

    def test_image_goes_straight_to_ai(self, orchestrator, analysis, ai):
        result = orchestrator.orchestrate(b"\x89PNG fake", 'image/png', "receipt.png")

        assert result.source == SOURCE_AI
        analysis.analyze.assert_not_called()
        ai.assert_called_once_with(b"\x89PNG fake", 'image/png')


# ============================================================================
# TEST: NON-PDF INPUTS
# ============================================================================

class TestSpreadsheetsAndText:

    def test_csv_table(self, orchestrator, ai, statement_csv):
        result = orchestrator.orchestrate(statement_csv, 'text/csv; charset=utf-8', "jan.csv")

        assert result.source == SOURCE_TABLE
        assert [float(t.amount) for t in result.transactions] == [5000.0, -1200.0]
        assert result.summary['net_change'] == 3800.0
        ai.assert_not_called()

    def test_csv_without_recognized_header_uses_text_tier(self, orchestrator, ai):
        content = b"when,what,how much\n05/01/2025,Coffee,-4.50\n06/01/2025,Refund,12.00\n"

        result = orchestrator.orchestrate(content, 'text/csv')

        assert result.source == SOURCE_TEXT_PATTERN
        assert [t.description for t in result.transactions] == ['Coffee', 'Refund']
        ai.assert_not_called()

    def test_csv_infinite_amount_row_is_filtered(self, orchestrator):
        content = b"date,description,amount\n2025-01-05,Sale,5000.00\n2025-01-06,Weird,inf\n"

        result = orchestrator.orchestrate(content, 'text/csv', "jan.csv")

        assert result.source == SOURCE_TABLE
        assert [t.description for t in result.transactions] == ['Sale']

    def test_csv_row_mentioning_total_and_transaction_is_kept(self, orchestrator, ai):
        content = b"date,description,amount\n2024-01-01,POS transaction TOTAL MALL,-500\n"

        result = orchestrator.orchestrate(content, 'text/csv')

        assert result.source == SOURCE_TABLE
        assert [float(t.amount) for t in result.transactions] == [-500.0]
        ai.assert_not_called()

    def test_plain_text(self, orchestrator):
        content = b"Account statement\n05/01/2025 Sale 5,000.00 15,000.00\n"
        result = orchestrator.orchestrate(content, 'text/plain')

        assert result.source == SOURCE_TEXT_PATTERN
        assert len(result.transactions) == 1

    def test_unsupported_type(self, orchestrator):
        with pytest.raises(UnsupportedDocument) as exc_info:
            orchestrator.orchestrate(b"PK\x03\x04", 'application/zip', "archive.zip")
        assert exc_info.value.code == 'UNSUPPORTED_DOCUMENT'

    def test_idempotent(self, orchestrator, statement_csv):
        first = orchestrator.orchestrate(statement_csv, 'text/csv', "jan.csv")
        second = orchestrator.orchestrate(statement_csv, 'text/csv', "jan.csv")

        assert first.to_dict() == second.to_dict()


# ============================================================================
# TEST: PASSWORD GATING
# ============================================================================

class TestPasswordGating:

    def test_password_required_stops_before_extraction(self, orchestrator, analysis, ai, encrypted_pdf):
        result = orchestrator.orchestrate(encrypted_pdf, PDF, "locked.pdf")

        assert result.requires_password is True
        assert result.transactions == []
        assert result.reason == 'password_required'
        analysis.analyze.assert_not_called()
        ai.assert_not_called()

    def test_incorrect_password_propagates(self, orchestrator, analysis, encrypted_pdf):
        with pytest.raises(IncorrectPassword):
            orchestrator.orchestrate(encrypted_pdf, PDF, "locked.pdf", password="wrong")
        analysis.analyze.assert_not_called()

    def test_correct_password_analyses_decrypted_copy(self, orchestrator, analysis, encrypted_pdf):
        analysis.analyze.return_value = ExtractedDocument(tables=[TRANSACTION_TABLE])

        result = orchestrator.orchestrate(encrypted_pdf, PDF, "locked.pdf", password="secret")

        assert result.requires_password is False
        assert result.encryption == 'user'
        assert len(result.transactions) == 2
        analysed_buffer = analysis.analyze.call_args[0][0]
        assert analysed_buffer != encrypted_pdf

    def test_document_too_large(self, analysis, plain_pdf):
        orchestrator = ExtractionOrchestrator(Settings(max_sync_bytes=10), analysis_service=analysis)
        with pytest.raises(DocumentTooLarge):
            orchestrator.orchestrate(plain_pdf, PDF, "big.pdf")
        analysis.analyze.assert_not_called()
