"""
Unit tests for the document extractors.
"""
import io
from unittest.mock import MagicMock, Mock, patch

import pandas as pd
import pytest

from ledgerflow.parsing.base import ExtractedDocument
from ledgerflow.parsing.exceptions import DocumentTooLarge, UnsupportedDocument
from ledgerflow.parsing.extractors import (
    CsvExtractor, ExcelExtractor, ImageExtractor, PdfExtractor, PdfPlumberAnalysisService, PlainTextExtractor,
)
from ledgerflow.parsing.extractors.ai_fallback import GeminiStatementExtractor, parse_model_output


# ============================================================================
# TEST: CSV / EXCEL
# ============================================================================

class TestCsvExtractor:

    def test_single_table_with_header_first(self, statement_csv):
        doc = CsvExtractor().extract(statement_csv, "jan.csv")

        assert len(doc.tables) == 1
        table = doc.tables[0]
        assert table.header == ['date', 'description', 'amount']
        assert table.data_rows[1] == ['2025-01-06', 'Office Rent', '-1200.00']
        assert doc.text_lines == []

    def test_semicolon_delimiter(self):
        content = b"Date;Description;Amount\n2025-01-05;Coffee;-4.50\n2025-01-06;Tea;-3.00\n"
        table = CsvExtractor().extract(content).tables[0]
        assert table.rows[1] == ['2025-01-05', 'Coffee', '-4.50']

    def test_preamble_rows_narrower_than_data(self):
        content = (
            b"Statement for ACME LTD\n"
            b"Date,Description,Amount\n"
            b"2025-01-05,Sale,5000.00\n"
            b"2025-01-06,Rent,-1200.00\n"
            b"2025-01-07,Fee,-10.00\n"
        )
        table = CsvExtractor().extract(content).tables[0]

        assert table.rows[0] == ['Statement for ACME LTD', '', '']
        assert table.rows[1] == ['Date', 'Description', 'Amount']
        assert len(table.rows) == 5

    def test_latin1_content(self):
        content = "Date,Description,Amount\n2025-01-05,Café,-4.50\n".encode('latin1')
        table = CsvExtractor().extract(content).tables[0]
        assert table.rows[1][1] == 'Café'

    def test_empty_csv_is_unsupported(self):
        with pytest.raises(UnsupportedDocument):
            CsvExtractor().extract(b"   \n")


class TestExcelExtractor:

    def test_first_sheet_as_table(self):
        buf = io.BytesIO()
        pd.DataFrame([
            ['Txn Date', 'Narration', 'Withdrawal Amt.', 'Deposit Amt.'],
            ['05/01/2025', 'Sale', '', '5000.00'],
        ]).to_excel(buf, index=False, header=False)

        doc = ExcelExtractor().extract(buf.getvalue(), "jan.xlsx")

        assert doc.tables[0].header == ['Txn Date', 'Narration', 'Withdrawal Amt.', 'Deposit Amt.']
        assert doc.tables[0].data_rows[0] == ['05/01/2025', 'Sale', '', '5000.00']

    def test_garbage_is_unsupported(self):
        with pytest.raises(UnsupportedDocument):
            ExcelExtractor().extract(b"not a spreadsheet")


# ============================================================================
# TEST: TEXT / IMAGE
# ============================================================================

class TestTextAndImage:

    def test_plain_text_lines(self):
        doc = PlainTextExtractor().extract(b"Header\n\n05/01/2025 Sale 5,000.00\n")
        assert doc.lines() == ["Header", "05/01/2025 Sale 5,000.00"]
        assert doc.text_lines[1].line_number == 2

    def test_binary_declared_as_text_is_unsupported(self):
        with pytest.raises(UnsupportedDocument):
            PlainTextExtractor().extract(b"PK\x03\x04\x00\x00")

    def test_image_yields_empty_document(self):
        doc = ImageExtractor().extract(b"\x89PNG....")
        assert doc.is_empty
        assert doc.source == 'image'


# ============================================================================
# TEST: PDF
# ============================================================================

def _mock_pdf(pages):
    pdf = MagicMock()
    pdf.pages = pages
    pdf.__enter__.return_value = pdf
    return pdf


class TestPdfExtraction:

    def test_too_large_is_rejected_before_analysis(self):
        service = Mock(spec=PdfPlumberAnalysisService)
        extractor = PdfExtractor(service, max_sync_bytes=10)

        with pytest.raises(DocumentTooLarge):
            extractor.extract(b"x" * 11, "big.pdf")
        service.analyze.assert_not_called()

    def test_delegates_to_analysis_service(self):
        service = Mock(spec=PdfPlumberAnalysisService)
        service.analyze.return_value = ExtractedDocument(source='mock')

        doc = PdfExtractor(service).extract(b"%PDF-1.4", "a.pdf")

        assert doc.source == 'mock'
        service.analyze.assert_called_once_with(b"%PDF-1.4", "a.pdf")

    @patch('ledgerflow.parsing.extractors.analysis.pdfplumber')
    def test_pdfplumber_analysis_all_pages(self, mock_pdfplumber):
        page1 = Mock()
        page1.extract_tables.return_value = [[
            ['Date', 'Description', 'Amount'],
            ['05/01/2025', 'Sale', '5,000.00'],
            [None, None, None],
        ]]
        page1.extract_text.return_value = "Account Number: 50100123456789\n05/01/2025 Sale 5,000.00"
        page2 = Mock()
        page2.extract_tables.side_effect = RuntimeError("broken page")
        page3 = Mock()
        page3.extract_tables.return_value = []
        page3.extract_text.return_value = "06/01/2025 Rent 1,200.00 Dr"
        mock_pdfplumber.open.return_value = _mock_pdf([page1, page2, page3])

        doc = PdfPlumberAnalysisService().analyze(b"%PDF", "stmt.pdf")

        assert doc.page_count == 3
        assert len(doc.tables) == 1
        assert doc.tables[0].rows == [['Date', 'Description', 'Amount'], ['05/01/2025', 'Sale', '5,000.00']]
        assert doc.lines() == [
            "Account Number: 50100123456789",
            "05/01/2025 Sale 5,000.00",
            "06/01/2025 Rent 1,200.00 Dr",
        ]
        assert doc.text_lines[2].page == 3
        assert doc.key_values[0].key == "Account Number"
        assert doc.key_values[0].value == "50100123456789"

    @patch('ledgerflow.parsing.extractors.analysis.pdfplumber')
    def test_unopenable_pdf_is_unsupported(self, mock_pdfplumber):
        mock_pdfplumber.open.side_effect = Exception("Corrupted PDF")
        with pytest.raises(UnsupportedDocument):
            PdfPlumberAnalysisService().analyze(b"garbage")


# ============================================================================
# TEST: AI FALLBACK
# ============================================================================

class TestGeminiFallback:

    def test_parse_model_output_strips_fences(self):
        raw = '```json\n[{"date": "2025-01-05", "description": "Sale", "amount": 10.0}, 3]\n```'
        assert parse_model_output(raw) == [{"date": "2025-01-05", "description": "Sale", "amount": 10.0}]

    def test_parse_model_output_accepts_wrapped_list(self):
        assert parse_model_output('{"transactions": []}') == []

    @patch('ledgerflow.parsing.extractors.ai_fallback.genai')
    def test_call_returns_records(self, mock_genai):
        model = mock_genai.GenerativeModel.return_value
        model.generate_content.return_value = Mock(text='[{"date": "2025-01-05", "description": "Sale", "amount": 1}]')

        extractor = GeminiStatementExtractor(api_key="k")
        records = extractor(b"img", "image/png")

        assert records[0]['description'] == "Sale"
        mock_genai.configure.assert_called_once_with(api_key="k")
        args = model.generate_content.call_args[0][0]
        assert args[1] == {'mime_type': 'image/png', 'data': b"img"}

    @patch('ledgerflow.parsing.extractors.ai_fallback.genai')
    def test_model_error_returns_none(self, mock_genai):
        mock_genai.GenerativeModel.return_value.generate_content.side_effect = RuntimeError("quota")
        assert GeminiStatementExtractor(api_key="k")(b"x", "application/pdf") is None

    def test_requires_api_key(self, monkeypatch):
        monkeypatch.delenv('GEMINI_API_KEY', raising=False)
        with pytest.raises(ValueError):
            GeminiStatementExtractor()
