"""
Document Analysis Service

Layout analysis of PDFs: text lines, key-value pairs and detected tables.
The service is injectable so a hosted analysis backend can replace the
local pdfplumber implementation.
"""
import io
import re
from typing import Optional, Protocol, runtime_checkable

import pdfplumber

from ledgerflow.common.logging_config import get_logger
from ..base import ExtractedDocument, Table, KeyValue, split_text_lines
from ..exceptions import UnsupportedDocument

logger = get_logger(__name__)

KEY_VALUE_PATTERN = re.compile(r"^([A-Za-z][A-Za-z .'/()&-]{1,40}?)\s*:\s*(\S.*)$")


@runtime_checkable
class DocumentAnalysisService(Protocol):
    def analyze(self, buffer: bytes, filename: Optional[str] = None) -> ExtractedDocument:
        ...


def _clean_row(row) -> list:
    return [' '.join(str(cell).split()) if cell is not None else '' for cell in row]


def key_values_from_lines(lines) -> list:
    pairs = []
    for line in lines:
        m = KEY_VALUE_PATTERN.match(line.text)
        if m:
            pairs.append(KeyValue(key=m.group(1).strip(), value=m.group(2).strip()))
    return pairs


class PdfPlumberAnalysisService:
    """
    Local analysis with pdfplumber.

    Every page is analysed; a page that fails is logged and skipped so one
    broken page does not lose the whole statement.
    """

    def analyze(self, buffer: bytes, filename: Optional[str] = None) -> ExtractedDocument:
        doc = ExtractedDocument(source='pdfplumber')
        try:
            pdf = pdfplumber.open(io.BytesIO(buffer))
        except Exception as e:
            logger.warning(f"pdfplumber could not open document: {e}", filename=filename)
            raise UnsupportedDocument(f"Corrupt or unreadable PDF: {e}", filename=filename) from e

        with pdf:
            doc.page_count = len(pdf.pages)
            for i, page in enumerate(pdf.pages):
                page_no = i + 1
                try:
                    for raw in page.extract_tables() or []:
                        rows = [_clean_row(r) for r in raw if r and any(c for c in r)]
                        if len(rows) > 1:
                            doc.tables.append(Table(rows=rows, page=page_no))

                    text = page.extract_text() or ""
                    doc.text_lines.extend(split_text_lines(text, page=page_no, start=len(doc.text_lines)))
                except Exception as e:
                    logger.warning(f"Page analysis failed: {e}", filename=filename, page=page_no, exc_info=True)
                    continue

        doc.key_values = key_values_from_lines(doc.text_lines)
        logger.debug(
            "PDF analysed",
            filename=filename,
            pages=doc.page_count,
            tables=len(doc.tables),
            lines=len(doc.text_lines),
        )
        return doc
