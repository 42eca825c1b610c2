"""
CSV / Excel Extractors

Reads spreadsheet exports with pandas into a single raw Table. Header
detection and column mapping happen later in the normalizer.
"""
import csv
import io
from typing import Optional

import pandas as pd

from ledgerflow.common.logging_config import get_logger
from ..base import BaseExtractor, ExtractedDocument, Table, MIME_CSV, MIME_XLS, MIME_XLSX
from ..exceptions import UnsupportedDocument

logger = get_logger(__name__)


def decode_text(buffer: bytes) -> str:
    """UTF-8 first (BOM tolerant), latin-1 as the fallback bank exports need."""
    try:
        return buffer.decode('utf-8-sig')
    except UnicodeDecodeError:
        return buffer.decode('latin1', errors='ignore')


def _frame_to_table(df: pd.DataFrame) -> Table:
    df = df.fillna('')
    rows = []
    for values in df.astype(str).values.tolist():
        cells = [v.strip() for v in values]
        if any(cells):
            rows.append(cells)
    return Table(rows=rows, page=1)


class CsvExtractor(BaseExtractor):
    mime_types = (MIME_CSV,)

    def extract(self, buffer: bytes, filename: Optional[str] = None) -> ExtractedDocument:
        text = decode_text(buffer)
        if not text.strip():
            raise UnsupportedDocument("Empty CSV file", filename=filename)

        lines = [line for line in text.splitlines() if line.strip()]
        try:
            delimiter = csv.Sniffer().sniff('\n'.join(lines[:20]), delimiters=',;\t|').delimiter
        except csv.Error:
            delimiter = ','

        # Preamble rows are usually narrower than the data, so the frame is
        # sized by the widest line to avoid pandas "Expected N fields" errors
        width = max(len(next(csv.reader([line], delimiter=delimiter))) for line in lines)

        try:
            df = pd.read_csv(
                io.StringIO(text),
                sep=delimiter,
                header=None,
                names=list(range(width)),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
            )
        except (pd.errors.ParserError, ValueError) as e:
            logger.warning(f"CSV parse failed: {e}", filename=filename)
            raise UnsupportedDocument(f"Malformed CSV: {e}", filename=filename) from e

        table = _frame_to_table(df)
        logger.debug("CSV read", filename=filename, rows=len(table.rows), delimiter=delimiter)
        return ExtractedDocument(tables=[table] if table.rows else [], page_count=1, source='csv')


class ExcelExtractor(BaseExtractor):
    mime_types = (MIME_XLS, MIME_XLSX)

    def extract(self, buffer: bytes, filename: Optional[str] = None) -> ExtractedDocument:
        try:
            df = pd.read_excel(io.BytesIO(buffer), sheet_name=0, header=None, dtype=str)
        except Exception as e:
            logger.warning(f"Excel read failed: {e}", filename=filename, error_type=type(e).__name__)
            raise UnsupportedDocument(f"Unreadable spreadsheet: {e}", filename=filename) from e

        table = _frame_to_table(df)
        logger.debug("Spreadsheet read", filename=filename, rows=len(table.rows))
        return ExtractedDocument(tables=[table] if table.rows else [], page_count=1, source='excel')
