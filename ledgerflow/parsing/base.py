"""
Base Classes for Parsing Module

Provides the intermediate document representation shared by every
extractor and the abstract extractor interface.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

MIME_CSV = 'text/csv'
MIME_XLS = 'application/vnd.ms-excel'
MIME_XLSX = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
MIME_PDF = 'application/pdf'
MIME_TEXT = 'text/plain'
MIME_JPEG = 'image/jpeg'
MIME_PNG = 'image/png'

SUPPORTED_MIME_TYPES = (MIME_CSV, MIME_XLS, MIME_XLSX, MIME_PDF, MIME_TEXT, MIME_JPEG, MIME_PNG)


@dataclass
class Table:
    """Detected table. The first row is the header."""
    rows: List[List[str]]
    page: int = 1

    @property
    def header(self) -> List[str]:
        return self.rows[0] if self.rows else []

    @property
    def data_rows(self) -> List[List[str]]:
        return self.rows[1:]


@dataclass
class TextLine:
    text: str
    page: int = 1
    line_number: int = 0
    confidence: Optional[float] = None


@dataclass
class KeyValue:
    key: str
    value: str


@dataclass
class ExtractedDocument:
    """
    Intermediate representation returned by every extractor.

    Attributes:
        tables: Detected tables, in page order
        text_lines: Every text line, in reading order
        key_values: 'Label: value' pairs (account number, period, ...)
        page_count: Pages analysed (1 for CSV/Excel/text)
        source: Name of the extractor that produced it
    """
    tables: List[Table] = field(default_factory=list)
    text_lines: List[TextLine] = field(default_factory=list)
    key_values: List[KeyValue] = field(default_factory=list)
    page_count: int = 0
    source: str = 'unknown'

    @property
    def is_empty(self) -> bool:
        return not self.tables and not self.text_lines

    def lines(self) -> List[str]:
        return [line.text for line in self.text_lines]


def split_text_lines(text: str, page: int = 1, start: int = 0) -> List[TextLine]:
    """Split a block of text into non-blank TextLines."""
    lines = []
    for raw in text.splitlines():
        if not raw.strip():
            continue
        lines.append(TextLine(text=raw.strip(), page=page, line_number=start + len(lines) + 1))
    return lines


class BaseExtractor(ABC):
    """
    Abstract Base Class for all document extractors.

    Subclasses declare the MIME types they accept and turn raw bytes into an
    ExtractedDocument. They never build transactions themselves.
    """
    mime_types: tuple = ()

    def supports(self, mime_type: str) -> bool:
        """Returns True if this extractor can handle the given MIME type."""
        return mime_type in self.mime_types

    @abstractmethod
    def extract(self, buffer: bytes, filename: Optional[str] = None) -> ExtractedDocument:
        """
        Main entry point.

        Raises:
            UnsupportedDocument: the buffer cannot be read as the declared format
        """
        pass
