"""
Parsing Module

Turns statement documents into canonical transactions:
- Decryption of password-protected PDFs
- Extractors (CSV, Excel, text, PDF analysis, AI fallback)
- Column normalization and text-line recognition
- Orchestration across the fallback tiers
"""

# Base classes
from .base import BaseExtractor, ExtractedDocument, Table, TextLine, KeyValue

# Configuration
from .config.columns import ColumnMapping

# Decryption
from .decryption import decrypt, is_password_protected, temporary_pdf, DecryptionResult

# Extractors
from .extractors import (
    CsvExtractor,
    ExcelExtractor,
    PlainTextExtractor,
    ImageExtractor,
    PdfExtractor,
    PdfPlumberAnalysisService,
    GeminiStatementExtractor,
)

# Normalization
from .normalizer import ColumnNormalizer
from .line_parser import TransactionLineParser, parse_lines
from .statement_info import StatementInfo, extract_statement_info

# Pipeline
from .pipeline import ExtractionOrchestrator, ExtractionState, ProcessingResult, is_sufficient

__all__ = [
    # Base
    'BaseExtractor',
    'ExtractedDocument',
    'Table',
    'TextLine',
    'KeyValue',
    # Config
    'ColumnMapping',
    # Decryption
    'decrypt',
    'is_password_protected',
    'temporary_pdf',
    'DecryptionResult',
    # Extractors
    'CsvExtractor',
    'ExcelExtractor',
    'PlainTextExtractor',
    'ImageExtractor',
    'PdfExtractor',
    'PdfPlumberAnalysisService',
    'GeminiStatementExtractor',
    # Normalization
    'ColumnNormalizer',
    'TransactionLineParser',
    'parse_lines',
    'StatementInfo',
    'extract_statement_info',
    # Pipeline
    'ExtractionOrchestrator',
    'ExtractionState',
    'ProcessingResult',
    'is_sufficient',
]
