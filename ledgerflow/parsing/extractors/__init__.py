"""
Document extractors: bytes in, ExtractedDocument out.
"""
from .tabular import CsvExtractor, ExcelExtractor
from .text import PlainTextExtractor, ImageExtractor
from .analysis import DocumentAnalysisService, PdfPlumberAnalysisService
from .pdf import PdfExtractor
from .ai_fallback import GeminiStatementExtractor, AIExtractionFallback

__all__ = [
    'CsvExtractor',
    'ExcelExtractor',
    'PlainTextExtractor',
    'ImageExtractor',
    'DocumentAnalysisService',
    'PdfPlumberAnalysisService',
    'PdfExtractor',
    'GeminiStatementExtractor',
    'AIExtractionFallback',
]
