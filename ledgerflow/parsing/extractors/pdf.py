"""
PDF Extractor

Delegates layout analysis to a DocumentAnalysisService. Decryption
happens before this point, in the orchestrator.
"""
from typing import Optional

from ledgerflow.common.logging_config import get_logger
from ..base import BaseExtractor, ExtractedDocument, MIME_PDF
from ..exceptions import DocumentTooLarge
from .analysis import DocumentAnalysisService, PdfPlumberAnalysisService

logger = get_logger(__name__)


class PdfExtractor(BaseExtractor):
    mime_types = (MIME_PDF,)

    def __init__(self, analysis_service: Optional[DocumentAnalysisService] = None,
                 max_sync_bytes: int = 10 * 1024 * 1024):
        self.analysis_service = analysis_service or PdfPlumberAnalysisService()
        self.max_sync_bytes = max_sync_bytes

    def extract(self, buffer: bytes, filename: Optional[str] = None) -> ExtractedDocument:
        if len(buffer) > self.max_sync_bytes:
            raise DocumentTooLarge(
                f"Document is {len(buffer)} bytes, limit is {self.max_sync_bytes}",
                filename=filename,
            )
        logger.info(
            "Analysing PDF",
            filename=filename,
            size=len(buffer),
            service=type(self.analysis_service).__name__,
        )
        return self.analysis_service.analyze(buffer, filename)
