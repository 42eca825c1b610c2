"""
Plain text and image extractors.
"""
from typing import Optional

from ledgerflow.common.logging_config import get_logger
from ..base import BaseExtractor, ExtractedDocument, split_text_lines, MIME_TEXT, MIME_JPEG, MIME_PNG
from ..exceptions import UnsupportedDocument
from .tabular import decode_text

logger = get_logger(__name__)


class PlainTextExtractor(BaseExtractor):
    mime_types = (MIME_TEXT,)

    def extract(self, buffer: bytes, filename: Optional[str] = None) -> ExtractedDocument:
        if b'\x00' in buffer:
            raise UnsupportedDocument("Binary content declared as text/plain", filename=filename)
        lines = split_text_lines(decode_text(buffer))
        return ExtractedDocument(text_lines=lines, page_count=1, source='text')


class ImageExtractor(BaseExtractor):
    """
    Images are accepted but yield no text (no OCR), so the orchestrator
    escalates straight to the AI tier.
    """
    mime_types = (MIME_JPEG, MIME_PNG)

    def extract(self, buffer: bytes, filename: Optional[str] = None) -> ExtractedDocument:
        logger.info("Image document, no local text extraction", filename=filename, size=len(buffer))
        return ExtractedDocument(page_count=1, source='image')
