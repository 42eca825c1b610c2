"""
Extraction Orchestrator

Runs a document through decryption and then the extraction tiers:

    INIT -> TABLE_EXTRACTION -> TEXT_PATTERN_FALLBACK -> AI_FALLBACK -> RETURN_BEST_EFFORT

Each tier stops the machine as soon as `is_sufficient` holds. Output of a
tier is kept and only replaced by a later tier that finds strictly more
transactions, so partial results are never discarded.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ledgerflow.common.config import Settings
from ledgerflow.common.logging_config import get_logger, log_context
from ledgerflow.common.models import Transaction
from ledgerflow.core.aggregator import summarize_transactions
from ledgerflow.utils.timeouts import call_with_timeout, CallFailed
from .base import (
    ExtractedDocument, TextLine, SUPPORTED_MIME_TYPES, MIME_PDF, MIME_CSV, MIME_XLS, MIME_XLSX
)
from .decryption import decrypt, ENCRYPTION_NONE, ENCRYPTION_USER
from .exceptions import DocumentError, PasswordRequired, UnsupportedDocument, InsufficientExtraction
from .extractors import (
    CsvExtractor, ExcelExtractor, PlainTextExtractor, ImageExtractor, PdfExtractor,
    DocumentAnalysisService, AIExtractionFallback,
)
from .config.columns import ColumnMapping
from .line_parser import TransactionLineParser
from .normalizer import ColumnNormalizer
from .statement_info import StatementInfo, extract_statement_info

logger = get_logger(__name__)

SOURCE_TABLE = 'table'
SOURCE_TEXT_PATTERN = 'text_pattern'
SOURCE_AI = 'ai_fallback'
SOURCE_NONE = 'none'


class ExtractionState(Enum):
    INIT = 'init'
    TABLE_EXTRACTION = 'table_extraction'
    TEXT_PATTERN_FALLBACK = 'text_pattern_fallback'
    AI_FALLBACK = 'ai_fallback'
    RETURN_BEST_EFFORT = 'return_best_effort'
    DONE = 'done'


STATE_SOURCES = {
    ExtractionState.TABLE_EXTRACTION: SOURCE_TABLE,
    ExtractionState.TEXT_PATTERN_FALLBACK: SOURCE_TEXT_PATTERN,
    ExtractionState.AI_FALLBACK: SOURCE_AI,
}


@dataclass
class StageOutcome:
    """
    What one tier produced.

    Attributes:
        tables_with_rows: Tables with at least one data row (table tier)
        text_lines: Lines available to the text tier
        required_lines: Lines the text tier needs before it is trusted
    """
    stage: ExtractionState
    transactions: List[Transaction] = field(default_factory=list)
    tables_with_rows: int = 0
    text_lines: int = 0
    required_lines: int = 0
    min_transactions: int = 1
    error: Optional[str] = None

    @property
    def source(self) -> str:
        return STATE_SOURCES.get(self.stage, SOURCE_NONE)

    def to_dict(self):
        return {
            'stage': self.stage.value,
            'transactions': len(self.transactions),
            'sufficient': is_sufficient(self),
            'error': self.error,
        }


def is_sufficient(outcome: StageOutcome) -> bool:
    """
    Single escalation predicate:
    - table tier: a table with data rows normalized into enough valid transactions
    - text tier: enough text lines parsed into at least one valid transaction
    - AI tier: at least one valid transaction
    """
    count = len(outcome.transactions)
    if count == 0:
        return False
    if outcome.stage == ExtractionState.TABLE_EXTRACTION:
        return outcome.tables_with_rows >= 1 and count >= outcome.min_transactions
    if outcome.stage == ExtractionState.TEXT_PATTERN_FALLBACK:
        return outcome.text_lines >= outcome.required_lines
    return outcome.stage == ExtractionState.AI_FALLBACK


@dataclass
class ProcessingResult:
    transactions: List[Transaction] = field(default_factory=list)
    requires_password: bool = False
    source: str = SOURCE_NONE
    reason: Optional[str] = None
    encryption: str = ENCRYPTION_NONE
    statement_info: Optional[StatementInfo] = None
    stages: List[dict] = field(default_factory=list)
    filename: Optional[str] = None

    @property
    def summary(self) -> dict:
        return summarize_transactions(self.transactions)

    def to_dict(self):
        return {
            'filename': self.filename,
            'transactions': [t.to_dict() for t in self.transactions],
            'requires_password': self.requires_password,
            'source': self.source,
            'reason': self.reason,
            'encryption': self.encryption,
            'statement_info': self.statement_info.to_dict() if self.statement_info else None,
            'summary': self.summary,
            'stages': self.stages,
        }


def normalize_mime_type(mime_type: str) -> str:
    """'text/csv; charset=utf-8' -> 'text/csv'"""
    return (mime_type or '').split(';')[0].strip().lower()


class ExtractionOrchestrator:
    """
    Main orchestrator for document extraction.

    Args:
        settings: Thresholds and timeouts
        analysis_service: PDF layout analysis backend (pdfplumber by default)
        ai_fallback: Optional callable (buffer, mime_type) -> list of raw dicts
        mapping: Column synonym table shared by the normalizer and line parser
    """

    def __init__(self, settings: Optional[Settings] = None,
                 analysis_service: Optional[DocumentAnalysisService] = None,
                 ai_fallback: Optional[AIExtractionFallback] = None,
                 mapping: Optional[ColumnMapping] = None):
        self.settings = settings or Settings()
        self.ai_fallback = ai_fallback
        self.normalizer = ColumnNormalizer(mapping)
        self.line_parser = TransactionLineParser(mapping)
        self.extractors = [
            CsvExtractor(),
            ExcelExtractor(),
            PlainTextExtractor(),
            ImageExtractor(),
            PdfExtractor(analysis_service, max_sync_bytes=self.settings.max_sync_bytes),
        ]

    def _extractor_for(self, mime_type: str, filename: Optional[str]):
        for extractor in self.extractors:
            if extractor.supports(mime_type):
                return extractor
        raise UnsupportedDocument(f"Unsupported document type: {mime_type or 'unknown'}", filename=filename)

    def _bounded(self, fn, *args, label: str):
        try:
            return call_with_timeout(
                fn, *args,
                timeout=self.settings.analysis_timeout_seconds,
                retries=self.settings.analysis_retries,
                passthrough=(DocumentError,),
                label=label,
            )
        except CallFailed as e:
            raise InsufficientExtraction(str(e)) from e

    def _extract(self, buffer: bytes, mime_type: str, filename: Optional[str]):
        extractor = self._extractor_for(mime_type, filename)
        if mime_type == MIME_PDF:
            try:
                return self._bounded(extractor.extract, buffer, filename, label='document_analysis'), None
            except InsufficientExtraction as e:
                logger.warning("Document analysis unavailable", filename=filename, error=str(e))
                return ExtractedDocument(source='unavailable'), str(e)
        return extractor.extract(buffer, filename), None

    def _text_lines(self, document: ExtractedDocument) -> List[TextLine]:
        if document.text_lines:
            return document.text_lines
        # Spreadsheets carry no text; their rows are offered to the text tier
        lines = []
        for table in document.tables:
            for i, row in enumerate(table.rows):
                text = ' '.join(cell for cell in row if cell)
                if text:
                    lines.append(TextLine(text=text, page=table.page, line_number=i + 1))
        return lines

    def _run_table(self, document, filename) -> StageOutcome:
        tables = [t for t in document.tables if t.data_rows]
        return StageOutcome(
            stage=ExtractionState.TABLE_EXTRACTION,
            transactions=self.normalizer.normalize_tables(tables, filename),
            tables_with_rows=len(tables),
            min_transactions=self.settings.min_table_transactions,
        )

    def _run_text(self, document, mime_type, filename) -> StageOutcome:
        lines = self._text_lines(document)
        required = self.settings.min_text_lines if mime_type == MIME_PDF else 1
        return StageOutcome(
            stage=ExtractionState.TEXT_PATTERN_FALLBACK,
            transactions=self.line_parser.parse_lines(lines, filename),
            text_lines=len(lines),
            required_lines=required,
        )

    def _run_ai(self, buffer, mime_type, filename) -> StageOutcome:
        outcome = StageOutcome(stage=ExtractionState.AI_FALLBACK)
        if self.ai_fallback is None:
            outcome.error = 'AI fallback not configured'
            return outcome
        try:
            records = self._bounded(self.ai_fallback, buffer, mime_type, label='ai_fallback') or []
        except InsufficientExtraction as e:
            outcome.error = str(e)
            return outcome

        for record in records:
            try:
                txn = Transaction.from_dict(dict(record, source_file=filename))
            except Exception as e:
                logger.warning(
                    f"AI record rejected: {e}",
                    record=record,
                    error_type=type(e).__name__,
                    exc_info=True,
                )
                continue
            if txn is not None:
                outcome.transactions.append(txn)
        return outcome

    def orchestrate(self, buffer: bytes, mime_type: str, filename: Optional[str] = None,
                    password: Optional[str] = None) -> ProcessingResult:
        """
        Process a document into canonical transactions.

        Args:
            buffer: Raw document bytes
            mime_type: Declared MIME type
            filename: Original file name (logs, source_file)
            password: PDF user password, if any

        Returns:
            ProcessingResult; an empty list with a `reason` when every tier fails

        Raises:
            IncorrectPassword, UnsupportedDocument, DocumentTooLarge, DocumentProcessingError
        """
        with log_context(document=filename):
            return self._run(buffer, mime_type, filename, password)

    def _run(self, buffer: bytes, mime_type: str, filename: Optional[str], password: Optional[str]) -> ProcessingResult:
        mime_type = normalize_mime_type(mime_type)
        result = ProcessingResult(filename=filename)
        best: Optional[StageOutcome] = None
        document = ExtractedDocument()
        state = ExtractionState.INIT

        while state != ExtractionState.DONE:
            logger.debug("Orchestrator state", state=state.value, filename=filename)

            if state == ExtractionState.INIT:
                if mime_type not in SUPPORTED_MIME_TYPES:
                    raise UnsupportedDocument(f"Unsupported document type: {mime_type or 'unknown'}",
                                              filename=filename)
                if mime_type == MIME_PDF:
                    try:
                        decrypted = decrypt(buffer, password, filename)
                    except PasswordRequired:
                        logger.info("Password required, stopping before extraction", filename=filename)
                        result.requires_password = True
                        result.encryption = ENCRYPTION_USER
                        result.reason = 'password_required'
                        return result
                    buffer = decrypted.buffer
                    result.encryption = decrypted.encryption

                document, error = self._extract(buffer, mime_type, filename)
                if error:
                    result.stages.append({'stage': 'document_analysis', 'transactions': 0,
                                          'sufficient': False, 'error': error})
                result.statement_info = extract_statement_info(document)
                state = ExtractionState.TABLE_EXTRACTION
                continue

            if state == ExtractionState.TABLE_EXTRACTION:
                outcome = self._run_table(document, filename)
                next_state = ExtractionState.TEXT_PATTERN_FALLBACK
            elif state == ExtractionState.TEXT_PATTERN_FALLBACK:
                outcome = self._run_text(document, mime_type, filename)
                next_state = ExtractionState.AI_FALLBACK
            elif state == ExtractionState.AI_FALLBACK:
                outcome = self._run_ai(buffer, mime_type, filename)
                next_state = ExtractionState.RETURN_BEST_EFFORT
            else:
                # RETURN_BEST_EFFORT
                if best is None:
                    result.reason = 'no transactions found by any extraction tier'
                    logger.warning("All extraction tiers failed", filename=filename, stages=result.stages)
                else:
                    result.reason = f"best effort from {best.source}"
                state = ExtractionState.DONE
                continue

            result.stages.append(outcome.to_dict())
            logger.info(
                f"Stage {outcome.stage.value} finished",
                filename=filename,
                tx_count=len(outcome.transactions),
                sufficient=is_sufficient(outcome),
            )

            if outcome.transactions and (best is None or len(outcome.transactions) > len(best.transactions)):
                best = outcome
                result.transactions = outcome.transactions
                result.source = outcome.source

            state = ExtractionState.DONE if is_sufficient(outcome) else next_state

        logger.info(
            "Document processed",
            filename=filename,
            source=result.source,
            tx_count=len(result.transactions),
        )
        return result
