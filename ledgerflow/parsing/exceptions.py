"""
Exceptions raised while turning a document into transactions.

Per-document failures (password, unsupported format, size) propagate to the
caller. Per-record failures are internal: they are caught, logged and
resolved by the component that raised them.
"""


class DocumentError(Exception):
    """
    Base error for a document that cannot be processed.

    Carries a machine-readable `code` the delivery layer maps to a status.
    """
    code = 'DOCUMENT_ERROR'

    def __init__(self, message: str, filename: str = None, code: str = None):
        self.message = message
        self.filename = filename
        if code:
            self.code = code

        full_message = f"{message} (file: {filename})" if filename else message
        super().__init__(full_message)

    def to_dict(self):
        return {'code': self.code, 'message': self.message, 'filename': self.filename}


class PasswordRequired(DocumentError):
    code = 'PASSWORD_REQUIRED'


class IncorrectPassword(DocumentError):
    code = 'INCORRECT_PASSWORD'


class UnsupportedDocument(DocumentError):
    code = 'UNSUPPORTED_DOCUMENT'


class DocumentTooLarge(DocumentError):
    code = 'DOCUMENT_TOO_LARGE'


class DocumentProcessingError(DocumentError):
    code = 'PDF_PROCESSING_ERROR'


class InsufficientExtraction(Exception):
    """A tier produced nothing usable. Never leaves the orchestrator."""


class CategorizationAmbiguous(Exception):
    """A record could not be classified; resolves to the default category."""


class JournalImbalance(Exception):
    """Debits and credits differ; the entry is flagged for review."""

    def __init__(self, entry_id: str, total_debits, total_credits):
        self.entry_id = entry_id
        self.total_debits = total_debits
        self.total_credits = total_credits
        super().__init__(f"{entry_id}: debits {total_debits} != credits {total_credits}")
