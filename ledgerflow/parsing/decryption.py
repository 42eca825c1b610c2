"""
PDF Decryption

Detects password protection and produces an unencrypted copy of the
document (re-serialized page by page, not only decrypted in memory).
"""
import io
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

from pypdf import PdfReader, PdfWriter, PasswordType

from ledgerflow.common.logging_config import get_logger
from .exceptions import (
    PasswordRequired, IncorrectPassword, UnsupportedDocument, DocumentProcessingError
)

logger = get_logger(__name__)

ENCRYPTION_NONE = 'none'
ENCRYPTION_OWNER = 'owner'  # restrictions only, content readable without a password
ENCRYPTION_USER = 'user'


@dataclass
class DecryptionResult:
    buffer: bytes
    was_encrypted: bool
    encryption: str = ENCRYPTION_NONE


def _load(buffer: bytes, filename: Optional[str] = None) -> PdfReader:
    try:
        return PdfReader(io.BytesIO(buffer), strict=True)
    except Exception as e:
        logger.warning(f"Unreadable PDF: {e}", filename=filename, error_type=type(e).__name__)
        raise UnsupportedDocument(f"Corrupt or unreadable PDF: {e}", filename=filename) from e


@contextmanager
def temporary_pdf(buffer: bytes):
    """
    Write the buffer to a temp file for path-based readers.
    The file is removed on every exit path.
    """
    fd, tmp_path = tempfile.mkstemp(suffix='.pdf')
    try:
        with os.fdopen(fd, 'wb') as tmp:
            tmp.write(buffer)
        yield tmp_path
    finally:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)


def _reserialize(reader: PdfReader) -> bytes:
    writer = PdfWriter()
    for page in reader.pages:
        writer.add_page(page)

    fd, tmp_path = tempfile.mkstemp(suffix='.pdf')
    try:
        with os.fdopen(fd, 'wb') as tmp:
            writer.write(tmp)
        with open(tmp_path, 'rb') as f:
            return f.read()
    finally:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)


def is_password_protected(buffer: bytes) -> bool:
    """True only when a user password is needed to read the content."""
    reader = _load(buffer)
    if not reader.is_encrypted:
        return False
    try:
        return reader.decrypt("") == PasswordType.NOT_DECRYPTED
    except Exception as e:
        logger.warning(f"Encryption probe failed: {e}", error_type=type(e).__name__)
        return True


def decrypt(buffer: bytes, password: Optional[str] = None, filename: Optional[str] = None) -> DecryptionResult:
    """
    Return a readable, unencrypted copy of a PDF.

    Args:
        buffer: Raw PDF bytes
        password: User password, if the caller has one
        filename: Only used for error messages and logs

    Returns:
        DecryptionResult with the original buffer when the PDF was not encrypted

    Raises:
        UnsupportedDocument: corrupt or unreadable input
        PasswordRequired: a user password is needed and none was given
        IncorrectPassword: the password was rejected
        DocumentProcessingError: any other library failure
    """
    reader = _load(buffer, filename)
    if not reader.is_encrypted:
        return DecryptionResult(buffer=buffer, was_encrypted=False)

    try:
        # Owner-password PDFs open with an empty user password
        if reader.decrypt("") != PasswordType.NOT_DECRYPTED:
            logger.info("Owner-password PDF, content is readable", filename=filename)
            return DecryptionResult(_reserialize(reader), True, ENCRYPTION_OWNER)

        if not password:
            raise PasswordRequired("This PDF is password protected", filename=filename)

        reader = _load(buffer, filename)
        if reader.decrypt(password) == PasswordType.NOT_DECRYPTED:
            raise IncorrectPassword("Incorrect password for PDF", filename=filename)

        decrypted = _reserialize(reader)
    except (PasswordRequired, IncorrectPassword):
        raise
    except Exception as e:
        logger.error(f"PDF decryption failed: {e}", exc_info=True, filename=filename)
        raise DocumentProcessingError(f"Failed to decrypt PDF: {e}", filename=filename) from e

    logger.info("PDF decrypted", filename=filename, pages=len(reader.pages))
    return DecryptionResult(decrypted, True, ENCRYPTION_USER)
