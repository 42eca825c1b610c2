"""
Unit tests for PDF decryption.

PDFs are generated in-memory with pypdf (blank pages, optional encryption).
"""
import io
import os

import pytest
from pypdf import PdfReader

from ledgerflow.parsing.decryption import (
    decrypt, is_password_protected, temporary_pdf, ENCRYPTION_NONE, ENCRYPTION_OWNER, ENCRYPTION_USER,
)
from ledgerflow.parsing.exceptions import PasswordRequired, IncorrectPassword, UnsupportedDocument


class TestDecrypt:

    def test_unencrypted_pdf_is_returned_unchanged(self, plain_pdf):
        result = decrypt(plain_pdf)

        assert result.buffer == plain_pdf
        assert result.was_encrypted is False
        assert result.encryption == ENCRYPTION_NONE

    def test_missing_password_raises_password_required(self, encrypted_pdf):
        with pytest.raises(PasswordRequired) as exc_info:
            decrypt(encrypted_pdf, filename="stmt.pdf")

        assert exc_info.value.code == 'PASSWORD_REQUIRED'
        assert exc_info.value.filename == "stmt.pdf"

    def test_wrong_password_raises_incorrect_password(self, encrypted_pdf):
        with pytest.raises(IncorrectPassword) as exc_info:
            decrypt(encrypted_pdf, password="nope")
        assert exc_info.value.code == 'INCORRECT_PASSWORD'

    def test_correct_password_yields_unencrypted_copy(self, encrypted_pdf):
        result = decrypt(encrypted_pdf, password="secret")

        assert result.was_encrypted is True
        assert result.encryption == ENCRYPTION_USER
        reader = PdfReader(io.BytesIO(result.buffer))
        assert reader.is_encrypted is False
        assert len(reader.pages) == 1

    def test_owner_only_pdf_needs_no_password(self, owner_only_pdf):
        result = decrypt(owner_only_pdf)

        assert result.encryption == ENCRYPTION_OWNER
        assert PdfReader(io.BytesIO(result.buffer)).is_encrypted is False

    def test_corrupt_input_is_unsupported(self):
        with pytest.raises(UnsupportedDocument):
            decrypt(b"this is not a pdf")


class TestPasswordProbe:

    def test_probe(self, plain_pdf, encrypted_pdf, owner_only_pdf):
        assert is_password_protected(plain_pdf) is False
        assert is_password_protected(encrypted_pdf) is True
        assert is_password_protected(owner_only_pdf) is False


def test_temporary_pdf_is_removed_on_error(plain_pdf):
    seen = {}
    with pytest.raises(RuntimeError):
        with temporary_pdf(plain_pdf) as path:
            seen['path'] = path
            with open(path, 'rb') as f:
                assert f.read() == plain_pdf
            raise RuntimeError("extraction failed")

    assert not os.path.exists(seen['path'])
