"""Upload validation gate for PDF documents.

Checks run in a fixed order and stop at the first failure:

1. declared content type is ``application/pdf``
2. filename extension is ``.pdf``
3. content starts with the ``%PDF-`` signature
4. size is within ``Settings.max_upload_bytes``
5. page count is between 1 and ``Settings.max_pdf_pages``
6. trailing bytes are scanned for an ``/Encrypt`` marker

Page parsing uses pypdf:
https://pypdf.readthedocs.io/
"""

import io
import logging
import re
from pathlib import PurePath

from pydantic import BaseModel
from pypdf import PasswordType, PdfReader, PdfWriter
from pypdf.errors import FileNotDecryptedError

from findoc.shared.config import Settings
from findoc.shared.errors import (
    EncryptedPdfError,
    PayloadTooLargeError,
    UnsupportedMediaTypeError,
    ValidationError,
)

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
PDF_EXTENSION = ".pdf"
PDF_SIGNATURE = b"%PDF-"
ENCRYPT_MARKER = b"/Encrypt"

_STARTXREF = re.compile(rb"startxref\s*(\d+)")
_OBJECT_HEADER = re.compile(rb"\d{1,10} \d{1,10} obj")


class ValidatedUpload(BaseModel):
    """Result of a successful validation.

    Attributes:
        content: Bytes to store and analyze (decrypted if a password was used)
        page_count: Number of pages
        encrypted: Whether the upload was encrypted
    """

    content: bytes
    page_count: int
    encrypted: bool = False


def is_encrypted(content: bytes, scan_bytes: int = 8192) -> bool:
    """Check the PDF trailer region for an /Encrypt entry."""
    return ENCRYPT_MARKER in content[-min(len(content), scan_bytes):]


def check_integrity(content: bytes) -> bool:
    """Structural sanity check: trailer, xref, startxref, %%EOF and one object."""
    if not content:
        return False

    for marker in (b"trailer", b"%%EOF", b"xref", b"startxref"):
        if marker not in content:
            return False

    tail = content[content.rfind(b"startxref"):content.rfind(b"%%EOF")]
    return bool(_STARTXREF.search(tail) and _OBJECT_HEADER.search(content))


class PdfUploadValidator:
    """Validates raw upload bytes before any processing starts."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def validate(
        self,
        content: bytes,
        content_type: str | None,
        filename: str | None,
        password: str | None = None,
    ) -> ValidatedUpload:
        """Run every check in order.

        Args:
            content: Raw upload bytes
            content_type: Declared MIME type
            filename: Original filename
            password: Password for encrypted PDFs

        Returns:
            ValidatedUpload with the bytes to process

        Raises:
            UnsupportedMediaTypeError: Wrong content type, extension or signature
            PayloadTooLargeError: Upload exceeds the size limit
            ValidationError: No pages, too many pages or unreadable PDF
            EncryptedPdfError: Encrypted and no valid password supplied
        """
        if content_type != PDF_MEDIA_TYPE:
            raise UnsupportedMediaTypeError(f"Invalid MIME type: {content_type}. Only PDF files are supported.")

        if PurePath(filename or "").suffix.lower() != PDF_EXTENSION:
            raise UnsupportedMediaTypeError("Invalid file extension. Only .pdf files are supported.")

        if content[: len(PDF_SIGNATURE)] != PDF_SIGNATURE:
            raise UnsupportedMediaTypeError("Invalid PDF file.")

        if len(content) > self.settings.max_upload_bytes:
            limit_mb = self.settings.max_upload_bytes // (1024 * 1024)
            raise PayloadTooLargeError(f"File exceeds maximum allowed size of {limit_mb}MB")

        # None means the page tree is locked behind a password
        page_count = self._read_page_count(content)
        if page_count is not None:
            self._check_page_count(page_count)

        encrypted = is_encrypted(content, self.settings.encryption_scan_bytes)
        if encrypted:
            content = self._decrypt(content, password)
            if page_count is None:
                page_count = self._read_page_count(content)
                if page_count is None:
                    raise EncryptedPdfError("Incorrect PDF password.")
                self._check_page_count(page_count)
        elif page_count is None:
            raise ValidationError("Failed to read PDF page count.")

        return ValidatedUpload(content=content, page_count=page_count, encrypted=encrypted)

    def _check_page_count(self, page_count: int) -> None:
        if page_count < 1:
            raise ValidationError("PDF has no pages.")
        if page_count > self.settings.max_pdf_pages:
            raise ValidationError(f"PDF exceeds the maximum allowed pages ({self.settings.max_pdf_pages}).")

    @staticmethod
    def _read_page_count(content: bytes) -> int | None:
        try:
            reader = PdfReader(io.BytesIO(content))
            return len(reader.pages)
        except FileNotDecryptedError:
            return None
        except Exception as e:
            logger.warning(f"Failed to read PDF page count: {e} (structure ok: {check_integrity(content)})")
            raise ValidationError("Failed to read PDF page count.") from e

    def _decrypt(self, content: bytes, password: str | None) -> bytes:
        if not self.settings.allow_encrypted_pdfs:
            raise EncryptedPdfError("Encrypted PDFs are not accepted.")
        try:
            reader = PdfReader(io.BytesIO(content))
            if not reader.is_encrypted:
                # marker found in the trailer region but no encryption dictionary
                return content
            # owner-password-only files open with an empty user password
            if reader.decrypt(password or "") == PasswordType.NOT_DECRYPTED:
                raise EncryptedPdfError("Incorrect PDF password." if password else None)

            writer = PdfWriter(clone_from=reader)
            output = io.BytesIO()
            writer.write(output)
            return output.getvalue()
        except EncryptedPdfError:
            raise
        except Exception as e:
            logger.warning(f"PDF decryption failed: {e}")
            raise EncryptedPdfError("Failed to decrypt PDF.") from e
