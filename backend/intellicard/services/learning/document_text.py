"""
Document Text Extraction

Turns an uploaded document into plain text for card generation.
Supported formats: .txt (UTF-8) and .pdf (PyMuPDF).
"""

import logging
from typing import Optional

import fitz  # PyMuPDF

from intellicard.config.settings import settings
from intellicard.middleware.error_handling import ValidationError

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ("txt", "pdf")


def file_extension(filename: Optional[str]) -> str:
    """
    Lower-cased extension of a filename.

    Raises:
        ValidationError: If the filename is missing
    """
    if not filename:
        raise ValidationError("File name is required")
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def extract_pdf_text(data: bytes) -> str:
    """
    Extract printed text from every page of a PDF.

    Raises:
        ValidationError: If the bytes are not a readable PDF
    """
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as e:
        raise ValidationError(f"Failed to read PDF: {e}")

    try:
        text_parts = [page.get_text("text") for page in doc]
    finally:
        doc.close()

    return "\n".join(part for part in text_parts if part.strip())


def extract_text(
    filename: Optional[str],
    data: bytes,
    max_size_bytes: Optional[int] = None,
) -> str:
    """
    Extract text from an uploaded document.

    Args:
        filename: Original filename; its extension selects the parser
        data: Raw file bytes
        max_size_bytes: Size limit (DOCUMENT_MAX_SIZE_MB if None)

    Returns:
        Extracted text (not stripped)

    Raises:
        ValidationError: Missing filename, file too large, unsupported
            format, or unreadable PDF
    """
    extension = file_extension(filename)

    if max_size_bytes is None:
        max_size_bytes = settings.DOCUMENT_MAX_SIZE_MB * 1024 * 1024
    if len(data) > max_size_bytes:
        raise ValidationError(
            f"File size exceeds {max_size_bytes // (1024 * 1024)}MB limit",
            details={"size": len(data), "limit": max_size_bytes},
        )

    if extension == "txt":
        return data.decode("utf-8", errors="replace")
    if extension == "pdf":
        text = extract_pdf_text(data)
        logger.debug(f"Extracted {len(text)} characters from PDF '{filename}'")
        return text

    raise ValidationError(
        f"Unsupported file format: {extension}. Supported formats: PDF, TXT",
        details={"extension": extension, "supported": list(SUPPORTED_EXTENSIONS)},
    )
