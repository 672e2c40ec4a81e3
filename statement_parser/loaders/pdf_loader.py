"""
PDF Loader Module
Extracts text and page count from bank statement PDFs using PyMuPDF (fitz).
Pages are joined with a form feed so lines can be traced back to their page.
"""

import fitz  # PyMuPDF
import logging
from pathlib import Path
from typing import NamedTuple

from ..extractors.normalizer import PAGE_BREAK

logger = logging.getLogger(__name__)


class PDFLoadError(Exception):
    """Custom exception for PDF loading errors."""
    pass


class ExtractedDocument(NamedTuple):
    """Raw text of a whole document plus its page count."""
    text: str
    page_count: int


def _extract(doc: "fitz.Document", source: str) -> ExtractedDocument:
    if doc.page_count == 0:
        logger.error(f"PDF has no pages: {source}")
        raise PDFLoadError(f"PDF has no pages: {source}")

    logger.info(f"Loading PDF: {source} ({doc.page_count} pages)")

    page_texts = []
    empty_pages = 0

    for page_num in range(doc.page_count):
        text = doc[page_num].get_text()
        if not text.strip():
            empty_pages += 1
            logger.warning(f"Page {page_num + 1}: empty or no extractable text")
        else:
            logger.debug(f"Page {page_num + 1}: extracted {len(text)} characters")
        # Empty pages still take a slot so page numbers stay aligned
        page_texts.append(text)

    if empty_pages == doc.page_count:
        raise PDFLoadError(f"No text could be extracted from PDF: {source}")

    combined_text = PAGE_BREAK.join(page_texts)

    logger.info(
        f"Extraction complete: {len(combined_text)} characters from "
        f"{doc.page_count} pages ({empty_pages} empty pages)"
    )

    return ExtractedDocument(combined_text, doc.page_count)


def load_pdf_bytes(data: bytes, source: str = "<upload>") -> ExtractedDocument:
    """
    Extract text from an in-memory PDF.

    Args:
        data: PDF file content
        source: Name used in log and error messages

    Returns:
        ExtractedDocument with form-feed separated page text

    Raises:
        PDFLoadError: If the PDF cannot be opened or read
    """
    if not data:
        raise PDFLoadError(f"PDF is empty: {source}")

    doc = None
    try:
        doc = fitz.open(stream=data, filetype="pdf")
        return _extract(doc, source)

    except PDFLoadError:
        raise

    except fitz.FileDataError as e:
        logger.error(f"Invalid or corrupted PDF file: {source}", exc_info=True)
        raise PDFLoadError(f"Invalid or corrupted PDF file: {source}") from e

    except Exception as e:
        logger.error(f"Unexpected error loading PDF {source}: {e}", exc_info=True)
        raise PDFLoadError(f"Failed to load PDF {source}: {str(e)}") from e

    finally:
        if doc is not None:
            doc.close()
            logger.debug(f"PDF document closed: {source}")


def load_pdf(file_path: str) -> ExtractedDocument:
    """
    Extract text from all pages of a PDF file.

    Args:
        file_path: Path to the PDF file

    Returns:
        ExtractedDocument with form-feed separated page text

    Raises:
        PDFLoadError: If the PDF cannot be loaded or read
    """
    pdf_path = Path(file_path)
    if not pdf_path.exists():
        logger.error(f"PDF file not found: {file_path}")
        raise PDFLoadError(f"PDF file not found: {file_path}")

    if not pdf_path.suffix.lower() == '.pdf':
        logger.error(f"File is not a PDF: {file_path}")
        raise PDFLoadError(f"File is not a PDF: {file_path}")

    return load_pdf_bytes(pdf_path.read_bytes(), source=str(file_path))
