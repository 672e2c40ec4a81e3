"""
Loaders Module - PDF text extraction and loading.
"""

from .pdf_loader import (
    ExtractedDocument,
    load_pdf,
    load_pdf_bytes,
    PDFLoadError
)

__all__ = [
    'ExtractedDocument',
    'load_pdf',
    'load_pdf_bytes',
    'PDFLoadError',
]
