"""
Document scanner page deduplication package.

This package runs OCR over the pages of a scan, collapses accidental
near-duplicate pages, and publishes the combined text together with the
original indices of the pages that were kept.
"""

from .coordinator import OCRCoordinator
from .errors import (
    DocscanError,
    EmptyInputError,
    OCRRunInProgressError,
    PageRecognitionError,
    PageRequestError,
)
from .models import OCRRun, PageOCRResult, RecognitionOptions, SortedPageResults
from .publisher import publish
from .selector import select_pages
from .similarity import similarity

__version__ = "0.1.0"

__all__ = [
    "DocscanError",
    "EmptyInputError",
    "OCRCoordinator",
    "OCRRun",
    "OCRRunInProgressError",
    "PageOCRResult",
    "PageRecognitionError",
    "PageRequestError",
    "RecognitionOptions",
    "SortedPageResults",
    "publish",
    "select_pages",
    "similarity",
]
