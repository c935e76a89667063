"""
Integration tests running the pipeline against a real Tesseract install.

Pages are rendered with OpenCV, so no downloads are needed. The tests are
skipped when the tesseract binary is not available.

These tests are marked as 'slow' and should be run explicitly:
    pytest tests/test_ocr_real_images.py -m slow
"""

import os

import cv2
import numpy as np
import pytest
import pytesseract  # type: ignore[import]
from cv2.typing import MatLike
from dotenv import load_dotenv

from docscan.coordinator import OCRCoordinator
from docscan.ocr import MistralOCR, TesseractOCR


# Load environment variables from .env file
load_dotenv()


def render_page(lines: list[str]) -> MatLike:
    """Render black text lines on a white page."""
    page = np.full((120 + 80 * len(lines), 1400, 3), 255, dtype=np.uint8)
    for i, line in enumerate(lines):
        cv2.putText(page, line, (40, 100 + 80 * i), cv2.FONT_HERSHEY_SIMPLEX, 1.6, (0, 0, 0), 3)
    return page


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture(scope="module")
def tesseract_ocr() -> TesseractOCR:
    """Create a Tesseract OCR engine instance, skipping if not installed."""
    try:
        pytesseract.get_tesseract_version()
    except pytesseract.TesseractNotFoundError:
        pytest.skip("tesseract is not installed")
    return TesseractOCR(language="eng")


@pytest.fixture
def mistral_ocr() -> MistralOCR:
    """
    Create a Mistral OCR engine instance.
    Requires MISTRAL_API_KEY in environment or .env file.
    """
    api_key = os.getenv("MISTRAL_API_KEY")
    if not api_key:
        pytest.skip("MISTRAL_API_KEY not found in environment")

    return MistralOCR(api_key=api_key)


# ============================================================================
# Tesseract Tests
# ============================================================================

@pytest.mark.slow
def test_tesseract_extract_text_with_confidence(tesseract_ocr: TesseractOCR):
    """Tesseract reads rendered text with a confidence in 0-1."""
    page = render_page(["INVOICE NUMBER 4512", "TOTAL DUE 300 DOLLARS"])

    text, confidence = tesseract_ocr.extract_text_with_confidence(page)

    assert "INVOICE" in text
    assert 0.0 < confidence <= 1.0
    print(f"\nExtracted text: {text}")
    print(f"Confidence: {confidence:.3f}")


@pytest.mark.slow
def test_pipeline_drops_rescanned_page(tesseract_ocr: TesseractOCR):
    """A page captured twice in a row ends up once in the output."""
    first = render_page(["CHAPTER ONE", "THE BEGINNING OF THE STORY"])
    second = render_page(["CHAPTER TWO", "A VERY DIFFERENT PAGE OF TEXT"])

    run = OCRCoordinator(tesseract_ocr).run([first, first.copy(), second])

    assert len(run.kept_indices) == 2
    assert run.kept_indices[-1] == 2
    assert len(run.removed_indices) == 1
    print(f"\nCombined text:\n{run.combined_text}")


# ============================================================================
# Mistral Tests
# ============================================================================

@pytest.mark.slow
def test_mistral_extract_text_with_confidence(mistral_ocr: MistralOCR):
    """Mistral OCR returns text with full confidence."""
    page = render_page(["HELLO FROM THE SCANNER"])

    text, confidence = mistral_ocr.extract_text_with_confidence(page)

    assert isinstance(text, str)
    assert len(text) > 0
    assert confidence == 1.0
    print(f"\nExtracted text (Mistral): {text[:200]}...")
