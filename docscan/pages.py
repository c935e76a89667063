"""
Page loading and kept-page PDF assembly for the command line.

Supports:
- Images (JPG, PNG, etc.) → one page each, loaded with OpenCV
- PDFs → one page per PDF page, rasterized with pdf2image
"""

from collections.abc import Sequence
from pathlib import Path
import cv2
import numpy as np
from cv2.typing import MatLike
from pdf2image import convert_from_path  # type: ignore[import-untyped]

from .ocr import PageImage, to_pil_image

IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.bmp', '.tiff', '.tif')


def load_image_page(image_path: str) -> MatLike:
    """
    Load an image file as a single page.

    Raises:
        FileNotFoundError: If image file doesn't exist
        ValueError: If file is not a valid image
    """
    if not Path(image_path).exists():
        raise FileNotFoundError(f"Image file not found: {image_path}")

    image = cv2.imread(image_path)
    if image is None:
        raise ValueError(f"Could not load image: {image_path}")
    return image


def load_pdf_pages(pdf_path: str, dpi: int = 200) -> list[MatLike]:
    """
    Rasterize every page of a PDF.

    Args:
        pdf_path: Path to PDF file
        dpi: DPI for PDF to image conversion (default: 200)

    Returns:
        Pages as OpenCV BGR images, in document order

    Raises:
        FileNotFoundError: If PDF file doesn't exist
    """
    if not Path(pdf_path).exists():
        raise FileNotFoundError(f"PDF file not found: {pdf_path}")

    pages: list[MatLike] = []
    for pil_img in convert_from_path(pdf_path, dpi=dpi):
        img_array = np.array(pil_img.convert('RGB'))
        # Convert RGB to BGR for OpenCV
        pages.append(cv2.cvtColor(img_array, cv2.COLOR_RGB2BGR))
    return pages


def load_pages(sources: Sequence[str], dpi: int = 200) -> list[MatLike]:
    """
    Load pages from image and PDF files, in the order given.

    Raises:
        ValueError: If a source has an unsupported extension
    """
    pages: list[MatLike] = []
    for source in sources:
        source_lower = source.lower()
        if source_lower.endswith('.pdf'):
            pages.extend(load_pdf_pages(source, dpi=dpi))
        elif source_lower.endswith(IMAGE_EXTENSIONS):
            pages.append(load_image_page(source))
        else:
            raise ValueError(f"Unsupported page source: {source}")
    return pages


def assemble_pdf(pages: Sequence[PageImage], kept_indices: Sequence[int], output_path: str) -> Path:
    """
    Write the kept pages, in the order given, to a PDF file.

    Args:
        pages: All page images of the scan
        kept_indices: Original indices of the pages to include
        output_path: Destination PDF path

    Returns:
        Path of the written PDF

    Raises:
        ValueError: If kept_indices is empty or out of range
    """
    if not kept_indices:
        raise ValueError("No pages to write")

    images = []
    for index in kept_indices:
        if not 0 <= index < len(pages):
            raise ValueError(f"Page index out of range: {index}")
        images.append(to_pil_image(pages[index]).convert('RGB'))

    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    images[0].save(path, format='PDF', save_all=True, append_images=images[1:])
    return path
