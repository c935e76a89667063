from abc import ABC, abstractmethod
from pathlib import Path
from typing import TypeAlias
import base64
import io
import cv2
from cv2.typing import MatLike
import numpy as np
import pytesseract  # type: ignore[import]
from PIL import Image, UnidentifiedImageError
from mistralai import Mistral

from .errors import PageRecognitionError, PageRequestError
from .models import PageOCRResult, RecognitionOptions, TextFragment

PageImage: TypeAlias = MatLike | Image.Image | str | Path

# Typed wrapper for pytesseract.image_to_data to satisfy type checker
def _image_to_data(image: Image.Image, lang: str, config: str, output_type: int,
                   timeout: float = 0) -> dict[str, list[str | int]]:
    """Typed wrapper for pytesseract.image_to_data. timeout=0 means no limit."""
    result = pytesseract.image_to_data(image, lang=lang, config=config, output_type=output_type, timeout=timeout)  # type: ignore[attr-defined]
    if isinstance(result, dict):
        return result  # type: ignore[return-value]
    return dict(result)  # type: ignore[arg-type]

# Get the OUTPUT.DICT constant
_OUTPUT_DICT: int = getattr(getattr(pytesseract, 'Output'), 'DICT')

# Page segmentation per recognition level: full layout analysis vs. single block
_LEVEL_CONFIG: dict[str, str] = {
    "accurate": "--oem 1 --psm 3",
    "fast": "--oem 1 --psm 6",
}
# Turns off Tesseract's dictionary-based correction
_NO_LANGUAGE_CORRECTION = "-c load_system_dawg=0 -c load_freq_dawg=0"


def to_pil_image(image: PageImage) -> Image.Image:
    """
    Convert a page image to a PIL Image.

    Accepts OpenCV arrays (BGR, BGRA or grayscale), PIL images, and paths to
    image files.

    Raises:
        PageRequestError: If the image cannot be decoded or converted
    """
    if isinstance(image, Image.Image):
        return image

    if isinstance(image, (str, Path)):
        try:
            pil_image = Image.open(image)
            pil_image.load()
            return pil_image
        except (OSError, UnidentifiedImageError) as e:
            raise PageRequestError(f"Could not load image {image}: {e}") from e

    if not isinstance(image, np.ndarray):
        raise PageRequestError(f"Unsupported page image type: {type(image).__name__}")

    try:
        if image.ndim == 2:  # Grayscale
            return Image.fromarray(image)
        if image.ndim == 3 and image.shape[2] == 3:
            # OpenCV is BGR, PIL expects RGB
            return Image.fromarray(cv2.cvtColor(image, cv2.COLOR_BGR2RGB))
        if image.ndim == 3 and image.shape[2] == 4:
            return Image.fromarray(cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA))
    except (TypeError, ValueError, cv2.error) as e:
        raise PageRequestError(f"Could not convert page image: {e}") from e

    raise PageRequestError(f"Unsupported image shape: {image.shape}")


class OCREngine(ABC):
    """Abstract base class for OCR engines."""

    def prepare(self, image: PageImage) -> Image.Image:
        """
        Turn a page into the input the engine understands.

        Raises:
            PageRequestError: If the page cannot be turned into a request
        """
        return to_pil_image(image)

    @abstractmethod
    def recognize(self, image: Image.Image, options: RecognitionOptions) -> list[TextFragment]:
        """
        Recognize text regions on a prepared page.

        Args:
            image: Page returned by prepare()
            options: Recognition level and language correction settings

        Returns:
            Recognized fragments in engine order, confidences in 0-1
        """
        pass

    def extract_text_with_confidence(
        self,
        image: PageImage,
        options: RecognitionOptions | None = None
    ) -> tuple[str, float]:
        """
        Extract text with confidence score.

        Returns:
            Tuple of (text, confidence_score) where confidence is 0-1
        """
        fragments = self.recognize(self.prepare(image), options or RecognitionOptions())
        result = PageOCRResult.from_fragments(0, fragments)
        return result.text, result.confidence


class TesseractOCR(OCREngine):
    """Tesseract OCR implementation. Fragments are Tesseract text lines."""

    def __init__(self,
                 language: str = "eng",
                 config: str = "",
                 tesseract_cmd: str | None = None):
        """
        Initialize Tesseract OCR.

        Args:
            language: Tesseract language code (default: "eng")
            config: Extra Tesseract config appended to the level config
            tesseract_cmd: Path to tesseract executable (None = use default)
        """
        self.language = language
        self.config = config

        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def build_config(self, options: RecognitionOptions) -> str:
        """Tesseract command line config for the given options."""
        parts = [_LEVEL_CONFIG[options.recognition_level]]
        if not options.language_correction:
            parts.append(_NO_LANGUAGE_CORRECTION)
        if self.config:
            parts.append(self.config)
        return " ".join(parts)

    def recognize(self, image: Image.Image, options: RecognitionOptions) -> list[TextFragment]:
        """
        Recognize text lines with their mean word confidence.

        Raises:
            RuntimeError: If Tesseract exceeds options.timeout (the process is killed)
        """
        data: dict[str, list[str | int]] = _image_to_data(
            image,
            self.language,
            self.build_config(options),
            _OUTPUT_DICT,
            timeout=options.timeout or 0
        )

        # Group words by (block, paragraph, line), keeping Tesseract's order
        lines: dict[tuple[int, int, int], tuple[list[str], list[float]]] = {}

        for i, conf in enumerate(data['conf']):
            conf_value = float(conf)
            if conf_value < 0:  # -1 means no text detected
                continue

            word = str(data['text'][i]).strip()
            if not word:
                continue

            key = (int(data['block_num'][i]), int(data['par_num'][i]), int(data['line_num'][i]))
            words, confidences = lines.setdefault(key, ([], []))
            words.append(word)
            confidences.append(conf_value / 100.0)

        return [
            TextFragment(text=' '.join(words), confidence=float(np.mean(confidences)))
            for words, confidences in lines.values()
        ]


class MistralOCR(OCREngine):
    """
    Mistral OCR implementation.

    Requires Mistral API key. Better for handwriting and complex layouts.
    The API does not report confidences, so every fragment gets 1.0. Of the
    recognition options only the timeout applies.
    """

    def __init__(self, api_key: str, model: str = "mistral-ocr-latest"):
        """
        Initialize Mistral OCR.

        Args:
            api_key: Mistral API key
            model: Mistral OCR model to use (default: mistral-ocr-latest)
        """
        self.api_key = api_key
        self.model = model
        self.client = Mistral(api_key=api_key)

    def _encode_image_base64(self, image: Image.Image) -> str:
        """
        Encode a page to a base64 data URI for API transmission.

        Args:
            image: Prepared page image

        Returns:
            Base64 encoded PNG with data URI prefix
        """
        buffer = io.BytesIO()
        image.save(buffer, format='PNG')
        base64_image = base64.b64encode(buffer.getvalue()).decode('utf-8')

        return f"data:image/png;base64,{base64_image}"

    def recognize(self, image: Image.Image, options: RecognitionOptions) -> list[TextFragment]:
        """
        Recognize text using the Mistral OCR API.

        Raises:
            PageRecognitionError: If the response contains no pages
        """
        timeout_ms = int(options.timeout * 1000) if options.timeout else None
        ocr_response = self.client.ocr.process(
            model=self.model,
            document={
                "type": "image_url",
                "image_url": self._encode_image_base64(image)
            },
            timeout_ms=timeout_ms
        )

        pages = getattr(ocr_response, 'pages', None)
        if not pages:
            raise PageRecognitionError("Mistral OCR returned no pages")

        fragments: list[TextFragment] = []
        for page in pages:
            markdown = (getattr(page, 'markdown', None) or "").strip()
            if markdown:
                fragments.append(TextFragment(text=markdown, confidence=1.0))

        return fragments
