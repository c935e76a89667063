"""
Scanner configuration.

Values come from defaults, then DOCSCAN_* environment variables (a .env
file is loaded by the CLI), then command line flags.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any, Literal

from .errors import ConfigError
from .models import RECOGNITION_LEVELS, RecognitionLevel, RecognitionOptions
from .selector import DEFAULT_SIMILARITY_THRESHOLD

EngineName = Literal["tesseract", "mistral"]
ENGINE_NAMES: tuple[str, ...] = ("tesseract", "mistral")

DEFAULT_PAGE_TIMEOUT = 60.0

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ScannerConfig:
    """
    Settings for one scanner session.

    Attributes:
        similarity_threshold: Pages more similar than this are duplicates
        recognition_level: "fast" or "accurate"
        language_correction: Let the engine apply language-model correction
        max_workers: Concurrent OCR tasks (None = one per page, capped by CPU count)
        page_timeout: Seconds to wait for a page before marking it failed (None = no limit)
        ocr_engine: "tesseract" or "mistral"
        language: Tesseract language code
        dpi: Rasterization DPI for PDF inputs
    """
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    recognition_level: RecognitionLevel = "accurate"
    language_correction: bool = True
    max_workers: int | None = None
    page_timeout: float | None = DEFAULT_PAGE_TIMEOUT
    ocr_engine: EngineName = "tesseract"
    language: str = "eng"
    dpi: int = 200

    def __post_init__(self) -> None:
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ConfigError(
                f"similarity_threshold must be within [0, 1], got {self.similarity_threshold}"
            )
        if self.recognition_level not in RECOGNITION_LEVELS:
            raise ConfigError(f"Unknown recognition level: {self.recognition_level!r}")
        if self.max_workers is not None and self.max_workers < 1:
            raise ConfigError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.page_timeout is not None and self.page_timeout <= 0:
            raise ConfigError(f"page_timeout must be positive, got {self.page_timeout}")
        if self.ocr_engine not in ENGINE_NAMES:
            raise ConfigError(f"Unknown OCR engine: {self.ocr_engine!r}")
        if self.dpi < 1:
            raise ConfigError(f"dpi must be >= 1, got {self.dpi}")

    @property
    def recognition_options(self) -> RecognitionOptions:
        return RecognitionOptions(
            recognition_level=self.recognition_level,
            language_correction=self.language_correction,
        )

    def with_overrides(self, **overrides: Any) -> "ScannerConfig":
        """Copy with the given fields replaced; None values are ignored."""
        return replace(self, **{key: value for key, value in overrides.items() if value is not None})

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ScannerConfig":
        """
        Build a config from DOCSCAN_* environment variables.

        Recognized variables: DOCSCAN_SIMILARITY_THRESHOLD,
        DOCSCAN_RECOGNITION_LEVEL, DOCSCAN_LANGUAGE_CORRECTION,
        DOCSCAN_MAX_WORKERS, DOCSCAN_PAGE_TIMEOUT (0 or "none" disables),
        DOCSCAN_OCR_ENGINE, DOCSCAN_LANGUAGE, DOCSCAN_DPI.

        Raises:
            ConfigError: If a variable cannot be parsed or is out of range
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        if (raw := env.get("DOCSCAN_SIMILARITY_THRESHOLD")) is not None:
            values["similarity_threshold"] = _parse_float("DOCSCAN_SIMILARITY_THRESHOLD", raw)
        if (raw := env.get("DOCSCAN_RECOGNITION_LEVEL")) is not None:
            values["recognition_level"] = raw.strip().lower()
        if (raw := env.get("DOCSCAN_LANGUAGE_CORRECTION")) is not None:
            values["language_correction"] = _parse_bool("DOCSCAN_LANGUAGE_CORRECTION", raw)
        if (raw := env.get("DOCSCAN_MAX_WORKERS")) is not None:
            values["max_workers"] = _parse_int("DOCSCAN_MAX_WORKERS", raw)
        if (raw := env.get("DOCSCAN_PAGE_TIMEOUT")) is not None:
            if raw.strip().lower() in {"", "0", "none"}:
                values["page_timeout"] = None
            else:
                values["page_timeout"] = _parse_float("DOCSCAN_PAGE_TIMEOUT", raw)
        if (raw := env.get("DOCSCAN_OCR_ENGINE")) is not None:
            values["ocr_engine"] = raw.strip().lower()
        if (raw := env.get("DOCSCAN_LANGUAGE")) is not None:
            values["language"] = raw.strip()
        if (raw := env.get("DOCSCAN_DPI")) is not None:
            values["dpi"] = _parse_int("DOCSCAN_DPI", raw)

        return cls(**values)


def _parse_float(name: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")
