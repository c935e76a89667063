"""Exceptions raised by the scanning pipeline."""


class DocscanError(Exception):
    """Base class for all docscan errors."""


class EmptyInputError(DocscanError):
    """Raised when an OCR run is started without any pages."""


class PageRecognitionError(DocscanError):
    """The OCR engine failed on a page or returned nothing usable."""


class PageRequestError(DocscanError):
    """The OCR request for a page could not be started (e.g. undecodable image)."""


class OCRRunInProgressError(DocscanError):
    """Raised when a run is started while another one is still in flight."""


class ConfigError(DocscanError, ValueError):
    """Invalid configuration value."""
