"""
Value types shared by the OCR, selection and publishing stages.

Every type here is immutable. A run produces one PageOCRResult per page,
the results are frozen into a SortedPageResults before selection, and the
selector and publisher only ever read them.
"""

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Literal, overload

import numpy as np

RecognitionLevel = Literal["fast", "accurate"]
RECOGNITION_LEVELS: tuple[str, ...] = ("fast", "accurate")


@dataclass(frozen=True)
class RecognitionOptions:
    """
    Options passed through unchanged to the OCR engine.

    timeout is the number of seconds the engine may spend on one page
    (None = no limit); engines abort the call and raise once it passes.
    """
    recognition_level: RecognitionLevel = "accurate"
    language_correction: bool = True
    timeout: float | None = None

    def __post_init__(self) -> None:
        if self.recognition_level not in RECOGNITION_LEVELS:
            raise ValueError(
                f"Unknown recognition level: {self.recognition_level!r} "
                f"(expected one of {', '.join(RECOGNITION_LEVELS)})"
            )
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")


@dataclass(frozen=True)
class TextFragment:
    """A recognized text region: its top candidate string and confidence (0-1)."""
    text: str
    confidence: float


@dataclass(frozen=True)
class PageOCRResult:
    """
    OCR outcome for a single page of a scan.

    Attributes:
        original_index: Position of the page in the scan (0-based)
        text: Recognized text, or a sentinel marker when OCR failed
        confidence: Character-weighted mean confidence in [0, 1]
        error: Failure reason for sentinel results, None otherwise
    """
    original_index: int
    text: str
    confidence: float
    error: str | None = None

    def __post_init__(self) -> None:
        if self.original_index < 0:
            raise ValueError(f"original_index must be >= 0, got {self.original_index}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def page_number(self) -> int:
        """1-based page number, as shown to users."""
        return self.original_index + 1

    @classmethod
    def from_fragments(cls, original_index: int, fragments: Iterable[TextFragment]) -> "PageOCRResult":
        """
        Build a page result from engine fragments.

        Fragment texts are joined with newlines in engine order. Confidence
        is the mean of fragment confidences weighted by fragment length, or
        0.0 when no characters were recognized.
        """
        fragments = list(fragments)
        text = "\n".join(fragment.text for fragment in fragments)

        lengths = [len(fragment.text) for fragment in fragments]
        if sum(lengths) == 0:
            return cls(original_index=original_index, text=text, confidence=0.0)

        confidences = [fragment.confidence for fragment in fragments]
        confidence = float(np.average(confidences, weights=lengths))
        # Engines occasionally report values a hair outside [0, 1]
        confidence = min(max(confidence, 0.0), 1.0)
        return cls(original_index=original_index, text=text, confidence=confidence)

    @classmethod
    def failed(cls, original_index: int, sentinel: str, reason: str) -> "PageOCRResult":
        """Build a sentinel result for a page whose OCR did not succeed."""
        return cls(original_index=original_index, text=sentinel, confidence=0.0, error=reason)


class SortedPageResults(Sequence[PageOCRResult]):
    """
    Page results in strictly ascending original-index order.

    Construction fails with ValueError if the input is not already sorted,
    so a selector receiving this type never sees out-of-order pages. Use
    from_unordered() to collect results that finished in arbitrary order.
    """

    def __init__(self, results: Iterable[PageOCRResult] = ()):
        self._results: tuple[PageOCRResult, ...] = tuple(results)
        for previous, current in zip(self._results, self._results[1:]):
            if current.original_index <= previous.original_index:
                raise ValueError(
                    "Page results must be strictly ascending by original index "
                    f"(got {previous.original_index} then {current.original_index})"
                )

    @classmethod
    def from_unordered(cls, results: Iterable[PageOCRResult]) -> "SortedPageResults":
        """Sort results collected in any order. Duplicate indices are rejected."""
        by_index: dict[int, PageOCRResult] = {}
        for result in results:
            if result.original_index in by_index:
                raise ValueError(f"Duplicate result for page index {result.original_index}")
            by_index[result.original_index] = result
        return cls(by_index[index] for index in sorted(by_index))

    @property
    def indices(self) -> list[int]:
        return [result.original_index for result in self._results]

    @overload
    def __getitem__(self, index: int) -> PageOCRResult: ...

    @overload
    def __getitem__(self, index: slice) -> "SortedPageResults": ...

    def __getitem__(self, index: int | slice) -> "PageOCRResult | SortedPageResults":
        if isinstance(index, slice):
            return SortedPageResults(self._results[index])
        return self._results[index]

    def __len__(self) -> int:
        return len(self._results)

    def __iter__(self) -> Iterator[PageOCRResult]:
        return iter(self._results)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SortedPageResults):
            return self._results == other._results
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._results)

    def __repr__(self) -> str:
        return f"SortedPageResults({list(self._results)!r})"


@dataclass(frozen=True)
class Selection:
    """Pages kept by the selector (ascending index) and the indices it removed."""
    kept: tuple[PageOCRResult, ...] = ()
    removed: frozenset[int] = field(default_factory=frozenset)

    @property
    def kept_indices(self) -> list[int]:
        return [result.original_index for result in self.kept]


@dataclass(frozen=True)
class PublishedResult:
    """
    Output handed to the PDF-assembly and metadata collaborators.

    Attributes:
        combined_text: Kept page texts joined by page-break markers, for display
        kept_indices: Original indices of kept pages, ascending
        page_texts: Text of each kept page, in the same order
        indexable_text: Like combined_text but without OCR-error pages, for search indexing
    """
    combined_text: str
    kept_indices: list[int]
    page_texts: list[str]
    indexable_text: str


@dataclass(frozen=True)
class OCRRun:
    """Everything produced by one OCR run."""
    results: SortedPageResults
    selection: Selection
    published: PublishedResult

    @property
    def combined_text(self) -> str:
        return self.published.combined_text

    @property
    def kept_indices(self) -> list[int]:
        return self.published.kept_indices

    @property
    def removed_indices(self) -> list[int]:
        return sorted(self.selection.removed)
