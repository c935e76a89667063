"""Assemble the published output of a run from the kept pages."""

from collections.abc import Sequence

from .models import PageOCRResult, PublishedResult

PAGE_BREAK = "\n\n--- Page Break ---\n\n"
NO_TEXT_RECOGNIZED = "No text recognized."


def publish(kept: Sequence[PageOCRResult]) -> PublishedResult:
    """
    Join kept pages into display text and list their original indices.

    The "No text recognized." placeholder is for display only; page_texts
    and indexable_text always carry the real page text.

    Args:
        kept: Kept page results, ascending by original index

    Returns:
        PublishedResult for the PDF-assembly and metadata collaborators
    """
    ordered = sorted(kept, key=lambda result: result.original_index)

    combined_text = PAGE_BREAK.join(result.text for result in ordered).strip()
    indexable_text = PAGE_BREAK.join(
        result.text for result in ordered if not result.is_error
    ).strip()

    return PublishedResult(
        combined_text=combined_text or NO_TEXT_RECOGNIZED,
        kept_indices=[result.original_index for result in ordered],
        page_texts=[result.text for result in ordered],
        indexable_text=indexable_text,
    )
