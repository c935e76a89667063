"""
Sequential near-duplicate page selection.

Pages are walked in original order and each one is compared with the most
recently *kept* page, not with its literal predecessor. Once a page is
discarded it never anchors another comparison, so a run of three or more
captures of the same sheet collapses to a single page.
"""

import logging
from collections.abc import Sequence

from .models import PageOCRResult, Selection, SortedPageResults
from .similarity import similarity

logger = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.90


def select_pages(
    sorted_results: SortedPageResults | Sequence[PageOCRResult],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD
) -> Selection:
    """
    Collapse near-duplicate pages, keeping the higher-confidence copy.

    Two pages are near-duplicates when their text similarity is strictly
    greater than threshold. The later page replaces the last kept page only
    when its confidence is strictly higher; on a tie the earlier page stays.

    Args:
        sorted_results: Page results in ascending original-index order. A
            plain sequence is validated and rejected if unsorted.
        threshold: Similarity above which pages are duplicates (0-1)

    Returns:
        Selection with kept pages (ascending index) and removed indices

    Raises:
        ValueError: If threshold is outside [0, 1] or results are unsorted
    """
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must be within [0, 1], got {threshold}")

    if not isinstance(sorted_results, SortedPageResults):
        sorted_results = SortedPageResults(sorted_results)

    if not sorted_results:
        return Selection()

    first = sorted_results[0]
    kept: list[PageOCRResult] = [first]
    removed: set[int] = set()
    logger.debug("Kept page %d (first page)", first.page_number)

    for current in sorted_results[1:]:
        last_kept = kept[-1]
        score = similarity(last_kept.text, current.text)
        logger.debug(
            "Comparing page %d [conf %.3f] with last kept page %d [conf %.3f]: similarity %.3f",
            current.page_number, current.confidence,
            last_kept.page_number, last_kept.confidence,
            score,
        )

        if score <= threshold:
            kept.append(current)
            continue

        if current.confidence > last_kept.confidence:
            logger.debug("Replacing page %d with page %d", last_kept.page_number, current.page_number)
            removed.add(last_kept.original_index)
            kept[-1] = current
        else:
            logger.debug("Discarding page %d (keeping page %d)", current.page_number, last_kept.page_number)
            removed.add(current.original_index)

    logger.info(
        "Selected %d of %d pages (removed: %s)",
        len(kept), len(sorted_results), sorted(removed) or "none",
    )
    return Selection(kept=tuple(kept), removed=frozenset(removed))
