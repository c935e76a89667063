"""
Tests for sequential near-duplicate page selection.

Tests cover:
- The documented scenarios (replace, chained collapse, no duplicates, single page)
- Comparison against the last kept page rather than the previous page
- Confidence tie-break and threshold boundaries
- Partition and ordering properties over random inputs
"""

import logging
import random

import pytest

from docscan.models import PageOCRResult, SortedPageResults
from docscan.selector import DEFAULT_SIMILARITY_THRESHOLD, select_pages


def make_results(texts: list[str], confidences: list[float]) -> SortedPageResults:
    """Build sorted results with indices 0..n-1."""
    return SortedPageResults(
        PageOCRResult(original_index=i, text=text, confidence=conf)
        for i, (text, conf) in enumerate(zip(texts, confidences))
    )


# ============================================================================
# Scenarios
# ============================================================================

def test_higher_confidence_duplicate_replaces_kept_page():
    """Scenario A: the clearer second capture replaces the first."""
    results = make_results(["Hello world", "Hello world", "Goodbye"], [0.8, 0.95, 0.9])

    selection = select_pages(results, threshold=0.90)

    assert selection.kept_indices == [1, 2]
    assert selection.removed == {0}
    assert selection.kept[0].text == "Hello world"
    assert selection.kept[0].confidence == 0.95
    assert selection.kept[1].text == "Goodbye"


def test_three_near_identical_pages_collapse_to_one():
    """Scenario B: a run of three captures leaves exactly one page."""
    results = make_results(
        [
            "Invoice 2024 total amount due 1500 USD",
            "Invoice 2024 total amount due 1500 USO",
            "Invoice 2O24 total amount due 1500 USD",
        ],
        [0.7, 0.9, 0.8],
    )

    selection = select_pages(results)

    assert selection.kept_indices == [1]
    assert selection.removed == {0, 2}


def test_dissimilar_pages_are_all_kept():
    """Scenario C: nothing is removed when no pages are alike."""
    results = make_results(
        ["Chapter one begins here", "Table of figures", "Appendix B: glossary"],
        [0.9, 0.5, 0.7],
    )

    selection = select_pages(results)

    assert list(selection.kept) == list(results)
    assert selection.removed == frozenset()


def test_single_page_is_kept():
    """Scenario D: a single page always survives, whatever its content."""
    results = make_results([""], [0.0])

    selection = select_pages(results)

    assert selection.kept_indices == [0]
    assert selection.removed == frozenset()


def test_empty_input_returns_empty_selection():
    """No results means nothing kept and nothing removed."""
    selection = select_pages(SortedPageResults())

    assert selection.kept == ()
    assert selection.removed == frozenset()


# ============================================================================
# Comparison Rules
# ============================================================================

def test_compares_against_last_kept_not_previous_page():
    """A discarded page does not anchor the next comparison."""
    # Page 1 is 1 edit from page 0 (0.93) and gets discarded.
    # Page 2 is 1 edit from page 1 but 2 edits from page 0 (0.87), so it stays.
    results = make_results(
        ["abcdefghijklmno", "abcdefghijklmnX", "XbcdefghijklmnX"],
        [0.9, 0.5, 0.6],
    )

    selection = select_pages(results)

    assert selection.kept_indices == [0, 2]
    assert selection.removed == {1}


def test_equal_confidence_keeps_earlier_page():
    """Ties favour the page that was already kept."""
    results = make_results(["same text", "same text"], [0.8, 0.8])

    selection = select_pages(results)

    assert selection.kept_indices == [0]
    assert selection.removed == {1}


def test_lower_confidence_duplicate_is_discarded():
    """A worse capture of the kept page is dropped."""
    results = make_results(["receipt #42", "receipt #42"], [0.9, 0.3])

    selection = select_pages(results)

    assert selection.kept_indices == [0]
    assert selection.removed == {1}


def test_similarity_equal_to_threshold_is_not_duplicate():
    """Pages are duplicates only when similarity is strictly above the threshold."""
    # "abcd" vs "abcX": similarity 0.75
    results = make_results(["abcd", "abcX"], [0.5, 0.9])

    assert select_pages(results, threshold=0.75).kept_indices == [0, 1]
    assert select_pages(results, threshold=0.7).kept_indices == [1]


def test_threshold_one_never_merges():
    """With threshold 1.0 no similarity can exceed it, so every page is kept."""
    results = make_results(["page", "page", "pagf"], [0.1, 0.9, 0.5])

    selection = select_pages(results, threshold=1.0)

    assert selection.kept_indices == [0, 1, 2]
    assert selection.removed == frozenset()


def test_threshold_zero_chain_reduces_to_best_page():
    """With threshold 0.0 any overlap is a duplicate; the best page survives."""
    results = make_results(["page one", "page two", "page three"], [0.5, 0.9, 0.7])

    selection = select_pages(results, threshold=0.0)

    assert selection.kept_indices == [1]
    assert selection.removed == {0, 2}


def test_threshold_zero_keeps_completely_different_pages():
    """Similarity 0.0 is not above a 0.0 threshold."""
    results = make_results(["abc", "xyz"], [0.5, 0.9])

    selection = select_pages(results, threshold=0.0)

    assert selection.kept_indices == [0, 1]


def test_default_threshold():
    """The default policy threshold is 0.90."""
    assert DEFAULT_SIMILARITY_THRESHOLD == 0.90


@pytest.mark.parametrize("threshold", [-0.1, 1.01])
def test_invalid_threshold(threshold: float):
    """Thresholds outside [0, 1] are rejected."""
    with pytest.raises(ValueError, match="threshold"):
        select_pages(make_results(["a"], [0.5]), threshold=threshold)


def test_plain_sequence_is_validated():
    """Unsorted plain lists are rejected rather than re-sorted."""
    pages = [
        PageOCRResult(original_index=1, text="b", confidence=0.5),
        PageOCRResult(original_index=0, text="a", confidence=0.5),
    ]

    with pytest.raises(ValueError):
        select_pages(pages)


def test_plain_sorted_list_is_accepted():
    """A sorted plain list works like SortedPageResults."""
    pages = [
        PageOCRResult(original_index=0, text="alpha", confidence=0.5),
        PageOCRResult(original_index=3, text="omega", confidence=0.5),
    ]

    assert select_pages(pages).kept_indices == [0, 3]


def test_decisions_are_logged(caplog: pytest.LogCaptureFixture):
    """Each comparison is logged at debug level."""
    results = make_results(["Hello world", "Hello world"], [0.8, 0.95])

    with caplog.at_level(logging.DEBUG, logger="docscan.selector"):
        select_pages(results)

    assert "Replacing page 1 with page 2" in caplog.text


# ============================================================================
# Properties
# ============================================================================

def _random_results(rng: random.Random) -> SortedPageResults:
    count = rng.randint(1, 12)
    base = ["lorem ipsum dolor", "sit amet consectetur", "adipiscing elit sed"]
    texts = []
    for _ in range(count):
        text = rng.choice(base)
        if rng.random() < 0.4:
            position = rng.randrange(len(text))
            text = text[:position] + "x" + text[position + 1:]
        texts.append(text)
    confidences = [round(rng.random(), 2) for _ in range(count)]
    return make_results(texts, confidences)


@pytest.mark.parametrize("threshold", [0.0, 0.5, 0.9, 1.0])
def test_selection_properties(threshold: float):
    """Kept is non-empty, ascending, and partitions the input with removed."""
    rng = random.Random(int(threshold * 100))
    for _ in range(200):
        results = _random_results(rng)

        selection = select_pages(results, threshold=threshold)
        kept = selection.kept_indices

        assert len(kept) >= 1
        assert kept == sorted(kept)
        assert len(set(kept)) == len(kept)
        assert set(kept).isdisjoint(selection.removed)
        assert set(kept) | selection.removed == set(results.indices)
