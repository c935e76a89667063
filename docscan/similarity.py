"""
Edit-distance based text similarity.

Strings are compared per code point, so a multi-byte character counts as a
single edit. Both functions are pure and safe to call from any thread.
"""

from rapidfuzz.distance import Levenshtein


def levenshtein_distance(a: str, b: str) -> int:
    """
    Compute the Levenshtein edit distance between two strings.

    Args:
        a: First string
        b: Second string

    Returns:
        Minimum number of single-character insertions, deletions and
        substitutions turning a into b
    """
    return Levenshtein.distance(a, b)


def similarity(a: str, b: str) -> float:
    """
    Normalized similarity between two strings.

    Defined as 1 - distance / max(len(a), len(b)), clamped to [0, 1].

    Args:
        a: First string
        b: Second string

    Returns:
        1.0 for identical strings (including two empty strings), 0.0 when
        exactly one string is empty, otherwise a value in [0, 1]
    """
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0

    ratio = Levenshtein.normalized_similarity(a, b)
    return min(max(ratio, 0.0), 1.0)
