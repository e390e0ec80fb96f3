"""Word-overlap similarity used for recall and pattern matching."""

import re

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def significant_words(text: str) -> set[str]:
    """Lower-cased whitespace-separated words longer than two characters."""
    return {w for w in text.lower().split() if len(w) > 2}


def similarity(a: str, b: str) -> float:
    """Jaccard similarity of the significant word sets of ``a`` and ``b``.

    Returns 0.0 when either side has no significant words.
    """
    words_a = significant_words(a)
    words_b = significant_words(b)
    if not words_a or not words_b:
        return 0.0

    intersection = len(words_a & words_b)
    union = len(words_a) + len(words_b) - intersection
    return intersection / union


def normalize_input(text: str) -> str:
    """Lower-case, strip punctuation and collapse whitespace."""
    text = _PUNCTUATION_RE.sub("", text.lower())
    return _WHITESPACE_RE.sub(" ", text).strip()
