"""Keyword extraction for the blind index.

Lossy on purpose: the goal is recall for later exact-match lookup, not
linguistic correctness. No stemming, no language detection.
"""

from __future__ import annotations

import re

MIN_KEYWORD_LENGTH = 3

_HASHTAG_RE = re.compile(r"#[A-Za-z0-9_]+")
_NON_WORD_RE = re.compile(r"[^\w\s#]")

STOP_WORDS: frozenset[str] = frozenset(
    {
        "the", "and", "but", "for", "not", "with", "you", "that", "this",
        "from", "are", "was", "were", "been", "being", "have", "has", "had",
        "will", "would", "could", "should", "can", "may", "might", "must",
        "shall", "into", "onto", "upon", "about", "above", "below", "over",
        "under", "again", "then", "once", "here", "there", "when", "where",
        "why", "how", "all", "any", "both", "each", "few", "more", "most",
        "other", "some", "such", "only", "own", "same", "than", "too", "very",
        "just", "also", "its", "our", "their", "they", "them", "these",
        "those", "what", "which", "who", "whom", "your", "his", "her", "him",
        "she", "hers", "ours", "yours", "does", "did", "doing", "because",
        "until", "while", "between", "through", "during", "before", "after",
        "out", "off", "nor", "yet",
    }
)


def extract_hashtags(text: str) -> set[str]:
    return {tag.lower() for tag in _HASHTAG_RE.findall(text)}


def extract_words(text: str) -> set[str]:
    """Lowercased words of 3+ chars that are not stop words.

    Punctuation other than ``#`` becomes whitespace, so ``user@example.com``
    yields ``user``, ``example`` and ``com``.
    """
    cleaned = _NON_WORD_RE.sub(" ", text.lower())
    return {
        word
        for word in cleaned.split()
        if len(word) >= MIN_KEYWORD_LENGTH and word not in STOP_WORDS
    }


def extract_keywords(text: str | None) -> list[str]:
    """Return the sorted, deduplicated searchable tokens of ``text``."""
    if not text:
        return []
    return sorted(extract_hashtags(text) | extract_words(text))
