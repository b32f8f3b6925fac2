"""
Text processing for the TF-IDF embedding engine.

Pipeline: raw text -> tokenize -> stopword removal -> stemming -> length filter

IMPORTANT: Keep preprocessing identical for corpus documents and queries,
otherwise query terms will not line up with vocabulary indices.
"""

import hashlib
import re
import time
from collections import Counter
from typing import Callable, Dict, List, Optional

from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS

Preprocessor = Callable[[str], List[str]]

# First matching suffix wins, and only if the remaining stem keeps at least 3 chars
STEM_RULES = [
    ("ing", ""),
    ("ed", ""),
    ("er", ""),
    ("est", ""),
    ("ly", ""),
    ("ion", ""),
    ("tion", ""),
    ("sion", ""),
    ("s", ""),
]


def tokenize(text: str) -> List[str]:
    """Lowercase, replace punctuation with spaces, split on whitespace."""
    text = re.sub(r"[^\w\s]", " ", text.lower())
    return text.split()


def remove_stop_words(tokens: List[str]) -> List[str]:
    return [token for token in tokens if token not in ENGLISH_STOP_WORDS]


def stem(word: str) -> str:
    """
    Simple suffix-stripping stemmer.

    Example:
        >>> stem("running")
        'runn'
        >>> stem("cats")
        'cat'
    """
    for suffix, replacement in STEM_RULES:
        if word.endswith(suffix) and len(word) > len(suffix) + 2:
            return word[: -len(suffix)] + replacement
    return word


def preprocess_text(
    text: str,
    remove_stopwords: bool = True,
    apply_stemming: bool = False,
    min_word_length: int = 2,
) -> List[str]:
    """
    Turn raw text into the token list used for TF-IDF.

    Args:
        text: Raw text
        remove_stopwords: Drop English stop words
        apply_stemming: Strip common suffixes
        min_word_length: Drop tokens shorter than this

    Returns:
        Ordered token list (duplicates kept)
    """
    tokens = tokenize(text)

    if remove_stopwords:
        tokens = remove_stop_words(tokens)

    if apply_stemming:
        tokens = [stem(token) for token in tokens]

    return [token for token in tokens if len(token) >= min_word_length]


def make_preprocessor(
    remove_stopwords: bool = True,
    apply_stemming: bool = False,
    min_word_length: int = 2,
) -> Preprocessor:
    """Bind preprocessing options into a single-argument function."""

    def _preprocess(text: str) -> List[str]:
        return preprocess_text(
            text,
            remove_stopwords=remove_stopwords,
            apply_stemming=apply_stemming,
            min_word_length=min_word_length,
        )

    return _preprocess


def extract_ngrams(tokens: List[str], n: int) -> List[str]:
    if n <= 0 or n > len(tokens):
        return []
    return [" ".join(tokens[i : i + n]) for i in range(len(tokens) - n + 1)]


def calculate_term_frequency(tokens: List[str]) -> Dict[str, float]:
    """
    Relative term frequency: count(term) / len(tokens).

    Keys keep first-occurrence order.
    """
    if not tokens:
        return {}
    doc_length = len(tokens)
    return {term: count / doc_length for term, count in Counter(tokens).items()}


def simple_hash(text: str) -> str:
    """Short deterministic hash for ids and cache keys."""
    return hashlib.md5(text.encode("utf-8")).hexdigest()[:8]


def create_document_id(
    content: str, source: Optional[str] = None, timestamp_ms: Optional[int] = None
) -> str:
    """
    Build a corpus document id.

    The id mixes a hash of the first 100 characters, a hash of the source
    and a millisecond timestamp, so identical content ingested twice gets
    two different ids.
    """
    content_hash = simple_hash(content[:100])
    source_hash = simple_hash(source) if source else "unknown"
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"tfidf_{source_hash}_{content_hash}_{timestamp_ms}"


def normalize_text(text: str) -> str:
    return " ".join(text.lower().split())
