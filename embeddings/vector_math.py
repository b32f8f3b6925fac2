"""
Vector math for embedding calculations.

All functions are pure: they never mutate their inputs and return plain
lists of floats, so results can be cached and shared across backends.
The only exception ever raised is LengthMismatchError.
"""

import math
from typing import List, Optional, Sequence

import numpy as np

from .errors import LengthMismatchError

Vector = List[float]


def _check_lengths(vector_a: Sequence[float], vector_b: Sequence[float]) -> None:
    if len(vector_a) != len(vector_b):
        raise LengthMismatchError(
            f"Vectors must have the same length: {len(vector_a)} != {len(vector_b)}"
        )


def cosine_similarity(vector_a: Sequence[float], vector_b: Sequence[float]) -> float:
    """
    Cosine similarity between two vectors.

    Returns:
        Similarity in [-1, 1]; 0.0 if either vector has zero magnitude

    Raises:
        LengthMismatchError: If the vectors differ in length
    """
    _check_lengths(vector_a, vector_b)
    if len(vector_a) == 0:
        return 0.0

    a = np.asarray(vector_a, dtype=float)
    b = np.asarray(vector_b, dtype=float)
    magnitude = float(np.linalg.norm(a)) * float(np.linalg.norm(b))
    if magnitude == 0:
        return 0.0
    return float(np.dot(a, b)) / magnitude


def euclidean_distance(vector_a: Sequence[float], vector_b: Sequence[float]) -> float:
    _check_lengths(vector_a, vector_b)
    diff = np.asarray(vector_a, dtype=float) - np.asarray(vector_b, dtype=float)
    return float(np.linalg.norm(diff))


def vector_magnitude(vector: Sequence[float]) -> float:
    return float(np.linalg.norm(np.asarray(vector, dtype=float)))


def normalize_vector(vector: Sequence[float]) -> Vector:
    """
    L2-normalize a vector to unit length.

    A zero vector is returned as an unchanged copy.
    """
    magnitude = vector_magnitude(vector)
    if magnitude == 0:
        return [float(x) for x in vector]
    return (np.asarray(vector, dtype=float) / magnitude).tolist()


def add_vectors(vector_a: Sequence[float], vector_b: Sequence[float]) -> Vector:
    _check_lengths(vector_a, vector_b)
    return (np.asarray(vector_a, dtype=float) + np.asarray(vector_b, dtype=float)).tolist()


def subtract_vectors(vector_a: Sequence[float], vector_b: Sequence[float]) -> Vector:
    """Element-wise vector_a - vector_b."""
    _check_lengths(vector_a, vector_b)
    return (np.asarray(vector_a, dtype=float) - np.asarray(vector_b, dtype=float)).tolist()


def scalar_multiply(vector: Sequence[float], scalar: float) -> Vector:
    return (np.asarray(vector, dtype=float) * scalar).tolist()


def dot_product(vector_a: Sequence[float], vector_b: Sequence[float]) -> float:
    _check_lengths(vector_a, vector_b)
    if len(vector_a) == 0:
        return 0.0
    return float(np.dot(np.asarray(vector_a, dtype=float), np.asarray(vector_b, dtype=float)))


def create_zero_vector(dimensions: int) -> Vector:
    return [0.0] * dimensions


def create_random_vector(dimensions: int, seed: Optional[int] = None) -> Vector:
    """Random vector with values in [0, 1)."""
    rng = np.random.default_rng(seed)
    return rng.random(dimensions).tolist()


def calculate_idf(document_frequency: float, total_documents: float) -> float:
    if document_frequency <= 0 or total_documents <= 0:
        return 0.0
    return math.log(total_documents / document_frequency)


def calculate_tfidf(
    term_frequency: float, document_frequency: float, total_documents: float
) -> float:
    """
    TF-IDF score: tf * ln(N / df).

    Args:
        term_frequency: Relative frequency of the term in the text
        document_frequency: Number of corpus documents containing the term
        total_documents: Corpus size N

    Returns:
        0.0 when df or N is zero, otherwise the TF-IDF weight
    """
    if document_frequency <= 0 or total_documents <= 0:
        return 0.0
    return term_frequency * math.log(total_documents / document_frequency)


def weighted_average(vectors: Sequence[Sequence[float]], weights: Sequence[float]) -> Vector:
    """
    Weighted average of equally sized vectors.

    Weights are normalized by their sum; a zero total weight yields the
    zero vector.
    """
    if len(vectors) != len(weights):
        raise LengthMismatchError("Number of vectors must match number of weights")
    if len(vectors) == 0:
        return []

    dimensions = len(vectors[0])
    for vector in vectors:
        _check_lengths(vectors[0], vector)

    total_weight = float(sum(weights))
    if total_weight == 0:
        return create_zero_vector(dimensions)

    matrix = np.asarray(vectors, dtype=float)
    scaled = np.asarray(weights, dtype=float) / total_weight
    return (scaled @ matrix).tolist()


def arg_max(values: Sequence[float]) -> int:
    """Index of the first maximum value, -1 for an empty sequence."""
    if len(values) == 0:
        return -1
    return int(np.argmax(np.asarray(values, dtype=float)))


def jaccard_similarity(set_a: Sequence[str], set_b: Sequence[str]) -> float:
    unique_a = set(set_a)
    unique_b = set(set_b)
    union = unique_a | unique_b
    if not union:
        return 0.0
    return len(unique_a & unique_b) / len(union)
