import math

import pytest

from embeddings.errors import LengthMismatchError
from embeddings.vector_math import (
    add_vectors,
    arg_max,
    calculate_idf,
    calculate_tfidf,
    cosine_similarity,
    create_random_vector,
    create_zero_vector,
    dot_product,
    euclidean_distance,
    jaccard_similarity,
    normalize_vector,
    scalar_multiply,
    subtract_vectors,
    vector_magnitude,
    weighted_average,
)


def test_cosine_similarity_of_vector_with_itself_is_one() -> None:
    v = [0.3, -1.2, 4.0, 0.0]
    assert cosine_similarity(v, v) == pytest.approx(1.0)


def test_cosine_similarity_with_zero_vector_is_zero() -> None:
    assert cosine_similarity([1.0, 2.0, 3.0], create_zero_vector(3)) == 0.0
    assert cosine_similarity([], []) == 0.0


def test_cosine_similarity_opposite_and_orthogonal() -> None:
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 5.0]) == pytest.approx(0.0)


def test_length_mismatch_is_raised_immediately() -> None:
    with pytest.raises(LengthMismatchError):
        cosine_similarity([1.0, 2.0], [1.0])
    with pytest.raises(LengthMismatchError):
        euclidean_distance([1.0], [1.0, 2.0])
    with pytest.raises(LengthMismatchError):
        dot_product([1.0], [])
    with pytest.raises(ValueError):
        add_vectors([1.0], [1.0, 2.0])


def test_normalize_vector() -> None:
    normalized = normalize_vector([3.0, 4.0])
    assert normalized == pytest.approx([0.6, 0.8])
    assert vector_magnitude(normalized) == pytest.approx(1.0)


def test_normalize_zero_vector_returns_unchanged_copy() -> None:
    zero = create_zero_vector(4)
    result = normalize_vector(zero)
    assert result == zero
    assert result is not zero


def test_calculate_tfidf() -> None:
    assert calculate_tfidf(0.5, 0, 10) == 0.0
    assert calculate_tfidf(0.5, 3, 0) == 0.0
    assert calculate_tfidf(1.0, 1, 2) == pytest.approx(math.log(2))
    assert calculate_tfidf(0.25, 4, 4) == 0.0
    assert calculate_idf(1, math.e) == pytest.approx(1.0)


def test_element_wise_operations() -> None:
    assert add_vectors([1.0, 2.0], [3.0, 4.0]) == [4.0, 6.0]
    assert subtract_vectors([1.0, 2.0], [3.0, 4.0]) == [-2.0, -2.0]
    assert scalar_multiply([1.0, -2.0], 3) == [3.0, -6.0]
    assert dot_product([1.0, 2.0], [3.0, 4.0]) == 11.0
    assert euclidean_distance([0.0, 0.0], [3.0, 4.0]) == pytest.approx(5.0)


def test_weighted_average() -> None:
    result = weighted_average([[1.0, 0.0], [0.0, 1.0]], [3.0, 1.0])
    assert result == pytest.approx([0.75, 0.25])
    assert weighted_average([[1.0, 2.0]], [0.0]) == [0.0, 0.0]
    assert weighted_average([], []) == []
    with pytest.raises(LengthMismatchError):
        weighted_average([[1.0]], [1.0, 2.0])


def test_arg_max_and_jaccard() -> None:
    assert arg_max([0.1, 0.9, 0.9, 0.2]) == 1
    assert arg_max([]) == -1
    assert jaccard_similarity(["a", "b"], ["b", "c"]) == pytest.approx(1 / 3)
    assert jaccard_similarity([], []) == 0.0


def test_random_vector_is_seeded_and_bounded() -> None:
    a = create_random_vector(16, seed=7)
    b = create_random_vector(16, seed=7)
    assert a == b
    assert len(a) == 16
    assert all(0.0 <= x < 1.0 for x in a)
