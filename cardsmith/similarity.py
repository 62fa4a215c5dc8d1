"""Vector similarity primitives used to rank retrieval candidates.

Vectors may be numpy arrays or plain float sequences; they are converted with
``np.asarray`` before any arithmetic.
"""

import logging
from typing import List, Sequence, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)

Vector = Union[np.ndarray, Sequence[float]]


def cosine_similarity(vec1: Vector, vec2: Vector) -> float:
    """Calculate cosine similarity between two vectors

    Args:
        vec1: First vector
        vec2: Second vector

    Returns:
        Similarity in [-1, 1]; 0.0 when either vector has zero norm

    Raises:
        ValueError: If vectors have different lengths
    """
    a = np.asarray(vec1, dtype=float)
    b = np.asarray(vec2, dtype=float)
    if a.shape != b.shape:
        raise ValueError(f"Vector dimensions don't match: {a.shape} vs {b.shape}")

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(a, b) / (norm_a * norm_b))


def batch_cosine_similarity(query_vec: Vector, vectors: Vector) -> np.ndarray:
    """Cosine similarity between one query and each row of a matrix.

    Zero-norm rows (and a zero-norm query) score 0.0.
    """
    query = np.asarray(query_vec, dtype=float)
    matrix = np.asarray(vectors, dtype=float)

    if query.ndim != 1:
        raise ValueError(f"Query vector must be 1D, got shape {query.shape}")
    if matrix.ndim != 2:
        raise ValueError(f"Vectors must be 2D matrix, got shape {matrix.shape}")
    if query.shape[0] != matrix.shape[1]:
        raise ValueError(
            f"Dimension mismatch: query {query.shape[0]} vs vectors {matrix.shape[1]}"
        )

    query_norm = np.linalg.norm(query)
    if query_norm == 0:
        return np.zeros(matrix.shape[0])

    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms = np.where(norms == 0, 1, norms)
    return np.dot(matrix / norms, query / query_norm)


def find_top_k(
    query_vec: Vector,
    vectors: Vector,
    k: int = 10,
    min_similarity: float = 0.0,
) -> List[Tuple[int, float]]:
    """Find top K most similar rows

    Args:
        query_vec: Query vector
        vectors: Matrix of vectors to search
        k: Number of top results to return
        min_similarity: Minimum similarity threshold

    Returns:
        List of (index, similarity) tuples, highest first; equal scores keep
        their row order

    Raises:
        ValueError: If k is invalid or dimensions don't match
    """
    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")

    matrix = np.asarray(vectors, dtype=float)
    if matrix.ndim == 2 and k > matrix.shape[0]:
        k = matrix.shape[0]
        logger.debug(f"k reduced to {k} (total number of vectors)")

    similarities = batch_cosine_similarity(query_vec, matrix)

    candidates = np.where(similarities >= min_similarity)[0]
    if len(candidates) == 0:
        return []

    order = np.argsort(-similarities[candidates], kind="stable")[:k]
    return [(int(candidates[i]), float(similarities[candidates[i]])) for i in order]
