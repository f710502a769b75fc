"""Cosine similarity and nearest-neighbor ranking helpers."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Generic, TypeVar

import numpy as np

T = TypeVar("T")

# Similarity floor applied to user-facing semantic search
SEARCH_MIN_SIMILARITY = 0.45
# Context size for generation retrieval
RETRIEVAL_TOP_K = 5


@dataclass(frozen=True)
class Neighbor(Generic[T]):
    """A ranked search hit."""

    item: T
    similarity: float


@dataclass(frozen=True)
class Candidate(Generic[T]):
    """An in-memory row eligible for ranking."""

    item: T
    vector: Sequence[float] | None
    created_at: datetime
    key: str = ""


def clamp_similarity(value: float) -> float:
    """Clamp a similarity into cosine bounds, absorbing float rounding."""
    return max(-1.0, min(1.0, float(value)))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    A zero vector is treated as orthogonal to everything.

    Raises:
        ValueError: if the vectors differ in length
    """
    if len(a) != len(b):
        raise ValueError(f"Vector length mismatch: {len(a)} != {len(b)}")
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return clamp_similarity(float(np.dot(va, vb)) / (norm_a * norm_b))


def rank_neighbors(
    query: Sequence[float],
    candidates: Iterable[Candidate[T]],
    k: int,
    min_similarity: float | None = None,
) -> list[Neighbor[T]]:
    """
    Rank candidates by similarity to ``query``.

    Candidates without a vector are skipped. Ties are broken by creation
    time, then by ``key``. When fewer than ``k`` candidates qualify, all of
    them are returned.
    """
    if k <= 0:
        return []

    scored: list[tuple[float, datetime, str, T]] = []
    for candidate in candidates:
        if candidate.vector is None or len(candidate.vector) == 0:
            continue
        similarity = cosine_similarity(query, candidate.vector)
        if min_similarity is not None and similarity < min_similarity:
            continue
        scored.append((similarity, candidate.created_at, candidate.key, candidate.item))

    scored.sort(key=lambda row: (-row[0], row[1], row[2]))
    return [Neighbor(item=item, similarity=similarity) for similarity, _, _, item in scored[:k]]
