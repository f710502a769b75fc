"""Unit tests for cosine similarity and nearest-neighbor ranking."""

import math
from datetime import UTC, datetime, timedelta

import pytest

from folio_core.similarity import (
    RETRIEVAL_TOP_K,
    SEARCH_MIN_SIMILARITY,
    Candidate,
    clamp_similarity,
    cosine_similarity,
    rank_neighbors,
)


pytestmark = [pytest.mark.unit]

BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


def candidate(name: str, vector, offset: int = 0) -> Candidate[str]:
    return Candidate(
        item=name,
        vector=vector,
        created_at=BASE_TIME + timedelta(seconds=offset),
        key=name,
    )


class TestCosineSimilarity:
    """Tests for cosine_similarity."""

    def test_identical_vectors(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_scale_invariant(self):
        assert cosine_similarity([1.0, 1.0], [10.0, 10.0]) == pytest.approx(1.0)

    def test_zero_vector_is_orthogonal(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_length_mismatch_raises(self):
        with pytest.raises(ValueError, match="length mismatch"):
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])

    def test_result_stays_in_bounds(self):
        vectors = [[0.1 * i, math.sin(i), math.cos(i)] for i in range(1, 30)]
        for a in vectors:
            for b in vectors:
                assert -1.0 <= cosine_similarity(a, b) <= 1.0

    def test_clamp_absorbs_rounding(self):
        assert clamp_similarity(1.0000000002) == 1.0
        assert clamp_similarity(-1.0000000002) == -1.0


class TestRankNeighbors:
    """Tests for rank_neighbors."""

    def test_orders_by_similarity(self):
        query = [1.0, 0.0]
        results = rank_neighbors(
            query,
            [
                candidate("far", [0.0, 1.0]),
                candidate("near", [1.0, 0.1]),
                candidate("middle", [1.0, 1.0]),
            ],
            k=3,
        )

        assert [n.item for n in results] == ["near", "middle", "far"]
        assert results[0].similarity > results[1].similarity > results[2].similarity

    def test_returns_all_when_fewer_than_k(self):
        results = rank_neighbors(
            [1.0, 0.0],
            [candidate("a", [1.0, 0.0]), candidate("b", [0.5, 0.5])],
            k=RETRIEVAL_TOP_K,
        )

        assert len(results) == 2

    def test_truncates_to_k(self):
        candidates = [candidate(f"doc-{i}", [1.0, i / 10], offset=i) for i in range(10)]

        assert len(rank_neighbors([1.0, 0.0], candidates, k=3)) == 3

    def test_skips_candidates_without_vector(self):
        results = rank_neighbors(
            [1.0, 0.0],
            [candidate("pending", None), candidate("empty", []), candidate("ready", [1.0, 0.0])],
            k=5,
        )

        assert [n.item for n in results] == ["ready"]

    def test_applies_similarity_floor(self):
        query = [1.0, 0.0]
        # cos = 0.5 and cos ~ 0.447 around the 0.45 floor
        above = [0.5, math.sqrt(3) / 2]
        below = [1.0, 2.0]

        results = rank_neighbors(
            query,
            [candidate("above", above), candidate("below", below)],
            k=3,
            min_similarity=SEARCH_MIN_SIMILARITY,
        )

        assert [n.item for n in results] == ["above"]

    def test_floor_can_leave_nothing(self):
        results = rank_neighbors(
            [1.0, 0.0],
            [candidate("orthogonal", [0.0, 1.0])],
            k=3,
            min_similarity=SEARCH_MIN_SIMILARITY,
        )

        assert results == []

    def test_ties_broken_by_creation_time_then_key(self):
        same = [1.0, 0.0]
        results = rank_neighbors(
            [1.0, 0.0],
            [
                candidate("newer", same, offset=10),
                candidate("b-older", same, offset=0),
                candidate("a-older", same, offset=0),
            ],
            k=3,
        )

        assert [n.item for n in results] == ["a-older", "b-older", "newer"]

    def test_non_positive_k(self):
        assert rank_neighbors([1.0], [candidate("a", [1.0])], k=0) == []
