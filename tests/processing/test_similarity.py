# -*- coding: utf-8 -*-
"""
Tests for cosine similarity, lookahead boundary similarities and the
dynamic threshold.
"""
import numpy as np
import pytest

from chunkmerge.processing.chunks.similarity import (
    adjust_threshold,
    compute_advanced_similarities,
    cosine_similarity,
    lookahead_similarities,
)
from chunkmerge.utils.embedder import EmbeddingContractError


# ============================================================================
# COSINE SIMILARITY
# ============================================================================

class TestCosineSimilarity:

    def test_identical_vectors(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_scale_invariant(self):
        assert cosine_similarity([1.0, 1.0], [5.0, 5.0]) == pytest.approx(1.0)

    def test_zero_vector(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0

    def test_missing_embedding_raises(self):
        with pytest.raises(ValueError, match="None"):
            cosine_similarity(None, [1.0, 0.0])

    def test_dimension_mismatch_raises(self):
        with pytest.raises(ValueError, match="dimensions differ"):
            cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])

    def test_accepts_numpy_float32(self):
        a = np.array([0.5, 0.866], dtype=np.float32)
        b = np.array([0.866, 0.5], dtype=np.float32)
        assert cosine_similarity(a, b) == pytest.approx(0.866, abs=1e-3)


# ============================================================================
# LOOKAHEAD
# ============================================================================

class TestLookaheadSimilarities:

    @pytest.fixture
    def vectors(self):
        # 0 and 2 point the same way, 1 is orthogonal to both
        return [np.array([1.0, 0.0]), np.array([0.0, 1.0]), np.array([1.0, 0.0])]

    def test_adjacent_only(self, vectors):
        assert lookahead_similarities(vectors, 1) == pytest.approx([0.0, 0.0])

    def test_lookahead_takes_maximum(self, vectors):
        sims = lookahead_similarities(vectors, 2)
        assert sims[0] == pytest.approx(1.0)
        assert sims[1] == pytest.approx(0.0)

    def test_lookahead_below_one_is_adjacent(self, vectors):
        assert lookahead_similarities(vectors, 0) == lookahead_similarities(vectors, 1)

    def test_fewer_than_two_vectors(self):
        assert lookahead_similarities([np.array([1.0, 0.0])], 3) == []


# ============================================================================
# DOCUMENT STATISTICS
# ============================================================================

class TestComputeAdvancedSimilarities:

    @pytest.mark.asyncio
    async def test_single_batch_and_statistics(self, topic_embedder):
        sentences = ["This is Topic A.", "This is a Blocker sentence.", "This is Topic A-ish."]

        stats = await compute_advanced_similarities(sentences, topic_embedder, lookahead=1)

        assert topic_embedder.batch_sizes == [3]
        assert len(stats.embeddings) == 3
        assert stats.similarities == pytest.approx([0.5, 0.866], abs=1e-3)
        assert stats.average == pytest.approx(0.683, abs=1e-3)
        assert stats.variance == pytest.approx(0.0335, abs=1e-3)

    @pytest.mark.asyncio
    async def test_single_sentence_has_no_statistics(self, topic_embedder):
        stats = await compute_advanced_similarities(["Only one."], topic_embedder)

        assert stats.similarities == []
        assert stats.average is None
        assert stats.variance is None
        assert len(stats.embeddings) == 1

    @pytest.mark.asyncio
    async def test_wrong_vector_count_raises(self):
        async def short_embedder(texts):
            return [np.ones(4)] * (len(texts) - 1)

        with pytest.raises(EmbeddingContractError):
            await compute_advanced_similarities(["One.", "Two."], short_embedder)


# ============================================================================
# DYNAMIC THRESHOLD
# ============================================================================

class TestAdjustThreshold:

    def test_midpoint_minus_variance(self):
        assert adjust_threshold(0.7, 0.02, 0.5, 0.2, 0.8) == pytest.approx(0.58)

    def test_clamped_to_lower_bound(self):
        assert adjust_threshold(0.1, 0.1, 0.5, 0.4, 0.8) == pytest.approx(0.4)

    def test_clamped_to_upper_bound(self):
        assert adjust_threshold(1.0, 0.0, 1.0, 0.2, 0.8) == pytest.approx(0.8)

    def test_inverted_bounds_keep_base(self):
        assert adjust_threshold(0.683, 0.0335, 0.6, 0.6, 0.5) == 0.6

    def test_equal_bounds_keep_base(self):
        assert adjust_threshold(0.9, 0.0, 0.3, 0.5, 0.5) == 0.3
