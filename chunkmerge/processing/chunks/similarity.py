# -*- coding: utf-8 -*-
"""
Similarity helpers for chunk boundaries and merge candidates

cosine_similarity() is the pairwise measure used by the merge optimizer.
compute_advanced_similarities() embeds every sentence of a document once and
derives the adjacent-sentence similarities (with optional lookahead) plus the
document-wide average and variance that adjust_threshold() turns into a
dynamic boundary threshold.
"""
# Standard library
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

# Third-party
import numpy as np
from sklearn.preprocessing import normalize

# Local
from chunkmerge.utils.embedder import embed_texts

logger = logging.getLogger(__name__)


@dataclass
class SimilarityStats:
    """Adjacent-sentence similarities and their document-wide statistics."""
    similarities: List[float] = field(default_factory=list)
    average: Optional[float] = None
    variance: Optional[float] = None
    embeddings: List[np.ndarray] = field(default_factory=list)


def cosine_similarity(a, b) -> float:
    """
    Cosine similarity of two equal-length vectors, in [-1, 1].

    A zero vector has similarity 0 with everything.

    Raises:
        ValueError: If either vector is missing or the lengths differ
    """
    if a is None or b is None:
        raise ValueError("cosine_similarity requires two embeddings, got None")

    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    if a.shape != b.shape:
        raise ValueError(f"Embedding dimensions differ: {a.shape[0]} vs {b.shape[0]}")

    norm = np.linalg.norm(a) * np.linalg.norm(b)
    if norm == 0:
        return 0.0
    return float(np.clip(np.dot(a, b) / norm, -1.0, 1.0))


def lookahead_similarities(embeddings: Sequence, lookahead: int = 1) -> List[float]:
    """
    Similarity of each sentence to what follows it.

    Position i holds the maximum similarity between sentence i and sentences
    i+1 .. i+lookahead. A lookahead below 1 behaves as 1 (plain adjacent
    similarity).

    Returns:
        List of len(embeddings) - 1 floats (empty for fewer than 2 vectors)
    """
    n = len(embeddings)
    if n < 2:
        return []

    lookahead = max(1, lookahead)
    unit = normalize(np.vstack([np.asarray(e, dtype=np.float64).ravel() for e in embeddings]))

    similarities = []
    for i in range(n - 1):
        window = unit[i + 1:min(n, i + 1 + lookahead)]
        similarities.append(float(np.clip(np.max(window @ unit[i]), -1.0, 1.0)))
    return similarities


async def compute_advanced_similarities(
    sentences: List[str],
    embed_batch,
    lookahead: int = 1,
) -> SimilarityStats:
    """
    Embed all sentences in one batch and compute boundary statistics.

    Args:
        sentences: Ordered sentences of one document
        embed_batch: Async embedding collaborator (texts -> vectors)
        lookahead: Number of following sentences compared per position

    Returns:
        SimilarityStats; average/variance are None for a single sentence

    Raises:
        EmbeddingContractError: If the collaborator returns the wrong count
    """
    embeddings = await embed_texts(embed_batch, sentences)

    similarities = lookahead_similarities(embeddings, lookahead)
    if not similarities:
        return SimilarityStats(embeddings=embeddings)

    values = np.asarray(similarities)
    average = float(values.mean())
    variance = float(values.var())

    logger.debug(
        f"Sentence similarities: n={len(similarities)}, average={average:.3f}, "
        f"variance={variance:.4f}, lookahead={lookahead}"
    )
    return SimilarityStats(
        similarities=similarities,
        average=average,
        variance=variance,
        embeddings=embeddings,
    )


def adjust_threshold(
    average: float,
    variance: float,
    base_threshold: float = 0.5,
    lower_bound: float = 0.2,
    upper_bound: float = 0.8,
) -> float:
    """
    Move the boundary threshold toward the document's own similarity level.

    The adjusted value is the midpoint of the base threshold and the average
    similarity, lowered by the variance, then clamped to [lower_bound,
    upper_bound]. An inverted or empty bound range leaves the base
    threshold untouched.
    """
    if lower_bound >= upper_bound:
        logger.debug(
            f"Dynamic threshold disabled (lower {lower_bound} >= upper {upper_bound})"
        )
        return base_threshold

    adjusted = (base_threshold + average) / 2 - variance
    return float(min(max(adjusted, lower_bound), upper_bound))
