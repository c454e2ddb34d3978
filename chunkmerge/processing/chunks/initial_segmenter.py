# -*- coding: utf-8 -*-
"""
Initial segmentation of sentences into chunks

Sentences are appended to a running chunk while the similarity gate passes
and the joined text stays within the size limit. Similarity is the primary
gate: a failed gate always closes the chunk, whatever the size. Without
similarities (size-only mode) only the size limit decides.

Sentences are atomic. A sentence larger than the limit on its own still
becomes its own chunk rather than being split or dropped.
"""
# Standard library
import logging
from typing import List, Optional, Sequence

# Local
from chunkmerge.utils.token_counter import SizeFunction, count_characters

logger = logging.getLogger(__name__)

SENTENCE_SEPARATOR = ' '


def group_sentences(
    sentences: Sequence[str],
    similarities: Optional[Sequence[float]],
    max_chunk_size: int,
    similarity_threshold: float,
    size_fn: SizeFunction = count_characters,
) -> List[List[int]]:
    """
    Group sentence indices into initial chunks.

    Args:
        sentences: Ordered, non-empty sequence of sentences
        similarities: similarities[i - 1] scores the boundary before sentence i;
            None selects size-only mode
        max_chunk_size: Size limit per chunk (in size_fn units)
        similarity_threshold: Minimum similarity to keep a sentence with the
            previous one
        size_fn: Size collaborator applied to the joined chunk text

    Returns:
        List of groups, each a list of consecutive sentence indices

    Raises:
        ValueError: For an empty sentence list or misaligned similarities
    """
    if not sentences:
        raise ValueError("Cannot segment an empty sentence list")
    if similarities is not None and len(similarities) != len(sentences) - 1:
        raise ValueError(
            f"Expected {len(sentences) - 1} similarities for {len(sentences)} sentences, "
            f"got {len(similarities)}"
        )

    groups = []
    current = [0]
    current_text = sentences[0]

    for i in range(1, len(sentences)):
        sentence = sentences[i]

        if similarities is not None and similarities[i - 1] < similarity_threshold:
            logger.debug(
                f"Boundary before sentence {i}: similarity {similarities[i - 1]:.3f} "
                f"< {similarity_threshold:.3f}"
            )
            groups.append(current)
            current = [i]
            current_text = sentence
            continue

        candidate_text = current_text + SENTENCE_SEPARATOR + sentence
        if size_fn(candidate_text) <= max_chunk_size:
            current.append(i)
            current_text = candidate_text
        else:
            groups.append(current)
            current = [i]
            current_text = sentence

    groups.append(current)
    return groups


def create_chunks(
    sentences: Sequence[str],
    similarities: Optional[Sequence[float]],
    max_chunk_size: int,
    similarity_threshold: float,
    size_fn: SizeFunction = count_characters,
) -> List[str]:
    """Segment sentences and return the initial chunk texts in order."""
    groups = group_sentences(sentences, similarities, max_chunk_size, similarity_threshold, size_fn)
    return [SENTENCE_SEPARATOR.join(sentences[i] for i in group) for group in groups]
