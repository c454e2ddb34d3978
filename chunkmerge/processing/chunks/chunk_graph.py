# -*- coding: utf-8 -*-
"""
Chunk graph: the ordered chain of chunks the merge optimizer works on

Nodes live in an arena (a list addressed by index) and link to each other
through prev/next indices. A merge mutates the left node in place and
tombstones the right node instead of deleting it, so node indices stay
stable for the whole optimisation and arena order always equals chain order.

Invariants kept by ChunkGraph.merge():
    - walking next from the head visits every live node exactly once
    - a node's embedding is valid for its current text or is None
    - merged text is left + separator + right; nothing is dropped or repeated
"""
# Standard library
import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

# Third-party
import numpy as np

# Local
from chunkmerge.utils.token_counter import SizeFunction, count_characters

logger = logging.getLogger(__name__)

# Epoch value meaning "before pass 1"
NO_EPOCH = 0


@dataclass
class ChunkNode:
    """One (possibly merged) contiguous span of sentences."""
    index: int
    text: str
    size: int
    embedding: Optional[np.ndarray] = None
    prev: Optional[int] = None
    next: Optional[int] = None
    merge_epoch: int = NO_EPOCH         # pass in which the node last took part in a merge
    candidate_epoch: int = NO_EPOCH     # pass in which its forward edge was last evaluated
    removed: bool = False


@dataclass
class MergeCandidate:
    """Proposed merge of two adjacent nodes (arena indices)."""
    left: int
    right: int
    similarity: float


def join_texts(left: str, right: str) -> str:
    """Join two chunk texts with one space unless left already ends in whitespace."""
    if left[-1:].isspace():
        return left + right
    return left + ' ' + right


class ChunkGraph:
    """
    Arena-backed linked chain of ChunkNodes.

    Args:
        texts: Initial chunk texts in document order (at least one)
        size_fn: Size collaborator (characters or tokens)
        embeddings: Optional vectors aligned with texts; None entries are
            embedded by the optimizer in pass 1
    """

    def __init__(
        self,
        texts: Sequence[str],
        size_fn: SizeFunction = count_characters,
        embeddings: Optional[Sequence[Optional[np.ndarray]]] = None,
    ):
        if not texts:
            raise ValueError("ChunkGraph needs at least one chunk")
        if embeddings is not None and len(embeddings) != len(texts):
            raise ValueError(
                f"Got {len(embeddings)} embeddings for {len(texts)} chunks"
            )

        self.size_fn = size_fn
        self.nodes: List[ChunkNode] = []
        self.head = 0
        self._live_count = len(texts)

        for i, text in enumerate(texts):
            embedding = None
            if embeddings is not None and embeddings[i] is not None:
                embedding = np.asarray(embeddings[i], dtype=np.float32)
            self.nodes.append(ChunkNode(
                index=i,
                text=text,
                size=size_fn(text),
                embedding=embedding,
                prev=i - 1 if i > 0 else None,
                next=i + 1 if i < len(texts) - 1 else None,
            ))

    def __len__(self) -> int:
        return self._live_count

    def __iter__(self) -> Iterator[ChunkNode]:
        """Walk the live chain from head to tail."""
        index = self.head
        while index is not None:
            node = self.nodes[index]
            yield node
            index = node.next

    def texts(self) -> List[str]:
        return [node.text for node in self]

    def embeddings(self) -> List[Optional[np.ndarray]]:
        return [node.embedding for node in self]

    def next_of(self, node: ChunkNode) -> Optional[ChunkNode]:
        return self.nodes[node.next] if node.next is not None else None

    def prev_of(self, node: ChunkNode) -> Optional[ChunkNode]:
        return self.nodes[node.prev] if node.prev is not None else None

    def combined_size(self, left: ChunkNode, right: ChunkNode) -> int:
        """Size of the text a merge of left and right would produce."""
        return self.size_fn(join_texts(left.text, right.text))

    def merge(self, left: ChunkNode, right: ChunkNode) -> ChunkNode:
        """
        Merge right into left in place and unlink right.

        The left node keeps its position; its embedding is cleared so it is
        re-embedded before its next use.

        Raises:
            ValueError: If the nodes are not live and adjacent
        """
        if left.removed or right.removed or left.next != right.index or right.prev != left.index:
            raise ValueError(f"Nodes {left.index} and {right.index} are not adjacent live chunks")

        left.text = join_texts(left.text, right.text)
        left.size = self.size_fn(left.text)
        left.embedding = None

        left.next = right.next
        if right.next is not None:
            self.nodes[right.next].prev = left.index

        right.removed = True
        right.prev = None
        right.next = None
        right.embedding = None
        self._live_count -= 1
        return left

    def check_integrity(self) -> None:
        """
        Verify chain invariants.

        Raises:
            AssertionError: On a cycle, self-link, broken back-link or a
                live-count mismatch
        """
        seen = set()
        previous = None
        for node in self:
            assert node.index not in seen, f"Node {node.index} visited twice"
            assert not node.removed, f"Removed node {node.index} still linked"
            assert node.next != node.index, f"Node {node.index} points to itself"
            assert node.prev == previous, f"Node {node.index} has prev {node.prev}, expected {previous}"
            seen.add(node.index)
            previous = node.index
        assert len(seen) == self._live_count, (
            f"Chain has {len(seen)} nodes, expected {self._live_count}"
        )
