# -*- coding: utf-8 -*-
"""
Iterative global-priority merge optimizer

Improves an initial split by merging adjacent chunks whose embeddings are
similar, without ever exceeding the size limit. Each pass:

    1. EMBED       one batch call for every chunk without a valid embedding
    2. CANDIDATES  evaluate only the edges around freshly embedded chunks;
                   unselected candidates from earlier passes stay live
    3. SORT        similarity descending, left-to-right on ties
    4. THROTTLE    quota from compute_merge_limit()
    5. SELECT      greedy scan, skipping chunks already merged this pass
    6. EXECUTE     merge in place, queue survivors for re-embedding
    7. TERMINATE   stop after max_uncapped_passes uncapped passes; passes
                   that hit the quota before the end of the list (capped
                   passes) are not counted

The only suspension point is the embedding call. Errors from the embedding
collaborator propagate unchanged and abort the current document.

Example:
    optimizer = MergeOptimizer(embedder, max_chunk_size=500)
    result = await optimizer.optimize(["First chunk.", "Second chunk."])
    result.texts
"""
# Standard library
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

# Third-party
import numpy as np

# Local
from chunkmerge.processing.chunks.chunk_graph import (
    ChunkGraph, ChunkNode, MergeCandidate,
)
from chunkmerge.processing.chunks.similarity import cosine_similarity
from chunkmerge.processing.chunks.throttle import compute_merge_limit
from chunkmerge.utils.embedder import EmbedBatchCallback, embed_texts
from chunkmerge.utils.token_counter import SizeFunction, count_characters

logger = logging.getLogger(__name__)


@dataclass
class PassSummary:
    """What happened in one optimizer pass."""
    pass_number: int
    embedded: int
    candidates: int
    merge_limit: int
    merges: int
    capped: bool
    chunk_count: int


@dataclass
class MergeResult:
    """Final chunks plus optimizer statistics."""
    texts: List[str]
    embeddings: List[Optional[np.ndarray]]
    initial_chunk_count: int
    passes: int = 0
    capped_passes: int = 0
    merges: int = 0
    pass_log: List[PassSummary] = field(default_factory=list)


@dataclass
class _LoopState:
    """Mutable state threaded through the stages of one optimize() call."""
    pass_number: int = 1
    completed_passes: int = 0
    capped_passes: int = 0
    merges: int = 0
    pending: List[int] = field(default_factory=list)        # nodes waiting for an embedding
    candidates: List[MergeCandidate] = field(default_factory=list)
    pass_log: List[PassSummary] = field(default_factory=list)


class MergeOptimizer:
    """
    Throttled, globally prioritised merging of adjacent chunks.

    Args:
        embed_batch: Async embedding collaborator (texts -> vectors)
        max_chunk_size: Size limit per merged chunk (size_fn units)
        similarity_threshold: Minimum cosine similarity for a merge candidate
        max_uncapped_passes: Uncapped passes allowed before stopping
        max_merges_per_pass: Absolute merge quota per pass
        merge_percentage_cap: Fraction of live candidates mergeable per pass
        min_merges_per_pass: Soft floor on the quota (None disables)
        size_fn: Size collaborator shared with the initial segmenter
    """

    def __init__(
        self,
        embed_batch: EmbedBatchCallback,
        max_chunk_size: int,
        similarity_threshold: float = 0.5,
        max_uncapped_passes: int = 100,
        max_merges_per_pass: int = 500,
        merge_percentage_cap: float = 0.4,
        min_merges_per_pass: Optional[int] = None,
        size_fn: SizeFunction = count_characters,
    ):
        if max_chunk_size <= 0:
            raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")
        if max_merges_per_pass < 1:
            raise ValueError(f"max_merges_per_pass must be at least 1, got {max_merges_per_pass}")
        if not 0 < merge_percentage_cap <= 1:
            raise ValueError(f"merge_percentage_cap must be in (0, 1], got {merge_percentage_cap}")
        if max_uncapped_passes < 0:
            raise ValueError(f"max_uncapped_passes must be >= 0, got {max_uncapped_passes}")

        self.embed_batch = embed_batch
        self.max_chunk_size = max_chunk_size
        self.similarity_threshold = similarity_threshold
        self.max_uncapped_passes = max_uncapped_passes
        self.max_merges_per_pass = max_merges_per_pass
        self.merge_percentage_cap = merge_percentage_cap
        self.min_merges_per_pass = min_merges_per_pass
        self.size_fn = size_fn

    @classmethod
    def from_options(cls, options, embed_batch: EmbedBatchCallback, size_fn: SizeFunction) -> "MergeOptimizer":
        """Build an optimizer from a validated ChunkingOptions."""
        return cls(
            embed_batch=embed_batch,
            max_chunk_size=options.max_chunk_size,
            similarity_threshold=options.combine_chunks_similarity_threshold,
            max_uncapped_passes=options.max_uncapped_passes,
            max_merges_per_pass=options.max_merges_per_pass,
            merge_percentage_cap=options.max_merges_per_pass_percentage / 100.0,
            min_merges_per_pass=options.min_merges_per_pass,
            size_fn=size_fn,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def optimize(
        self,
        texts: Sequence[str],
        embeddings: Optional[Sequence[Optional[np.ndarray]]] = None,
        embed_final: bool = False,
    ) -> MergeResult:
        """
        Merge similar neighbours until no candidates remain or the
        uncapped-pass budget is spent.

        Args:
            texts: Initial chunk texts in order
            embeddings: Optional precomputed vectors aligned with texts
            embed_final: Embed chunks left without a vector after the last
                pass so every returned embedding matches its text

        Returns:
            MergeResult with the chunks read off the chain head to tail
        """
        graph = ChunkGraph(texts, self.size_fn, embeddings)
        state = _LoopState()
        state.pending = [node.index for node in graph if node.embedding is None]

        if len(graph) > 1:
            self._seed_candidates(graph, state)
            await self._run_passes(graph, state)

        if embed_final and state.pending:
            await self._embed_pending(graph, state)

        logger.info(
            f"Merge optimizer: {len(texts)} -> {len(graph)} chunks in "
            f"{state.completed_passes} passes ({state.capped_passes} capped, {state.merges} merges)"
        )
        return MergeResult(
            texts=graph.texts(),
            embeddings=graph.embeddings(),
            initial_chunk_count=len(texts),
            passes=state.completed_passes,
            capped_passes=state.capped_passes,
            merges=state.merges,
            pass_log=state.pass_log,
        )

    # ------------------------------------------------------------------
    # Pass loop
    # ------------------------------------------------------------------

    async def _run_passes(self, graph: ChunkGraph, state: _LoopState) -> None:
        while True:
            embedded = len(state.pending)
            if state.pending:
                fresh = await self._embed_pending(graph, state)
                self._refresh_candidates(graph, state, fresh)

            if not state.candidates:
                logger.debug(f"Pass {state.pass_number}: no candidates left")
                break

            ranked = self._rank(state.candidates)
            limit = compute_merge_limit(
                len(ranked),
                self.merge_percentage_cap,
                self.max_merges_per_pass,
                self.min_merges_per_pass,
            )
            accepted, capped = self._select(graph, ranked, limit, state.pass_number)

            if not accepted:
                logger.debug(f"Pass {state.pass_number}: every candidate conflicted, stopping")
                break

            self._execute(graph, state, accepted)

            state.pass_log.append(PassSummary(
                pass_number=state.pass_number,
                embedded=embedded,
                candidates=len(ranked),
                merge_limit=limit,
                merges=len(accepted),
                capped=capped,
                chunk_count=len(graph),
            ))
            logger.debug(
                f"Pass {state.pass_number}: embedded={embedded}, candidates={len(ranked)}, "
                f"limit={limit}, merges={len(accepted)}, capped={capped}, chunks={len(graph)}"
            )

            state.completed_passes += 1
            if capped:
                state.capped_passes += 1
            if state.completed_passes - state.capped_passes > self.max_uncapped_passes:
                logger.debug(f"Uncapped pass budget ({self.max_uncapped_passes}) exhausted")
                break
            state.pass_number += 1

    async def _embed_pending(self, graph: ChunkGraph, state: _LoopState) -> List[ChunkNode]:
        """EMBED: one batch for every queued node, assigned back by position."""
        nodes = [graph.nodes[i] for i in state.pending]
        vectors = await embed_texts(self.embed_batch, [node.text for node in nodes])
        for node, vector in zip(nodes, vectors):
            node.embedding = vector
        state.pending = []
        return nodes

    # ------------------------------------------------------------------
    # Candidates
    # ------------------------------------------------------------------

    def _evaluate(self, graph: ChunkGraph, left: ChunkNode, right: ChunkNode) -> Optional[MergeCandidate]:
        """Candidate for (left, right) if it fits the size limit and is similar enough."""
        if graph.combined_size(left, right) > self.max_chunk_size:
            return None
        similarity = cosine_similarity(left.embedding, right.embedding)
        if similarity < self.similarity_threshold:
            return None
        return MergeCandidate(left=left.index, right=right.index, similarity=similarity)

    def _seed_candidates(self, graph: ChunkGraph, state: _LoopState) -> None:
        """Forward edges between chunks that arrived with embeddings."""
        for node in graph:
            right = graph.next_of(node)
            if right is None or node.embedding is None or right.embedding is None:
                continue
            candidate = self._evaluate(graph, node, right)
            if candidate:
                state.candidates.append(candidate)

    def _refresh_candidates(self, graph: ChunkGraph, state: _LoopState, fresh: List[ChunkNode]) -> None:
        """
        CANDIDATES: evaluate both edges of every freshly embedded node.

        candidate_epoch marks a left node whose forward edge was already
        evaluated this pass, so a shared edge is never emitted twice.
        """
        epoch = state.pass_number
        for node in fresh:
            right = graph.next_of(node)
            if right is not None and node.candidate_epoch != epoch:
                candidate = self._evaluate(graph, node, right)
                if candidate:
                    state.candidates.append(candidate)
                node.candidate_epoch = epoch

            left = graph.prev_of(node)
            if left is not None and left.candidate_epoch != epoch:
                candidate = self._evaluate(graph, left, node)
                if candidate:
                    state.candidates.append(candidate)
                left.candidate_epoch = epoch

    @staticmethod
    def _rank(candidates: List[MergeCandidate]) -> List[MergeCandidate]:
        """SORT: highest similarity first; ties in chain order (arena order)."""
        return sorted(candidates, key=lambda c: (-c.similarity, c.left))

    @staticmethod
    def _select(graph: ChunkGraph, ranked: List[MergeCandidate], limit: int, pass_number: int):
        """
        SELECT: greedy conflict-free scan.

        Returns:
            (accepted candidates, capped) where capped means the quota was
            reached with candidates still unscanned
        """
        accepted = []
        for position, candidate in enumerate(ranked):
            left = graph.nodes[candidate.left]
            right = graph.nodes[candidate.right]
            if left.merge_epoch == pass_number or right.merge_epoch == pass_number:
                continue

            left.merge_epoch = pass_number
            right.merge_epoch = pass_number
            accepted.append(candidate)

            if len(accepted) >= limit:
                return accepted, position < len(ranked) - 1
        return accepted, False

    @staticmethod
    def _execute(graph: ChunkGraph, state: _LoopState, accepted: List[MergeCandidate]) -> None:
        """EXECUTE: merge accepted pairs and drop candidates they invalidated."""
        for candidate in accepted:
            survivor = graph.merge(graph.nodes[candidate.left], graph.nodes[candidate.right])
            state.pending.append(survivor.index)
        state.merges += len(accepted)

        epoch = state.pass_number
        state.candidates = [
            c for c in state.candidates
            if graph.nodes[c.left].merge_epoch != epoch and graph.nodes[c.right].merge_epoch != epoch
        ]
