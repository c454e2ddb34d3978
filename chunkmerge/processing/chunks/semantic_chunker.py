# -*- coding: utf-8 -*-
"""
Semantic chunking of a single document

Turns one document into ordered, size-bounded chunk records:

    1. Validate the document and normalise its whitespace
    2. Split into sentences (NLTK punkt); sentences are never split further
    3. Embed every sentence once and measure boundary similarities
       (with lookahead), deriving a dynamic threshold from their
       average and variance
    4. Segment sentences into initial chunks (similarity gate, then size)
    5. Optionally run the merge optimizer to join similar neighbours
    6. Render ChunkResult records (prefix, embeddings, numbering)

Size-only segmentation (semantic=False) skips step 3 and cuts purely on
size, with the optimizer still available afterwards.

References:
    chunking_options.py for every parameter and its default
    merge_optimizer.py for the pass loop

"""
# Standard library
import logging
from typing import Dict, List, Optional, Union

# Third-party
import numpy as np

# Foundation
from chunkmerge.utils.dataclasses import Document, ChunkResult
from chunkmerge.utils.embedder import EmbedBatchCallback, embed_texts
from chunkmerge.utils.token_counter import count_tokens, get_size_function

# Local
from chunkmerge.processing.chunks.chunking_options import ChunkingOptions
from chunkmerge.processing.chunks.initial_segmenter import group_sentences, SENTENCE_SEPARATOR
from chunkmerge.processing.chunks.merge_optimizer import MergeOptimizer
from chunkmerge.processing.chunks.sentence_splitter import normalize_text, split_sentences
from chunkmerge.processing.chunks.similarity import adjust_threshold, compute_advanced_similarities

logger = logging.getLogger(__name__)


def apply_prefix_to_chunk(chunk_prefix: str, chunk: str) -> str:
    """Render "<prefix>: <chunk>" for a non-blank prefix, else the chunk unchanged."""
    if chunk_prefix and chunk_prefix.strip():
        return f"{chunk_prefix}: {chunk}"
    return chunk


def validate_document(document: Union[Document, Dict, str]) -> Document:
    """
    Coerce input into a Document with non-empty text.

    Raises:
        ValueError: For non-string or blank text, or an unsupported record type
    """
    if isinstance(document, str):
        document = Document(text=document)
    elif isinstance(document, dict):
        document = Document.from_dict(document)
    elif not isinstance(document, Document):
        raise ValueError(f"Unsupported document type: {type(document).__name__}")

    if not isinstance(document.text, str):
        raise ValueError("Input must be a string")
    if not document.text.strip():
        raise ValueError("Document text is empty")
    return document


class SemanticChunker:
    """
    Per-document chunking pipeline.

    Args:
        embed_batch: Async embedding collaborator (texts -> vectors),
            e.g. a BGEEmbedder instance
        options: ChunkingOptions (defaults from CHUNKING_CONFIG)
        sentence_splitter: Sentence-boundary collaborator (text -> sentences)
        size_fn: Size collaborator; derived from options.size_unit if omitted
    """

    def __init__(
        self,
        embed_batch: EmbedBatchCallback,
        options: Optional[ChunkingOptions] = None,
        sentence_splitter=split_sentences,
        size_fn=None,
    ):
        self.options = options or ChunkingOptions()
        self.split_sentences = sentence_splitter
        self.size_fn = size_fn or get_size_function(self.options.size_unit)
        self._raw_embed_batch = embed_batch
        self.optimizer = MergeOptimizer.from_options(self.options, self._embed_batch, self.size_fn)

        logger.debug(
            f"SemanticChunker initialized: max_chunk_size={self.options.max_chunk_size} "
            f"{self.options.size_unit}, threshold={self.options.similarity_threshold}, "
            f"combine_chunks={self.options.combine_chunks}"
        )

    async def _embed_batch(self, texts: List[str]):
        """Embedding collaborator with the chunk prefix applied to its inputs."""
        prefix = self.options.chunk_prefix
        return await self._raw_embed_batch([apply_prefix_to_chunk(prefix, t) for t in texts])

    async def chunk_document(
        self,
        document: Union[Document, Dict, str],
        semantic: bool = True,
    ) -> List[ChunkResult]:
        """
        Chunk one document.

        Args:
            document: Document, record dict ({'text', 'name'?}) or raw text
            semantic: False segments by size only (no sentence embeddings)

        Returns:
            ChunkResult list in document order, numbered from 1

        Raises:
            ValueError: Invalid document, before any embedding call
            EmbeddingContractError: Embedding batch of the wrong length
        """
        document = validate_document(document)
        options = self.options

        sentences = self.split_sentences(normalize_text(document.text))
        if not sentences:
            raise ValueError(f"Document {document.document_id} contains no sentences")

        if semantic:
            groups, sentence_embeddings = await self._segment_semantic(sentences)
        else:
            groups = group_sentences(sentences, None, options.max_chunk_size, 0.0, self.size_fn)
            sentence_embeddings = None

        texts = [SENTENCE_SEPARATOR.join(sentences[i] for i in group) for group in groups]
        embeddings = [
            sentence_embeddings[group[0]] if sentence_embeddings is not None and len(group) == 1 else None
            for group in groups
        ]
        logger.debug(
            f"Document {document.document_id}: {len(sentences)} sentences -> "
            f"{len(texts)} initial chunks"
        )

        if options.combine_chunks:
            result = await self.optimizer.optimize(
                texts, embeddings, embed_final=options.return_embedding
            )
            texts, embeddings = result.texts, result.embeddings
        elif options.return_embedding:
            embeddings = await self._fill_missing_embeddings(texts, embeddings)

        return self._build_results(document, texts, embeddings)

    async def _segment_semantic(self, sentences: List[str]):
        options = self.options
        stats = await compute_advanced_similarities(
            sentences, self._embed_batch, options.num_similarity_sentences_lookahead
        )

        threshold = options.similarity_threshold
        if stats.average is not None and stats.variance is not None:
            threshold = adjust_threshold(
                stats.average,
                stats.variance,
                options.similarity_threshold,
                options.dynamic_threshold_lower_bound,
                options.dynamic_threshold_upper_bound,
            )
            logger.debug(f"Dynamic similarity threshold: {threshold:.3f}")

        groups = group_sentences(
            sentences, stats.similarities, options.max_chunk_size, threshold, self.size_fn
        )
        return groups, stats.embeddings

    async def _fill_missing_embeddings(self, texts: List[str], embeddings: List) -> List:
        missing = [i for i, e in enumerate(embeddings) if e is None]
        if not missing:
            return embeddings
        vectors = await embed_texts(self._embed_batch, [texts[i] for i in missing])
        filled = list(embeddings)
        for i, vector in zip(missing, vectors):
            filled[i] = vector
        return filled

    def _build_results(self, document: Document, texts: List[str], embeddings: List) -> List[ChunkResult]:
        options = self.options
        results = []
        for number, (text, embedding) in enumerate(zip(texts, embeddings), 1):
            if not options.exclude_chunk_prefix_in_results:
                text = apply_prefix_to_chunk(options.chunk_prefix, text)

            vector = None
            if options.return_embedding and embedding is not None:
                vector = np.asarray(embedding, dtype=np.float32).tolist()

            results.append(ChunkResult(
                document_id=document.document_id,
                document_name=document.name,
                chunk_number=number,
                number_of_chunks=len(texts),
                text=text,
                embedding=vector,
                token_length=count_tokens(text) if options.size_unit == 'tokens' else None,
            ))
        return results

    @staticmethod
    def get_statistics(chunks: List[ChunkResult], size_fn=len) -> Dict:
        """
        Size statistics over chunk records.

        Returns:
            Dict with count, mean, median, std, min and max size
            (empty dict for no chunks)
        """
        if not chunks:
            return {}

        sizes = [size_fn(c.text) for c in chunks]
        return {
            'total_chunks': len(chunks),
            'mean': float(np.mean(sizes)),
            'median': float(np.median(sizes)),
            'std': float(np.std(sizes)),
            'min': int(min(sizes)),
            'max': int(max(sizes)),
        }


async def chunk_text(
    text: str,
    embed_batch: EmbedBatchCallback,
    options: Optional[Union[ChunkingOptions, Dict]] = None,
    name: Optional[str] = None,
) -> List[ChunkResult]:
    """
    Chunk a raw text with semantic segmentation and merge optimisation.

    Example:
        chunks = await chunk_text(text, BGEEmbedder(), {'maxChunkSize': 800})
    """
    if not isinstance(options, ChunkingOptions):
        options = ChunkingOptions.from_dict(options)
    chunker = SemanticChunker(embed_batch, options)
    return await chunker.chunk_document(Document(text=text, name=name))


async def cram_text(
    text: str,
    embed_batch: EmbedBatchCallback,
    options: Optional[Union[ChunkingOptions, Dict]] = None,
    name: Optional[str] = None,
) -> List[ChunkResult]:
    """Chunk a raw text by size only, without similarity boundaries."""
    if not isinstance(options, ChunkingOptions):
        options = ChunkingOptions.from_dict(options)
    chunker = SemanticChunker(embed_batch, options)
    return await chunker.chunk_document(Document(text=text, name=name), semantic=False)
