# -*- coding: utf-8 -*-
"""
Module: chunk_processor.py
Package: chunkmerge.processing.chunks
Purpose: Chunk many documents concurrently and write chunks + run report

Each document owns its own chunk graph, so documents are processed as
independent asyncio tasks (bounded by a semaphore). A failing document is
logged and reported; the others complete normally. The whole batch is
validated before the first embedding call.

References:
    semantic_chunker.py for the per-document pipeline
    config/chunking_config.py PROCESSING_CONFIG for concurrency / paths
"""

# Standard library
import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

# Third-party
import numpy as np
from tqdm import tqdm

# Foundation
from chunkmerge.utils.dataclasses import ChunkingReport, ChunkResult, Document
from chunkmerge.utils.embedder import EmbedBatchCallback
from chunkmerge.utils.io import load_jsonl, save_json, save_jsonl

# Config
from config.chunking_config import PROCESSING_CONFIG

# Local
from chunkmerge.processing.chunks.chunking_options import ChunkingOptions
from chunkmerge.processing.chunks.semantic_chunker import SemanticChunker

logger = logging.getLogger(__name__)


def validate_documents(documents: Sequence) -> List[Document]:
    """
    Validate a batch of document records.

    Raises:
        ValueError: If the batch is not a list/tuple or any record lacks
            usable text, or two records share a document_id (all problems are
            listed in one message)
    """
    if not isinstance(documents, (list, tuple)):
        raise ValueError(f"Document batch must be a list, got {type(documents).__name__}")
    if not documents:
        raise ValueError("Document batch is empty")

    validated = []
    problems = []
    first_seen = {}
    for position, record in enumerate(documents):
        try:
            if isinstance(record, Document):
                if not isinstance(record.text, str) or not record.text.strip():
                    raise ValueError("Document text is empty or not a string")
                document = record
            else:
                document = Document.from_dict(record)
        except ValueError as e:
            problems.append(f"#{position}: {e}")
            continue

        # Results are keyed by document_id; identical unnamed texts share a generated id
        if document.document_id in first_seen:
            problems.append(
                f"#{position}: duplicate document_id '{document.document_id}' "
                f"(same as #{first_seen[document.document_id]}); give each document a unique name or id"
            )
            continue
        first_seen[document.document_id] = position
        validated.append(document)

    if problems:
        raise ValueError("Invalid documents in batch: " + "; ".join(problems))
    return validated


class ChunkProcessor:
    """
    Orchestrates chunking of a document collection.

    Args:
        embed_batch: Async embedding collaborator shared by all documents
        options: ChunkingOptions applied to every document
        max_concurrent: Documents optimised at the same time
        semantic: False selects size-only segmentation
        show_progress: Display a tqdm progress bar
    """

    def __init__(
        self,
        embed_batch: EmbedBatchCallback,
        options: Optional[ChunkingOptions] = None,
        max_concurrent: int = PROCESSING_CONFIG['max_concurrent_documents'],
        semantic: bool = True,
        show_progress: bool = True,
    ):
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be at least 1, got {max_concurrent}")

        self.options = options or ChunkingOptions()
        self.chunker = SemanticChunker(embed_batch, self.options)
        self.max_concurrent = max_concurrent
        self.semantic = semantic
        self.show_progress = show_progress

        logger.info(
            f"ChunkProcessor initialized: max_chunk_size={self.options.max_chunk_size} "
            f"{self.options.size_unit}, combine_chunks={self.options.combine_chunks}, "
            f"max_concurrent={max_concurrent}, semantic={semantic}"
        )

    async def process_documents(
        self,
        documents: Sequence[Union[Document, Dict]],
    ) -> Tuple[Dict[str, List[ChunkResult]], ChunkingReport]:
        """
        Chunk every document.

        Returns:
            (chunks keyed by document_id in input order, ChunkingReport)

        Raises:
            ValueError: Malformed batch, raised before any embedding call
        """
        validated = validate_documents(documents)
        semaphore = asyncio.Semaphore(self.max_concurrent)
        progress = tqdm(total=len(validated), desc="Chunking documents", disable=not self.show_progress)

        async def run(document: Document) -> List[ChunkResult]:
            async with semaphore:
                try:
                    return await self.chunker.chunk_document(document, semantic=self.semantic)
                finally:
                    progress.update(1)

        try:
            outcomes = await asyncio.gather(*(run(d) for d in validated), return_exceptions=True)
        finally:
            progress.close()

        results: Dict[str, List[ChunkResult]] = {}
        failed = []
        for document, outcome in zip(validated, outcomes):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                logger.error(f"Error chunking {document.document_id}: {outcome}")
                failed.append({
                    'document_id': document.document_id,
                    'document_name': document.name or '',
                    'error': f"{type(outcome).__name__}: {outcome}",
                })
                continue
            results[document.document_id] = outcome

        report = self._generate_report(validated, results, failed)
        logger.info(
            f"Created {report.total_chunks} chunks from {report.processed_documents}/"
            f"{report.total_documents} documents ({len(failed)} failed)"
        )
        return results, report

    def process_file(
        self,
        input_path: Union[str, Path],
        output_dir: Union[str, Path] = PROCESSING_CONFIG['output_dir'],
        sample: int = 0,
        seed: Optional[int] = None,
    ) -> ChunkingReport:
        """
        Chunk a JSONL file of documents and save chunks.jsonl + report.

        Args:
            input_path: JSONL with one {'text', 'name'?, ...} record per line
            output_dir: Directory for chunks.jsonl and chunking_report.json
            sample: Number of documents to sample (0 = all)
            seed: Random seed for reproducible sampling
        """
        documents = load_jsonl(input_path)

        if 0 < sample < len(documents):
            rng = np.random.default_rng(seed)
            indices = rng.choice(len(documents), size=sample, replace=False)
            documents = [documents[i] for i in sorted(indices)]
            logger.info(f"Sampled {sample} documents (seed={seed})")

        results, report = asyncio.run(self.process_documents(documents))
        self.save_outputs(results, report, output_dir)
        return report

    def save_outputs(
        self,
        results: Dict[str, List[ChunkResult]],
        report: ChunkingReport,
        output_dir: Union[str, Path],
    ) -> None:
        output_dir = Path(output_dir)
        records = [
            chunk.to_dict(include_embedding=self.options.return_embedding)
            for chunks in results.values()
            for chunk in chunks
        ]
        save_jsonl(records, output_dir / 'chunks.jsonl')
        save_json(report.to_dict(), output_dir / 'chunking_report.json')

    def _generate_report(
        self,
        documents: List[Document],
        results: Dict[str, List[ChunkResult]],
        failed: List[Dict[str, str]],
    ) -> ChunkingReport:
        size_fn = self.chunker.size_fn
        per_document = {
            doc_id: self.chunker.get_statistics(chunks, size_fn)
            for doc_id, chunks in results.items()
        }
        all_chunks = [chunk for chunks in results.values() for chunk in chunks]

        return ChunkingReport(
            total_documents=len(documents),
            processed_documents=len(results),
            total_chunks=len(all_chunks),
            failed=failed,
            documents=per_document,
            size_statistics=self.chunker.get_statistics(all_chunks, size_fn),
            options=self.options.to_dict(),
            timestamp=datetime.now().isoformat(),
        )
