# -*- coding: utf-8 -*-
"""
Tests for the per-document chunking pipeline.

A regex sentence splitter stands in for NLTK punkt so the tests need no
tokenizer data; the embedding collaborators come from conftest.py.
"""
import pytest

from chunkmerge.processing.chunks.chunking_options import ChunkingOptions
from chunkmerge.processing.chunks.semantic_chunker import (
    SemanticChunker,
    apply_prefix_to_chunk,
    validate_document,
)
from chunkmerge.processing.chunks.sentence_splitter import normalize_text
from chunkmerge.utils.dataclasses import Document


# ============================================================================
# HELPERS
# ============================================================================

class TestHelpers:

    def test_prefix_rendering(self):
        assert apply_prefix_to_chunk("search_document", "Text.") == "search_document: Text."

    @pytest.mark.parametrize("prefix", ["", "   "])
    def test_blank_prefix_ignored(self, prefix):
        assert apply_prefix_to_chunk(prefix, "Text.") == "Text."

    def test_normalize_joins_soft_wraps(self):
        assert normalize_text("One line\nwrapped.\n\nNext   para.") == "One line wrapped. Next para."

    def test_validate_string(self):
        document = validate_document("Some text.")
        assert isinstance(document, Document)
        assert document.document_id.startswith("doc_")

    @pytest.mark.parametrize("bad", ["", "   \n\t"])
    def test_validate_blank_text(self, bad):
        with pytest.raises(ValueError, match="empty"):
            validate_document(Document(text=bad))

    def test_validate_non_string_text(self):
        with pytest.raises(ValueError, match="must be a string"):
            validate_document(Document(text=42, document_id="doc_x"))

    def test_validate_unsupported_type(self):
        with pytest.raises(ValueError, match="Unsupported"):
            validate_document(3.14)


# ============================================================================
# HIDDEN FRIEND DOCUMENT
# ============================================================================

class TestHiddenFriend:
    """
    A and A-ish are separated by a blocker sentence. Initial segmentation
    cuts after A; the optimizer reunites A with [Blocker A-ish] once that
    chunk is embedded as a whole.
    """

    @pytest.fixture
    def options(self):
        return ChunkingOptions(
            max_chunk_size=500,
            similarity_threshold=0.6,
            dynamic_threshold_lower_bound=0.6,
            dynamic_threshold_upper_bound=0.5,
            num_similarity_sentences_lookahead=0,
            combine_chunks_similarity_threshold=0.6,
        )

    @pytest.mark.asyncio
    async def test_initial_segmentation(self, topic_embedder, regex_splitter, options, hidden_friend_text):
        options.combine_chunks = False
        chunker = SemanticChunker(topic_embedder, options, sentence_splitter=regex_splitter)

        chunks = await chunker.chunk_document(hidden_friend_text)

        assert [c.text for c in chunks] == [
            "This is Topic A.",
            "This is a Blocker sentence. This is Topic A-ish.",
        ]
        assert [c.chunk_number for c in chunks] == [1, 2]
        assert all(c.number_of_chunks == 2 for c in chunks)
        # Single-sentence chunk reuses its sentence vector; the pair is embedded once
        assert topic_embedder.batch_sizes == [3, 1]
        assert chunks[1].embedding == pytest.approx([0.683, 0.683], abs=1e-6)

    @pytest.mark.asyncio
    async def test_dynamic_threshold_same_split(self, topic_embedder, regex_splitter, options, hidden_friend_text):
        options.combine_chunks = False
        options.dynamic_threshold_upper_bound = 0.8
        chunker = SemanticChunker(topic_embedder, options, sentence_splitter=regex_splitter)

        chunks = await chunker.chunk_document(hidden_friend_text)

        assert len(chunks) == 2

    @pytest.mark.asyncio
    async def test_optimizer_reunites_topic(self, topic_embedder, regex_splitter, options, hidden_friend_text):
        chunker = SemanticChunker(topic_embedder, options, sentence_splitter=regex_splitter)

        chunks = await chunker.chunk_document(hidden_friend_text)

        assert len(chunks) == 1
        assert chunks[0].text == (
            "This is Topic A. This is a Blocker sentence. This is Topic A-ish."
        )
        assert chunks[0].embedding == pytest.approx([0.8, 0.4], abs=1e-6)


# ============================================================================
# SIZE HANDLING
# ============================================================================

class TestSizeHandling:

    @pytest.mark.asyncio
    async def test_oversize_sentence_kept_whole(self, identical_embedder, regex_splitter):
        long_sentence = "This single sentence is much longer than the configured limit."
        text = f"Short one. {long_sentence} Short two."
        options = ChunkingOptions(max_chunk_size=20, combine_chunks=False, return_embedding=False)
        chunker = SemanticChunker(identical_embedder, options, sentence_splitter=regex_splitter)

        chunks = await chunker.chunk_document(text, semantic=False)

        assert [c.text for c in chunks] == ["Short one.", long_sentence, "Short two."]
        assert identical_embedder.calls == []

    @pytest.mark.asyncio
    async def test_size_only_then_merge(self, identical_embedder, regex_splitter, ten_sentences):
        options = ChunkingOptions(max_chunk_size=40, min_merges_per_pass=None)
        chunker = SemanticChunker(identical_embedder, options, sentence_splitter=regex_splitter)

        chunks = await chunker.chunk_document(" ".join(ten_sentences), semantic=False)

        assert all(len(c.text) <= 40 for c in chunks)
        assert " ".join(c.text for c in chunks) == " ".join(ten_sentences)

    @pytest.mark.asyncio
    async def test_every_chunk_within_limit(self, hash_embedder, regex_splitter):
        text = " ".join(f"Paragraph {i} mentions item {i * 7}." for i in range(40))
        options = ChunkingOptions(max_chunk_size=120, similarity_threshold=0.7)
        chunker = SemanticChunker(hash_embedder, options, sentence_splitter=regex_splitter)

        chunks = await chunker.chunk_document(text)

        assert all(len(c.text) <= 120 for c in chunks)
        assert " ".join(c.text for c in chunks).split() == text.split()


# ============================================================================
# OUTPUT OPTIONS
# ============================================================================

class TestOutputOptions:

    @pytest.mark.asyncio
    async def test_prefix_applied_to_embeddings_and_results(self, identical_embedder, regex_splitter):
        options = ChunkingOptions(chunk_prefix="search_document", combine_chunks=False)
        chunker = SemanticChunker(identical_embedder, options, sentence_splitter=regex_splitter)

        chunks = await chunker.chunk_document("First point. Second point.")

        assert all(t.startswith("search_document: ") for t in identical_embedder.calls[0])
        assert all(c.text.startswith("search_document: ") for c in chunks)

    @pytest.mark.asyncio
    async def test_prefix_excluded_from_results(self, identical_embedder, regex_splitter):
        options = ChunkingOptions(chunk_prefix="search_document", exclude_chunk_prefix_in_results=True)
        chunker = SemanticChunker(identical_embedder, options, sentence_splitter=regex_splitter)

        chunks = await chunker.chunk_document("First point. Second point.")

        assert all(t.startswith("search_document: ") for batch in identical_embedder.calls for t in batch)
        assert not any(c.text.startswith("search_document") for c in chunks)

    @pytest.mark.asyncio
    async def test_no_embeddings_returned(self, identical_embedder, regex_splitter):
        options = ChunkingOptions(return_embedding=False, combine_chunks=False)
        chunker = SemanticChunker(identical_embedder, options, sentence_splitter=regex_splitter)

        chunks = await chunker.chunk_document("First point. Second point.")

        assert all(c.embedding is None for c in chunks)
        assert all('embedding' not in c.to_dict() for c in chunks)

    @pytest.mark.asyncio
    async def test_document_metadata_carried(self, identical_embedder, regex_splitter):
        chunker = SemanticChunker(identical_embedder, ChunkingOptions(), sentence_splitter=regex_splitter)

        chunks = await chunker.chunk_document({'text': "One. Two.", 'name': 'notes.txt', 'document_id': 'doc_1'})

        assert {c.document_id for c in chunks} == {'doc_1'}
        assert {c.document_name for c in chunks} == {'notes.txt'}
        assert chunks[0].token_length is None


# ============================================================================
# FAILURES
# ============================================================================

class TestFailures:

    @pytest.mark.asyncio
    async def test_blank_document_rejected_before_embedding(self, identical_embedder, regex_splitter):
        chunker = SemanticChunker(identical_embedder, ChunkingOptions(), sentence_splitter=regex_splitter)

        with pytest.raises(ValueError):
            await chunker.chunk_document("   ")

        assert identical_embedder.calls == []

    @pytest.mark.asyncio
    async def test_embedding_failure_propagates(self, regex_splitter):
        async def failing(texts):
            raise ConnectionError("model server down")

        chunker = SemanticChunker(failing, ChunkingOptions(), sentence_splitter=regex_splitter)

        with pytest.raises(ConnectionError):
            await chunker.chunk_document("One. Two.")


# ============================================================================
# STATISTICS
# ============================================================================

class TestStatistics:

    @pytest.mark.asyncio
    async def test_get_statistics(self, identical_embedder, regex_splitter):
        options = ChunkingOptions(max_chunk_size=12, combine_chunks=False)
        chunker = SemanticChunker(identical_embedder, options, sentence_splitter=regex_splitter)
        chunks = await chunker.chunk_document("Aaaa. Bbbb. Cccccccccc.", semantic=False)

        stats = SemanticChunker.get_statistics(chunks)

        assert stats['total_chunks'] == 2
        assert stats['min'] == 11
        assert stats['max'] == 11

    def test_statistics_empty(self):
        assert SemanticChunker.get_statistics([]) == {}
