# -*- coding: utf-8 -*-
"""
Tests for ChunkingOptions validation and dict loading.
"""
import logging

import pytest

from chunkmerge.processing.chunks.chunking_options import ChunkingOptions
from config.chunking_config import CHUNKING_CONFIG


class TestDefaults:

    def test_defaults_follow_config(self):
        options = ChunkingOptions()
        assert options.max_chunk_size == CHUNKING_CONFIG['max_chunk_size']
        assert options.combine_chunks == CHUNKING_CONFIG['combine_chunks']
        assert options.size_unit == CHUNKING_CONFIG['size_unit']

    def test_to_dict_round_trip(self):
        options = ChunkingOptions(max_chunk_size=321, chunk_prefix="query")
        assert ChunkingOptions(**options.to_dict()) == options


class TestValidation:

    @pytest.mark.parametrize("field,value", [
        ('max_chunk_size', 0),
        ('max_chunk_size', 12.5),
        ('similarity_threshold', 1.5),
        ('combine_chunks_similarity_threshold', -2),
        ('num_similarity_sentences_lookahead', -1),
        ('max_uncapped_passes', -3),
        ('max_merges_per_pass', 0),
        ('max_merges_per_pass_percentage', 0),
        ('max_merges_per_pass_percentage', 150),
        ('min_merges_per_pass', -1),
        ('size_unit', 'words'),
        ('chunk_prefix', None),
    ])
    def test_invalid_value(self, field, value):
        with pytest.raises(ValueError, match=field):
            ChunkingOptions(**{field: value})

    def test_all_errors_reported_together(self):
        with pytest.raises(ValueError) as exc_info:
            ChunkingOptions(max_chunk_size=-1, size_unit='pages')
        assert 'max_chunk_size' in str(exc_info.value)
        assert 'size_unit' in str(exc_info.value)

    def test_soft_floor_can_be_disabled(self):
        assert ChunkingOptions(min_merges_per_pass=None).min_merges_per_pass is None


class TestFromDict:

    def test_camel_case_keys(self):
        options = ChunkingOptions.from_dict({
            'maxChunkSize': 800,
            'combineChunksSimilarityThreshold': 0.7,
            'numSimilaritySentencesLookahead': 2,
            'excludeChunkPrefixInResults': True,
        })
        assert options.max_chunk_size == 800
        assert options.combine_chunks_similarity_threshold == 0.7
        assert options.num_similarity_sentences_lookahead == 2
        assert options.exclude_chunk_prefix_in_results is True

    def test_legacy_aliases(self):
        options = ChunkingOptions.from_dict({'maxTokenSize': 300, 'maxPasses': 4})
        assert options.max_chunk_size == 300
        assert options.max_uncapped_passes == 4

    def test_none_gives_defaults(self):
        assert ChunkingOptions.from_dict(None) == ChunkingOptions()

    def test_unknown_keys_warned(self, caplog):
        with caplog.at_level(logging.WARNING):
            options = ChunkingOptions.from_dict({'maxChunkSize': 100, 'colour': 'blue'})
        assert options.max_chunk_size == 100
        assert "colour" in caplog.text

    def test_invalid_values_still_rejected(self):
        with pytest.raises(ValueError):
            ChunkingOptions.from_dict({'maxChunkSize': -5})
