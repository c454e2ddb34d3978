# -*- coding: utf-8 -*-
"""
Module: chunking_config.py
Package: config
Purpose: Default parameters for sentence segmentation, chunk merging and embedding

Every value can be overridden from the environment (or a .env file) with a
CHUNKMERGE_ prefixed variable, e.g. CHUNKMERGE_MAX_CHUNK_SIZE=800.

References:
    - chunkmerge.processing.chunks.chunking_options (validated options object)
    - DESIGN.md for the meaning of the throttle parameters
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _env(name, default, cast):
    """Read CHUNKMERGE_<name> from the environment, falling back to default."""
    raw = os.getenv(f'CHUNKMERGE_{name}')
    if raw is None or raw == '':
        return default
    if cast is bool:
        return raw.strip().lower() in ('1', 'true', 'yes', 'on')
    if raw.strip().lower() == 'none':
        return None
    return cast(raw)


# ============================================================================
# CHUNKING
# ============================================================================

CHUNKING_CONFIG = {
    # Size limit per chunk, measured in `size_unit`
    'max_chunk_size': _env('MAX_CHUNK_SIZE', 500, int),
    'size_unit': _env('SIZE_UNIT', 'characters', str),  # 'characters' or 'tokens'

    # Initial segmentation (sentence similarity boundaries)
    'similarity_threshold': _env('SIMILARITY_THRESHOLD', 0.5, float),
    'dynamic_threshold_lower_bound': _env('DYNAMIC_THRESHOLD_LOWER_BOUND', 0.4, float),
    'dynamic_threshold_upper_bound': _env('DYNAMIC_THRESHOLD_UPPER_BOUND', 0.8, float),
    'num_similarity_sentences_lookahead': _env('NUM_SIMILARITY_SENTENCES_LOOKAHEAD', 3, int),

    # Iterative merge optimisation
    'combine_chunks': _env('COMBINE_CHUNKS', True, bool),
    'combine_chunks_similarity_threshold': _env('COMBINE_CHUNKS_SIMILARITY_THRESHOLD', 0.5, float),
    'max_uncapped_passes': _env('MAX_UNCAPPED_PASSES', 100, int),
    'max_merges_per_pass': _env('MAX_MERGES_PER_PASS', 500, int),        # absolute cap
    'max_merges_per_pass_percentage': _env('MAX_MERGES_PER_PASS_PERCENTAGE', 40.0, float),  # % of live candidates
    'min_merges_per_pass': _env('MIN_MERGES_PER_PASS', 12, int),         # soft floor, None disables

    # Output
    'return_embedding': _env('RETURN_EMBEDDING', True, bool),
    'chunk_prefix': _env('CHUNK_PREFIX', '', str),
    'exclude_chunk_prefix_in_results': _env('EXCLUDE_CHUNK_PREFIX_IN_RESULTS', False, bool),
}


# ============================================================================
# EMBEDDING
# ============================================================================

EMBEDDING_CONFIG = {
    'model_name': _env('EMBEDDING_MODEL', 'BAAI/bge-small-en-v1.5', str),
    'batch_size': _env('EMBEDDING_BATCH_SIZE', 32, int),
    'device': _env('EMBEDDING_DEVICE', None, str),
    'normalize': _env('EMBEDDING_NORMALIZE', True, bool),
}


# ============================================================================
# BATCH PROCESSING
# ============================================================================

PROCESSING_CONFIG = {
    'max_concurrent_documents': _env('MAX_CONCURRENT_DOCUMENTS', 4, int),
    'output_dir': _env('OUTPUT_DIR', 'data/processed/chunks', str),
}
