# -*- coding: utf-8 -*-
"""
Module: chunking_options.py
Package: chunkmerge.processing.chunks
Purpose: Validated options for one chunking call

Defaults come from CHUNKING_CONFIG (config/chunking_config.py). Options are
validated once in __post_init__; every downstream stage trusts them.

from_dict() also accepts camelCase option names (maxChunkSize,
combineChunksSimilarityThreshold, ...) and a few older aliases.
"""

# Standard library
import logging
import re
from dataclasses import dataclass, asdict, fields
from typing import Any, Dict, Optional

# Config
from config.chunking_config import CHUNKING_CONFIG

logger = logging.getLogger(__name__)

SIZE_UNITS = ('characters', 'tokens')

# Older option names that map onto current fields
_ALIASES = {
    'max_token_size': 'max_chunk_size',
    'max_passes': 'max_uncapped_passes',
    'candiate_merges_percentage_cap': 'max_merges_per_pass_percentage',
    'candidate_merges_percentage_cap': 'max_merges_per_pass_percentage',
    'uncapped_candidate_merges': 'min_merges_per_pass',
}


def _snake_case(name: str) -> str:
    return re.sub(r'(?<!^)(?=[A-Z])', '_', name).lower()


@dataclass
class ChunkingOptions:
    """
    Options for chunk_document().

    Attributes:
        max_chunk_size: Size limit per chunk, in size_unit
        similarity_threshold: Base boundary threshold for initial segmentation
        dynamic_threshold_lower_bound / dynamic_threshold_upper_bound: Clamp
            range for the dynamic threshold (lower >= upper disables it)
        num_similarity_sentences_lookahead: Following sentences compared per
            boundary (max similarity wins)
        combine_chunks: Run the merge optimizer after segmentation
        combine_chunks_similarity_threshold: Minimum similarity for a merge
        max_uncapped_passes: Uncapped optimizer passes before stopping
        max_merges_per_pass: Absolute merge quota per pass
        max_merges_per_pass_percentage: Quota as percent of live candidates
        min_merges_per_pass: Soft floor on the quota (None disables)
        return_embedding: Attach embeddings to the returned chunks
        chunk_prefix: Prefix rendered as "<prefix>: <text>"
        exclude_chunk_prefix_in_results: Embed with the prefix but return
            texts without it
        size_unit: 'characters' or 'tokens'
    """
    max_chunk_size: int = CHUNKING_CONFIG['max_chunk_size']
    similarity_threshold: float = CHUNKING_CONFIG['similarity_threshold']
    dynamic_threshold_lower_bound: float = CHUNKING_CONFIG['dynamic_threshold_lower_bound']
    dynamic_threshold_upper_bound: float = CHUNKING_CONFIG['dynamic_threshold_upper_bound']
    num_similarity_sentences_lookahead: int = CHUNKING_CONFIG['num_similarity_sentences_lookahead']
    combine_chunks: bool = CHUNKING_CONFIG['combine_chunks']
    combine_chunks_similarity_threshold: float = CHUNKING_CONFIG['combine_chunks_similarity_threshold']
    max_uncapped_passes: int = CHUNKING_CONFIG['max_uncapped_passes']
    max_merges_per_pass: int = CHUNKING_CONFIG['max_merges_per_pass']
    max_merges_per_pass_percentage: float = CHUNKING_CONFIG['max_merges_per_pass_percentage']
    min_merges_per_pass: Optional[int] = CHUNKING_CONFIG['min_merges_per_pass']
    return_embedding: bool = CHUNKING_CONFIG['return_embedding']
    chunk_prefix: str = CHUNKING_CONFIG['chunk_prefix']
    exclude_chunk_prefix_in_results: bool = CHUNKING_CONFIG['exclude_chunk_prefix_in_results']
    size_unit: str = CHUNKING_CONFIG['size_unit']

    def __post_init__(self):
        errors = []

        if not isinstance(self.max_chunk_size, int) or self.max_chunk_size <= 0:
            errors.append(f"max_chunk_size must be a positive integer, got {self.max_chunk_size!r}")

        for name in ('similarity_threshold', 'combine_chunks_similarity_threshold',
                     'dynamic_threshold_lower_bound', 'dynamic_threshold_upper_bound'):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not -1.0 <= value <= 1.0:
                errors.append(f"{name} must be in [-1, 1], got {value!r}")

        for name in ('num_similarity_sentences_lookahead', 'max_uncapped_passes'):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                errors.append(f"{name} must be a non-negative integer, got {value!r}")

        if not isinstance(self.max_merges_per_pass, int) or self.max_merges_per_pass < 1:
            errors.append(f"max_merges_per_pass must be at least 1, got {self.max_merges_per_pass!r}")

        pct = self.max_merges_per_pass_percentage
        if not isinstance(pct, (int, float)) or not 0 < pct <= 100:
            errors.append(f"max_merges_per_pass_percentage must be in (0, 100], got {pct!r}")

        if self.min_merges_per_pass is not None and (
            not isinstance(self.min_merges_per_pass, int) or self.min_merges_per_pass < 0
        ):
            errors.append(f"min_merges_per_pass must be None or >= 0, got {self.min_merges_per_pass!r}")

        if self.size_unit not in SIZE_UNITS:
            errors.append(f"size_unit must be one of {SIZE_UNITS}, got {self.size_unit!r}")

        if not isinstance(self.chunk_prefix, str):
            errors.append(f"chunk_prefix must be a string, got {type(self.chunk_prefix).__name__}")

        if errors:
            raise ValueError("Invalid chunking options: " + "; ".join(errors))

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]] = None) -> "ChunkingOptions":
        """
        Build options from a loose dict (snake_case or camelCase keys).

        Unknown keys are logged and ignored.
        """
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in (data or {}).items():
            name = _snake_case(key)
            name = _ALIASES.get(name, name)
            if name in known:
                kwargs[name] = value
            else:
                logger.warning(f"Ignoring unknown chunking option '{key}'")
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
