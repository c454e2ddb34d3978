# -*- coding: utf-8 -*-
"""
Size counting for chunks.

Provides the size collaborators shared by the initial segmenter and the merge
optimizer's size gate: plain character length or tiktoken token counts. Both
must be applied to the exact joined chunk text so that the size limit holds
for the final output.

Example:
    counter = get_size_function('tokens')
    counter("A short sentence.")
    # Returns: 4
"""

# Standard library
import logging
from functools import lru_cache
from typing import Callable

# Third-party
import tiktoken

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "cl100k_base"

SizeFunction = Callable[[str], int]


@lru_cache(maxsize=4)
def _get_encoding(name: str):
    return tiktoken.get_encoding(name)


def count_characters(text: str) -> int:
    """Character length of text."""
    return len(text)


def count_tokens(text: str, encoding_name: str = DEFAULT_ENCODING) -> int:
    """
    Count tokens in text using tiktoken.

    Args:
        text: Text to count tokens for.
        encoding_name: tiktoken encoding (default: cl100k_base).

    Returns:
        Number of tokens.
    """
    encoding = _get_encoding(encoding_name)
    return len(encoding.encode(text, disallowed_special=()))


def get_size_function(unit: str = 'characters', encoding_name: str = DEFAULT_ENCODING) -> SizeFunction:
    """
    Return the size collaborator for a size unit.

    Args:
        unit: 'characters' or 'tokens'
        encoding_name: tiktoken encoding used for 'tokens'

    Raises:
        ValueError: For an unknown unit
    """
    if unit == 'characters':
        return count_characters
    if unit == 'tokens':
        # Fail early if the encoding cannot be loaded
        _get_encoding(encoding_name)
        return lambda text: count_tokens(text, encoding_name)
    raise ValueError(f"Unknown size unit '{unit}' (expected 'characters' or 'tokens')")
