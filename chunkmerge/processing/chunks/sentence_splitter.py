# -*- coding: utf-8 -*-
"""
Text normalisation and sentence splitting (NLTK punkt).

Sentences are the atomic unit of chunking: nothing downstream ever splits
below sentence granularity.
"""
import logging
import re
from typing import List

import nltk

logger = logging.getLogger(__name__)

_SINGLE_NEWLINE = re.compile(r'([^\n])\n([^\n])')
_WHITESPACE_RUN = re.compile(r'\s{2,}')

_punkt_ready = False


def _ensure_punkt() -> None:
    """Download punkt tables on first use if they are missing."""
    global _punkt_ready
    if _punkt_ready:
        return
    try:
        nltk.data.find('tokenizers/punkt_tab')
    except LookupError:
        logger.info("Downloading NLTK punkt_tab tokenizer data")
        nltk.download('punkt_tab', quiet=True)
    _punkt_ready = True


def normalize_text(text: str) -> str:
    """
    Join soft-wrapped lines and collapse whitespace runs.

    A single newline between two non-newline characters becomes a space;
    any run of two or more whitespace characters becomes one space.
    """
    text = _SINGLE_NEWLINE.sub(r'\1 \2', text)
    text = _WHITESPACE_RUN.sub(' ', text)
    return text.strip()


def split_sentences(text: str, language: str = 'english') -> List[str]:
    """
    Split text into ordered, non-empty sentences.

    Args:
        text: Document text (normalised or raw)
        language: punkt language model

    Returns:
        List of stripped sentences in original order
    """
    _ensure_punkt()
    sentences = nltk.sent_tokenize(text, language=language)
    return [s.strip() for s in sentences if s.strip()]
