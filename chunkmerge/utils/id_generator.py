# -*- coding: utf-8 -*-
"""
Deterministic ID generation for documents and chunks.

Uses truncated SHA-256 hashes so the same document text always receives the
same ID across runs.

Example:
    from chunkmerge.utils.id_generator import generate_document_id, generate_chunk_id

    doc_id = generate_document_id("Some text.", name="notes.txt")
    # Returns: "doc_5d41402abc4b"
    chunk_id = generate_chunk_id(doc_id, 3)
    # Returns: "doc_5d41402abc4b_CHUNK_0003"
"""

import hashlib
from typing import Optional


def _hash_string(content: str, length: int = 12) -> str:
    """
    Truncated SHA-256 hex digest of content.

    12 hex chars = 48 bits, collisions are negligible at corpus scale.
    """
    hash_obj = hashlib.sha256(content.encode('utf-8'))
    return hash_obj.hexdigest()[:length]


def generate_document_id(text: str, name: Optional[str] = None) -> str:
    """
    Generate document ID from its name and content.

    Args:
        text: Full document text
        name: Optional document name (file name, title)

    Returns:
        Document ID in format "doc_<12-char-hex>"
    """
    content = f"{(name or '').strip()}|{text}"
    return f"doc_{_hash_string(content)}"


def generate_chunk_id(doc_id: str, chunk_index: int) -> str:
    """
    Generate chunk ID from document ID and 0-indexed position.

    Example:
        >>> generate_chunk_id("doc_1a2b3c4d5e6f", 42)
        "doc_1a2b3c4d5e6f_CHUNK_0042"
    """
    return f"{doc_id}_CHUNK_{chunk_index:04d}"

