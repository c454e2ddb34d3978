# -*- coding: utf-8 -*-
"""
Core data structures for the chunking pipeline

Single source of truth for records that cross module boundaries: input
documents, output chunk records and the per-run processing report.

Examples:
    from chunkmerge.utils.dataclasses import Document, ChunkResult

    doc = Document.from_dict({'text': 'First sentence. Second one.', 'name': 'notes'})
    result = ChunkResult(
        document_id=doc.document_id,
        document_name=doc.name,
        chunk_number=1,
        number_of_chunks=1,
        text=doc.text,
    )

"""
from dataclasses import dataclass, field, asdict
from typing import List, Optional, Dict, Any

from chunkmerge.utils.id_generator import generate_chunk_id, generate_document_id


# ============================================================================
# INPUT
# ============================================================================

@dataclass
class Document:
    """
    Document to be chunked.

    `text` must be a non-empty string; validation happens in
    from_dict() and again at the start of chunk_document().
    """
    text: str
    name: Optional[str] = None
    document_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.document_id is None and isinstance(self.text, str):
            self.document_id = generate_document_id(self.text, self.name)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Document":
        """
        Build a Document from a loose record.

        Accepts `text` or `document_text` for the content and `name` or
        `document_name` for the label.

        Raises:
            ValueError: If the record is not a dict or has no usable text
        """
        if not isinstance(data, dict):
            raise ValueError(f"Document record must be a dict, got {type(data).__name__}")

        text = data.get('text', data.get('document_text'))
        if not isinstance(text, str) or not text.strip():
            raise ValueError("Document record is missing non-empty 'text'")

        known = {'text', 'document_text', 'name', 'document_name', 'document_id', 'doc_id', 'metadata'}
        metadata = dict(data.get('metadata') or {})
        metadata.update({k: v for k, v in data.items() if k not in known})

        return cls(
            text=text,
            name=data.get('name', data.get('document_name')),
            document_id=data.get('document_id', data.get('doc_id')),
            metadata=metadata,
        )


# ============================================================================
# OUTPUT
# ============================================================================

@dataclass
class ChunkResult:
    """One output chunk, numbered from 1 within its document."""
    document_id: str
    document_name: Optional[str]
    chunk_number: int
    number_of_chunks: int
    text: str
    embedding: Optional[List[float]] = None
    token_length: Optional[int] = None

    @property
    def chunk_id(self) -> str:
        return generate_chunk_id(self.document_id, self.chunk_number - 1)

    def to_dict(self, include_embedding: bool = True) -> Dict[str, Any]:
        """Convert to a JSON-ready dict, dropping unset optional fields."""
        data = asdict(self)
        data = {'chunk_id': self.chunk_id, **data}
        if not include_embedding or self.embedding is None:
            data.pop('embedding')
        if self.token_length is None:
            data.pop('token_length')
        return data


@dataclass
class ChunkingReport:
    """Summary of a multi-document chunking run."""
    total_documents: int
    processed_documents: int
    total_chunks: int
    failed: List[Dict[str, str]] = field(default_factory=list)
    documents: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    size_statistics: Dict[str, float] = field(default_factory=dict)
    options: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
