# -*- coding: utf-8 -*-
"""
Sentence-transformers embedder used as the default embedding collaborator.

The merge optimizer only needs an async callable
`(texts: List[str]) -> Sequence[vector]`; BGEEmbedder provides one
through `embed_batch_async` (or by calling the instance directly), running
the blocking model.encode() in a worker thread so several documents can be
optimised concurrently.

Example:
    embedder = BGEEmbedder(model_name='BAAI/bge-small-en-v1.5')
    vectors = embedder.embed_batch(["Article 1 ...", "Section 2 ..."])
    vectors = await embedder(["Article 1 ...", "Section 2 ..."])
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence

import numpy as np

from config.chunking_config import EMBEDDING_CONFIG

logger = logging.getLogger(__name__)

# (texts) -> awaitable of one vector per text, same order
EmbedBatchCallback = Callable[[List[str]], Awaitable[Sequence[Sequence[float]]]]


class EmbeddingContractError(ValueError):
    """The embedding collaborator returned a batch of the wrong length."""


async def embed_texts(embed_batch: EmbedBatchCallback, texts: List[str]) -> List[np.ndarray]:
    """
    Call the embedding collaborator once and check the batch contract.

    Errors raised by the collaborator propagate unchanged; there is no retry.

    Raises:
        EmbeddingContractError: If the number of vectors differs from len(texts)
    """
    vectors = await embed_batch(list(texts))
    if vectors is None or len(vectors) != len(texts):
        got = "None" if vectors is None else len(vectors)
        raise EmbeddingContractError(
            f"Embedding collaborator returned {got} vectors for {len(texts)} texts"
        )
    return [np.asarray(v, dtype=np.float32) for v in vectors]


class BGEEmbedder:
    """
    Lazy-loading SentenceTransformer wrapper.

    The model is loaded on first use so constructing an embedder (e.g. in a
    CLI that fails argument validation) stays cheap.
    """

    def __init__(
        self,
        model_name: str = EMBEDDING_CONFIG['model_name'],
        device: Optional[str] = EMBEDDING_CONFIG['device'],
        batch_size: int = EMBEDDING_CONFIG['batch_size'],
        normalize: bool = EMBEDDING_CONFIG['normalize'],
    ):
        self.model_name = model_name
        self.device = device
        self.batch_size = batch_size
        self.normalize = normalize
        self._model = None

    @property
    def model(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer

            logger.info(f"Loading embedding model: {self.model_name}")
            self._model = SentenceTransformer(self.model_name, device=self.device)
            logger.info(f"Model loaded on device: {self._model.device}")
        return self._model

    def get_embedding_dim(self) -> int:
        return self.model.get_sentence_embedding_dimension()

    def embed_batch(self, texts: List[str], show_progress: bool = False) -> np.ndarray:
        """
        Embed texts synchronously.

        Returns:
            Array of shape (len(texts), dim); empty input gives shape (0, 0)
        """
        if not texts:
            return np.zeros((0, 0), dtype=np.float32)

        logger.debug(f"Embedding {len(texts)} texts with batch_size={self.batch_size}")
        return self.model.encode(
            list(texts),
            batch_size=self.batch_size,
            show_progress_bar=show_progress,
            convert_to_numpy=True,
            normalize_embeddings=self.normalize,
        )

    async def embed_batch_async(self, texts: List[str]) -> List[np.ndarray]:
        """Embed texts in a worker thread; one vector per input text."""
        embeddings = await asyncio.to_thread(self.embed_batch, texts)
        return list(embeddings)

    async def __call__(self, texts: List[str]) -> List[np.ndarray]:
        return await self.embed_batch_async(texts)
