# -*- coding: utf-8 -*-
"""
Shared fixtures: deterministic embedding collaborators and a regex sentence
splitter, so no test needs a model download or NLTK data.
"""
import hashlib
import re
import sys
from pathlib import Path

import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


class RecordingEmbedder:
    """Async embedding collaborator that records every batch it receives."""

    def __init__(self, vector_fn):
        self.vector_fn = vector_fn
        self.calls = []

    async def __call__(self, texts):
        self.calls.append(list(texts))
        return [np.asarray(self.vector_fn(t), dtype=np.float32) for t in texts]

    @property
    def batch_sizes(self):
        return [len(batch) for batch in self.calls]


def _topic_vector(text):
    """
    Geometry of the "hidden friend" document:
        A at 0 deg, Blocker at 60 deg, A-ish at 30 deg,
        [Blocker + A-ish] at 45 deg (similar enough to A once merged).
    """
    if "Topic A." in text and "Blocker" in text and "Topic A-ish" in text:
        return [0.8, 0.4]
    if "Blocker" in text and "Topic A-ish" in text:
        return [0.683, 0.683]
    if "Topic A-ish" in text:
        return [0.866, 0.5]
    if "Topic A." in text:
        return [1.0, 0.0]
    if "Blocker" in text:
        return [0.5, 0.866]
    return [0.0, 1.0]


def _hash_vector(text, dim=8):
    seed = int(hashlib.sha256(text.encode('utf-8')).hexdigest()[:8], 16)
    return np.random.default_rng(seed).random(dim)


@pytest.fixture
def identical_embedder():
    """Every text gets the same vector (all neighbours have similarity 1)."""
    return RecordingEmbedder(lambda text: [0.1] * 10)


@pytest.fixture
def topic_embedder():
    return RecordingEmbedder(_topic_vector)


@pytest.fixture
def hash_embedder():
    """Pseudo-random but deterministic vectors keyed by text."""
    return RecordingEmbedder(_hash_vector)


@pytest.fixture
def regex_splitter():
    def split(text):
        return [s.strip() for s in re.split(r'(?<=[.!?])\s+', text) if s.strip()]
    return split


@pytest.fixture
def hidden_friend_text():
    return "This is Topic A.\nThis is a Blocker sentence.\nThis is Topic A-ish."


@pytest.fixture
def ten_sentences():
    return [f"Sentence {i}." for i in range(1, 11)]
