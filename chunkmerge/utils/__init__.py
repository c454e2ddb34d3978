# -*- coding: utf-8 -*-
"""
Utilities package shared by the chunking pipeline.

Contains logging setup, data classes, size counters, ID generators,
JSON/JSONL helpers and the sentence-transformers embedder.
"""
