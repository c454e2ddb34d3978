# -*- coding: utf-8 -*-
"""
Chunking subpackage.

Contains the initial segmenter, the chunk graph, the throttled global-priority
merge optimizer, semantic_chunker (per-document pipeline) and chunk_processor
(multi-document orchestrator).
"""
