# -*- coding: utf-8 -*-
"""
chunkmerge source package.

Splits documents into sentence-aligned chunks for vector retrieval and
improves the split with an iterative, globally prioritised merge of
semantically similar neighbours.
"""

__version__ = '0.3.0'
