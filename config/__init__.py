# -*- coding: utf-8 -*-
"""
Configuration package: default chunking, embedding and processing parameters.
"""
