# -*- coding: utf-8 -*-
"""
Per-pass merge quota for the merge optimizer.

    percentage_limit = max(1, floor(n * percentage_cap))
    effective        = min(percentage_limit, absolute_cap)
    soft floor       raises effective up to min(soft_floor, absolute_cap)

Pure and deterministic: identical inputs always give the same quota.
"""
import math
from typing import Optional


def compute_merge_limit(
    candidate_count: int,
    percentage_cap: float,
    absolute_cap: int,
    soft_floor: Optional[int] = None,
) -> int:
    """
    Number of merges allowed in one pass.

    Args:
        candidate_count: Live merge candidates this pass
        percentage_cap: Fraction of candidates allowed (0.4 = 40%)
        absolute_cap: Hard upper bound on merges per pass
        soft_floor: Minimum merges per pass, still bounded by absolute_cap;
            None or 0 disables it

    Returns:
        Quota (0 when there are no candidates)
    """
    if candidate_count <= 0:
        return 0

    percentage_limit = max(1, math.floor(candidate_count * percentage_cap))
    effective_limit = min(percentage_limit, absolute_cap)

    if soft_floor and soft_floor > effective_limit:
        effective_limit = min(soft_floor, absolute_cap)

    return effective_limit
