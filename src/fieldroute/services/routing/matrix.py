"""Pairwise cost matrix construction."""

from __future__ import annotations

import logging
from typing import Sequence

from .models import CostMatrix
from .providers import DistanceProvider

logger = logging.getLogger(__name__)


def build_cost_matrix(addresses: Sequence[str], provider: DistanceProvider) -> CostMatrix:
    """Resolve every ordered pair of distinct positions among ``addresses``.

    Index 0 is the start. Pairs the provider cannot price stay absent.
    """
    size = len(addresses)
    matrix = CostMatrix(size)
    index_pairs = [(i, j) for i in range(size) for j in range(size) if i != j]
    resolved = provider.resolve_many((addresses[i], addresses[j]) for i, j in index_pairs)
    for i, j in index_pairs:
        matrix.set(i, j, resolved.get((addresses[i], addresses[j])))

    missing = matrix.missing_count()
    if missing:
        logger.warning(f"Cost matrix has {missing}/{len(index_pairs)} unresolved entries")
    return matrix
