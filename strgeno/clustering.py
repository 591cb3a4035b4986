"""Agglomerative hierarchical clustering with Ward's method."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from itertools import combinations


@dataclass(frozen=True)
class Step:
    """One merge of the dendrogram.

    Observations are labelled ``0..n-1``; the cluster created by step ``i``
    is labelled ``n + i``. ``cluster1`` is always the smaller label.
    """

    cluster1: int
    cluster2: int
    dissimilarity: float
    size: int


def _key(a: int, b: int) -> tuple[int, int]:
    return (a, b) if a < b else (b, a)


def ward_linkage(condensed: Sequence[float], n: int) -> list[Step]:
    """Cluster ``n`` observations given their condensed distance matrix.

    ``condensed`` holds the upper triangle of the distance matrix row by row.
    The steps are returned in order of increasing dissimilarity, which is
    expressed in the units of the input distances.
    """
    if n < 1:
        raise ValueError("At least one observation is needed for clustering")
    if len(condensed) != n * (n - 1) // 2:
        raise ValueError(
            f"A condensed matrix for {n} observations needs {n * (n - 1) // 2} values, "
            f"got {len(condensed)}"
        )
    dist: dict[tuple[int, int], float] = {}
    for pair, value in zip(combinations(range(n), 2), condensed):
        value = float(value)
        if math.isnan(value):
            raise ValueError("Distances must not be NaN")
        dist[pair] = value * value

    sizes = {index: 1 for index in range(n)}
    merges: list[tuple[int, int, float, int]] = []
    while len(sizes) > 1:
        a, b = min(dist, key=lambda pair: (dist[pair], pair))
        d_ab = dist.pop((a, b))
        size_a = sizes.pop(a)
        size_b = sizes[b]
        for x, size_x in sizes.items():
            if x == b:
                continue
            d_ax = dist.pop(_key(a, x))
            d_bx = dist[_key(b, x)]
            dist[_key(b, x)] = (
                (size_x + size_a) * d_ax + (size_x + size_b) * d_bx - size_x * d_ab
            ) / (size_a + size_b + size_x)
        sizes[b] = size_a + size_b
        merges.append((a, b, math.sqrt(max(d_ab, 0.0)), size_a + size_b))

    parent = list(range(2 * n - 1))

    def find(node: int) -> int:
        while parent[node] != node:
            node = parent[node]
        return node

    steps = []
    for label, (a, b, dissimilarity, size) in enumerate(
        sorted(merges, key=lambda merge: merge[2]), start=n
    ):
        first, second = find(a), find(b)
        parent[first] = parent[second] = label
        steps.append(Step(min(first, second), max(first, second), dissimilarity, size))
    return steps