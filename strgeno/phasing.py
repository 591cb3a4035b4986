"""Splitting unphased repeat insertions into haplotypes by clustering."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from itertools import combinations

from .clustering import ward_linkage
from .distance import levenshtein
from .repeats import RepeatInterval

log = logging.getLogger(__name__)


@dataclass
class SplitSequences:
    """Insertions per haplotype; ``hap2`` is None for a homozygous locus."""

    hap1: list[str]
    hap2: list[str] | None = None
    flag: str | None = None
    outliers: list[str] | None = None


def split(
    insertions: Sequence[str], repeat: RepeatInterval, check_outliers: bool
) -> SplitSequences:
    """Split unphased insertions into one or two haplotypes.

    The insertions are clustered on their edit distance with Ward's method;
    clusters smaller than a tenth of the reads (at least 1) are treated as
    noise.
    """
    n = len(insertions)
    if n < 2:
        raise ValueError("At least two insertions are needed to split them into haplotypes")
    condensed = [float(levenshtein(a, b)) for a, b in combinations(insertions, 2)]
    steps = ward_linkage(condensed, n)

    cluster_to_subclusters: dict[int, tuple[int, int]] = {}
    clusters_to_size: dict[int, int] = {}
    clusters_to_dissimilarity: dict[int, float] = {}
    subcluster_to_cluster: dict[int, int] = {}
    clusters: list[tuple[int, int]] = []
    min_cluster_size = max(int(n / 10.0), 1)
    log.debug("%s: Minimum cluster size: %d", repeat, min_cluster_size)

    for label, step in enumerate(steps, start=n):
        cluster_to_subclusters[label] = (step.cluster1, step.cluster2)
        clusters_to_size[label] = step.size
        clusters_to_dissimilarity[label] = step.dissimilarity
        subcluster_to_cluster[step.cluster1] = label
        subcluster_to_cluster[step.cluster2] = label
        clusters.append((label, step.size))
    clusters.sort(key=lambda item: item[1])
    clusters.reverse()

    if log.isEnabledFor(logging.DEBUG):
        for cluster, _size in clusters:
            first, second = cluster_to_subclusters[cluster]
            seq1 = insertions[first] if first < n else ""
            seq2 = insertions[second] if second < n else ""
            log.debug(
                "%s: Node %d with dissimilarity %s and children %d [%s] and %d [%s]",
                repeat,
                cluster,
                clusters_to_dissimilarity[cluster],
                first,
                seq1,
                second,
                seq2,
            )

    roots = find_roots(
        clusters[0][0],
        cluster_to_subclusters,
        clusters_to_size,
        clusters_to_dissimilarity,
        min_cluster_size,
    )
    log.debug("%s: Roots for this tree: %s", repeat, roots)

    haplotype_clusters: list[int] = []
    large_cluster_seen: list[int] = []
    for cluster, size in clusters:
        if cluster in roots or size <= min_cluster_size:
            continue
        parent = subcluster_to_cluster.get(cluster, cluster)
        if parent not in large_cluster_seen:
            haplotype_clusters.append(cluster)
            log.debug("%s: Adding cluster %d to candidate haplotype clusters", repeat, cluster)
        large_cluster_seen.append(cluster)

    if len(haplotype_clusters) == 0:
        log.debug(
            "%s: No haplotype clusters found! Treating this as homozygous, "
            "but here could be dragons",
            repeat,
        )
        return SplitSequences(
            hap1=list(insertions),
            hap2=None,
            flag="CLUSTERFAILURE",
            outliers=find_outliers(insertions, None) if check_outliers else None,
        )
    if len(haplotype_clusters) == 1:
        log.debug("%s: Only one haplotype cluster found", repeat)
        return SplitSequences(
            hap1=list(insertions),
            hap2=None,
            flag=None,
            outliers=find_outliers(insertions, None) if check_outliers else None,
        )
    if len(haplotype_clusters) == 2:
        log.debug("%s: Found two haplotype clusters", repeat)
        hap1 = find_cluster_members(haplotype_clusters[0], cluster_to_subclusters, insertions)
        hap2 = find_cluster_members(haplotype_clusters[1], cluster_to_subclusters, insertions)
        outliers = None
        if check_outliers:
            larger_median = max(find_median(hap1), find_median(hap2))
            outliers = find_outliers(insertions, larger_median)
        return SplitSequences(hap1=hap1, hap2=hap2, flag=None, outliers=outliers)
    raise RuntimeError(f"{repeat}: Found more than two haplotype clusters")


def find_roots(
    top_root: int,
    cluster_to_subclusters: Mapping[int, tuple[int, int]],
    clusters_to_size: Mapping[int, int],
    clusters_to_dissimilarity: Mapping[int, float],
    min_cluster_size: int,
) -> list[int]:
    """Nodes to ignore as haplotypes: the top node and nodes above lone outliers.

    Returns an empty list when a small child is too similar to its sibling
    for the node to count as a root.
    """
    roots = [top_root]
    if top_root not in cluster_to_subclusters:
        return roots
    child1, child2 = cluster_to_subclusters[top_root]
    size1 = clusters_to_size.get(child1, 0)
    size2 = clusters_to_size.get(child2, 0)
    if size1 > min_cluster_size and size2 > min_cluster_size:
        return roots
    if clusters_to_dissimilarity[top_root] < 5.0:
        return []
    child = child1 if size1 > min_cluster_size else child2
    roots.extend(
        find_roots(
            child,
            cluster_to_subclusters,
            clusters_to_size,
            clusters_to_dissimilarity,
            min_cluster_size,
        )
    )
    return roots


def find_cluster_members(
    cluster: int,
    cluster_to_subclusters: Mapping[int, tuple[int, int]],
    insertions: Sequence[str],
) -> list[str]:
    """The insertions that are leaves below ``cluster``."""
    pending = [cluster]
    members = []
    while pending:
        node = pending.pop()
        if node not in cluster_to_subclusters:
            raise KeyError(f"Cluster {node} not in the dendrogram")
        for child in cluster_to_subclusters[node]:
            if child < len(insertions):
                members.append(insertions[child])
            else:
                pending.append(child)
    return members


def find_median(seqs: Sequence[str]) -> int:
    """Median sequence length, the floored mean of the middle two for even counts."""
    if not seqs:
        raise ValueError("Cannot take the median length of no sequences")
    lengths = sorted(len(seq) for seq in seqs)
    middle = len(lengths) // 2
    if len(lengths) % 2 == 0:
        return (lengths[middle] + lengths[middle - 1]) // 2
    return lengths[middle]


def find_outliers(seqs: Sequence[str], larger_median: int | None) -> list[str] | None:
    """Sequences longer than twice the median length, or None if there are none.

    ``larger_median`` replaces the median of ``seqs`` when given.
    """
    median_length = find_median(seqs) if larger_median is None else larger_median
    outliers = [seq for seq in seqs if len(seq) > median_length * 2]
    log.debug("Found %d outliers.", len(outliers))
    return outliers or None