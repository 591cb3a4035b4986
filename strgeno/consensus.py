"""Consensus sequences of repeat insertions, built with partial-order alignment."""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Sequence
from dataclasses import dataclass

from .alignment import Scoring
from .poa import PoaGraph
from .repeats import RepeatInterval

log = logging.getLogger(__name__)

_SCORING = Scoring(gap_open=-12, gap_extend=-6, match_bonus=3, mismatch_penalty=-4)


@dataclass
class Consensus:
    """A consensus sequence with its read support, length spread and graph score."""

    seq: str | None = None
    support: int = 0
    std_dev: int = 0
    score: int = -1

    def __str__(self) -> str:
        if self.seq is None:
            return "seq: None, support: 0, std_dev: 0, score: -1"
        return (
            f"seq: {self.seq}, support: {self.support}, "
            f"std_dev: {self.std_dev}, score: {self.score}"
        )


def remove_outliers(seqs: Sequence[str], repeat: RepeatInterval) -> tuple[list[str], int]:
    """Drop sequences more than two standard deviations from the mean length.

    Nothing is dropped when the (floored) standard deviation is below 5.
    Returns the kept sequences and the standard deviation.
    """
    if not seqs:
        raise ValueError("Cannot remove outliers from an empty set of sequences")
    lengths = [len(seq) for seq in seqs]
    log.debug("%s: lengths: %s", repeat, lengths)
    mean = sum(lengths) // len(lengths)
    variance = sum((length - mean) ** 2 for length in lengths) // len(lengths)
    std_dev = math.isqrt(variance)
    log.debug("mean: %d, std_dev: %d", mean, std_dev)
    if std_dev < 5:
        log.debug("std_dev < 5, not removing any outliers")
        return list(seqs), std_dev
    min_val = max(mean - 2 * std_dev, 0)
    max_val = mean + 2 * std_dev
    log.debug("Removing outliers outside of [%d,%d]", min_val, max_val)
    kept = [seq for seq, length in zip(seqs, lengths) if min_val < length < max_val]
    return kept, std_dev


def consensus(
    seqs: Sequence[str], support: int, consensus_reads: int, repeat: RepeatInterval
) -> Consensus:
    """Build the consensus of ``seqs`` after removing length outliers.

    No sequence is reported when fewer than ``support`` reads remain. With
    ``consensus_reads`` equal to 1 a random read stands in for the consensus;
    otherwise at most ``consensus_reads`` randomly chosen reads are combined.
    """
    if not seqs:
        return Consensus()
    kept, std_dev = remove_outliers(seqs, repeat)
    num_reads = len(kept)
    log.debug("%s: Kept %d/%d reads after dropping outliers", repeat, num_reads, len(seqs))
    if num_reads < support:
        return Consensus(seq=None, support=num_reads, std_dev=std_dev, score=-1)
    if not kept:
        raise ValueError(f"{repeat}: no reads left to build a consensus from")
    if consensus_reads < 1:
        raise ValueError("consensus_reads must be at least 1")
    if consensus_reads == 1:
        return Consensus(seq=random.choice(kept), support=num_reads, std_dev=std_dev, score=0)
    if num_reads > consensus_reads:
        log.debug("%s: Too many reads, downsampling to %d", repeat, consensus_reads)
        chosen = random.sample(kept, consensus_reads)
    else:
        chosen = kept
    log.info("Creating consensus for %s", repeat)
    graph = PoaGraph(chosen[0], _SCORING)
    for seq in chosen[1:]:
        graph.add_sequence(seq)
    sequence = graph.consensus()
    score = graph.align_score(sequence)
    return Consensus(seq=sequence, support=num_reads, std_dev=std_dev, score=score)