"""Global alignment of a sequence to a partial-order graph with affine gaps."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

_NEG = -(1 << 60)

_H, _M, _X, _Y = "H", "M", "X", "Y"


@dataclass(frozen=True)
class Scoring:
    """Scores for alignment: a gap of length k costs ``gap_open + k * gap_extend``."""

    gap_open: int = -12
    gap_extend: int = -6
    match_bonus: int = 3
    mismatch_penalty: int = -4

    def match_score(self, a: str, b: str) -> int:
        """Score of aligning base ``a`` against base ``b``."""
        return self.match_bonus if a == b else self.mismatch_penalty


class Operation(Enum):
    """Kind of alignment step."""

    MATCH = "match"
    INSERTION = "insertion"
    DELETION = "deletion"


@dataclass(frozen=True)
class AlignmentStep:
    """One step: a match pairs ``node`` with ``query``; gaps use only one of them."""

    operation: Operation
    node: int | None
    query: int | None


@dataclass
class Alignment:
    """Score and steps (in order) of an alignment to a graph."""

    score: int
    steps: list[AlignmentStep] = field(default_factory=list)


def align_to_graph(
    bases: Sequence[str],
    predecessors: Sequence[Sequence[int]],
    seq: str,
    scoring: Scoring,
) -> Alignment:
    """Globally align ``seq`` to a graph given in topological order.

    ``bases[k]`` is the base of node ``k`` and ``predecessors[k]`` lists the
    nodes with an edge into node ``k``; every predecessor must come before the
    node. The alignment starts before any source node and ends after the
    best-scoring sink node.
    """
    n = len(bases)
    if len(predecessors) != n:
        raise ValueError("bases and predecessors must have the same length")
    m = len(seq)
    ext = scoring.gap_extend
    open_ext = scoring.gap_open + ext

    H = [[_NEG] * (m + 1) for _ in range(n + 1)]
    X = [[_NEG] * (m + 1) for _ in range(n + 1)]
    Y = [[_NEG] * (m + 1) for _ in range(n + 1)]
    h_state = [[_H] * (m + 1) for _ in range(n + 1)]
    m_from = [[0] * (m + 1) for _ in range(n + 1)]
    x_from = [[_H] * (m + 1) for _ in range(n + 1)]
    y_from: list[list[tuple[int, str]]] = [[(0, _H)] * (m + 1) for _ in range(n + 1)]

    H[0][0] = 0
    for j in range(1, m + 1):
        X[0][j] = scoring.gap_open + ext * j
        H[0][j] = X[0][j]
        h_state[0][j] = _X
        x_from[0][j] = _H if j == 1 else _X

    has_successor = set()
    for i in range(1, n + 1):
        preds = predecessors[i - 1]
        for p in preds:
            if not 0 <= p < i - 1:
                raise ValueError(f"Predecessor {p} of node {i - 1} is not earlier in the order")
            has_successor.add(p)
        rows = [p + 1 for p in preds] or [0]
        base = bases[i - 1]
        Hi, Xi, Yi = H[i], X[i], Y[i]
        for j in range(m + 1):
            best_y = _NEG
            y_ptr = (rows[0], _H)
            for p in rows:
                candidate = H[p][j] + open_ext
                if candidate > best_y:
                    best_y, y_ptr = candidate, (p, _H)
                candidate = Y[p][j] + ext
                if candidate > best_y:
                    best_y, y_ptr = candidate, (p, _Y)
            Yi[j] = best_y
            y_from[i][j] = y_ptr
            best, state = best_y, _Y
            if j:
                score = scoring.match_score(base, seq[j - 1])
                best_m = _NEG
                m_ptr = rows[0]
                for p in rows:
                    candidate = H[p][j - 1] + score
                    if candidate > best_m:
                        best_m, m_ptr = candidate, p
                m_from[i][j] = m_ptr
                best_x, x_ptr = Hi[j - 1] + open_ext, _H
                if Xi[j - 1] + ext > best_x:
                    best_x, x_ptr = Xi[j - 1] + ext, _X
                Xi[j] = best_x
                x_from[i][j] = x_ptr
                if best_m >= best:
                    best, state = best_m, _M
                if best_x > best:
                    best, state = best_x, _X
            Hi[j] = best
            h_state[i][j] = state

    if n:
        sinks = [k + 1 for k in range(n) if k not in has_successor]
        end = max(sinks, key=lambda row: (H[row][m], -row))
    else:
        end = 0
    score = H[end][m]

    steps: list[AlignmentStep] = []
    i, j, state = end, m, _H
    while i > 0 or j > 0:
        if state == _H:
            state = h_state[i][j] if i > 0 else _X
            if j == 0:
                state = _Y
        if state == _M:
            steps.append(AlignmentStep(Operation.MATCH, i - 1, j - 1))
            i, j, state = m_from[i][j], j - 1, _H
        elif state == _X:
            steps.append(AlignmentStep(Operation.INSERTION, None, j - 1))
            state = x_from[i][j]
            j -= 1
        else:
            steps.append(AlignmentStep(Operation.DELETION, i - 1, None))
            i, state = y_from[i][j]
    steps.reverse()
    return Alignment(score, steps)